import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from wireline.core.deps import get_current_user, get_db
from wireline.core.rate_limiting import default_limit, limiter
from wireline.models import ActivityAction, ToolTag, User
from wireline.services.activity import log_activity
from wireline.services.reports import (
    FORMAT_OUTPUT,
    ReportFormat,
    ReportMetadata,
    ReportType,
    ToolReportService,
    report_filename,
)
from wireline.services.tools import get_tools_for_report

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])


class ReportRequest(BaseModel):
    report_type: ReportType = Field(alias="reportType")
    tags: list[ToolTag] = Field(default_factory=list)
    start_date: datetime | None = Field(default=None, alias="startDate")
    end_date: datetime | None = Field(default=None, alias="endDate")
    format: ReportFormat = ReportFormat.PDF

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


@router.post("/reports")
@limiter.limit(default_limit)
def generate_report(
    request: Request,
    body: ReportRequest,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> Response:
    """Render a tool report and return it as a file download."""
    if body.start_date and body.end_date and body.start_date > body.end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid date range",
        )

    tools = get_tools_for_report(
        db, tags=body.tags, start_date=body.start_date, end_date=body.end_date
    )
    metadata = ReportMetadata(
        report_type=body.report_type,
        generated_by=current_user.full_name or current_user.username,
        tags=body.tags,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    content = ToolReportService().render(tools, metadata, body.format)

    log_activity(
        db,
        current_user,
        ActivityAction.REPORT,
        details=(
            f"Generated {body.report_type.value} report ({body.format.value.upper()}) "
            f"for {metadata.tag_label} tagged tools"
        ),
    )
    db.commit()

    _, media_type = FORMAT_OUTPUT[body.format]
    filename = report_filename(body.report_type, body.format, metadata.generated_at)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
