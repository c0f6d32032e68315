from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from wireline.core.deps import get_current_user, get_db, parse_id, require_admin
from wireline.core.rate_limiting import default_limit, limiter
from wireline.models import ActivityAction, Tool, ToolCategory, ToolTag, User
from wireline.services.activity import log_activity
from wireline.services.tools import (
    ToolExistsError,
    create_tool,
    delete_tool,
    get_tool,
    get_tool_stats,
    list_tools,
    update_tool,
)

router = APIRouter(tags=["tools"])


class ToolResponse(BaseModel):
    id: UUID
    tool_id: str
    name: str
    category: ToolCategory
    description: str | None
    status: ToolTag
    location: str | None
    last_updated: datetime
    last_updated_by: UUID | None

    model_config = ConfigDict(from_attributes=True)


class ToolListResponse(BaseModel):
    tools: list[ToolResponse]
    total: int


class ToolStatsResponse(BaseModel):
    red: int
    yellow: int
    green: int
    white: int


class ToolCreate(BaseModel):
    tool_id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    category: ToolCategory
    status: ToolTag
    description: str | None = None
    location: str | None = None


class ToolUpdate(BaseModel):
    tool_id: str | None = Field(default=None, min_length=1, max_length=100)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: ToolCategory | None = None
    status: ToolTag | None = None
    description: str | None = None
    location: str | None = None
    # Free-text note stored on the activity entry, not on the tool
    comment: str | None = None


def _get_tool_or_404(db: Session, tool_id: str) -> Tool:
    tool = get_tool(db, parse_id(tool_id))
    if tool is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tool not found")
    return tool


@router.get("/stats", response_model=ToolStatsResponse)
async def tool_stats(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict[str, int]:
    """Number of tools per status tag."""
    return get_tool_stats(db)


@router.get("/tools", response_model=ToolListResponse)
@limiter.limit(default_limit)
async def get_tools(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    tool_status: Annotated[ToolTag | None, Query(alias="status")] = None,
    category: ToolCategory | None = None,
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> ToolListResponse:
    """List tools with optional tag, category and name filters."""
    tools, total = list_tools(
        db,
        status=tool_status,
        category=category,
        search=search,
        page=page,
        limit=limit,
    )
    return ToolListResponse(
        tools=[ToolResponse.model_validate(t) for t in tools],
        total=total,
    )


@router.get("/tools/{tool_id}", response_model=ToolResponse)
async def get_tool_detail(
    tool_id: str,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> Tool:
    return _get_tool_or_404(db, tool_id)


@router.post("/tools", response_model=ToolResponse, status_code=status.HTTP_201_CREATED)
async def add_tool(
    body: ToolCreate,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
) -> Tool:
    try:
        tool = create_tool(
            db,
            tool_id=body.tool_id,
            name=body.name,
            category=body.category,
            status=body.status,
            updated_by=admin.id,
            description=body.description,
            location=body.location,
        )
    except ToolExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tool ID already exists") from e

    log_activity(
        db,
        admin,
        ActivityAction.CREATE,
        tool=tool,
        details=f"Added {tool.name} ({tool.tool_id}) with {tool.status.value} tag",
    )
    db.commit()
    db.refresh(tool)
    return tool


@router.put("/tools/{tool_id}", response_model=ToolResponse)
async def edit_tool(
    tool_id: str,
    body: ToolUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> Tool:
    """Update a tool. A tag change is recorded with the previous tag."""
    tool = _get_tool_or_404(db, tool_id)
    previous_status = ToolTag(tool.status)

    changes = body.model_dump(exclude_unset=True, exclude={"comment"})
    try:
        update_tool(db, tool, changes, updated_by=current_user.id)
    except ToolExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tool ID already exists") from e

    if body.status is not None and body.status != previous_status:
        log_activity(
            db,
            current_user,
            ActivityAction.UPDATE,
            tool=tool,
            details=(
                f"Changed {tool.name} tag from {previous_status.value.capitalize()} "
                f"to {body.status.value.capitalize()}"
            ),
            comments=body.comment,
            previous_status=previous_status.value,
        )
    else:
        log_activity(
            db,
            current_user,
            ActivityAction.UPDATE,
            tool=tool,
            details=f"Updated {tool.name} ({tool.tool_id})",
            comments=body.comment,
        )
    db.commit()
    db.refresh(tool)
    return tool


@router.delete("/tools/{tool_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_tool(
    tool_id: str,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
) -> None:
    tool = _get_tool_or_404(db, tool_id)
    # Logged without the tool reference, the row is about to go
    log_activity(
        db,
        admin,
        ActivityAction.DELETE,
        details=f"Removed {tool.name} ({tool.tool_id}) from inventory",
    )
    delete_tool(db, tool)
    db.commit()
