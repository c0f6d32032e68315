"""Activity feed and the notification list derived from it."""

from datetime import UTC, datetime
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from wireline.core.deps import get_current_user, get_db
from wireline.models import Activity, ActivityAction, Tool, ToolTag, User
from wireline.services.activity import list_recent_activities
from wireline.services.tools import list_tools_by_status

router = APIRouter(tags=["activities"])

NOTIFICATION_LIMIT = 15
NOTIFICATION_ACTIVITY_WINDOW = 20
NOTIFICATION_TOOL_LIMIT = 5

NotificationType = Literal["success", "error", "warning", "info"]


class ActivityUser(BaseModel):
    id: UUID
    username: str
    full_name: str

    model_config = ConfigDict(from_attributes=True)


class ActivityTool(BaseModel):
    id: UUID
    tool_id: str
    name: str
    status: ToolTag

    model_config = ConfigDict(from_attributes=True)


class ActivityResponse(BaseModel):
    id: UUID
    action: ActivityAction
    timestamp: datetime
    details: str | None
    comments: str | None
    previous_status: str | None
    user: ActivityUser | None
    tool: ActivityTool | None

    model_config = ConfigDict(from_attributes=True)


class NotificationResponse(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    timestamp: datetime
    read: bool = False
    source: Literal["activity", "tool"]


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _notification_type(activity: Activity) -> NotificationType:
    if activity.action == ActivityAction.CREATE:
        return "success"
    if activity.action == ActivityAction.DELETE:
        return "error"
    if activity.action == ActivityAction.UPDATE and activity.previous_status:
        # Coloured by the tag the tool moved to
        new_tag = activity.tool.status if activity.tool else None
        if new_tag == ToolTag.RED:
            return "error"
        if new_tag == ToolTag.YELLOW:
            return "warning"
        if new_tag == ToolTag.GREEN:
            return "success"
    return "info"


def _notification_title(activity: Activity) -> str:
    if activity.action == ActivityAction.CREATE:
        return "New Tool Added"
    if activity.action == ActivityAction.UPDATE:
        return "Tool Status Changed" if activity.previous_status else "Tool Updated"
    if activity.action == ActivityAction.DELETE:
        return "Tool Removed"
    if activity.action == ActivityAction.REPORT:
        return "Report Generated"
    return "System Activity"


def _activity_notification(activity: Activity) -> NotificationResponse:
    return NotificationResponse(
        id=f"activity-{activity.id}",
        type=_notification_type(activity),
        title=_notification_title(activity),
        message=activity.details or f"{activity.action.value} performed",
        timestamp=_as_utc(activity.timestamp),
        source="activity",
    )


def _tool_notification(tool: Tool) -> NotificationResponse:
    tag = ToolTag(tool.status)
    return NotificationResponse(
        id=f"tool-{tool.id}",
        type="error" if tag == ToolTag.RED else "warning",
        title="Tool Attention Required",
        message=f"{tool.name} ({tool.tool_id}) has {tag.value} status and may need attention",
        timestamp=_as_utc(tool.last_updated),
        source="tool",
    )


@router.get("/activities", response_model=list[ActivityResponse])
async def get_activities(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[Activity]:
    """Newest activity entries with actor and tool."""
    return list_recent_activities(db, limit=limit)


@router.get("/notifications", response_model=list[NotificationResponse])
async def get_notifications(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> list[NotificationResponse]:
    """Recent activity merged with tools needing attention, newest first."""
    activities = list_recent_activities(db, limit=NOTIFICATION_ACTIVITY_WINDOW)
    alert_tools = list_tools_by_status(db, [ToolTag.RED, ToolTag.YELLOW])

    notifications = [_activity_notification(a) for a in activities]
    notifications += [_tool_notification(t) for t in alert_tools[:NOTIFICATION_TOOL_LIMIT]]
    notifications.sort(key=lambda n: n.timestamp, reverse=True)
    return notifications[:NOTIFICATION_LIMIT]
