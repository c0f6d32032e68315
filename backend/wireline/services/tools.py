"""Tool inventory queries and writes."""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from wireline.models.tool import Tool, ToolCategory, ToolTag

logger = logging.getLogger(__name__)


class ToolExistsError(Exception):
    """Raised when a tool tag (``tool_id``) is already in use."""


def get_tool(db: Session, tool_pk: UUID) -> Tool | None:
    return db.get(Tool, tool_pk)


def get_tool_by_tag_id(db: Session, tool_id: str) -> Tool | None:
    return db.execute(select(Tool).where(Tool.tool_id == tool_id)).scalars().first()


def list_tools(
    db: Session,
    status: ToolTag | None = None,
    category: ToolCategory | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Tool], int]:
    """Filtered page of tools, most recently updated first.

    Returns:
        The page of tools and the total number of matches.
    """
    stmt = select(Tool)
    if status is not None:
        stmt = stmt.where(Tool.status == status)
    if category is not None:
        stmt = stmt.where(Tool.category == category)
    if search:
        stmt = stmt.where(Tool.name.ilike(f"%{search}%"))

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    stmt = (
        stmt.order_by(Tool.last_updated.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all()), total


def get_tool_stats(db: Session) -> dict[str, int]:
    """Number of tools per status tag, every tag present."""
    stats = {tag.value: 0 for tag in ToolTag}
    rows = db.execute(select(Tool.status, func.count()).group_by(Tool.status)).all()
    for tag, count in rows:
        stats[ToolTag(tag).value] = count
    return stats


def list_tools_by_status(db: Session, statuses: list[ToolTag]) -> list[Tool]:
    stmt = (
        select(Tool)
        .where(Tool.status.in_(statuses))
        .order_by(Tool.last_updated.desc())
    )
    return list(db.execute(stmt).scalars().all())


def get_tools_for_report(
    db: Session,
    tags: list[ToolTag] | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[Tool]:
    """Tools matching the report filters, ordered by tool tag id."""
    stmt = select(Tool)
    if tags:
        stmt = stmt.where(Tool.status.in_(tags))
    if start_date is not None:
        stmt = stmt.where(Tool.last_updated >= start_date)
    if end_date is not None:
        stmt = stmt.where(Tool.last_updated <= end_date)
    return list(db.execute(stmt.order_by(Tool.tool_id.asc())).scalars().all())


def create_tool(
    db: Session,
    tool_id: str,
    name: str,
    category: ToolCategory,
    status: ToolTag,
    updated_by: UUID | None,
    description: str | None = None,
    location: str | None = None,
) -> Tool:
    """Add a tool to the inventory.

    Raises:
        ToolExistsError: If ``tool_id`` is already registered.
    """
    if get_tool_by_tag_id(db, tool_id):
        raise ToolExistsError(f"Tool ID already exists: {tool_id}")

    tool = Tool(
        tool_id=tool_id,
        name=name,
        category=category,
        status=status,
        description=description,
        location=location,
        last_updated=datetime.now(UTC),
        last_updated_by=updated_by,
    )
    db.add(tool)
    db.flush()
    logger.info(f"Created tool {tool.tool_id}")
    return tool


def update_tool(
    db: Session, tool: Tool, changes: dict[str, Any], updated_by: UUID | None
) -> Tool:
    """Apply field changes and stamp the tool as updated.

    Raises:
        ToolExistsError: If ``tool_id`` is changed to one already registered.
    """
    new_tag_id = changes.get("tool_id")
    if new_tag_id and new_tag_id != tool.tool_id and get_tool_by_tag_id(db, new_tag_id):
        raise ToolExistsError(f"Tool ID already exists: {new_tag_id}")

    for field_name, value in changes.items():
        setattr(tool, field_name, value)
    tool.last_updated = datetime.now(UTC)
    tool.last_updated_by = updated_by
    db.flush()
    return tool


def delete_tool(db: Session, tool: Tool) -> None:
    db.delete(tool)
    db.flush()
