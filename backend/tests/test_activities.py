"""Tests for the activity feed and notifications."""

from datetime import UTC, datetime, timedelta

from wireline.models import Activity, ActivityAction, Tool, ToolCategory, ToolTag


def _tool(db_session, tool_id: str, status: ToolTag, updated: datetime) -> Tool:
    tool = Tool(
        tool_id=tool_id,
        name=f"Tool {tool_id}",
        category=ToolCategory.WIRELINE,
        status=status,
        last_updated=updated,
    )
    db_session.add(tool)
    db_session.commit()
    return tool


def _activity(db_session, action, when, user=None, tool=None, **fields) -> Activity:
    activity = Activity(
        action=action,
        timestamp=when,
        user_id=user.id if user else None,
        tool_id=tool.id if tool else None,
        **fields,
    )
    db_session.add(activity)
    db_session.commit()
    return activity


class TestActivityFeed:
    def test_newest_first_with_actor_and_tool(
        self, client, auth_headers, regular_user, db_session
    ):
        now = datetime.now(UTC)
        tool = _tool(db_session, "WL-1", ToolTag.GREEN, now)
        _activity(db_session, ActivityAction.CREATE, now - timedelta(hours=2), regular_user, tool)
        _activity(db_session, ActivityAction.REPORT, now - timedelta(hours=1), regular_user)

        response = client.get("/api/activities", headers=auth_headers(regular_user))

        assert response.status_code == 200
        data = response.json()
        assert [a["action"] for a in data] == ["report", "create"]
        assert data[1]["user"]["username"] == "operator"
        assert data[1]["tool"]["tool_id"] == "WL-1"
        assert data[0]["tool"] is None

    def test_limit(self, client, auth_headers, regular_user, db_session):
        now = datetime.now(UTC)
        for i in range(5):
            _activity(db_session, ActivityAction.REPORT, now - timedelta(minutes=i), regular_user)

        response = client.get(
            "/api/activities", params={"limit": 3}, headers=auth_headers(regular_user)
        )

        assert len(response.json()) == 3

    def test_system_entries_have_no_actor(self, client, auth_headers, regular_user, db_session):
        _activity(
            db_session,
            ActivityAction.SYSTEM_PERMANENT_DELETION,
            datetime.now(UTC),
            details="User gone permanently deleted after 30-day grace period",
        )

        data = client.get("/api/activities", headers=auth_headers(regular_user)).json()

        assert data[0]["user"] is None
        assert data[0]["action"] == "system_permanent_deletion"


class TestNotifications:
    def test_merges_activities_and_alert_tools(
        self, client, auth_headers, regular_user, db_session
    ):
        now = datetime.now(UTC)
        red = _tool(db_session, "WL-R", ToolTag.RED, now - timedelta(minutes=5))
        _tool(db_session, "WL-G", ToolTag.GREEN, now - timedelta(minutes=4))
        _activity(
            db_session,
            ActivityAction.UPDATE,
            now - timedelta(minutes=1),
            regular_user,
            red,
            previous_status="green",
            details="Changed Tool WL-R tag from Green to Red",
        )
        _activity(db_session, ActivityAction.CREATE, now - timedelta(minutes=10), regular_user)

        response = client.get("/api/notifications", headers=auth_headers(regular_user))

        assert response.status_code == 200
        data = response.json()
        assert [n["source"] for n in data] == ["activity", "tool", "activity"]
        status_change, tool_alert, created = data
        assert status_change["title"] == "Tool Status Changed"
        assert status_change["type"] == "error"
        assert tool_alert["title"] == "Tool Attention Required"
        assert tool_alert["id"] == f"tool-{red.id}"
        assert "WL-R" in tool_alert["message"]
        assert created["type"] == "success"
        assert created["title"] == "New Tool Added"
        assert all(n["read"] is False for n in data)

    def test_capped_at_fifteen(self, client, auth_headers, regular_user, db_session):
        now = datetime.now(UTC)
        for i in range(8):
            _tool(db_session, f"WL-Y{i}", ToolTag.YELLOW, now - timedelta(minutes=i))
        for i in range(20):
            _activity(db_session, ActivityAction.REPORT, now - timedelta(seconds=i), regular_user)

        data = client.get("/api/notifications", headers=auth_headers(regular_user)).json()

        assert len(data) == 15
        # Only the first five alert tools are considered
        assert sum(1 for n in data if n["source"] == "tool") <= 5
        timestamps = [datetime.fromisoformat(n["timestamp"]) for n in data]
        assert timestamps == sorted(timestamps, reverse=True)
