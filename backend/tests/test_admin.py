"""Tests for admin account management and cleanup endpoints."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

from sqlalchemy import select

from wireline.models import Activity, ActivityAction, AccountStatus, User, UserRole
from wireline.services.email import NotificationKind, NotificationResult


def _reload(db_session, user_id) -> User | None:
    db_session.expire_all()
    return db_session.get(User, user_id)


def _actions(db_session) -> list[ActivityAction]:
    db_session.expire_all()
    return [a.action for a in db_session.execute(select(Activity)).scalars().all()]


class TestAdminAuth:
    def test_requires_authentication(self, client):
        response = client.get("/api/admin/users")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get(
            "/api/admin/users", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    def test_requires_admin_role(self, auth_headers, client, regular_user):
        response = client.get("/api/admin/users", headers=auth_headers(regular_user))
        assert response.status_code == 403

    def test_cleanup_endpoints_require_admin(self, auth_headers, client, regular_user):
        headers = auth_headers(regular_user)
        assert client.get("/api/admin/cleanup/status", headers=headers).status_code == 403
        assert client.post("/api/admin/cleanup/run", headers=headers).status_code == 403


class TestListUsers:
    def test_lists_deletion_state(self, auth_headers, client, admin_user, make_user):
        make_user("steady")
        make_user("leaving", deletion_scheduled_at=datetime.now(UTC) - timedelta(days=23))

        response = client.get("/api/admin/users", headers=auth_headers(admin_user))

        assert response.status_code == 200
        users = {u["username"]: u for u in response.json()}
        assert users["steady"]["isScheduledForDeletion"] is False
        assert users["steady"]["daysToDeletion"] is None
        assert users["leaving"]["isScheduledForDeletion"] is True
        assert users["leaving"]["daysToDeletion"] == 7
        assert "password_hash" not in users["leaving"]


class TestCreateUser:
    def test_admin_creates_user(self, auth_headers, client, admin_user, db_session):
        response = client.post(
            "/api/admin/users",
            headers=auth_headers(admin_user),
            json={
                "username": "newhand",
                "password": "pw-123456",
                "full_name": "New Hand",
                "email": "newhand@example.com",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "newhand"
        assert data["role"] == "user"
        assert data["status"] == 1
        assert ActivityAction.ADMIN_CREATE_USER in _actions(db_session)

    def test_duplicate_username(self, auth_headers, client, admin_user, regular_user):
        response = client.post(
            "/api/admin/users",
            headers=auth_headers(admin_user),
            json={
                "username": regular_user.username,
                "password": "pw",
                "full_name": "Dup",
                "email": "dup@example.com",
            },
        )
        assert response.status_code == 409

    def test_invalid_payload(self, auth_headers, client, admin_user):
        response = client.post(
            "/api/admin/users",
            headers=auth_headers(admin_user),
            json={"username": "x", "password": "pw", "full_name": "X", "email": "not-an-email"},
        )
        assert response.status_code == 400


class TestScheduleDeletion:
    def test_schedules_and_notifies(self, auth_headers, client, admin_user, regular_user, db_session, notifier):
        before = datetime.now(UTC)

        response = client.delete(
            f"/api/admin/users/{regular_user.id}", headers=auth_headers(admin_user)
        )

        assert response.status_code == 200
        data = response.json()
        assert "message" in data
        final_date = datetime.fromisoformat(data["scheduledDeletionDate"])
        assert before + timedelta(days=30) - timedelta(seconds=5) <= final_date
        assert final_date <= datetime.now(UTC) + timedelta(days=30)

        user = _reload(db_session, regular_user.id)
        assert user.deletion_scheduled_at is not None
        assert user.status == AccountStatus.INACTIVE
        notifier.send_deletion_warning.assert_called_once()
        assert notifier.send_deletion_warning.call_args.args[0] == regular_user.email
        assert ActivityAction.ADMIN_SCHEDULE_DELETION in _actions(db_session)

    def test_email_failure_still_succeeds(self, auth_headers, client, admin_user, regular_user, db_session, notifier):
        notifier.send_deletion_warning.side_effect = None
        notifier.send_deletion_warning.return_value = NotificationResult(
            NotificationKind.DELETION_WARNING, regular_user.email, delivered=False, error="down"
        )

        response = client.delete(
            f"/api/admin/users/{regular_user.id}", headers=auth_headers(admin_user)
        )

        assert response.status_code == 200
        assert _reload(db_session, regular_user.id).deletion_scheduled_at is not None

    def test_cannot_delete_self(self, auth_headers, client, admin_user, db_session, notifier):
        response = client.delete(
            f"/api/admin/users/{admin_user.id}", headers=auth_headers(admin_user)
        )

        assert response.status_code == 400
        user = _reload(db_session, admin_user.id)
        assert user.deletion_scheduled_at is None
        assert user.status == AccountStatus.ACTIVE
        notifier.send_deletion_warning.assert_not_called()
        assert _actions(db_session) == []

    def test_cannot_delete_other_admin(self, auth_headers, client, admin_user, make_user, db_session):
        other = make_user("admin2", role=UserRole.ADMIN)

        response = client.delete(f"/api/admin/users/{other.id}", headers=auth_headers(admin_user))

        assert response.status_code == 400
        assert _reload(db_session, other.id).deletion_scheduled_at is None

    def test_unknown_user(self, auth_headers, client, admin_user):
        response = client.delete(f"/api/admin/users/{uuid4()}", headers=auth_headers(admin_user))
        assert response.status_code == 404

    def test_invalid_id(self, auth_headers, client, admin_user):
        response = client.delete("/api/admin/users/not-a-uuid", headers=auth_headers(admin_user))
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid ID format"

    def test_scheduled_user_is_locked_out(self, auth_headers, client, admin_user, regular_user):
        client.delete(f"/api/admin/users/{regular_user.id}", headers=auth_headers(admin_user))

        response = client.get("/api/user", headers=auth_headers(regular_user))

        assert response.status_code == 403


class TestRestoreUser:
    def test_restores_and_notifies(self, auth_headers, client, admin_user, make_user, db_session, notifier):
        user = make_user(deletion_scheduled_at=datetime.now(UTC) - timedelta(days=10))

        response = client.put(
            f"/api/admin/users/{user.id}/restore", headers=auth_headers(admin_user)
        )

        assert response.status_code == 200
        assert "message" in response.json()
        restored = _reload(db_session, user.id)
        assert restored.deletion_scheduled_at is None
        assert restored.status == AccountStatus.ACTIVE
        notifier.send_account_restored.assert_called_once()
        assert ActivityAction.ADMIN_RESTORE_USER in _actions(db_session)

    def test_restored_user_skipped_by_next_scan(
        self, auth_headers, client, admin_user, make_user, db_session, notifier
    ):
        user = make_user(deletion_scheduled_at=datetime.now(UTC) - timedelta(days=23))
        client.put(f"/api/admin/users/{user.id}/restore", headers=auth_headers(admin_user))

        response = client.post("/api/admin/cleanup/run", headers=auth_headers(admin_user))

        assert response.json() == {"deletedUsers": 0, "remindersSent": 0, "errors": []}
        notifier.send_deletion_reminder.assert_not_called()
        assert _reload(db_session, user.id) is not None

    def test_unknown_user(self, auth_headers, client, admin_user):
        response = client.put(
            f"/api/admin/users/{uuid4()}/restore", headers=auth_headers(admin_user)
        )
        assert response.status_code == 404


class TestCleanupEndpoints:
    def test_status(self, auth_headers, client, admin_user, make_user):
        scheduled = make_user(
            "leaving",
            email="leaving@example.com",
            deletion_scheduled_at=datetime.now(UTC) - timedelta(days=27),
        )
        make_user("staying")

        response = client.get("/api/admin/cleanup/status", headers=auth_headers(admin_user))

        assert response.status_code == 200
        data = response.json()
        assert data["cleanupService"] == {"isRunning": False, "nextRunTime": None}
        assert len(data["scheduledUsers"]) == 1
        entry = data["scheduledUsers"][0]
        assert entry["id"] == str(scheduled.id)
        assert entry["username"] == "leaving"
        assert entry["email"] == "leaving@example.com"
        assert entry["daysRemaining"] == 3
        assert "deletion_scheduled_at" in entry

    def test_manual_run(self, auth_headers, client, admin_user, make_user, db_session, notifier):
        expired = make_user(deletion_scheduled_at=datetime.now(UTC) - timedelta(days=31))
        expired_id = expired.id
        make_user(deletion_scheduled_at=datetime.now(UTC) - timedelta(days=29, hours=1))

        response = client.post("/api/admin/cleanup/run", headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert response.json() == {"deletedUsers": 1, "remindersSent": 1, "errors": []}
        assert _reload(db_session, expired_id) is None
        actions = _actions(db_session)
        assert actions.count(ActivityAction.ADMIN_MANUAL_CLEANUP) == 1
        assert actions.count(ActivityAction.SYSTEM_PERMANENT_DELETION) == 1
        assert actions.count(ActivityAction.SYSTEM_DELETION_REMINDER) == 1

    def test_manual_run_reports_email_errors(self, auth_headers, client, admin_user, make_user, notifier):
        make_user(
            email="unreachable@example.com",
            deletion_scheduled_at=datetime.now(UTC) - timedelta(days=27),
        )
        notifier.send_deletion_reminder.side_effect = lambda recipient, *args: NotificationResult(
            NotificationKind.DELETION_REMINDER, recipient, delivered=False, error="mailbox full"
        )

        response = client.post("/api/admin/cleanup/run", headers=auth_headers(admin_user))

        data = response.json()
        assert data["remindersSent"] == 0
        assert data["errors"] == ["Failed to send reminder to unreachable@example.com: mailbox full"]
