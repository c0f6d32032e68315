"""Tests for deletion lifecycle email notifications."""

import smtplib
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from wireline.core.config import Settings
from wireline.models import OtpPurpose
from wireline.services.email import (
    EmailService,
    NotificationKind,
    account_restored_template,
    deletion_reminder_template,
    deletion_warning_template,
    email_verified_template,
    otp_template,
)


@pytest.fixture
def smtp_settings() -> Settings:
    return Settings(
        SMTP_HOST="smtp.example.com",
        SMTP_PORT=587,
        SMTP_USERNAME="mailer@example.com",
        SMTP_PASSWORD="app-password",
        EMAIL_FROM_NAME="Wireline Inventory System",
    )


class TestTemplates:
    def test_deletion_warning(self):
        template = deletion_warning_template(
            "Jane Doe", datetime(2026, 4, 2, tzinfo=UTC), "Wireline Inventory System"
        )
        assert template.subject == "Important: Your Account Will Be Deleted"
        assert "April 02, 2026" in template.text
        assert "Jane Doe" in template.html

    def test_deletion_reminder(self):
        template = deletion_reminder_template("Jane", 3, "Wireline Inventory System")
        assert template.subject == "Reminder: Account Deletion in 3 Days"
        assert "3 day(s)" in template.text

    def test_account_restored(self):
        template = account_restored_template("Jane", "Wireline Inventory System")
        assert template.subject == "Account Restored - Deletion Cancelled"
        assert "restored" in template.text

    def test_html_escapes_name(self):
        template = account_restored_template("<script>", "Wireline")
        assert "<script>" not in template.html
        assert "&lt;script&gt;" in template.html

    def test_verification_code(self):
        template = otp_template(
            "Jane", "042917", OtpPurpose.EMAIL_VERIFICATION, 10, "Wireline Inventory System"
        )
        assert template.subject == "Verify Your Email Address"
        assert "Verification Code: 042917" in template.text
        assert "expire in 10 minutes" in template.text
        assert "042917" in template.html

    def test_password_reset_code(self):
        template = otp_template("Jane", "123456", OtpPurpose.PASSWORD_RESET, 10, "Wireline")
        assert template.subject == "Password Reset Code"
        assert "reset your password" in template.text

    def test_email_verified(self):
        template = email_verified_template("Jane", "Wireline Inventory System")
        assert template.subject == "Email Verified Successfully"
        assert "successfully verified" in template.text


class TestEmailService:
    def test_not_configured_is_reported_not_raised(self):
        service = EmailService(Settings(SMTP_USERNAME="", SMTP_PASSWORD=""))

        result = service.send_deletion_reminder("user@example.com", "User", 7)

        assert result.delivered is False
        assert result.kind == NotificationKind.DELETION_REMINDER
        assert result.recipient == "user@example.com"
        assert result.error == "SMTP credentials are not configured"

    @patch("wireline.services.email.smtplib.SMTP")
    def test_sends_over_smtp(self, mock_smtp, smtp_settings):
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server

        result = EmailService(smtp_settings).send_account_restored("user@example.com", "User")

        assert result.delivered is True
        assert result.error is None
        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer@example.com", "app-password")
        message = server.send_message.call_args.args[0]
        assert message["To"] == "user@example.com"
        assert message["Subject"] == "Account Restored - Deletion Cancelled"
        assert "Wireline Inventory System" in message["From"]

    @patch("wireline.services.email.smtplib.SMTP")
    def test_warning_uses_final_deletion_date(self, mock_smtp, smtp_settings):
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server

        EmailService(smtp_settings).send_deletion_warning(
            "user@example.com", "User", datetime(2026, 3, 1, tzinfo=UTC)
        )

        message = server.send_message.call_args.args[0]
        assert "March 31, 2026" in message.get_body(preferencelist=("plain",)).get_content()

    @patch("wireline.services.email.smtplib.SMTP")
    def test_transport_error_is_reported(self, mock_smtp, smtp_settings):
        server = MagicMock()
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        mock_smtp.return_value.__enter__.return_value = server

        result = EmailService(smtp_settings).send_deletion_warning(
            "user@example.com", "User", datetime(2026, 3, 1, tzinfo=UTC)
        )

        assert result.delivered is False
        assert result.kind == NotificationKind.DELETION_WARNING
        assert "bad credentials" in result.error

    @patch("wireline.services.email.smtplib.SMTP", side_effect=OSError("connection refused"))
    def test_connection_error_is_reported(self, mock_smtp, smtp_settings):
        result = EmailService(smtp_settings).send_deletion_reminder("user@example.com", "User", 1)

        assert result.delivered is False
        assert result.error == "connection refused"

    @patch("wireline.services.email.smtplib.SMTP")
    def test_otp_kind_follows_purpose(self, mock_smtp, smtp_settings):
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server

        result = EmailService(smtp_settings).send_otp(
            "user@example.com", "User", "654321", OtpPurpose.PASSWORD_RESET
        )

        assert result.delivered is True
        assert result.kind == NotificationKind.PASSWORD_RESET
        message = server.send_message.call_args.args[0]
        assert message["Subject"] == "Password Reset Code"
        assert "654321" in message.get_body(preferencelist=("plain",)).get_content()
