"""Transactional email for the account lifecycle: deletion notices and
one-time codes.

Messages are sent over SMTP. Every public ``send_*`` method is best-effort:
it never raises and instead returns a :class:`NotificationResult` the caller
can log. Failing to notify a user never fails the operation that triggered
the notification.
"""

import enum
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr
from html import escape

from wireline.core.config import Settings, settings
from wireline.models import OtpPurpose
from wireline.services.accounts import final_deletion_date

logger = logging.getLogger(__name__)


class EmailSendError(Exception):
    """Raised internally when a message cannot be handed to the SMTP server."""


class NotificationKind(str, enum.Enum):
    DELETION_WARNING = "deletion_warning"
    DELETION_REMINDER = "deletion_reminder"
    ACCOUNT_RESTORED = "account_restored"
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFIED = "email_verified"


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one best-effort notification."""

    kind: NotificationKind
    recipient: str
    delivered: bool
    error: str | None = None


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    text: str
    html: str


_HTML_LAYOUT = """<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background-color: {header_color}; color: {header_text}; padding: 20px; text-align: center; }}
        .content {{ padding: 20px; background-color: #f8f9fa; }}
        .notice {{ background-color: {notice_color}; padding: 15px; margin: 15px 0; border-radius: 5px; }}
        .footer {{ padding: 20px; text-align: center; color: #666; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>{title}</h1></div>
        <div class="content">
            <p>Dear <strong>{name}</strong>,</p>
            {body}
        </div>
        <div class="footer"><p>{system_name}</p></div>
    </div>
</body>
</html>"""


def deletion_warning_template(name: str, deletion_date: datetime, system_name: str) -> EmailTemplate:
    date_str = deletion_date.strftime("%B %d, %Y")
    text = (
        f"Dear {name},\n\n"
        f"This is to inform you that your account in the {system_name} has been "
        "scheduled for deletion by an administrator.\n\n"
        f"Your account will be permanently deleted on: {date_str}\n\n"
        "If you believe this is an error or need to retain access to your account, "
        "please contact the system administrator immediately.\n\n"
        "Important: After the deletion date, all your account data will be permanently "
        "removed and cannot be recovered.\n\n"
        f"Best regards,\n{system_name}"
    )
    body = (
        '<div class="notice"><strong>Important Notice:</strong> Your account has been '
        "scheduled for deletion by an administrator.</div>"
        f"<p><strong>Deletion Date:</strong> {escape(date_str)}</p>"
        "<p>If you believe this is an error or need to retain access to your account, "
        "please contact the system administrator immediately.</p>"
        "<p><strong>Important:</strong> After the deletion date, all your account data "
        "will be permanently removed and cannot be recovered.</p>"
    )
    html = _HTML_LAYOUT.format(
        header_color="#dc3545",
        header_text="white",
        notice_color="#fff3cd",
        title="Account Deletion Notice",
        name=escape(name),
        body=body,
        system_name=escape(system_name),
    )
    return EmailTemplate("Important: Your Account Will Be Deleted", text, html)


def deletion_reminder_template(name: str, days_remaining: int, system_name: str) -> EmailTemplate:
    text = (
        f"Dear {name},\n\n"
        f"This is a reminder that your account in the {system_name} is scheduled for "
        f"deletion in {days_remaining} day(s).\n\n"
        "If you need to retain access to your account, please contact the system "
        "administrator immediately.\n\n"
        f"Best regards,\n{system_name}"
    )
    body = (
        f'<div class="notice" style="text-align: center; font-size: 24px;">'
        f"<strong>{days_remaining} Day(s) Remaining</strong></div>"
        "<p>This is a reminder that your account is scheduled for deletion.</p>"
        "<p>If you need to retain access to your account, please contact the system "
        "administrator immediately.</p>"
    )
    html = _HTML_LAYOUT.format(
        header_color="#ffc107",
        header_text="#333",
        notice_color="#f8d7da",
        title="Account Deletion Reminder",
        name=escape(name),
        body=body,
        system_name=escape(system_name),
    )
    return EmailTemplate(f"Reminder: Account Deletion in {days_remaining} Days", text, html)


def account_restored_template(name: str, system_name: str) -> EmailTemplate:
    text = (
        f"Dear {name},\n\n"
        f"Good news! Your account in the {system_name} has been restored and the "
        "scheduled deletion has been cancelled.\n\n"
        "You can continue to access your account as normal.\n\n"
        f"Best regards,\n{system_name}"
    )
    body = (
        '<div class="notice"><strong>Good news!</strong> Your account has been restored '
        "and the scheduled deletion has been cancelled.</div>"
        "<p>You can continue to access your account as normal.</p>"
    )
    html = _HTML_LAYOUT.format(
        header_color="#28a745",
        header_text="white",
        notice_color="#d4edda",
        title="Account Restored",
        name=escape(name),
        body=body,
        system_name=escape(system_name),
    )
    return EmailTemplate("Account Restored - Deletion Cancelled", text, html)


def otp_template(
    name: str, code: str, purpose: OtpPurpose, expire_minutes: int, system_name: str
) -> EmailTemplate:
    if purpose == OtpPurpose.EMAIL_VERIFICATION:
        subject, title = "Verify Your Email Address", "Email Verification"
        message = "Please use the following code to verify your email address:"
    else:
        subject, title = "Password Reset Code", "Password Reset"
        message = "Please use the following code to reset your password:"

    text = (
        f"Dear {name},\n\n"
        f"{message}\n\n"
        f"Verification Code: {code}\n\n"
        f"This code will expire in {expire_minutes} minutes.\n\n"
        "If you didn't request this, please ignore this email.\n\n"
        f"Best regards,\n{system_name}"
    )
    body = (
        f"<p>{message}</p>"
        '<div class="notice" style="text-align: center; font-size: 24px; '
        f'font-weight: bold; letter-spacing: 4px;">{escape(code)}</div>'
        f"<p><strong>Important:</strong> This code will expire in {expire_minutes} minutes.</p>"
        "<p>If you didn't request this, please ignore this email.</p>"
    )
    html = _HTML_LAYOUT.format(
        header_color="#007bff",
        header_text="white",
        notice_color="#e9ecef",
        title=title,
        name=escape(name),
        body=body,
        system_name=escape(system_name),
    )
    return EmailTemplate(subject, text, html)


def email_verified_template(name: str, system_name: str) -> EmailTemplate:
    text = (
        f"Dear {name},\n\n"
        "Your email address has been successfully verified!\n\n"
        f"You can now access all features of the {system_name}.\n\n"
        f"Best regards,\n{system_name}"
    )
    body = (
        '<div class="notice"><strong>Success:</strong> Your email address has been '
        "successfully verified!</div>"
        f"<p>You can now access all features of the {escape(system_name)}.</p>"
    )
    html = _HTML_LAYOUT.format(
        header_color="#28a745",
        header_text="white",
        notice_color="#d4edda",
        title="Email Verified",
        name=escape(name),
        body=body,
        system_name=escape(system_name),
    )
    return EmailTemplate("Email Verified Successfully", text, html)


class EmailService:
    """SMTP-backed notification dispatcher."""

    def __init__(self, config: Settings | None = None):
        self.config = config or settings

    def send_deletion_warning(
        self, recipient: str, name: str, scheduled_at: datetime
    ) -> NotificationResult:
        """Tell a user their account was scheduled for deletion."""
        template = deletion_warning_template(
            name, final_deletion_date(scheduled_at), self.config.EMAIL_FROM_NAME
        )
        return self._deliver(NotificationKind.DELETION_WARNING, recipient, template)

    def send_deletion_reminder(
        self, recipient: str, name: str, days_remaining: int
    ) -> NotificationResult:
        """Remind a user how many days remain before permanent deletion."""
        template = deletion_reminder_template(name, days_remaining, self.config.EMAIL_FROM_NAME)
        return self._deliver(NotificationKind.DELETION_REMINDER, recipient, template)

    def send_account_restored(self, recipient: str, name: str) -> NotificationResult:
        """Tell a user their scheduled deletion was cancelled."""
        template = account_restored_template(name, self.config.EMAIL_FROM_NAME)
        return self._deliver(NotificationKind.ACCOUNT_RESTORED, recipient, template)

    def send_otp(
        self, recipient: str, name: str, code: str, purpose: OtpPurpose
    ) -> NotificationResult:
        """Mail a one-time code for email verification or password reset."""
        template = otp_template(
            name, code, purpose, self.config.OTP_EXPIRE_MINUTES, self.config.EMAIL_FROM_NAME
        )
        return self._deliver(NotificationKind(purpose.value), recipient, template)

    def send_email_verified(self, recipient: str, name: str) -> NotificationResult:
        """Confirm a completed email verification."""
        template = email_verified_template(name, self.config.EMAIL_FROM_NAME)
        return self._deliver(NotificationKind.EMAIL_VERIFIED, recipient, template)

    def _deliver(
        self, kind: NotificationKind, recipient: str, template: EmailTemplate
    ) -> NotificationResult:
        try:
            self._send(recipient, template)
        except EmailSendError as e:
            logger.error(f"Failed to send {kind.value} email to {recipient}: {e}")
            return NotificationResult(kind, recipient, delivered=False, error=str(e))

        logger.info(f"Sent {kind.value} email to {recipient}")
        return NotificationResult(kind, recipient, delivered=True)

    def _send(self, recipient: str, template: EmailTemplate) -> None:
        """Hand one message to the SMTP server.

        Raises:
            EmailSendError: If SMTP is not configured or the transport fails.
        """
        if not self.config.smtp_configured:
            raise EmailSendError("SMTP credentials are not configured")

        msg = EmailMessage()
        msg["From"] = formataddr((self.config.EMAIL_FROM_NAME, self.config.email_sender))
        msg["To"] = recipient
        msg["Subject"] = template.subject
        msg.set_content(template.text)
        msg.add_alternative(template.html, subtype="html")

        try:
            with smtplib.SMTP(
                self.config.SMTP_HOST,
                self.config.SMTP_PORT,
                timeout=self.config.SMTP_TIMEOUT_SECONDS,
            ) as server:
                if self.config.SMTP_USE_TLS:
                    server.starttls()
                server.login(self.config.SMTP_USERNAME, self.config.SMTP_PASSWORD)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailSendError(str(e)) from e
