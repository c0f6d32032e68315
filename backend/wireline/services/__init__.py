# Business logic services
from wireline.services.accounts import (
    GRACE_PERIOD_DAYS,
    REMINDER_THRESHOLDS,
    AccountExistsError,
    cancel_deletion,
    create_account,
    days_until_deletion,
    final_deletion_date,
    list_scheduled_for_deletion,
    permanently_delete,
    schedule_deletion,
)
from wireline.services.activity import log_activity, log_system_activity
from wireline.services.cleanup import CleanupResult, CleanupScheduler, run_cleanup_scan
from wireline.services.email import EmailService, NotificationResult
from wireline.services.otp import (
    cleanup_expired_otp_codes,
    create_otp_code,
    get_valid_otp_code,
    mark_otp_code_used,
)

__all__ = [
    "GRACE_PERIOD_DAYS",
    "REMINDER_THRESHOLDS",
    "AccountExistsError",
    "create_account",
    "schedule_deletion",
    "cancel_deletion",
    "permanently_delete",
    "list_scheduled_for_deletion",
    "days_until_deletion",
    "final_deletion_date",
    "log_activity",
    "log_system_activity",
    "CleanupResult",
    "CleanupScheduler",
    "run_cleanup_scan",
    "EmailService",
    "NotificationResult",
    "create_otp_code",
    "get_valid_otp_code",
    "mark_otp_code_used",
    "cleanup_expired_otp_codes",
]
