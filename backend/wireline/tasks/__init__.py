# Celery tasks
from wireline.tasks.cleanup import process_scheduled_deletions, purge_expired_otp_codes

__all__ = [
    "process_scheduled_deletions",
    "purge_expired_otp_codes",
]
