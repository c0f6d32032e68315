# Database models
from wireline.models.activity import Activity, ActivityAction
from wireline.models.base import Base
from wireline.models.otp_code import OtpCode, OtpPurpose
from wireline.models.tool import Tool, ToolCategory, ToolTag
from wireline.models.user import AccountStatus, User, UserRole

__all__ = [
    "Base",
    "Activity",
    "ActivityAction",
    "OtpCode",
    "OtpPurpose",
    "Tool",
    "ToolCategory",
    "ToolTag",
    "User",
    "UserRole",
    "AccountStatus",
]
