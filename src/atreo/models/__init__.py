from atreo.models.asset import Asset
from atreo.models.audit_log import AuditLog
from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin
from atreo.models.customer import Customer
from atreo.models.employee import Employee
from atreo.models.invoice import Invoice
from atreo.models.message import Message
from atreo.models.organization import Organization
from atreo.models.otp import OTP
from atreo.models.payment import Payment
from atreo.models.permission import Permission
from atreo.models.submission import Submission
from atreo.models.tool import Tool, ToolShare
from atreo.models.user import Admin, User

__all__ = [
    "Base",
    "UUIDPrimaryKeyMixin",
    "AuditMixin",
    "Admin",
    "Asset",
    "AuditLog",
    "Customer",
    "Employee",
    "Invoice",
    "Message",
    "OTP",
    "Organization",
    "Payment",
    "Permission",
    "Submission",
    "Tool",
    "ToolShare",
    "User",
]
