from datetime import date

from sqlalchemy import JSON, Date, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

EMPLOYMENT_TYPES = ("Full-time", "Intern", "Freelancer", "Consultant")
WORK_LOCATIONS = ("Remote", "Hybrid", "Office")
EMPLOYMENT_STATUSES = ("Active", "On Notice", "Exited")
EMPLOYEE_STATUSES = ("active", "inactive", "terminated", "on-leave")
SALARY_TYPES = ("Monthly", "Hourly", "Project-based")
PAYROLL_CYCLES = ("Weekly", "Monthly")
DOCUMENT_TYPES = (
    "resume",
    "offer_letter",
    "employee_agreement",
    "nda",
    "govt_id",
    "passport",
    "address_proof",
    "pan",
    "tax_id",
)
LIST_FIELDS = (
    "core_responsibilities",
    "kpis",
    "weekly_deliverables",
    "monthly_goals",
    "client_accounts",
    "tools_used",
    "ai_tools_authorized",
)


class Employee(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """HR and payroll record for a person on staff.

    Every employee has a linked :class:`~atreo.models.user.User` so they
    can sign in; ``user_id`` is that link. Nested structures (bank details,
    emergency contact, documents, revision history) are stored as JSON.
    """

    __tablename__ = "employees"

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    user_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    profile_photo: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    employment_type: Mapped[str] = mapped_column(
        String(20), default="Full-time", server_default="Full-time", nullable=False
    )
    work_location: Mapped[str] = mapped_column(
        String(20), default="Office", server_default="Office", nullable=False
    )
    reporting_manager: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Contact
    personal_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    work_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    whatsapp: Mapped[str | None] = mapped_column(String(50), nullable=True)
    linkedin: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    permanent_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    documents: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    # Employment dates
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    date_of_joined: Mapped[date | None] = mapped_column(Date, nullable=True)
    confirmation_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_working_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    employment_status: Mapped[str] = mapped_column(
        String(20), default="Active", server_default="Active", nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default="active", server_default="active", nullable=False, index=True
    )

    # Payroll
    salary: Mapped[float] = mapped_column(Float, default=0, server_default="0", nullable=False)
    salary_type: Mapped[str] = mapped_column(
        String(20), default="Monthly", server_default="Monthly", nullable=False
    )
    payment_currency: Mapped[str] = mapped_column(
        String(3), default="USD", server_default="USD", nullable=False
    )
    payroll_cycle: Mapped[str] = mapped_column(
        String(20), default="Monthly", server_default="Monthly", nullable=False
    )
    bank_details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    last_salary_paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    salary_revision_history: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    bonus: Mapped[float] = mapped_column(Float, default=0, server_default="0", nullable=False)
    incentives: Mapped[float] = mapped_column(Float, default=0, server_default="0", nullable=False)
    deductions: Mapped[float] = mapped_column(Float, default=0, server_default="0", nullable=False)

    # Role description
    role_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    core_responsibilities: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    kpis: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    weekly_deliverables: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    monthly_goals: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    client_accounts: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    tools_used: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    ai_tools_authorized: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
