"""Initial schema - all domain tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all domain tables."""

    # 1. organizations (no FKs)
    op.create_table(
        "organizations",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=False, unique=True),
        *_timestamps(),
    )

    # 2. users (FK to organizations)
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), server_default="user", nullable=False),
        sa.Column("employee_id", sa.String(50), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "organization_id",
            UUID(as_uuid=False),
            sa.ForeignKey("organizations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("email_verified", sa.Boolean, server_default="false", nullable=False),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("bank_name", sa.String(255), nullable=True),
        sa.Column("account_number", sa.String(100), nullable=True),
        sa.Column("swift_code", sa.String(50), nullable=True),
        sa.Column("position", sa.String(255), nullable=True),
        sa.Column("permissions", sa.JSON, server_default="[]", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_organization_id", "users", ["organization_id"])

    # 3. admins (FK to users)
    op.create_table(
        "admins",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "user_id",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("admin_id", sa.String(20), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.String(20), server_default="admin", nullable=False),
        sa.Column("capabilities", sa.JSON, server_default="{}", nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("department", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column(
            "created_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )

    # 4. permissions (FK to users)
    op.create_table(
        "permissions",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "user_id",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("modules", sa.JSON, server_default="{}", nullable=False),
        sa.Column(
            "created_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "updated_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )

    # 5. employees (FK to users)
    op.create_table(
        "employees",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("employee_id", sa.String(50), nullable=False, unique=True),
        sa.Column(
            "user_id",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("profile_photo", sa.Text, nullable=True),
        sa.Column("position", sa.String(255), nullable=False),
        sa.Column("department", sa.String(255), nullable=False),
        sa.Column("employment_type", sa.String(20), server_default="Full-time", nullable=False),
        sa.Column("work_location", sa.String(20), server_default="Office", nullable=False),
        sa.Column("reporting_manager", sa.String(255), nullable=True),
        sa.Column("personal_email", sa.String(255), nullable=True),
        sa.Column("work_email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("whatsapp", sa.String(50), nullable=True),
        sa.Column("linkedin", sa.String(255), nullable=True),
        sa.Column("current_address", sa.Text, nullable=True),
        sa.Column("permanent_address", sa.Text, nullable=True),
        sa.Column("emergency_contact", sa.JSON, server_default="{}", nullable=False),
        sa.Column("documents", sa.JSON, server_default="{}", nullable=False),
        sa.Column("hire_date", sa.Date, nullable=True),
        sa.Column("date_of_joined", sa.Date, nullable=True),
        sa.Column("confirmation_date", sa.Date, nullable=True),
        sa.Column("last_working_date", sa.Date, nullable=True),
        sa.Column("employment_status", sa.String(20), server_default="Active", nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("salary", sa.Float, server_default="0", nullable=False),
        sa.Column("salary_type", sa.String(20), server_default="Monthly", nullable=False),
        sa.Column("payment_currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("payroll_cycle", sa.String(20), server_default="Monthly", nullable=False),
        sa.Column("bank_details", sa.JSON, server_default="{}", nullable=False),
        sa.Column("last_salary_paid_date", sa.Date, nullable=True),
        sa.Column("salary_revision_history", sa.JSON, server_default="[]", nullable=False),
        sa.Column("bonus", sa.Float, server_default="0", nullable=False),
        sa.Column("incentives", sa.Float, server_default="0", nullable=False),
        sa.Column("deductions", sa.Float, server_default="0", nullable=False),
        sa.Column("role_description", sa.Text, nullable=True),
        sa.Column("core_responsibilities", sa.JSON, server_default="[]", nullable=False),
        sa.Column("kpis", sa.JSON, server_default="[]", nullable=False),
        sa.Column("weekly_deliverables", sa.JSON, server_default="[]", nullable=False),
        sa.Column("monthly_goals", sa.JSON, server_default="[]", nullable=False),
        sa.Column("client_accounts", sa.JSON, server_default="[]", nullable=False),
        sa.Column("tools_used", sa.JSON, server_default="[]", nullable=False),
        sa.Column("ai_tools_authorized", sa.JSON, server_default="[]", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_employees_user_id", "employees", ["user_id"])
    op.create_index("ix_employees_status", "employees", ["status"])

    # 6. tools (FKs to users, organizations)
    op.create_table(
        "tools",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("password", sa.Text, nullable=True),
        sa.Column("api_key", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("tags", sa.JSON, server_default="[]", nullable=False),
        sa.Column("is_paid", sa.Boolean, server_default="false", nullable=False),
        sa.Column("has_autopay", sa.Boolean, server_default="false", nullable=False),
        sa.Column("price", sa.Float, server_default="0", nullable=False),
        sa.Column("billing_period", sa.String(20), server_default="monthly", nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=True),
        sa.Column("card_last4", sa.String(4), nullable=True),
        sa.Column("has_2fa", sa.Boolean, server_default="false", nullable=False),
        sa.Column("two_factor_method", sa.String(20), nullable=True),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column(
            "created_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "organization_id",
            UUID(as_uuid=False),
            sa.ForeignKey("organizations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_tools_created_by", "tools", ["created_by"])
    op.create_index("ix_tools_organization_id", "tools", ["organization_id"])

    # 7. tool_shares (FKs to tools, users)
    op.create_table(
        "tool_shares",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "tool_id",
            UUID(as_uuid=False),
            sa.ForeignKey("tools.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "shared_with",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "shared_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("permission", sa.String(10), server_default="view", nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tool_id", "shared_with", name="uq_tool_share_tool_user"),
    )
    op.create_index("ix_tool_shares_tool_id", "tool_shares", ["tool_id"])
    op.create_index("ix_tool_shares_shared_with", "tool_shares", ["shared_with"])

    # 8. invoices (FKs to organizations, users)
    op.create_table(
        "invoices",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("invoice_number", sa.String(100), nullable=True),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("provider", sa.String(255), nullable=True),
        sa.Column("billing_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("file_url", sa.Text, nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("file_size", sa.Integer, nullable=True),
        sa.Column("tool_ids", sa.JSON, server_default="[]", nullable=False),
        sa.Column(
            "organization_id",
            UUID(as_uuid=False),
            sa.ForeignKey("organizations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "uploaded_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "approved_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_invoices_invoice_number", "invoices", ["invoice_number"])
    op.create_index("ix_invoices_provider", "invoices", ["provider"])
    op.create_index("ix_invoices_billing_date", "invoices", ["billing_date"])
    op.create_index("ix_invoices_status", "invoices", ["status"])
    op.create_index("ix_invoices_organization_id", "invoices", ["organization_id"])
    op.create_index("ix_invoices_uploaded_by", "invoices", ["uploaded_by"])

    # 9. payments (FKs to organizations, users)
    op.create_table(
        "payments",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("month", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(255), nullable=True),
        sa.Column("contract_hours", sa.Float, server_default="0", nullable=False),
        sa.Column("fulfilled_hours", sa.Float, server_default="0", nullable=False),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("billing_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "organization_id",
            UUID(as_uuid=False),
            sa.ForeignKey("organizations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("name", "month", "organization_id", name="uq_payment_name_month_org"),
    )
    op.create_index("ix_payments_month", "payments", ["month"])
    op.create_index("ix_payments_billing_date", "payments", ["billing_date"])
    op.create_index("ix_payments_organization_id", "payments", ["organization_id"])

    # 10. assets (self-referencing FK, FKs to users, organizations)
    op.create_table(
        "assets",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column(
            "parent_folder_id",
            UUID(as_uuid=False),
            sa.ForeignKey("assets.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("file_url", sa.Text, nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("file_size", sa.Integer, nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("tags", sa.JSON, server_default="[]", nullable=False),
        sa.Column(
            "created_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "organization_id",
            UUID(as_uuid=False),
            sa.ForeignKey("organizations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_assets_parent_folder_id", "assets", ["parent_folder_id"])
    op.create_index("ix_assets_created_by", "assets", ["created_by"])
    op.create_index("ix_assets_is_active", "assets", ["is_active"])

    # 11. otps (no FKs)
    op.create_table(
        "otps",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_otp", sa.String(255), nullable=False),
        sa.Column("purpose", sa.String(30), server_default="email-verification", nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("attempts", sa.Integer, server_default="0", nullable=False),
        sa.Column("verified", sa.Boolean, server_default="false", nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_otps_email", "otps", ["email"])
    op.create_index("ix_otps_expires_at", "otps", ["expires_at"])

    # 12. submissions (FKs to users, organizations)
    op.create_table(
        "submissions",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("employee_id", sa.String(50), nullable=False),
        sa.Column("employee_name", sa.String(255), nullable=False),
        sa.Column(
            "user_id",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("bank_details", sa.JSON, server_default="{}", nullable=False),
        sa.Column("work_period", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("total_amount", sa.Float, nullable=False),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "reviewed_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("reviewer_name", sa.String(255), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("invoice_number", sa.String(100), nullable=True, unique=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column(
            "organization_id",
            UUID(as_uuid=False),
            sa.ForeignKey("organizations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_submissions_employee_id", "submissions", ["employee_id"])
    op.create_index("ix_submissions_user_id", "submissions", ["user_id"])
    op.create_index("ix_submissions_status", "submissions", ["status"])

    # 13. messages (FK to users)
    op.create_table(
        "messages",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "from_user",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "to_user",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subject", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, server_default="false", nullable=False),
        sa.Column("priority", sa.String(10), server_default="normal", nullable=False),
        sa.Column("category", sa.String(20), server_default="general", nullable=False),
        sa.Column("attachments", sa.JSON, server_default="[]", nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_messages_from_user", "messages", ["from_user"])
    op.create_index("ix_messages_to_user", "messages", ["to_user"])

    # 14. customers (FK to users)
    op.create_table(
        "customers",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("company", sa.String(100), nullable=True),
        sa.Column("address", sa.JSON, server_default="{}", nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("customer_type", sa.String(20), server_default="individual", nullable=False),
        sa.Column("tags", sa.JSON, server_default="[]", nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("total_revenue", sa.Float, server_default="0", nullable=False),
        sa.Column("last_contact_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("acquisition_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "assigned_to",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_by",
            UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_customers_status", "customers", ["status"])
    op.create_index("ix_customers_assigned_to", "customers", ["assigned_to"])

    # 15. audit_logs (no FKs; entries outlive their users)
    op.create_table(
        "audit_logs",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=False), nullable=True),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("resource", sa.String(100), nullable=True),
        sa.Column("resource_id", sa.String(100), nullable=True),
        sa.Column("details", sa.JSON, nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("status", sa.String(10), server_default="success", nullable=False),
        sa.Column("error_message", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource", "audit_logs", ["resource"])
    op.create_index("ix_audit_logs_status", "audit_logs", ["status"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("audit_logs")
    op.drop_table("customers")
    op.drop_table("messages")
    op.drop_table("submissions")
    op.drop_table("otps")
    op.drop_table("assets")
    op.drop_table("payments")
    op.drop_table("invoices")
    op.drop_table("tool_shares")
    op.drop_table("tools")
    op.drop_table("employees")
    op.drop_table("permissions")
    op.drop_table("admins")
    op.drop_table("users")
    op.drop_table("organizations")
