"""purchase and burial lifecycle schema

Revision ID: a3f1c7d9e2b4
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "a3f1c7d9e2b4"
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    "pricing_section": ("MUHACHA", "LAWN", "DONHODZO", "FAMILY"),
    "age_band": ("UNDER_60", "OVER_60"),
    "purchase_kind": ("IMMEDIATE", "FUTURE"),
    "purchase_status": ("PENDING_PAYMENT", "PARTIALLY_PAID", "PAID", "REDEEMED", "CANCELLED"),
    "payment_method": ("CASH", "MANUAL", "PAYNOW", "LEGACY"),
    "payment_status": ("INITIATED", "SUCCESS", "FAILED", "EXPIRED"),
    "burial_status": ("PENDING_WAIVER_APPROVAL", "PENDING_GRAVE_ASSIGNMENT", "GRAVE_ASSIGNED", "BURIED"),
    "waiver_type": ("DONATION", "HARDSHIP", "OTHER"),
    "waiver_status": ("PENDING", "APPROVED", "REJECTED"),
    "assignment_request_status": ("PENDING", "COMPLETED"),
    "outbox_status": ("PENDING", "SENT", "FAILED"),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created once up front; columns only reference them.
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _money() -> sa.Numeric:
    return sa.Numeric(precision=10, scale=2)


def upgrade():
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "staff",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "member",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.String(length=60), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "product",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("pricing_section", _enum("pricing_section"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "installment_plan",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=60), nullable=False),
        sa.Column("months", sa.Integer(), nullable=False),
        sa.CheckConstraint("months > 0", name="ck_installment_plan_months"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "plan_price",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("section", _enum("pricing_section"), nullable=False),
        sa.Column("age_band", _enum("age_band"), nullable=False),
        sa.Column("monthly_amount", _money(), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["installment_plan.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("plan_id", "section", "age_band", name="uq_plan_price_cell"),
    )
    op.create_table(
        "purchase",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("member_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("kind", _enum("purchase_kind"), nullable=False),
        sa.Column("plan_id", sa.Uuid(), nullable=True),
        sa.Column("total_amount", _money(), nullable=False),
        sa.Column("paid_amount", _money(), nullable=False, server_default="0"),
        sa.Column("balance", _money(), nullable=False),
        sa.Column("status", _enum("purchase_status"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(), nullable=True),
        sa.Column("redeemed_by_member_id", sa.Uuid(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("balance >= 0", name="ck_purchase_balance"),
        sa.CheckConstraint("paid_amount >= 0", name="ck_purchase_paid"),
        sa.CheckConstraint("plan_id IS NULL OR kind = 'FUTURE'", name="ck_purchase_plan_kind"),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.ForeignKeyConstraint(["plan_id"], ["installment_plan.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["product.id"]),
        sa.ForeignKeyConstraint(["redeemed_by_member_id"], ["member.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("purchase", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_purchase_member_id"), ["member_id"], unique=False)
    op.create_index(
        "ix_purchase_kind_status_created",
        "purchase",
        ["kind", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "payment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("purchase_id", sa.Uuid(), nullable=False),
        sa.Column("member_id", sa.Uuid(), nullable=False),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("method", _enum("payment_method"), nullable=False),
        sa.Column("reference", sa.String(length=80), nullable=False),
        sa.Column("status", _enum("payment_status"), nullable=False),
        sa.Column("poll_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_payment_amount"),
        sa.ForeignKeyConstraint(["member_id"], ["member.id"]),
        sa.ForeignKeyConstraint(["purchase_id"], ["purchase.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reference"),
    )
    with op.batch_alter_table("payment", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_payment_purchase_id"), ["purchase_id"], unique=False)
    op.create_index("ix_payment_status_created", "payment", ["status", "created_at"], unique=False)

    op.create_table(
        "burial_case",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("purchase_id", sa.Uuid(), nullable=True),
        sa.Column("full_name", sa.String(length=160), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("address", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("relationship", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("cause_of_death", sa.String(length=255), nullable=True),
        sa.Column("funeral_parlor", sa.String(length=120), nullable=True),
        sa.Column("date_of_death", sa.Date(), nullable=False),
        sa.Column("expected_burial", sa.DateTime(), nullable=True),
        sa.Column("burial_date", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", _enum("burial_status"), nullable=False),
        sa.Column("created_by_staff_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["created_by_staff_id"], ["staff.id"]),
        sa.ForeignKeyConstraint(["purchase_id"], ["purchase.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("purchase_id"),
    )
    op.create_index("ix_burial_case_status_created", "burial_case", ["status", "created_at"], unique=False)

    op.create_table(
        "next_of_kin",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("case_id", sa.Uuid(), nullable=False),
        sa.Column("full_name", sa.String(length=160), nullable=False),
        sa.Column("relationship", sa.String(length=60), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("is_buyer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["case_id"], ["burial_case.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("case_id"),
    )
    op.create_table(
        "waiver",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("case_id", sa.Uuid(), nullable=False),
        sa.Column("waiver_type", _enum("waiver_type"), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("status", _enum("waiver_status"), nullable=False),
        sa.Column("approved_by_staff_id", sa.Uuid(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejected_by_staff_id", sa.Uuid(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("rejection_reason", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["approved_by_staff_id"], ["staff.id"]),
        sa.ForeignKeyConstraint(["case_id"], ["burial_case.id"]),
        sa.ForeignKeyConstraint(["rejected_by_staff_id"], ["staff.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("case_id"),
    )
    op.create_table(
        "assignment_request",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("case_id", sa.Uuid(), nullable=False),
        sa.Column("requested_section", _enum("pricing_section"), nullable=True),
        sa.Column("status", _enum("assignment_request_status"), nullable=False),
        sa.Column("requested_by_staff_id", sa.Uuid(), nullable=True),
        sa.Column("assigned_by_staff_id", sa.Uuid(), nullable=True),
        sa.Column("assigned_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["assigned_by_staff_id"], ["staff.id"]),
        sa.ForeignKeyConstraint(["case_id"], ["burial_case.id"]),
        sa.ForeignKeyConstraint(["requested_by_staff_id"], ["staff.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_assignment_request_case_status",
        "assignment_request",
        ["case_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "grave",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("section", _enum("pricing_section"), nullable=False),
        sa.Column("grave_number", sa.String(length=30), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("capacity > 0", name="ck_grave_capacity"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("section", "grave_number", name="uq_grave_location"),
    )
    op.create_table(
        "plot_slot",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("grave_id", sa.Uuid(), nullable=False),
        sa.Column("slot_number", sa.Integer(), nullable=False),
        sa.Column("purchase_id", sa.Uuid(), nullable=True),
        sa.Column("case_id", sa.Uuid(), nullable=True),
        sa.Column("price_at_assignment", _money(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("slot_number >= 1", name="ck_plot_slot_number"),
        sa.ForeignKeyConstraint(["case_id"], ["burial_case.id"]),
        sa.ForeignKeyConstraint(["grave_id"], ["grave.id"]),
        sa.ForeignKeyConstraint(["purchase_id"], ["purchase.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("case_id"),
        sa.UniqueConstraint("grave_id", "slot_number", name="uq_plot_slot_grave_number"),
        sa.UniqueConstraint("purchase_id"),
    )
    op.create_table(
        "notification_outbox",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("event_type", sa.String(length=60), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", _enum("outbox_status"), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notification_outbox_status_created",
        "notification_outbox",
        ["status", "created_at"],
        unique=False,
    )


def downgrade():
    op.drop_index("ix_notification_outbox_status_created", table_name="notification_outbox")
    op.drop_table("notification_outbox")
    op.drop_table("plot_slot")
    op.drop_table("grave")
    op.drop_index("ix_assignment_request_case_status", table_name="assignment_request")
    op.drop_table("assignment_request")
    op.drop_table("waiver")
    op.drop_table("next_of_kin")
    op.drop_index("ix_burial_case_status_created", table_name="burial_case")
    op.drop_table("burial_case")
    op.drop_index("ix_payment_status_created", table_name="payment")
    with op.batch_alter_table("payment", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_payment_purchase_id"))
    op.drop_table("payment")
    op.drop_index("ix_purchase_kind_status_created", table_name="purchase")
    with op.batch_alter_table("purchase", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_purchase_member_id"))
    op.drop_table("purchase")
    op.drop_table("plan_price")
    op.drop_table("installment_plan")
    op.drop_table("product")
    op.drop_table("member")
    op.drop_table("staff")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in reversed(list(ENUMS.items())):
            postgresql.ENUM(*values, name=name).drop(bind, checkfirst=True)
