"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


mother_payment_status = postgresql.ENUM(
    "pending", "eligible", "paid", "ineligible",
    name="mother_payment_status", create_type=False,
)
eligibility_reason = postgresql.ENUM(
    "ANC4", "DELIVERY", name="eligibility_reason", create_type=False
)
payment_method = postgresql.ENUM(
    "mobile_money", "bank_transfer", "cash", name="payment_method", create_type=False
)
payment_record_status = postgresql.ENUM(
    "pending", "processing", "paid", "failed", "cancelled",
    name="payment_record_status", create_type=False,
)
visit_type = postgresql.ENUM(
    "ANC1", "ANC2", "ANC3", "ANC4", "DELIVERY", "POSTNATAL",
    name="visit_type", create_type=False,
)

ENUMS = (
    mother_payment_status,
    eligibility_reason,
    payment_method,
    payment_record_status,
    visit_type,
)


def _timestamps(with_updated: bool = True):
    columns = [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.TIMESTAMP(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            )
        )
    return columns


def upgrade() -> None:
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "clinics",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("lga", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("contact_person", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(with_updated=False),
    )
    op.create_index("ix_clinics_name", "clinics", ["name"])
    op.create_index("ix_clinics_is_active", "clinics", ["is_active"])

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column(
            "clinic_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("clinics.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("last_login_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_phone", "users", ["phone"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_clinic_id", "users", ["clinic_id"])

    op.create_table(
        "mothers",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("edd", sa.Date(), nullable=False),
        sa.Column("lmp", sa.Date(), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("language", sa.String(50), nullable=False),
        sa.Column("anc_visit_count", sa.Integer(), nullable=False),
        sa.Column("payment_status", mother_payment_status, nullable=False),
        sa.Column("eligibility_reason", eligibility_reason, nullable=True),
        sa.Column("cash_incentive_amount", sa.Integer(), nullable=False),
        sa.Column("is_beneficiary", sa.Boolean(), nullable=False),
        sa.Column("preferred_payment_method", payment_method, nullable=False),
        sa.Column("bank_name", sa.String(100), nullable=True),
        sa.Column("account_number", sa.String(50), nullable=True),
        sa.Column("account_name", sa.String(255), nullable=True),
    )
    op.create_index("ix_mothers_edd", "mothers", ["edd"])
    op.create_index("ix_mothers_payment_status", "mothers", ["payment_status"])
    op.create_index("ix_mothers_is_beneficiary", "mothers", ["is_beneficiary"])

    op.create_table(
        "visits",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("mothers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", visit_type, nullable=False),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "health_worker_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_visits_patient_id", "visits", ["patient_id"])
    op.create_index("ix_visits_type", "visits", ["type"])
    op.create_index("ix_visits_date", "visits", ["date"])

    op.create_table(
        "payment_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("mothers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", eligibility_reason, nullable=False),
        sa.Column("status", payment_record_status, nullable=False),
        sa.Column("eligibility_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("paid_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("transaction_reference", sa.String(100), nullable=True),
        sa.Column("payment_method", payment_method, nullable=False),
        sa.Column("bank_name", sa.String(100), nullable=True),
        sa.Column("account_number", sa.String(50), nullable=True),
        sa.Column("account_name", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "processed_by_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    # One record per mother; the last guard against a double payment
    op.create_index(
        "ix_payment_records_patient_id", "payment_records", ["patient_id"], unique=True
    )
    op.create_index("ix_payment_records_reason", "payment_records", ["reason"])
    op.create_index("ix_payment_records_status", "payment_records", ["status"])
    op.create_index(
        "ix_payment_records_eligibility_date", "payment_records", ["eligibility_date"]
    )


def downgrade() -> None:
    op.drop_table("payment_records")
    op.drop_table("visits")
    op.drop_table("mothers")
    op.drop_table("users")
    op.drop_table("clinics")

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
