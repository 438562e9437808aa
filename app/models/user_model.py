from datetime import date, datetime
from typing import Optional, TYPE_CHECKING
import uuid
from sqlalchemy import TIMESTAMP, Boolean, Date, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from app.db.base import Base
from app.schemas.payment_schemas import (
    EligibilityReason,
    EligibilityVerdict,
    PaymentMethod,
    eligibility_reason_enum,
    payment_method_enum,
)
from app.schemas.user_schemas import (
    MotherPaymentStatus,
    UserRole,
    mother_payment_status_enum,
)

if TYPE_CHECKING:
    from app.models.clinic_model import Clinic


class User(Base):
    """
    Account shared by every actor.

    ``role`` is the polymorphic discriminator: mothers get a joined
    ``mothers`` row, health workers and administrators live in ``users``
    alone.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        index=True,
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        index=True,
        nullable=False,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=True,
    )
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    clinic_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("clinics.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    clinic: Mapped[Optional["Clinic"]] = relationship(
        "Clinic", foreign_keys=[clinic_id], lazy="selectin"
    )

    __mapper_args__ = {
        "polymorphic_on": role,
        "polymorphic_abstract": True,
    }

    @property
    def user_role(self) -> UserRole:
        return UserRole(self.role)

    def has_role(self, *roles: UserRole) -> bool:
        return self.user_role in roles

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"


class Mother(User):
    """Registered mother (patient) with her eligibility and bank fields."""

    __tablename__ = "mothers"

    id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    edd: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    lmp: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    language: Mapped[str] = mapped_column(
        String(50), default="English", nullable=False
    )

    # Eligibility state, written only by the eligibility evaluator and the
    # payment workflow
    anc_visit_count: Mapped[int] = mapped_column(default=0, nullable=False)
    payment_status: Mapped[MotherPaymentStatus] = mapped_column(
        mother_payment_status_enum,
        default=MotherPaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    eligibility_reason: Mapped[Optional[EligibilityReason]] = mapped_column(
        eligibility_reason_enum, nullable=True
    )
    cash_incentive_amount: Mapped[int] = mapped_column(default=0, nullable=False)
    is_beneficiary: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )

    preferred_payment_method: Mapped[PaymentMethod] = mapped_column(
        payment_method_enum, default=PaymentMethod.MOBILE_MONEY, nullable=False
    )
    bank_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    account_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __mapper_args__ = {
        "polymorphic_identity": UserRole.MOTHER.value,
        "polymorphic_load": "inline",
    }

    @property
    def has_active_payment_state(self) -> bool:
        return self.payment_status in (
            MotherPaymentStatus.ELIGIBLE,
            MotherPaymentStatus.PAID,
        )

    def apply_verdict(self, verdict: EligibilityVerdict) -> None:
        """
        Write an eligibility verdict onto the mother.

        The ANC count is always refreshed. The first reason granted is kept,
        matching the single payment record, and a paid mother stays paid.
        """
        self.anc_visit_count = verdict.anc_visit_count

        if not verdict.is_eligible:
            return

        if self.payment_status != MotherPaymentStatus.PAID:
            self.payment_status = MotherPaymentStatus.ELIGIBLE
        if self.eligibility_reason is None:
            self.eligibility_reason = verdict.reason
            self.cash_incentive_amount = verdict.amount
        self.is_beneficiary = True

    def mark_paid(self) -> None:
        self.payment_status = MotherPaymentStatus.PAID

    def __repr__(self) -> str:
        return self.full_name


class HealthWorker(User):
    """Clinic staff allowed to log and correct visits."""

    __mapper_args__ = {"polymorphic_identity": UserRole.HEALTH_WORKER.value}


class Administrator(User):
    """Programme administrator who processes incentive payments."""

    __mapper_args__ = {"polymorphic_identity": UserRole.ADMIN.value}


USER_CLASS_BY_ROLE = {
    UserRole.MOTHER: Mother,
    UserRole.HEALTH_WORKER: HealthWorker,
    UserRole.ADMIN: Administrator,
}
