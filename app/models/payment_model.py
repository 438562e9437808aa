from datetime import datetime
from typing import Optional, TYPE_CHECKING
import uuid
from sqlalchemy import TIMESTAMP, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from app.db.base import Base
from app.schemas.payment_schemas import (
    EligibilityReason,
    PaymentMethod,
    PaymentRecordStatus,
    TERMINAL_PAYMENT_STATUSES,
    eligibility_reason_enum,
    payment_method_enum,
    payment_record_status_enum,
)

if TYPE_CHECKING:
    from app.models.user_model import Mother


class PaymentRecord(Base):
    """
    PaymentRecord - administrative tracking of one cash incentive.

    Created once, the first time a mother becomes eligible. ``patient_id`` is
    unique, so a mother never has more than one record. Afterwards it is
    moved through ``pending -> processing -> paid | failed | cancelled`` by
    administrators, and its account fields follow the mother's bank info.
    """

    __tablename__ = "payment_records"

    id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        index=True,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("mothers.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[EligibilityReason] = mapped_column(
        eligibility_reason_enum, nullable=False, index=True
    )
    status: Mapped[PaymentRecordStatus] = mapped_column(
        payment_record_status_enum,
        default=PaymentRecordStatus.PENDING,
        nullable=False,
        index=True,
    )
    eligibility_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, index=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    transaction_reference: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        payment_method_enum,
        default=PaymentMethod.MOBILE_MONEY,
        nullable=False,
    )

    # Account info snapshot
    bank_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    account_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
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

    patient: Mapped["Mother"] = relationship(
        "Mother", foreign_keys=[patient_id], lazy="selectin"
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PAYMENT_STATUSES

    def apply_status(self, new_status: PaymentRecordStatus, at: datetime) -> None:
        """Move to ``new_status``; entering ``paid`` stamps ``paid_at``."""
        self.status = new_status
        if new_status == PaymentRecordStatus.PAID:
            self.paid_at = at

    def update_account_info(
        self,
        bank_name: Optional[str] = None,
        account_number: Optional[str] = None,
        account_name: Optional[str] = None,
    ) -> None:
        """Merge account fields. ``None`` keeps the stored value."""
        self.bank_name = bank_name or self.bank_name
        self.account_number = account_number or self.account_number
        self.account_name = account_name or self.account_name

    def __repr__(self) -> str:
        return (
            f"<PaymentRecord id={self.id} patient={self.patient_id} "
            f"status={self.status.value} amount={self.amount}>"
        )
