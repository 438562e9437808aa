from datetime import datetime
from enum import Enum
from typing import List, Optional, Union
import uuid
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import Enum as SQLEnum, inspect


class PaymentRecordStatus(str, Enum):
    """Lifecycle of a payment record"""

    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_PAYMENT_STATUSES = frozenset(
    {
        PaymentRecordStatus.PAID,
        PaymentRecordStatus.FAILED,
        PaymentRecordStatus.CANCELLED,
    }
)


class EligibilityReason(str, Enum):
    """Milestone that earned the incentive"""

    ANC4 = "ANC4"
    DELIVERY = "DELIVERY"


class PaymentMethod(str, Enum):
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


# ============= Column Types (Reusable) =============
payment_record_status_enum = SQLEnum(
    PaymentRecordStatus,
    name="payment_record_status",
    values_callable=_enum_values,
)

eligibility_reason_enum = SQLEnum(
    EligibilityReason,
    name="eligibility_reason",
    values_callable=_enum_values,
)

payment_method_enum = SQLEnum(
    PaymentMethod,
    name="payment_method",
    values_callable=_enum_values,
)


def parse_enum(enum_cls, value: Union[str, Enum], field: str):
    """
    Coerce a raw value into ``enum_cls``.

    Raises:
        ValueError: listing the accepted values when ``value`` is unknown
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(_enum_values(enum_cls))
        raise ValueError(f"Invalid {field} '{value}'. Must be one of: {allowed}")


# ============= Eligibility =============
class EligibilityVerdict(BaseModel):
    """Outcome of evaluating a patient's visit history."""

    anc_visit_count: int = 0
    has_delivery: bool = False
    reason: Optional[EligibilityReason] = None
    amount: int = 0

    model_config = {"frozen": True}

    @property
    def is_eligible(self) -> bool:
        return self.reason is not None


# ============= Payment Record Schemas =============
class AccountInfoSchema(BaseModel):
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None

    @field_validator("bank_name", "account_number", "account_name")
    @classmethod
    def strip_values(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None


class PaymentPatientSchema(BaseModel):
    """Patient fields shown alongside a payment record."""

    id: uuid.UUID
    full_name: str
    phone: str
    email: Optional[str] = None

    model_config = {"from_attributes": True}


class PaymentRecordSchema(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    amount: int
    reason: EligibilityReason
    status: PaymentRecordStatus
    eligibility_date: datetime
    paid_at: Optional[datetime] = None
    transaction_reference: Optional[str] = None
    payment_method: PaymentMethod
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None
    notes: Optional[str] = None
    processed_by_id: Optional[uuid.UUID] = None
    patient: Optional[PaymentPatientSchema] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_record(cls, record) -> "PaymentRecordSchema":
        """Build from an ORM record without triggering a lazy load."""
        state = inspect(record)
        patient = None
        if "patient" not in state.unloaded and record.patient is not None:
            patient = PaymentPatientSchema.model_validate(record.patient)

        return cls(
            id=record.id,
            patient_id=record.patient_id,
            amount=record.amount,
            reason=record.reason,
            status=record.status,
            eligibility_date=record.eligibility_date,
            paid_at=record.paid_at,
            transaction_reference=record.transaction_reference,
            payment_method=record.payment_method,
            bank_name=record.bank_name,
            account_number=record.account_number,
            account_name=record.account_name,
            notes=record.notes,
            processed_by_id=record.processed_by_id,
            patient=patient,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class PaymentStatusUpdateSchema(BaseModel):
    """Body for PATCH /payments/{user_id}/status."""

    status: PaymentRecordStatus
    account_info: Optional[AccountInfoSchema] = None


class PaymentProcessSchema(BaseModel):
    """Body for PUT /payments/process/{payment_id}."""

    status: PaymentRecordStatus
    payment_method: Optional[PaymentMethod] = None
    transaction_reference: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)


class BulkProcessSchema(BaseModel):
    """Body for PUT /payments/bulk-process."""

    payment_ids: List[uuid.UUID]
    status: PaymentRecordStatus
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("payment_ids")
    @classmethod
    def validate_payment_ids(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        if not v:
            raise ValueError("payment_ids must contain at least one id")
        # Preserve order, drop duplicates
        return list(dict.fromkeys(v))


class BulkProcessResponse(BaseModel):
    message: str
    modified_count: int


class ReasonBreakdownSchema(BaseModel):
    reason: EligibilityReason
    count: int
    total_amount: int


class PaymentStatisticsSchema(BaseModel):
    total_payments: int
    total_amount_paid: int
    pending_count: int
    paid_count: int
    failed_count: int
    average_amount: float
    reason_breakdown: List[ReasonBreakdownSchema]
