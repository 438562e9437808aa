from datetime import date, datetime
from enum import Enum
import re
from typing import List, Optional
import uuid
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy import Enum as SQLEnum

from app.core.pagination import PageInfo
from app.schemas.payment_schemas import EligibilityReason, PaymentMethod


class UserRole(str, Enum):
    """Closed set of actor roles. Every authorization boundary maps all three."""

    MOTHER = "mother"
    HEALTH_WORKER = "health_worker"
    ADMIN = "admin"


STAFF_ROLES = (UserRole.HEALTH_WORKER, UserRole.ADMIN)


class MotherPaymentStatus(str, Enum):
    """Incentive status as seen on the mother's own record"""

    PENDING = "pending"
    ELIGIBLE = "eligible"
    PAID = "paid"
    INELIGIBLE = "ineligible"


mother_payment_status_enum = SQLEnum(
    MotherPaymentStatus,
    name="mother_payment_status",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
)


def _validate_phone(v: str) -> str:
    v = v.strip()

    if any(c.isalpha() for c in v):
        raise ValueError("Phone number must not contain letters")

    if not re.match(r"^\+?\d{10,15}$", v):
        raise ValueError(
            "Phone number must be 10-15 digits, optionally starting with '+'"
        )

    return v


def _validate_full_name(v: str) -> str:
    v = v.strip()

    if not v:
        raise ValueError("Full name cannot be empty or whitespace only")

    if len(v) > 100:
        raise ValueError("Full name must not exceed 100 characters")

    if any(char.isdigit() for char in v):
        raise ValueError("Full name must not contain numbers")

    return v


def _validate_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters long")

    if len(v) > 128:
        raise ValueError("Password must not exceed 128 characters")

    if " " in v:
        raise ValueError("Password must not contain spaces")

    if not any(char.isdigit() for char in v):
        raise ValueError("Password must contain at least one digit")

    if not any(char.isupper() for char in v):
        raise ValueError("Password must contain at least one uppercase letter")

    if not any(char.islower() for char in v):
        raise ValueError("Password must contain at least one lowercase letter")

    if not re.search(r"[!@#$%^&*()_+=\[\]{}|;:,.<>?/\\-]", v):
        raise ValueError("Password must contain at least one special character")

    return v


class UserBaseSchema(BaseModel):
    """Base schema for user with common fields."""

    full_name: str
    phone: str
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        return _validate_full_name(v)

    model_config = {"from_attributes": True}


class MotherRegisterSchema(UserBaseSchema):
    """Self-registration of a mother."""

    password: str
    edd: date
    dob: Optional[date] = None
    lmp: Optional[date] = None
    address: Optional[str] = None
    language: str = "English"
    clinic_id: Optional[uuid.UUID] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password(v)


class StaffCreateSchema(UserBaseSchema):
    """Admin-created health worker or administrator account."""

    password: str
    role: UserRole
    clinic_id: Optional[uuid.UUID] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        if v not in STAFF_ROLES:
            raise ValueError("Staff role must be health_worker or admin")
        return v


class ProfileUpdateSchema(BaseModel):
    """Mother profile update. All fields are optional."""

    full_name: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[date] = None
    edd: Optional[date] = None
    lmp: Optional[date] = None
    address: Optional[str] = None
    language: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_full_name(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_phone(v)


class SelectClinicSchema(BaseModel):
    clinic_id: uuid.UUID


class BankInfoUpdateSchema(BaseModel):
    """
    Partial bank-info update.

    Omitted or blank values keep what is already stored.
    """

    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None
    preferred_payment_method: Optional[PaymentMethod] = None

    @field_validator("bank_name", "account_number", "account_name")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None


class BankInfoSchema(BaseModel):
    id: uuid.UUID
    full_name: str
    preferred_payment_method: PaymentMethod
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None

    model_config = {"from_attributes": True}


class UserLoginSchema(BaseModel):
    """Login with email or phone number."""

    identifier: str
    password: str

    @field_validator("identifier")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Email or phone cannot be empty")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Password cannot be empty")
        return v


class ClinicSummarySchema(BaseModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None

    model_config = {"from_attributes": True}


class UserSchema(BaseModel):
    """Schema for returning user data."""

    id: uuid.UUID
    full_name: str
    phone: str
    email: Optional[str] = None
    role: UserRole
    is_active: bool
    clinic_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MotherSchema(UserSchema):
    dob: Optional[date] = None
    edd: Optional[date] = None
    lmp: Optional[date] = None
    address: Optional[str] = None
    language: Optional[str] = None
    anc_visit_count: int
    payment_status: MotherPaymentStatus
    eligibility_reason: Optional[EligibilityReason] = None
    cash_incentive_amount: int
    is_beneficiary: bool
    preferred_payment_method: PaymentMethod
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserSchema


class MotherStatsSchema(BaseModel):
    total_users: int
    beneficiaries: int
    pending_payments: int
    eligible_payments: int
    paid_payments: int


class MotherListResponse(BaseModel):
    items: List[MotherSchema]
    page_info: PageInfo
    stats: MotherStatsSchema
