from datetime import datetime
from typing import Optional
import uuid
from pydantic import BaseModel, EmailStr, field_validator


class ClinicCreateSchema(BaseModel):
    """Schema for registering a partner clinic."""

    name: str
    address: str
    lga: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    contact_person: Optional[str] = None
    is_active: bool = True

    @field_validator("name", "address")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()


class ClinicSchema(BaseModel):
    id: uuid.UUID
    name: str
    address: str
    lga: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
