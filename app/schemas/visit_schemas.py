from datetime import date, datetime
from enum import Enum
from typing import List, Optional
import uuid
from pydantic import BaseModel, field_validator
from sqlalchemy import Enum as SQLEnum, inspect

from app.schemas.payment_schemas import EligibilityReason
from app.schemas.user_schemas import MotherPaymentStatus


class VisitType(str, Enum):
    """Visit catalog, in clinical order"""

    ANC1 = "ANC1"
    ANC2 = "ANC2"
    ANC3 = "ANC3"
    ANC4 = "ANC4"
    DELIVERY = "DELIVERY"
    POSTNATAL = "POSTNATAL"

    @property
    def is_anc(self) -> bool:
        return self.value.startswith("ANC")


ANC_VISIT_TYPES = tuple(t for t in VisitType if t.is_anc)

visit_type_enum = SQLEnum(
    VisitType,
    name="visit_type",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
)


def _clean_notes(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if len(v) > 1000:
        raise ValueError("Notes must not exceed 1000 characters")
    return v or None


class VisitCreateSchema(BaseModel):
    """
    Schema for logging a visit.

    Note: the logging health worker is taken from the authenticated user.
    """

    patient_id: uuid.UUID
    type: VisitType
    date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        return _clean_notes(v)


class VisitUpdateSchema(BaseModel):
    """Correction of a visit. Omitted fields are left untouched."""

    type: Optional[VisitType] = None
    date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        return _clean_notes(v)


class HealthWorkerSummarySchema(BaseModel):
    id: uuid.UUID
    full_name: str

    model_config = {"from_attributes": True}


class VisitSchema(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    type: VisitType
    date: datetime
    notes: Optional[str] = None
    health_worker_id: Optional[uuid.UUID] = None
    health_worker: Optional[HealthWorkerSummarySchema] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_visit(cls, visit) -> "VisitSchema":
        state = inspect(visit)
        health_worker = None
        if "health_worker" not in state.unloaded and visit.health_worker is not None:
            health_worker = HealthWorkerSummarySchema.model_validate(
                visit.health_worker
            )

        return cls(
            id=visit.id,
            patient_id=visit.patient_id,
            type=visit.type,
            date=visit.date,
            notes=visit.notes,
            health_worker_id=visit.health_worker_id,
            health_worker=health_worker,
            created_at=visit.created_at,
            updated_at=visit.updated_at,
        )


class PatientUpdateSummarySchema(BaseModel):
    """Eligibility state of the patient right after a visit was logged."""

    anc_visit_count: int
    is_eligible: bool
    eligibility_reason: Optional[EligibilityReason] = None
    incentive_amount: int


class VisitLogResponse(BaseModel):
    message: str
    visit: VisitSchema
    patient_update: PatientUpdateSummarySchema


class VisitPatientSchema(BaseModel):
    id: uuid.UUID
    full_name: str
    phone: str
    edd: Optional[date] = None
    payment_status: MotherPaymentStatus
    anc_visit_count: int

    model_config = {"from_attributes": True}


class VisitSummarySchema(BaseModel):
    total_visits: int
    anc_visits: int
    delivery_visits: Optional[int] = None
    postnatal_visits: Optional[int] = None


class PatientAncVisitsResponse(BaseModel):
    patient: VisitPatientSchema
    count: int
    visits: List[VisitSchema]


class PatientVisitsResponse(BaseModel):
    patient: VisitPatientSchema
    summary: VisitSummarySchema
    visits: List[VisitSchema]


class MyVisitsResponse(BaseModel):
    summary: VisitSummarySchema
    visits: List[VisitSchema]


class LastVisitSchema(BaseModel):
    type: VisitType
    date: datetime
    notes: Optional[str] = None


class NextAppointmentSchema(BaseModel):
    date: datetime
    # ANC5 and later are not catalog values, so this stays a plain label
    type: str
    days_from_now: int


class NextAppointmentResponse(BaseModel):
    message: Optional[str] = None
    last_visit: Optional[LastVisitSchema] = None
    next_appointment: Optional[NextAppointmentSchema] = None
    visit_count: int = 0
