import traceback
import uuid
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db
from app.core.permission_checker import require_health_worker, require_mother
from app.models.user_model import Mother, User
from app.schemas.visit_schemas import (
    MyVisitsResponse,
    NextAppointmentResponse,
    PatientAncVisitsResponse,
    PatientUpdateSummarySchema,
    PatientVisitsResponse,
    VisitCreateSchema,
    VisitLogResponse,
    VisitPatientSchema,
    VisitSchema,
    VisitUpdateSchema,
)
from app.services.visit_service import VisitService
from app.core.utils import logger


router = APIRouter(prefix="/visits", tags=["visits"])


@router.post(
    "/log", response_model=VisitLogResponse, status_code=status.HTTP_201_CREATED
)
async def log_visit(
    visit_data: VisitCreateSchema,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_health_worker()),
):
    """
    Log a visit for a patient (Health worker only).

    Logging a visit re-evaluates the patient's incentive eligibility and
    opens a payment record the first time she qualifies.

    Args:
        visit_data: Patient id, visit type, optional date and notes
        db: Database session
        current_user: Authenticated health worker

    Returns:
        VisitLogResponse: The visit and the patient's eligibility summary

    Raises:
        HTTPException: 404 unknown patient, 409 concurrent record creation
    """
    visit_service = VisitService(db)

    try:
        visit, verdict, mother = await visit_service.log_visit(
            visit_data, health_worker_id=current_user.id
        )

        return VisitLogResponse(
            message="Visit logged successfully",
            visit=VisitSchema.from_visit(visit),
            patient_update=PatientUpdateSummarySchema(
                anc_visit_count=mother.anc_visit_count,
                is_eligible=verdict.is_eligible,
                eligibility_reason=mother.eligibility_reason,
                incentive_amount=mother.cash_incentive_amount,
            ),
        )

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.log_error(
            {
                "event": "visit_log_error",
                "patient_id": str(visit_data.patient_id),
                "health_worker_id": str(current_user.id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while logging the visit",
        )


@router.get("/my-visits", response_model=MyVisitsResponse)
async def get_my_visits(
    db: AsyncSession = Depends(get_db),
    current_user: Mother = Depends(require_mother()),
):
    """List the authenticated mother's visits, newest first."""
    visit_service = VisitService(db)

    try:
        visits = await visit_service.get_my_visits(current_user)
        return MyVisitsResponse(
            summary=visit_service.summarize(visits, detailed=False),
            visits=[VisitSchema.from_visit(v) for v in visits],
        )

    except HTTPException:
        raise

    except Exception as e:
        logger.log_error(
            {
                "event": "my_visits_error",
                "user_id": str(current_user.id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve visits",
        )


@router.get("/next-appointment", response_model=NextAppointmentResponse)
async def get_next_appointment(
    db: AsyncSession = Depends(get_db),
    current_user: Mother = Depends(require_mother()),
):
    """
    Suggest the mother's next visit from her latest ANC visit.

    A mother with no ANC history gets a message and no appointment.
    """
    visit_service = VisitService(db)

    try:
        return await visit_service.get_next_appointment(current_user)

    except HTTPException:
        raise

    except Exception as e:
        logger.log_error(
            {
                "event": "next_appointment_error",
                "user_id": str(current_user.id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute next appointment",
        )


@router.get("/patient/{patient_id}/anc", response_model=PatientAncVisitsResponse)
async def get_patient_anc_visits(
    patient_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_health_worker()),
):
    """ANC visits of a patient, oldest first (Health worker only)."""
    visit_service = VisitService(db)

    try:
        mother, visits = await visit_service.get_patient_anc_visits(patient_id)
        return PatientAncVisitsResponse(
            patient=VisitPatientSchema.model_validate(mother),
            count=len(visits),
            visits=[VisitSchema.from_visit(v) for v in visits],
        )

    except HTTPException:
        raise

    except Exception as e:
        logger.log_error(
            {
                "event": "patient_anc_visits_error",
                "patient_id": str(patient_id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve ANC visits",
        )


@router.get("/patient/{patient_id}/all", response_model=PatientVisitsResponse)
async def get_patient_visits(
    patient_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_health_worker()),
):
    """All visits of a patient with a per-type summary (Health worker only)."""
    visit_service = VisitService(db)

    try:
        mother, visits = await visit_service.get_patient_visits(patient_id)
        return PatientVisitsResponse(
            patient=VisitPatientSchema.model_validate(mother),
            summary=visit_service.summarize(visits),
            visits=[VisitSchema.from_visit(v) for v in visits],
        )

    except HTTPException:
        raise

    except Exception as e:
        logger.log_error(
            {
                "event": "patient_visits_error",
                "patient_id": str(patient_id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve visits",
        )


@router.put("/{visit_id}", response_model=VisitSchema)
async def update_visit(
    visit_id: uuid.UUID,
    visit_data: VisitUpdateSchema,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_health_worker()),
):
    """
    Correct a visit (Health worker only).

    Only the fields sent are changed. Changing the type recounts the
    patient's ANC visits.
    """
    visit_service = VisitService(db)

    try:
        visit = await visit_service.update_visit(visit_id, visit_data)

        logger.log_info(
            {
                "event": "visit_updated_via_api",
                "visit_id": str(visit_id),
                "updated_by": str(current_user.id),
            }
        )
        return VisitSchema.from_visit(visit)

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.log_error(
            {
                "event": "visit_update_error",
                "visit_id": str(visit_id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while updating the visit",
        )
