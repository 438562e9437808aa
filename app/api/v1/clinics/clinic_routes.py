import traceback
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db
from app.core.permission_checker import require_admin
from app.models.user_model import User
from app.schemas.clinic_schemas import ClinicCreateSchema, ClinicSchema
from app.services.clinic_service import ClinicService
from app.core.utils import logger


router = APIRouter(prefix="/clinics", tags=["clinics"])


@router.post("", response_model=ClinicSchema, status_code=status.HTTP_201_CREATED)
async def create_clinic(
    clinic_data: ClinicCreateSchema,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """
    Create a new clinic (Admin only).

    Args:
        clinic_data: Clinic creation data
        db: Database session
        current_user: Current authenticated admin user

    Returns:
        ClinicSchema: Created clinic

    Raises:
        HTTPException: 400 if a clinic with the same name exists
    """
    clinic_service = ClinicService(db)

    try:
        clinic = await clinic_service.create_clinic(clinic_data)

        logger.log_info(
            {
                "event": "clinic_created_via_api",
                "clinic_id": str(clinic.id),
                "created_by": str(current_user.id),
            }
        )
        return ClinicSchema.model_validate(clinic, from_attributes=True)

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.log_error(
            {
                "event": "clinic_creation_error",
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while creating the clinic",
        )


@router.get("", response_model=List[ClinicSchema])
async def list_clinics(db: AsyncSession = Depends(get_db)):
    """List active clinics. Public, used by the registration form."""
    clinic_service = ClinicService(db)
    clinics = await clinic_service.list_clinics()
    return [ClinicSchema.model_validate(c, from_attributes=True) for c in clinics]
