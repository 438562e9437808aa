import traceback
from typing import Optional
import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db
from app.core.pagination import PaginationParams, get_pagination_params
from app.core.permission_checker import require_admin, require_mother
from app.models.user_model import Mother, User
from app.schemas.user_schemas import (
    AuthResponse,
    BankInfoSchema,
    BankInfoUpdateSchema,
    MotherListResponse,
    MotherPaymentStatus,
    MotherRegisterSchema,
    MotherSchema,
    ProfileUpdateSchema,
    SelectClinicSchema,
    StaffCreateSchema,
    UserLoginSchema,
    UserSchema,
)
from app.services.payment_service import PaymentService
from app.services.user_service import UserService
from app.core.utils import logger


router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def register_mother(
    user_data: MotherRegisterSchema,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new mother account.

    Args:
        user_data: Registration data including credentials and expected
            delivery date
        db: Database session

    Returns:
        AuthResponse: Access token and the created user

    Raises:
        HTTPException: 400 if the phone or email is taken
    """
    user_service = UserService(db)
    try:
        mother, token = await user_service.register_mother(user_data)
        return AuthResponse(
            access_token=token,
            user=UserSchema.model_validate(mother, from_attributes=True),
        )

    except HTTPException:
        raise

    except ValueError as e:
        logger.log_warning(
            {
                "event": "user_registration_failed",
                "reason": "validation_error",
                "error": str(e),
            }
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.log_error(
            {
                "event": "user_registration_error",
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while creating the user",
        )


@router.post("/login", response_model=AuthResponse)
async def login_user(
    login_data: UserLoginSchema,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email or phone number and password.

    Returns:
        AuthResponse: Access token and the authenticated user

    Raises:
        HTTPException: 401 on bad credentials or an inactive account
    """
    user_service = UserService(db)
    ip_address = request.client.host if request.client else None

    try:
        user, token = await user_service.login(
            login_data.identifier, login_data.password, ip_address=ip_address
        )
        return AuthResponse(
            access_token=token,
            user=UserSchema.model_validate(user, from_attributes=True),
        )

    except HTTPException:
        raise

    except Exception as e:
        logger.log_error(
            {
                "event": "login_error",
                "identifier": login_data.identifier,
                "ip_address": ip_address,
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred during login",
        )


@router.get("/profile", response_model=MotherSchema)
async def get_profile(current_user: Mother = Depends(require_mother())):
    """Get the authenticated mother's profile."""
    return MotherSchema.model_validate(current_user, from_attributes=True)


@router.put("/update-profile", response_model=MotherSchema)
async def update_profile(
    profile_data: ProfileUpdateSchema,
    db: AsyncSession = Depends(get_db),
    current_user: Mother = Depends(require_mother()),
):
    """Update the authenticated mother's profile. Omitted fields are kept."""
    user_service = UserService(db)
    try:
        mother = await user_service.update_profile(current_user, profile_data)
        return MotherSchema.model_validate(mother, from_attributes=True)

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.log_error(
            {
                "event": "profile_update_error",
                "user_id": str(current_user.id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while updating the profile",
        )


@router.put("/select-clinic", response_model=MotherSchema)
async def select_clinic(
    clinic_data: SelectClinicSchema,
    db: AsyncSession = Depends(get_db),
    current_user: Mother = Depends(require_mother()),
):
    """Attach the authenticated mother to an active clinic."""
    user_service = UserService(db)
    try:
        mother = await user_service.select_clinic(current_user, clinic_data.clinic_id)
        return MotherSchema.model_validate(mother, from_attributes=True)

    except HTTPException:
        raise

    except Exception as e:
        logger.log_error(
            {
                "event": "select_clinic_error",
                "user_id": str(current_user.id),
                "clinic_id": str(clinic_data.clinic_id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while selecting the clinic",
        )


@router.put("/bank-info", response_model=BankInfoSchema)
async def update_bank_info(
    bank_data: BankInfoUpdateSchema,
    db: AsyncSession = Depends(get_db),
    current_user: Mother = Depends(require_mother()),
):
    """
    Update the authenticated mother's payout details.

    The details are also copied onto her payment record if she has one.
    Bank transfer requires a bank and an account number.
    """
    payment_service = PaymentService(db)
    try:
        mother, _ = await payment_service.update_bank_info(current_user, bank_data)
        return BankInfoSchema.model_validate(mother, from_attributes=True)

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.log_error(
            {
                "event": "bank_info_update_error",
                "user_id": str(current_user.id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while updating bank info",
        )


@router.post(
    "/staff", response_model=UserSchema, status_code=status.HTTP_201_CREATED
)
async def create_staff(
    user_data: StaffCreateSchema,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """Create a health worker or administrator account (Admin only)."""
    user_service = UserService(db)
    try:
        user = await user_service.create_staff(user_data)

        logger.log_info(
            {
                "event": "staff_created_via_api",
                "user_id": str(user.id),
                "role": user.role,
                "created_by": str(current_user.id),
            }
        )
        return UserSchema.model_validate(user, from_attributes=True)

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.log_error(
            {
                "event": "staff_creation_error",
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while creating the user",
        )


@router.get("/all-mothers", response_model=MotherListResponse)
async def list_mothers(
    pagination: PaginationParams = Depends(get_pagination_params),
    payment_status: Optional[MotherPaymentStatus] = Query(None),
    is_beneficiary: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """
    List registered mothers with filters and overall stats (Admin only).

    ``search`` matches name, phone or email.
    """
    user_service = UserService(db)
    try:
        return await user_service.list_mothers(
            pagination,
            payment_status=payment_status,
            is_beneficiary=is_beneficiary,
            search=search,
        )

    except HTTPException:
        raise

    except Exception as e:
        logger.log_error(
            {
                "event": "list_mothers_error",
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve users",
        )


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_mother(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """
    Delete a mother and her visit history (Admin only).

    Mothers who are eligible or already paid cannot be deleted.
    """
    user_service = UserService(db)
    try:
        await user_service.delete_mother(user_id)

        logger.log_info(
            {
                "event": "user_deleted_via_api",
                "user_id": str(user_id),
                "deleted_by": str(current_user.id),
            }
        )

    except HTTPException:
        raise

    except Exception as e:
        logger.log_error(
            {
                "event": "user_deletion_error",
                "user_id": str(user_id),
                "error": str(e),
                "error_type": type(e).__name__,
                "traceback": traceback.format_exc(),
            }
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while deleting the user",
        )
