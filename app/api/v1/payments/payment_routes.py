import traceback
from typing import List
import uuid
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_db
from app.core.pagination import PaginatedResponse, PaginationParams, get_pagination_params
from app.core.permission_checker import require_admin, require_mother
from app.models.user_model import Mother, User
from app.schemas.payment_schemas import (
    BulkProcessResponse,
    BulkProcessSchema,
    PaymentProcessSchema,
    PaymentRecordSchema,
    PaymentStatisticsSchema,
    PaymentStatusUpdateSchema,
)
from app.services.payment_service import MY_STATUS_NOT_FOUND, PaymentService
from app.core.utils import logger


router = APIRouter(prefix="/payments", tags=["payments"])


def _internal_error(event: str, e: Exception, detail: str, **context) -> HTTPException:
    logger.log_error(
        {
            "event": event,
            **context,
            "error": str(e),
            "error_type": type(e).__name__,
            "traceback": traceback.format_exc(),
        }
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
    )


@router.get("/my-status", response_model=PaymentRecordSchema)
async def get_my_payment_status(
    db: AsyncSession = Depends(get_db),
    current_user: Mother = Depends(require_mother()),
):
    """Payment record of the authenticated mother."""
    payment_service = PaymentService(db)

    try:
        record = await payment_service.get_by_patient(
            current_user.id, not_found_detail=MY_STATUS_NOT_FOUND
        )
        return PaymentRecordSchema.from_record(record)

    except HTTPException:
        raise

    except Exception as e:
        raise _internal_error(
            "my_payment_status_error",
            e,
            "Failed to retrieve payment status",
            user_id=str(current_user.id),
        )


@router.get("", response_model=List[PaymentRecordSchema])
async def list_payments(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """All payment records, newest first (Admin only)."""
    payment_service = PaymentService(db)

    try:
        records = await payment_service.list_all()
        return [PaymentRecordSchema.from_record(r) for r in records]

    except HTTPException:
        raise

    except Exception as e:
        raise _internal_error("list_payments_error", e, "Failed to retrieve payments")


@router.get("/eligible", response_model=PaginatedResponse[PaymentRecordSchema])
async def list_eligible_payments(
    pagination: PaginationParams = Depends(get_pagination_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """
    Pending payment records awaiting disbursement (Admin only).

    Ordered by eligibility date, longest-waiting first.
    """
    payment_service = PaymentService(db)

    try:
        return await payment_service.list_eligible(pagination)

    except HTTPException:
        raise

    except Exception as e:
        raise _internal_error(
            "list_eligible_payments_error", e, "Failed to retrieve eligible payments"
        )


@router.get("/statistics", response_model=PaymentStatisticsSchema)
async def get_payment_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """Aggregate payment statistics (Admin only)."""
    payment_service = PaymentService(db)

    try:
        return await payment_service.get_statistics()

    except HTTPException:
        raise

    except Exception as e:
        raise _internal_error(
            "payment_statistics_error", e, "Failed to compute payment statistics"
        )


@router.get("/user/{user_id}", response_model=PaymentRecordSchema)
async def get_user_payment(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """Payment record of a given mother (Admin only)."""
    payment_service = PaymentService(db)

    try:
        record = await payment_service.get_by_patient(user_id)
        return PaymentRecordSchema.from_record(record)

    except HTTPException:
        raise

    except Exception as e:
        raise _internal_error(
            "user_payment_error",
            e,
            "Failed to retrieve payment record",
            patient_id=str(user_id),
        )


@router.get(
    "/status/{payment_status}",
    response_model=PaginatedResponse[PaymentRecordSchema],
)
async def list_payments_by_status(
    payment_status: str,
    pagination: PaginationParams = Depends(get_pagination_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """Payment records in a given status (Admin only). Unknown status is a 400."""
    payment_service = PaymentService(db)

    try:
        return await payment_service.list_by_status(payment_status, pagination)

    except HTTPException:
        raise

    except Exception as e:
        raise _internal_error(
            "list_payments_by_status_error",
            e,
            "Failed to retrieve payments",
            status=payment_status,
        )


@router.get(
    "/reason/{reason}",
    response_model=PaginatedResponse[PaymentRecordSchema],
)
async def list_payments_by_reason(
    reason: str,
    pagination: PaginationParams = Depends(get_pagination_params),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """Payment records for a given eligibility reason (Admin only)."""
    payment_service = PaymentService(db)

    try:
        return await payment_service.list_by_reason(reason, pagination)

    except HTTPException:
        raise

    except Exception as e:
        raise _internal_error(
            "list_payments_by_reason_error",
            e,
            "Failed to retrieve payments",
            reason=reason,
        )


@router.patch("/{user_id}/status", response_model=PaymentRecordSchema)
async def update_payment_status(
    user_id: uuid.UUID,
    status_data: PaymentStatusUpdateSchema,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """
    Set the status of a mother's payment record (Admin only).

    Marking a record ``paid`` stamps the payment time and marks the mother
    paid in the same transaction. Account details, when sent, are merged
    into the record.
    """
    payment_service = PaymentService(db)

    try:
        record = await payment_service.set_status(
            user_id,
            status_data.status,
            account_info=status_data.account_info,
            actor_id=current_user.id,
        )
        return PaymentRecordSchema.from_record(record)

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        raise _internal_error(
            "payment_status_update_error",
            e,
            "Failed to update payment status",
            patient_id=str(user_id),
        )


@router.put("/bulk-process", response_model=BulkProcessResponse)
async def bulk_process_payments(
    bulk_data: BulkProcessSchema,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """
    Apply one status to many payment records (Admin only).

    Ids that match no record are skipped; the response reports how many
    records were actually modified.
    """
    payment_service = PaymentService(db)

    try:
        modified_count = await payment_service.bulk_process(
            bulk_data.payment_ids,
            bulk_data.status,
            actor_id=current_user.id,
            payment_method=bulk_data.payment_method,
            notes=bulk_data.notes,
        )
        return BulkProcessResponse(
            message=f"{modified_count} payment(s) processed successfully",
            modified_count=modified_count,
        )

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        raise _internal_error(
            "bulk_payment_process_error",
            e,
            "Failed to process payments",
            requested=len(bulk_data.payment_ids),
        )


@router.put("/process/{payment_id}", response_model=PaymentRecordSchema)
async def process_payment(
    payment_id: uuid.UUID,
    process_data: PaymentProcessSchema,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """Process a single payment record by id (Admin only)."""
    payment_service = PaymentService(db)

    try:
        record = await payment_service.process(
            payment_id,
            process_data.status,
            actor_id=current_user.id,
            payment_method=process_data.payment_method,
            transaction_reference=process_data.transaction_reference,
            notes=process_data.notes,
        )
        return PaymentRecordSchema.from_record(record)

    except HTTPException:
        raise

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        raise _internal_error(
            "payment_process_error",
            e,
            "Failed to process payment",
            payment_id=str(payment_id),
        )
