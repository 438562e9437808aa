from typing import List, Optional, Tuple, Union
import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import InvalidInputError, NotFoundError
from app.core.pagination import PaginatedResponse, PaginationParams, Paginator
from app.core.utils import LoggerMixin, utc_now
from app.models.payment_model import PaymentRecord
from app.models.user_model import Mother
from app.repositories.payment_repo import PaymentRepository
from app.repositories.user_repo import UserRepository
from app.schemas.payment_schemas import (
    AccountInfoSchema,
    EligibilityReason,
    EligibilityVerdict,
    PaymentMethod,
    PaymentRecordSchema,
    PaymentRecordStatus,
    PaymentStatisticsSchema,
    parse_enum,
)
from app.schemas.user_schemas import BankInfoUpdateSchema, MotherPaymentStatus


MY_STATUS_NOT_FOUND = (
    "No payment status found. Complete your ANC visits to be eligible."
)


class PaymentService(LoggerMixin):
    """
    Payment record lifecycle and the administrative processing workflow.

    Methods that take part in a larger unit of work (``ensure_record``) only
    stage changes; everything else commits its own transaction.
    """

    def __init__(self, db: AsyncSession):
        super().__init__()
        self.db = db
        self.repo = PaymentRepository(self.db)
        self.user_repo = UserRepository(self.db)

    # ============= Validation =============
    @staticmethod
    def parse_status(value: Union[str, PaymentRecordStatus]) -> PaymentRecordStatus:
        try:
            return parse_enum(PaymentRecordStatus, value, "status")
        except ValueError as e:
            raise InvalidInputError(str(e))

    @staticmethod
    def parse_reason(value: Union[str, EligibilityReason]) -> EligibilityReason:
        try:
            return parse_enum(EligibilityReason, value, "reason")
        except ValueError as e:
            raise InvalidInputError(str(e))

    # ============= Record Manager =============
    async def ensure_record(
        self, mother: Mother, verdict: EligibilityVerdict
    ) -> Optional[PaymentRecord]:
        """
        Create the mother's payment record if she has none.

        Must run inside the caller's per-patient critical section and
        transaction; nothing is committed here.

        Returns:
            The new record, or None when one already existed or the verdict
            is not eligible
        """
        if not verdict.is_eligible:
            return None

        existing = await self.repo.get_by_patient_id(mother.id)
        if existing is not None:
            self.log_debug(
                {
                    "event": "payment_record_exists",
                    "patient_id": str(mother.id),
                    "payment_id": str(existing.id),
                    "existing_reason": existing.reason.value,
                    "verdict_reason": verdict.reason.value,
                }
            )
            return None

        record = PaymentRecord(
            patient_id=mother.id,
            amount=verdict.amount,
            reason=verdict.reason,
            status=PaymentRecordStatus.PENDING,
            eligibility_date=utc_now(),
            payment_method=mother.preferred_payment_method,
            bank_name=mother.bank_name,
            account_number=mother.account_number,
            account_name=mother.account_name,
        )
        await self.repo.add_record(record)

        self.log_info(
            {
                "event": "payment_record_created",
                "patient_id": str(mother.id),
                "payment_id": str(record.id),
                "reason": record.reason.value,
                "amount": record.amount,
            }
        )
        return record

    async def get_by_patient(
        self,
        patient_id: uuid.UUID,
        not_found_detail: str = "Payment record not found for this user",
    ) -> PaymentRecord:
        """
        Get a mother's payment record.

        A paid record whose owner is not yet marked paid is repaired here,
        so readers never keep seeing the two disagree.
        """
        record = await self.repo.get_by_patient_id(patient_id)
        if record is None:
            raise NotFoundError(not_found_detail)

        await self._reconcile_paid(record)
        return record

    async def _reconcile_paid(self, record: PaymentRecord) -> None:
        if record.status != PaymentRecordStatus.PAID:
            return

        mother = record.patient
        if mother is None or mother.payment_status == MotherPaymentStatus.PAID:
            return

        mother.mark_paid()
        await self.db.commit()
        self.log_warning(
            {
                "event": "payment_status_reconciled",
                "patient_id": str(record.patient_id),
                "payment_id": str(record.id),
            }
        )

    async def update_bank_info(
        self, mother: Mother, data: BankInfoUpdateSchema
    ) -> Tuple[Mother, Optional[PaymentRecord]]:
        """
        Merge bank details into the mother and, if present, her record.

        Blank or omitted fields keep the stored value. Bank transfer needs a
        bank and an account number, supplied now or stored earlier.

        Returns:
            The updated mother and her payment record (None if she has none)
        """
        method = data.preferred_payment_method or mother.preferred_payment_method
        bank_name = data.bank_name or mother.bank_name
        account_number = data.account_number or mother.account_number

        if method == PaymentMethod.BANK_TRANSFER and not (bank_name and account_number):
            raise InvalidInputError(
                "Bank and account number are required for bank transfer"
            )

        mother.preferred_payment_method = method
        mother.bank_name = bank_name
        mother.account_number = account_number
        mother.account_name = (
            data.account_name or mother.account_name or mother.full_name
        )

        record = await self.repo.get_by_patient_id(mother.id)
        if record is not None:
            if data.preferred_payment_method is not None:
                record.payment_method = data.preferred_payment_method
            record.update_account_info(
                bank_name=data.bank_name,
                account_number=data.account_number,
                account_name=data.account_name
                or record.account_name
                or mother.full_name,
            )

        await self.db.commit()
        await self.db.refresh(mother)
        if record is not None:
            await self.db.refresh(record)

        self.log_info(
            {
                "event": "bank_info_updated",
                "patient_id": str(mother.id),
                "payment_method": method.value,
                "payment_record_updated": record is not None,
            }
        )
        return mother, record

    # ============= Processing Workflow =============
    def _transition(
        self,
        record: PaymentRecord,
        new_status: PaymentRecordStatus,
        actor_id: Optional[uuid.UUID],
    ) -> None:
        if record.is_terminal and record.status != new_status:
            self.log_warning(
                {
                    "event": "payment_terminal_state_reopened",
                    "payment_id": str(record.id),
                    "from_status": record.status.value,
                    "to_status": new_status.value,
                    "actor_id": str(actor_id) if actor_id else None,
                }
            )
        record.apply_status(new_status, utc_now())

    async def _propagate_paid(self, record: PaymentRecord) -> None:
        mother = await self.user_repo.get_mother_by_id(record.patient_id)
        if mother is not None:
            mother.mark_paid()

    async def set_status(
        self,
        patient_id: uuid.UUID,
        new_status: Union[str, PaymentRecordStatus],
        account_info: Optional[AccountInfoSchema] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PaymentRecord:
        """
        Set the status of a mother's record.

        Moving to ``paid`` stamps ``paid_at`` and marks the mother paid in the
        same transaction.

        Raises:
            InvalidInputError: Unknown status (nothing is changed)
            NotFoundError: The mother has no payment record
        """
        status = self.parse_status(new_status)

        record = await self.repo.get_by_patient_id(patient_id)
        if record is None:
            raise NotFoundError("Payment record not found for this user")

        previous = record.status
        self._transition(record, status, actor_id)

        if account_info is not None:
            record.update_account_info(**account_info.model_dump())

        if status == PaymentRecordStatus.PAID:
            await self._propagate_paid(record)

        await self.db.commit()
        await self.db.refresh(record)

        self.log_info(
            {
                "event": "payment_status_updated",
                "payment_id": str(record.id),
                "patient_id": str(patient_id),
                "from_status": previous.value,
                "to_status": status.value,
                "actor_id": str(actor_id) if actor_id else None,
            }
        )
        return record

    async def process(
        self,
        payment_id: uuid.UUID,
        new_status: Union[str, PaymentRecordStatus],
        actor_id: uuid.UUID,
        payment_method: Optional[PaymentMethod] = None,
        transaction_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PaymentRecord:
        """
        Process a single payment record by id.

        Records the processing administrator along with method, reference
        and notes. Paid propagation is the same as ``set_status``.
        """
        status = self.parse_status(new_status)

        record = await self.repo.get_by_id(payment_id)
        if record is None:
            raise NotFoundError("Payment record not found")

        previous = record.status
        self._transition(record, status, actor_id)
        record.processed_by_id = actor_id
        if payment_method is not None:
            record.payment_method = payment_method
        if transaction_reference is not None:
            record.transaction_reference = transaction_reference
        if notes is not None:
            record.notes = notes

        if status == PaymentRecordStatus.PAID:
            await self._propagate_paid(record)

        await self.db.commit()
        await self.db.refresh(record)

        self.log_info(
            {
                "event": "payment_processed",
                "payment_id": str(record.id),
                "from_status": previous.value,
                "to_status": status.value,
                "transaction_reference": record.transaction_reference,
                "processed_by": str(actor_id),
            }
        )
        return record

    async def bulk_process(
        self,
        payment_ids: List[uuid.UUID],
        new_status: Union[str, PaymentRecordStatus],
        actor_id: uuid.UUID,
        payment_method: Optional[PaymentMethod] = None,
        notes: Optional[str] = None,
    ) -> int:
        """
        Apply one status change to many records in a single statement.

        Ids that match no record are skipped without error; only the number
        of records actually modified is reported.

        Returns:
            int: modified count
        """
        status = self.parse_status(new_status)
        if not payment_ids:
            raise InvalidInputError("payment_ids must be a non-empty list of ids")

        values = {"status": status, "processed_by_id": actor_id}
        if payment_method is not None:
            values["payment_method"] = payment_method
        if notes is not None:
            values["notes"] = notes
        if status == PaymentRecordStatus.PAID:
            values["paid_at"] = utc_now()

        try:
            modified_count = await self.repo.bulk_update(payment_ids, values)
            if status == PaymentRecordStatus.PAID:
                await self.repo.mark_mothers_paid(payment_ids)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.repo.reload_bulk_targets(payment_ids)

        self.log_info(
            {
                "event": "payments_bulk_processed",
                "requested": len(payment_ids),
                "modified_count": modified_count,
                "status": status.value,
                "processed_by": str(actor_id),
            }
        )
        return modified_count

    # ============= Queries =============
    async def list_all(self) -> List[PaymentRecord]:
        return await self.repo.list_all()

    async def list_eligible(
        self, params: PaginationParams
    ) -> PaginatedResponse[PaymentRecordSchema]:
        """Pending records, oldest eligibility first."""
        return await Paginator.paginate(
            self.db,
            self.repo.eligible_query(),
            params,
            transform=PaymentRecordSchema.from_record,
        )

    async def list_by_status(
        self, status: Union[str, PaymentRecordStatus], params: PaginationParams
    ) -> PaginatedResponse[PaymentRecordSchema]:
        parsed = self.parse_status(status)
        return await Paginator.paginate(
            self.db,
            self.repo.status_query(parsed),
            params,
            transform=PaymentRecordSchema.from_record,
        )

    async def list_by_reason(
        self, reason: Union[str, EligibilityReason], params: PaginationParams
    ) -> PaginatedResponse[PaymentRecordSchema]:
        parsed = self.parse_reason(reason)
        return await Paginator.paginate(
            self.db,
            self.repo.reason_query(parsed),
            params,
            transform=PaymentRecordSchema.from_record,
        )

    async def get_statistics(self) -> PaymentStatisticsSchema:
        stats = await self.repo.get_statistics()
        return PaymentStatisticsSchema(**stats)
