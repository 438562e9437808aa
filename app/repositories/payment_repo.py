from typing import Dict, List, Optional
import uuid
from sqlalchemy import Select, case, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.models.payment_model import PaymentRecord
from app.models.user_model import Mother
from app.schemas.payment_schemas import EligibilityReason, PaymentRecordStatus
from app.schemas.user_schemas import MotherPaymentStatus


class PaymentRepository:
    """Repository layer for payment record data access."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============= Single Record Operations =============
    async def add_record(self, record: PaymentRecord) -> PaymentRecord:
        """Stage a record in the current transaction. The caller commits."""
        self.db.add(record)
        await self.db.flush()
        return record

    async def get_by_id(self, payment_id: uuid.UUID) -> Optional[PaymentRecord]:
        result = await self.db.execute(
            select(PaymentRecord).where(PaymentRecord.id == payment_id)
        )
        return result.scalars().first()

    async def get_by_patient_id(
        self, patient_id: uuid.UUID
    ) -> Optional[PaymentRecord]:
        result = await self.db.execute(
            select(PaymentRecord).where(PaymentRecord.patient_id == patient_id)
        )
        return result.scalars().first()

    # ============= Listing Queries =============
    def all_query(self) -> Select:
        return select(PaymentRecord).order_by(PaymentRecord.created_at.desc())

    async def list_all(self) -> List[PaymentRecord]:
        result = await self.db.execute(self.all_query())
        return list(result.scalars().all())

    def eligible_query(self) -> Select:
        """Pending records, longest-waiting first."""
        return (
            select(PaymentRecord)
            .where(PaymentRecord.status == PaymentRecordStatus.PENDING)
            .order_by(PaymentRecord.eligibility_date.asc(), PaymentRecord.id)
        )

    def status_query(self, status: PaymentRecordStatus) -> Select:
        return (
            select(PaymentRecord)
            .where(PaymentRecord.status == status)
            .order_by(PaymentRecord.created_at.desc())
        )

    def reason_query(self, reason: EligibilityReason) -> Select:
        return (
            select(PaymentRecord)
            .where(PaymentRecord.reason == reason)
            .order_by(PaymentRecord.created_at.desc())
        )

    # ============= Bulk Operations =============
    async def bulk_update(self, payment_ids: List[uuid.UUID], values: Dict) -> int:
        """
        Apply ``values`` to every record whose id is in ``payment_ids``.

        Unknown ids match nothing. Returns the number of rows updated.
        """
        result = await self.db.execute(
            update(PaymentRecord)
            .where(PaymentRecord.id.in_(payment_ids))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def mark_mothers_paid(self, payment_ids: List[uuid.UUID]) -> int:
        """Set ``payment_status = paid`` on the owners of the given records."""
        mothers = Mother.__table__
        owners = select(PaymentRecord.patient_id).where(
            PaymentRecord.id.in_(payment_ids)
        )
        result = await self.db.execute(
            update(mothers)
            .where(mothers.c.id.in_(owners))
            .values(payment_status=MotherPaymentStatus.PAID)
        )
        return result.rowcount or 0

    async def reload_bulk_targets(self, payment_ids: List[uuid.UUID]) -> None:
        """
        Re-read records and their owners after a bulk statement.

        Bulk UPDATEs bypass the identity map, so objects already loaded in
        this session are overwritten with the committed rows.
        """
        await self.db.execute(
            select(PaymentRecord)
            .where(PaymentRecord.id.in_(payment_ids))
            .execution_options(populate_existing=True)
        )
        owners = select(PaymentRecord.patient_id).where(
            PaymentRecord.id.in_(payment_ids)
        )
        await self.db.execute(
            select(Mother)
            .where(Mother.id.in_(owners))
            .execution_options(populate_existing=True)
        )

    # ============= Aggregates =============
    async def get_statistics(self) -> Dict:
        """Aggregate counts and sums over every payment record."""
        paid = PaymentRecordStatus.PAID
        totals = await self.db.execute(
            select(
                func.count(PaymentRecord.id),
                func.coalesce(
                    func.sum(
                        case((PaymentRecord.status == paid, PaymentRecord.amount), else_=0)
                    ),
                    0,
                ),
                func.coalesce(func.avg(PaymentRecord.amount), 0),
            )
        )
        total_payments, total_amount_paid, average_amount = totals.one()

        status_rows = await self.db.execute(
            select(PaymentRecord.status, func.count(PaymentRecord.id)).group_by(
                PaymentRecord.status
            )
        )
        by_status = {status: count for status, count in status_rows.all()}

        reason_rows = await self.db.execute(
            select(
                PaymentRecord.reason,
                func.count(PaymentRecord.id),
                func.coalesce(func.sum(PaymentRecord.amount), 0),
            )
            .group_by(PaymentRecord.reason)
            .order_by(PaymentRecord.reason)
        )

        return {
            "total_payments": total_payments,
            "total_amount_paid": int(total_amount_paid),
            "pending_count": by_status.get(PaymentRecordStatus.PENDING, 0),
            "paid_count": by_status.get(PaymentRecordStatus.PAID, 0),
            "failed_count": by_status.get(PaymentRecordStatus.FAILED, 0),
            "average_amount": round(float(average_amount), 2),
            "reason_breakdown": [
                {"reason": reason, "count": count, "total_amount": int(total)}
                for reason, count, total in reason_rows.all()
            ],
        }
