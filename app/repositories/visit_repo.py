from typing import List, Optional
import uuid
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.models.visit_model import Visit
from app.schemas.visit_schemas import ANC_VISIT_TYPES, VisitType


class VisitRepository:
    """Repository layer for the visit ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_visit(self, visit: Visit) -> Visit:
        """Stage a visit in the current transaction. The caller commits."""
        self.db.add(visit)
        await self.db.flush()
        return visit

    async def get_visit_by_id(self, visit_id: uuid.UUID) -> Optional[Visit]:
        result = await self.db.execute(select(Visit).where(Visit.id == visit_id))
        return result.scalars().first()

    async def list_patient_visits(
        self,
        patient_id: uuid.UUID,
        anc_only: bool = False,
        ascending: bool = False,
    ) -> List[Visit]:
        """
        Get a patient's visits ordered by visit date.

        Args:
            patient_id: Mother's id
            anc_only: Only ANC-numbered visits
            ascending: Oldest first when True, newest first otherwise
        """
        query = select(Visit).where(Visit.patient_id == patient_id)

        if anc_only:
            query = query.where(Visit.type.in_(ANC_VISIT_TYPES))

        order = Visit.date.asc() if ascending else Visit.date.desc()
        result = await self.db.execute(query.order_by(order, Visit.created_at))
        return list(result.scalars().all())

    async def get_visit_types(self, patient_id: uuid.UUID) -> List[VisitType]:
        """Types of every visit logged for a patient, pending ones included."""
        await self.db.flush()
        result = await self.db.execute(
            select(Visit.type).where(Visit.patient_id == patient_id)
        )
        return list(result.scalars().all())

    async def get_latest_anc_visit(self, patient_id: uuid.UUID) -> Optional[Visit]:
        result = await self.db.execute(
            select(Visit)
            .where(Visit.patient_id == patient_id, Visit.type.in_(ANC_VISIT_TYPES))
            .order_by(Visit.date.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def count_anc_visits(self, patient_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(Visit.id)).where(
                Visit.patient_id == patient_id, Visit.type.in_(ANC_VISIT_TYPES)
            )
        )
        return result.scalar() or 0
