from typing import List, Optional
import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.models.clinic_model import Clinic


class ClinicRepository:
    """Repository layer for clinic data access."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_clinic(self, clinic: Clinic) -> Clinic:
        self.db.add(clinic)
        await self.db.commit()
        await self.db.refresh(clinic)
        return clinic

    async def get_clinic_by_id(self, clinic_id: uuid.UUID) -> Optional[Clinic]:
        result = await self.db.execute(select(Clinic).where(Clinic.id == clinic_id))
        return result.scalars().first()

    async def get_clinic_by_name(self, name: str) -> Optional[Clinic]:
        result = await self.db.execute(select(Clinic).where(Clinic.name == name))
        return result.scalars().first()

    async def list_clinics(self, active_only: bool = True) -> List[Clinic]:
        query = select(Clinic)
        if active_only:
            query = query.where(Clinic.is_active == True)
        result = await self.db.execute(query.order_by(Clinic.name.asc()))
        return list(result.scalars().all())
