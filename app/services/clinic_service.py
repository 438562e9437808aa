from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import InvalidInputError
from app.core.utils import LoggerMixin
from app.models.clinic_model import Clinic
from app.repositories.clinic_repo import ClinicRepository
from app.schemas.clinic_schemas import ClinicCreateSchema


class ClinicService(LoggerMixin):
    def __init__(self, db: AsyncSession):
        super().__init__()
        self.db = db
        self.repo = ClinicRepository(self.db)

    async def create_clinic(self, clinic_data: ClinicCreateSchema) -> Clinic:
        """Create a clinic. Names are unique."""
        if await self.repo.get_clinic_by_name(clinic_data.name):
            raise InvalidInputError("Clinic with this name already exists")

        clinic = await self.repo.create_clinic(Clinic(**clinic_data.model_dump()))
        self.log_info(
            {"event": "clinic_created", "clinic_id": str(clinic.id), "name": clinic.name}
        )
        return clinic

    async def list_clinics(self, active_only: bool = True) -> List[Clinic]:
        return await self.repo.list_clinics(active_only=active_only)
