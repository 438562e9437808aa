from typing import Dict, Optional
import uuid
from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.payment_model import PaymentRecord
from app.models.user_model import Mother, User
from app.models.visit_model import Visit
from app.schemas.user_schemas import MotherPaymentStatus


class UserRepository:
    """Repository layer for user and mother data access."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalars().first()

    async def get_user_by_phone(self, phone: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.phone == phone))
        return result.scalars().first()

    async def get_user_by_identifier(self, identifier: str) -> Optional[User]:
        """Find a user by email or phone number."""
        result = await self.db.execute(
            select(User).where(
                or_(User.email == identifier.lower(), User.phone == identifier)
            )
        )
        return result.scalars().first()

    async def get_mother_by_id(
        self, mother_id: uuid.UUID, for_update: bool = False
    ) -> Optional[Mother]:
        """
        Get a mother by ID.

        Args:
            mother_id: Mother's user id
            for_update: Lock the row until the transaction ends (ignored by
                SQLite)
        """
        query = select(Mother).where(Mother.id == mother_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalars().first()

    async def create_user(self, user: User) -> User:
        """
        Persist a new user.

        Args:
            user: User ORM model (Mother, HealthWorker or Administrator)

        Returns:
            Created user with ID and timestamps
        """
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def update_user(self, user: User) -> User:
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def delete_mother(self, mother: Mother) -> None:
        """Delete a mother together with her visits and payment record."""
        await self.db.execute(delete(Visit).where(Visit.patient_id == mother.id))
        await self.db.execute(
            delete(PaymentRecord).where(PaymentRecord.patient_id == mother.id)
        )
        await self.db.delete(mother)
        await self.db.commit()

    def mothers_query(
        self,
        payment_status: Optional[MotherPaymentStatus] = None,
        is_beneficiary: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Select:
        """Build the filtered, newest-first mothers query."""
        query = select(Mother)

        if payment_status is not None:
            query = query.where(Mother.payment_status == payment_status)

        if is_beneficiary is not None:
            query = query.where(Mother.is_beneficiary == is_beneficiary)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Mother.full_name.ilike(pattern),
                    Mother.phone.ilike(pattern),
                    Mother.email.ilike(pattern),
                )
            )

        return query.order_by(Mother.created_at.desc())

    async def get_mother_stats(self) -> Dict[str, int]:
        """Counts over all mothers, independent of any list filter."""
        total = (await self.db.execute(select(func.count(Mother.id)))).scalar() or 0
        beneficiaries = (
            await self.db.execute(
                select(func.count(Mother.id)).where(Mother.is_beneficiary == True)
            )
        ).scalar() or 0

        status_rows = await self.db.execute(
            select(Mother.payment_status, func.count(Mother.id)).group_by(
                Mother.payment_status
            )
        )
        by_status = {status: count for status, count in status_rows.all()}

        return {
            "total_users": total,
            "beneficiaries": beneficiaries,
            "pending_payments": by_status.get(MotherPaymentStatus.PENDING, 0),
            "eligible_payments": by_status.get(MotherPaymentStatus.ELIGIBLE, 0),
            "paid_payments": by_status.get(MotherPaymentStatus.PAID, 0),
        }
