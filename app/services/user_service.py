from typing import Optional, Tuple
import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from app.core.pagination import PaginationParams, Paginator
from app.core.security import TokenManager, get_password_hash, verify_password
from app.core.utils import LoggerMixin, utc_now
from app.models.user_model import USER_CLASS_BY_ROLE, Mother, User
from app.repositories.clinic_repo import ClinicRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user_schemas import (
    MotherListResponse,
    MotherPaymentStatus,
    MotherRegisterSchema,
    MotherSchema,
    MotherStatsSchema,
    ProfileUpdateSchema,
    StaffCreateSchema,
)


class UserService(LoggerMixin):
    """Service layer for accounts, mother profiles and admin listings."""

    def __init__(self, db: AsyncSession):
        super().__init__()
        self.db = db
        self.repo = UserRepository(self.db)
        self.clinic_repo = ClinicRepository(self.db)

    async def _ensure_unique_contact(
        self, phone: str, email: Optional[str], exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        existing = await self.repo.get_user_by_phone(phone)
        if existing is not None and existing.id != exclude_id:
            raise InvalidInputError("User with this phone number already exists")

        if email:
            existing = await self.repo.get_user_by_email(email)
            if existing is not None and existing.id != exclude_id:
                raise InvalidInputError("User with this email already exists")

    async def _get_active_clinic(self, clinic_id: uuid.UUID):
        clinic = await self.clinic_repo.get_clinic_by_id(clinic_id)
        if clinic is None:
            raise NotFoundError("Clinic not found")
        if not clinic.is_active:
            raise InvalidInputError("Clinic is not active")
        return clinic

    async def register_mother(self, data: MotherRegisterSchema) -> Tuple[Mother, str]:
        """
        Register a mother and issue her access token.

        Raises:
            InvalidInputError: Phone or email already in use, or inactive clinic
            NotFoundError: Unknown clinic
        """
        await self._ensure_unique_contact(data.phone, data.email)
        if data.clinic_id is not None:
            await self._get_active_clinic(data.clinic_id)

        mother_dict = data.model_dump(exclude={"password"})
        mother_dict["password"] = get_password_hash(data.password)

        mother = await self.repo.create_user(Mother(**mother_dict))
        token = TokenManager.create_user_token(mother)

        self.log_info({"event": "mother_registered", "user_id": str(mother.id)})
        return mother, token

    async def create_staff(self, data: StaffCreateSchema) -> User:
        """Create a health worker or administrator account."""
        await self._ensure_unique_contact(data.phone, data.email)
        if data.clinic_id is not None:
            await self._get_active_clinic(data.clinic_id)

        user_cls = USER_CLASS_BY_ROLE[data.role]
        user_dict = data.model_dump(exclude={"password", "role"})
        user_dict["password"] = get_password_hash(data.password)

        user = await self.repo.create_user(user_cls(**user_dict))

        self.log_info(
            {"event": "staff_created", "user_id": str(user.id), "role": user.role}
        )
        return user

    async def login(
        self, identifier: str, password: str, ip_address: Optional[str] = None
    ) -> Tuple[User, str]:
        """
        Authenticate by email or phone.

        Raises:
            UnauthorizedError: Unknown identifier, wrong password or inactive
                account (one message for all, so accounts cannot be probed)
        """
        user = await self.repo.get_user_by_identifier(identifier)

        if user is None or not verify_password(password, user.password):
            self.log_security_event(
                {
                    "event_type": "failed_login_attempt",
                    "identifier": identifier,
                    "ip_address": ip_address,
                    "user_exists": user is not None,
                }
            )
            raise UnauthorizedError("Invalid credentials")

        if not user.is_active:
            self.log_security_event(
                {
                    "event_type": "inactive_account_login",
                    "user_id": str(user.id),
                    "ip_address": ip_address,
                }
            )
            raise UnauthorizedError("Invalid credentials")

        user.last_login_at = utc_now()
        user = await self.repo.update_user(user)

        self.log_security_event(
            {
                "event_type": "successful_login",
                "user_id": str(user.id),
                "role": user.role,
                "ip_address": ip_address,
            }
        )
        return user, TokenManager.create_user_token(user)

    async def update_profile(self, mother: Mother, data: ProfileUpdateSchema) -> Mother:
        update_data = data.model_dump(exclude_unset=True)
        # Required columns cannot be cleared
        for field in ("full_name", "phone", "edd", "language"):
            if field in update_data and update_data[field] is None:
                update_data.pop(field)

        if "phone" in update_data and update_data["phone"] != mother.phone:
            await self._ensure_unique_contact(update_data["phone"], None, mother.id)

        for field, value in update_data.items():
            setattr(mother, field, value)

        mother = await self.repo.update_user(mother)
        self.log_info(
            {
                "event": "profile_updated",
                "user_id": str(mother.id),
                "updated_fields": list(update_data.keys()),
            }
        )
        return mother

    async def select_clinic(self, mother: Mother, clinic_id: uuid.UUID) -> Mother:
        clinic = await self._get_active_clinic(clinic_id)
        mother.clinic_id = clinic.id
        mother = await self.repo.update_user(mother)
        self.log_info(
            {
                "event": "clinic_selected",
                "user_id": str(mother.id),
                "clinic_id": str(clinic.id),
            }
        )
        return mother

    async def list_mothers(
        self,
        params: PaginationParams,
        payment_status: Optional[MotherPaymentStatus] = None,
        is_beneficiary: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> MotherListResponse:
        page = await Paginator.paginate(
            self.db,
            self.repo.mothers_query(payment_status, is_beneficiary, search),
            params,
            schema=MotherSchema,
        )
        stats = await self.repo.get_mother_stats()
        return MotherListResponse(
            items=page.items,
            page_info=page.page_info,
            stats=MotherStatsSchema(**stats),
        )

    async def delete_mother(self, mother_id: uuid.UUID) -> None:
        """
        Delete a mother who has no active payment state.

        Raises:
            NotFoundError: Unknown mother
            ConflictError: The mother is eligible or already paid
        """
        mother = await self.repo.get_mother_by_id(mother_id)
        if mother is None:
            raise NotFoundError("User not found")

        if mother.has_active_payment_state:
            raise ConflictError(
                "Cannot delete user with active payment status "
                f"'{mother.payment_status.value}'"
            )

        await self.repo.delete_mother(mother)
        self.log_info({"event": "mother_deleted", "user_id": str(mother_id)})
