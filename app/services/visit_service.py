from datetime import timedelta
import math
from typing import List, Optional, Tuple
import uuid
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.config.config import settings
from app.core.exceptions import ConflictError, NotFoundError
from app.core.locks import PatientLockRegistry, patient_locks
from app.core.utils import LoggerMixin, as_utc, utc_now
from app.models.user_model import Mother
from app.models.visit_model import Visit
from app.repositories.user_repo import UserRepository
from app.repositories.visit_repo import VisitRepository
from app.schemas.payment_schemas import EligibilityVerdict
from app.schemas.visit_schemas import (
    LastVisitSchema,
    NextAppointmentResponse,
    NextAppointmentSchema,
    VisitCreateSchema,
    VisitSummarySchema,
    VisitType,
    VisitUpdateSchema,
)
from app.services.eligibility_service import evaluate_eligibility
from app.services.payment_service import PaymentService


# After this many ANC visits the next expected visit is the delivery
ANC_VISITS_BEFORE_DELIVERY = 8

NO_ANC_VISIT_MESSAGE = "No ANC visit yet. Book your first visit!"


class VisitService(LoggerMixin):
    """Visit ledger operations and the eligibility pass that follows them."""

    def __init__(self, db: AsyncSession, locks: PatientLockRegistry = patient_locks):
        super().__init__()
        self.db = db
        self.locks = locks
        self.repo = VisitRepository(self.db)
        self.user_repo = UserRepository(self.db)
        self.payments = PaymentService(self.db)

    async def _get_mother_or_404(
        self, patient_id: uuid.UUID, for_update: bool = False
    ) -> Mother:
        mother = await self.user_repo.get_mother_by_id(patient_id, for_update=for_update)
        if mother is None:
            raise NotFoundError("Patient not found")
        return mother

    async def _evaluate_and_apply(self, mother: Mother) -> EligibilityVerdict:
        """
        Recount the ledger, update the mother and ensure her payment record.

        Runs inside the caller's lock and transaction.
        """
        visit_types = await self.repo.get_visit_types(mother.id)
        verdict = evaluate_eligibility(visit_types)
        was_beneficiary = mother.is_beneficiary

        mother.apply_verdict(verdict)

        if verdict.is_eligible:
            await self.payments.ensure_record(mother, verdict)
            if not was_beneficiary:
                self.log_info(
                    {
                        "event": "eligibility_granted",
                        "patient_id": str(mother.id),
                        "reason": verdict.reason.value,
                        "amount": verdict.amount,
                        "anc_visit_count": verdict.anc_visit_count,
                    }
                )

        return verdict

    async def log_visit(
        self, visit_data: VisitCreateSchema, health_worker_id: uuid.UUID
    ) -> Tuple[Visit, EligibilityVerdict, Mother]:
        """
        Log a visit and run the eligibility pass for its patient.

        The read-count-decide-create sequence is serialized per patient by an
        in-process lock and a row lock on the mother, and the visit, the
        mother's eligibility fields and any new payment record commit together.

        Args:
            visit_data: Patient, type, optional date and notes
            health_worker_id: Id of the logging health worker

        Returns:
            Tuple of (visit, verdict, mother)

        Raises:
            NotFoundError: Unknown patient
            ConflictError: A concurrent writer created the payment record
        """
        async with self.locks.hold(visit_data.patient_id):
            try:
                mother = await self._get_mother_or_404(
                    visit_data.patient_id, for_update=True
                )

                visit = Visit(
                    patient_id=mother.id,
                    type=visit_data.type,
                    date=visit_data.date or utc_now(),
                    notes=visit_data.notes,
                    health_worker_id=health_worker_id,
                )
                await self.repo.add_visit(visit)

                verdict = await self._evaluate_and_apply(mother)
                await self.db.commit()

            except IntegrityError as e:
                await self.db.rollback()
                self.log_error(
                    {
                        "event": "visit_log_conflict",
                        "patient_id": str(visit_data.patient_id),
                        "error": str(e.orig),
                    }
                )
                raise ConflictError(
                    "Payment record for this patient was created concurrently. "
                    "Please retry."
                )
            except Exception:
                await self.db.rollback()
                raise

        await self.db.refresh(visit)

        self.log_info(
            {
                "event": "visit_logged",
                "visit_id": str(visit.id),
                "patient_id": str(mother.id),
                "type": visit.type.value,
                "anc_visit_count": verdict.anc_visit_count,
                "health_worker_id": str(health_worker_id),
            }
        )
        return visit, verdict, mother

    async def update_visit(
        self, visit_id: uuid.UUID, visit_data: VisitUpdateSchema
    ) -> Visit:
        """
        Correct a visit's type, date or notes.

        A type change reruns the eligibility pass so the ANC count stays
        exact. Eligibility already granted is never revoked.
        """
        visit = await self.repo.get_visit_by_id(visit_id)
        if visit is None:
            raise NotFoundError("Visit not found")

        update_data = visit_data.model_dump(exclude_unset=True)
        # type and date are required columns; an explicit null means "keep"
        for field in ("type", "date"):
            if field in update_data and update_data[field] is None:
                update_data.pop(field)

        type_changed = (
            "type" in update_data and update_data["type"] != visit.type
        )

        async with self.locks.hold(visit.patient_id):
            try:
                mother = None
                if type_changed:
                    mother = await self._get_mother_or_404(
                        visit.patient_id, for_update=True
                    )

                for field, value in update_data.items():
                    setattr(visit, field, value)
                await self.db.flush()

                if mother is not None:
                    await self._evaluate_and_apply(mother)

                await self.db.commit()

            except IntegrityError as e:
                await self.db.rollback()
                self.log_error(
                    {
                        "event": "visit_update_conflict",
                        "visit_id": str(visit_id),
                        "error": str(e.orig),
                    }
                )
                raise ConflictError(
                    "Payment record for this patient was created concurrently. "
                    "Please retry."
                )
            except Exception:
                await self.db.rollback()
                raise

        await self.db.refresh(visit)

        self.log_info(
            {
                "event": "visit_updated",
                "visit_id": str(visit.id),
                "updated_fields": list(update_data.keys()),
                "eligibility_recomputed": type_changed,
            }
        )
        return visit

    async def get_patient_anc_visits(
        self, patient_id: uuid.UUID
    ) -> Tuple[Mother, List[Visit]]:
        """ANC visits of a patient, oldest first."""
        mother = await self._get_mother_or_404(patient_id)
        visits = await self.repo.list_patient_visits(
            patient_id, anc_only=True, ascending=True
        )
        return mother, visits

    async def get_patient_visits(
        self, patient_id: uuid.UUID
    ) -> Tuple[Mother, List[Visit]]:
        """All visits of a patient, newest first."""
        mother = await self._get_mother_or_404(patient_id)
        visits = await self.repo.list_patient_visits(patient_id)
        return mother, visits

    async def get_my_visits(self, mother: Mother) -> List[Visit]:
        return await self.repo.list_patient_visits(mother.id)

    @staticmethod
    def summarize(visits: List[Visit], detailed: bool = True) -> VisitSummarySchema:
        summary = VisitSummarySchema(
            total_visits=len(visits),
            anc_visits=sum(1 for v in visits if v.is_anc),
        )
        if detailed:
            summary.delivery_visits = sum(
                1 for v in visits if v.type == VisitType.DELIVERY
            )
            summary.postnatal_visits = sum(
                1 for v in visits if v.type == VisitType.POSTNATAL
            )
        return summary

    async def get_next_appointment(self, mother: Mother) -> NextAppointmentResponse:
        """
        Suggest the next visit from the latest ANC visit.

        Never fails on an empty history; a mother with no ANC visit gets a
        prompt to book her first one.
        """
        last_visit: Optional[Visit] = await self.repo.get_latest_anc_visit(mother.id)
        if last_visit is None:
            return NextAppointmentResponse(message=NO_ANC_VISIT_MESSAGE, visit_count=0)

        anc_count = await self.repo.count_anc_visits(mother.id)
        next_date = as_utc(last_visit.date) + timedelta(
            days=settings.NEXT_APPOINTMENT_INTERVAL_DAYS
        )

        if anc_count >= ANC_VISITS_BEFORE_DELIVERY:
            next_type = VisitType.DELIVERY.value
        else:
            next_type = f"ANC{anc_count + 1}"

        days_from_now = math.ceil((next_date - utc_now()).total_seconds() / 86400)

        return NextAppointmentResponse(
            last_visit=LastVisitSchema(
                type=last_visit.type,
                date=last_visit.date,
                notes=last_visit.notes,
            ),
            next_appointment=NextAppointmentSchema(
                date=next_date,
                type=next_type,
                days_from_now=days_from_now,
            ),
            visit_count=anc_count,
        )
