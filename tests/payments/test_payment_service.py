"""
Payment Service Tests

Record manager and processing workflow against the database.
"""

from datetime import timedelta
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidInputError, NotFoundError
from app.core.pagination import PaginationParams
from app.core.utils import utc_now
from app.models.user_model import Administrator, Mother
from app.schemas.payment_schemas import (
    AccountInfoSchema,
    EligibilityReason,
    EligibilityVerdict,
    PaymentMethod,
    PaymentRecordStatus,
)
from app.schemas.user_schemas import BankInfoUpdateSchema, MotherPaymentStatus
from app.services.payment_service import PaymentService


@pytest.mark.asyncio
@pytest.mark.payments
class TestEnsureRecord:
    async def test_ineligible_verdict_creates_nothing(
        self, db_session: AsyncSession, mother: Mother
    ):
        service = PaymentService(db_session)
        verdict = EligibilityVerdict(
            anc_visit_count=2, has_delivery=False, reason=None, amount=0
        )

        assert await service.ensure_record(mother, verdict) is None

    async def test_existing_record_is_left_alone(
        self, db_session: AsyncSession, mother: Mother, make_payment_record
    ):
        existing = await make_payment_record(mother, reason=EligibilityReason.DELIVERY)
        service = PaymentService(db_session)
        verdict = EligibilityVerdict(
            anc_visit_count=4,
            has_delivery=True,
            reason=EligibilityReason.ANC4,
            amount=5000,
        )

        assert await service.ensure_record(mother, verdict) is None
        record = await service.get_by_patient(mother.id)
        assert record.id == existing.id
        assert record.reason == EligibilityReason.DELIVERY


@pytest.mark.asyncio
@pytest.mark.payments
class TestSetStatus:
    async def test_paid_stamps_time_and_marks_mother(
        self, db_session: AsyncSession, mother: Mother, make_payment_record
    ):
        await make_payment_record(mother)
        service = PaymentService(db_session)

        record = await service.set_status(mother.id, "paid")

        assert record.status == PaymentRecordStatus.PAID
        assert record.paid_at is not None
        await db_session.refresh(mother)
        assert mother.payment_status == MotherPaymentStatus.PAID

    async def test_setting_paid_twice_is_idempotent(
        self, db_session: AsyncSession, mother: Mother, make_payment_record
    ):
        await make_payment_record(mother)
        service = PaymentService(db_session)

        await service.set_status(mother.id, PaymentRecordStatus.PAID)
        record = await service.set_status(mother.id, PaymentRecordStatus.PAID)

        assert record.status == PaymentRecordStatus.PAID
        await db_session.refresh(mother)
        assert mother.payment_status == MotherPaymentStatus.PAID

    async def test_unknown_status_is_rejected_without_change(
        self, db_session: AsyncSession, mother: Mother, make_payment_record
    ):
        await make_payment_record(mother)
        service = PaymentService(db_session)

        with pytest.raises(InvalidInputError):
            await service.set_status(mother.id, "done")

        record = await service.get_by_patient(mother.id)
        assert record.status == PaymentRecordStatus.PENDING

    async def test_missing_record_is_not_found(
        self, db_session: AsyncSession, mother: Mother
    ):
        service = PaymentService(db_session)

        with pytest.raises(NotFoundError):
            await service.set_status(mother.id, "processing")

    async def test_account_info_is_merged(
        self, db_session: AsyncSession, mother: Mother, make_payment_record
    ):
        await make_payment_record(mother)
        service = PaymentService(db_session)

        record = await service.set_status(
            mother.id,
            "processing",
            account_info=AccountInfoSchema(bank_name="Ecobank", account_number="998877"),
        )

        assert record.status == PaymentRecordStatus.PROCESSING
        assert record.bank_name == "Ecobank"
        assert record.account_number == "998877"

    async def test_terminal_state_can_be_reopened(
        self, db_session: AsyncSession, mother: Mother, make_payment_record
    ):
        await make_payment_record(mother, status=PaymentRecordStatus.FAILED)
        service = PaymentService(db_session)

        record = await service.set_status(mother.id, "processing")

        assert record.status == PaymentRecordStatus.PROCESSING


@pytest.mark.asyncio
@pytest.mark.payments
class TestProcess:
    async def test_process_records_administrator_and_reference(
        self,
        db_session: AsyncSession,
        mother: Mother,
        admin: Administrator,
        make_payment_record,
    ):
        record = await make_payment_record(mother)
        service = PaymentService(db_session)

        processed = await service.process(
            record.id,
            "paid",
            actor_id=admin.id,
            payment_method=PaymentMethod.CASH,
            transaction_reference="TX-001",
            notes="Paid at clinic",
        )

        assert processed.status == PaymentRecordStatus.PAID
        assert processed.processed_by_id == admin.id
        assert processed.payment_method == PaymentMethod.CASH
        assert processed.transaction_reference == "TX-001"
        assert processed.paid_at is not None
        await db_session.refresh(mother)
        assert mother.payment_status == MotherPaymentStatus.PAID

    async def test_unknown_payment_is_not_found(
        self, db_session: AsyncSession, admin: Administrator
    ):
        service = PaymentService(db_session)

        with pytest.raises(NotFoundError):
            await service.process(uuid.uuid4(), "paid", actor_id=admin.id)


@pytest.mark.asyncio
@pytest.mark.payments
class TestBulkProcess:
    async def test_missing_ids_are_skipped(
        self,
        db_session: AsyncSession,
        make_mother,
        admin: Administrator,
        make_payment_record,
    ):
        first = await make_mother(full_name="Akosua Boateng")
        second = await make_mother(full_name="Yaa Asantewaa")
        records = [
            await make_payment_record(first),
            await make_payment_record(second),
        ]
        service = PaymentService(db_session)

        modified = await service.bulk_process(
            [records[0].id, records[1].id, uuid.uuid4()],
            "paid",
            actor_id=admin.id,
        )

        assert modified == 2
        for record, owner in zip(records, (first, second)):
            assert record.status == PaymentRecordStatus.PAID
            assert record.paid_at is not None
            assert owner.payment_status == MotherPaymentStatus.PAID

    async def test_non_paid_status_leaves_mothers_alone(
        self,
        db_session: AsyncSession,
        mother: Mother,
        admin: Administrator,
        make_payment_record,
    ):
        record = await make_payment_record(mother)
        service = PaymentService(db_session)

        modified = await service.bulk_process(
            [record.id], "processing", actor_id=admin.id, notes="Batch 7"
        )

        assert modified == 1
        assert record.status == PaymentRecordStatus.PROCESSING
        assert record.notes == "Batch 7"
        assert mother.payment_status == MotherPaymentStatus.ELIGIBLE

    async def test_invalid_status_is_rejected(
        self, db_session: AsyncSession, admin: Administrator
    ):
        service = PaymentService(db_session)

        with pytest.raises(InvalidInputError):
            await service.bulk_process([uuid.uuid4()], "done", actor_id=admin.id)

    async def test_empty_id_list_is_rejected(
        self, db_session: AsyncSession, admin: Administrator
    ):
        service = PaymentService(db_session)

        with pytest.raises(InvalidInputError):
            await service.bulk_process([], "paid", actor_id=admin.id)


@pytest.mark.asyncio
@pytest.mark.payments
class TestQueries:
    async def test_eligible_queue_pagination(
        self, db_session: AsyncSession, make_mother, make_payment_record
    ):
        start = utc_now() - timedelta(days=30)
        for i in range(15):
            owner = await make_mother(full_name=f"Mother {chr(65 + i)}")
            await make_payment_record(owner, eligibility_date=start + timedelta(days=i))
        service = PaymentService(db_session)

        page_one = await service.list_eligible(PaginationParams(page=1, page_size=10))
        page_two = await service.list_eligible(PaginationParams(page=2, page_size=10))

        assert len(page_one.items) == 10
        assert len(page_two.items) == 5
        assert page_two.page_info.total_items == 15
        assert page_two.page_info.total_pages == 2
        assert page_two.page_info.has_next is False

        dates = [item.eligibility_date for item in page_one.items + page_two.items]
        assert dates == sorted(dates)

    async def test_eligible_queue_only_contains_pending(
        self, db_session: AsyncSession, make_mother, make_payment_record
    ):
        await make_payment_record(await make_mother(full_name="Pending Mother"))
        await make_payment_record(
            await make_mother(full_name="Paid Mother"), status=PaymentRecordStatus.PAID
        )
        service = PaymentService(db_session)

        page = await service.list_eligible(PaginationParams(page=1, page_size=10))

        assert page.page_info.total_items == 1
        assert page.items[0].status == PaymentRecordStatus.PENDING

    async def test_list_by_reason_rejects_unknown_reason(self, db_session: AsyncSession):
        service = PaymentService(db_session)

        with pytest.raises(InvalidInputError):
            await service.list_by_reason("ANC8", PaginationParams())

    async def test_statistics(
        self, db_session: AsyncSession, make_mother, make_payment_record
    ):
        await make_payment_record(await make_mother(full_name="Efua A"))
        await make_payment_record(
            await make_mother(full_name="Efua B"),
            reason=EligibilityReason.DELIVERY,
            status=PaymentRecordStatus.PAID,
        )
        await make_payment_record(
            await make_mother(full_name="Efua C"), status=PaymentRecordStatus.FAILED
        )
        service = PaymentService(db_session)

        stats = await service.get_statistics()

        assert stats.total_payments == 3
        assert stats.total_amount_paid == 10000
        assert stats.pending_count == 1
        assert stats.paid_count == 1
        assert stats.failed_count == 1
        assert stats.average_amount == round(20000 / 3, 2)
        breakdown = {item.reason: item for item in stats.reason_breakdown}
        assert breakdown[EligibilityReason.ANC4].count == 2
        assert breakdown[EligibilityReason.ANC4].total_amount == 10000
        assert breakdown[EligibilityReason.DELIVERY].count == 1

    async def test_get_by_patient_reconciles_stale_mother(
        self, db_session: AsyncSession, mother: Mother, make_payment_record
    ):
        await make_payment_record(mother, status=PaymentRecordStatus.PAID)
        service = PaymentService(db_session)

        await service.get_by_patient(mother.id)

        await db_session.refresh(mother)
        assert mother.payment_status == MotherPaymentStatus.PAID


@pytest.mark.asyncio
@pytest.mark.payments
class TestBankInfo:
    async def test_bank_transfer_requires_bank_details(
        self, db_session: AsyncSession, mother: Mother
    ):
        service = PaymentService(db_session)

        with pytest.raises(InvalidInputError):
            await service.update_bank_info(
                mother,
                BankInfoUpdateSchema(preferred_payment_method=PaymentMethod.BANK_TRANSFER),
            )

    async def test_bank_info_flows_to_existing_record(
        self, db_session: AsyncSession, mother: Mother, make_payment_record
    ):
        await make_payment_record(mother)
        service = PaymentService(db_session)

        updated, record = await service.update_bank_info(
            mother,
            BankInfoUpdateSchema(
                bank_name="GCB Bank",
                account_number="1234567890",
                preferred_payment_method=PaymentMethod.BANK_TRANSFER,
            ),
        )

        assert updated.bank_name == "GCB Bank"
        assert updated.account_name == "Ama Mensah"
        assert record.payment_method == PaymentMethod.BANK_TRANSFER
        assert record.account_number == "1234567890"
        assert record.account_name == "Ama Mensah"

    async def test_blank_values_keep_stored_details(
        self, db_session: AsyncSession, mother: Mother
    ):
        service = PaymentService(db_session)
        await service.update_bank_info(
            mother,
            BankInfoUpdateSchema(bank_name="GCB Bank", account_number="1234567890"),
        )

        updated, record = await service.update_bank_info(
            mother, BankInfoUpdateSchema(bank_name="  ", account_name="A. Mensah")
        )

        assert record is None
        assert updated.bank_name == "GCB Bank"
        assert updated.account_number == "1234567890"
        assert updated.account_name == "A. Mensah"
