"""Tests for contact unlock payments."""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from src.matching.exceptions import (
    ContactAlreadyUnlockedError,
    InvalidStatusTransitionError,
    PaymentNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from src.payments.unlock_service import ContactUnlockService
from src.persistence.models import Payment
from src.tracking.match_service import MatchService


@pytest.fixture
def match_service(test_db):
    return MatchService(test_db)


@pytest.fixture
def service(test_db, match_service):
    return ContactUnlockService(test_db, match_service, unlock_price=149.5)


class TestCreatePayment:
    """Tests for starting a contact unlock."""

    def test_creates_pending_payment(self, service, factory):
        match = factory.match()

        payment = service.create_contact_unlock_payment(match.recruiter_id, "recruiter", match.id)

        assert payment.id is not None
        assert payment.status == "pending"
        assert payment.amount == Decimal("149.50")
        assert payment.currency == "ZAR"
        assert payment.match_id == match.id

    def test_reuses_open_payment(self, service, factory):
        match = factory.match()

        first = service.create_contact_unlock_payment(match.job_seeker_id, "job_seeker", match.id)
        second = service.create_contact_unlock_payment(match.job_seeker_id, "job_seeker", match.id)

        assert first.id == second.id

    def test_other_user_denied(self, service, factory):
        match = factory.match()

        with pytest.raises(PermissionDeniedError):
            service.create_contact_unlock_payment(match.recruiter_id, "job_seeker", match.id)

    def test_already_paid(self, service, factory):
        match = factory.match(recruiter_paid=True)

        with pytest.raises(ContactAlreadyUnlockedError):
            service.create_contact_unlock_payment(match.recruiter_id, "recruiter", match.id)

    def test_closed_match(self, service, match_service, factory):
        match = match_service.close_match(factory.match().id)

        with pytest.raises(InvalidStatusTransitionError):
            service.create_contact_unlock_payment(match.recruiter_id, "recruiter", match.id)

    def test_invalid_user_type(self, service, factory):
        match = factory.match()
        with pytest.raises(ValidationError):
            service.create_contact_unlock_payment(match.recruiter_id, "admin", match.id)


class TestProcessPayment:
    """Tests for settling payments."""

    def test_success_unlocks_side(self, service, factory):
        match = factory.match()
        payment = service.create_contact_unlock_payment(match.recruiter_id, "recruiter", match.id)

        result = service.process_successful_payment(payment.id, provider_reference="pf_123")

        assert result.status == "completed"
        assert result.paid_at is not None
        assert result.provider_reference == "pf_123"
        assert match.recruiter_paid is True
        assert match.status == "active"

    def test_both_sides_unlock_contact(self, service, factory):
        match = factory.match()
        for user_id, side in ((match.recruiter_id, "recruiter"), (match.job_seeker_id, "job_seeker")):
            payment = service.create_contact_unlock_payment(user_id, side, match.id)
            service.process_successful_payment(payment.id)

        assert match.contact_unlocked is True
        assert match.status == "mutual_interest"

    def test_repeat_notification_is_idempotent(self, service, match_service, factory):
        match = factory.match()
        payment = service.create_contact_unlock_payment(match.recruiter_id, "recruiter", match.id)
        service.process_successful_payment(payment.id)

        again = service.process_successful_payment(payment.id)

        assert again.status == "completed"
        assert len(match_service.get_status_history(match.id)) == 1

    def test_unknown_payment(self, service):
        with pytest.raises(PaymentNotFoundError):
            service.process_successful_payment(404)

    def test_failed_payment_cannot_complete(self, service, factory):
        match = factory.match()
        payment = service.create_contact_unlock_payment(match.recruiter_id, "recruiter", match.id)
        service.mark_payment_failed(payment.id, "Card declined")

        with pytest.raises(InvalidStatusTransitionError):
            service.process_successful_payment(payment.id)
        assert payment.failure_reason == "Card declined"
        assert match.recruiter_paid is False

    def test_match_error_rolls_back(self, test_db, factory):
        match = factory.match()
        match_service = MagicMock()
        match_service.get_match.return_value = match
        match_service.record_payment.side_effect = RuntimeError("db gone")
        service = ContactUnlockService(test_db, match_service)
        payment = service.create_contact_unlock_payment(match.recruiter_id, "recruiter", match.id)

        with pytest.raises(RuntimeError):
            service.process_successful_payment(payment.id)

        assert test_db.get(Payment, payment.id).status == "pending"


class TestPaymentHistory:
    """Tests for a user's payment history."""

    def test_history_newest_first(self, service, factory):
        employer = factory.recruiter()
        job = factory.job(employer)
        first = factory.match(job=job)
        second = factory.match(job=job)
        older = service.create_contact_unlock_payment(employer.user_id, "recruiter", first.id)
        newer = service.create_contact_unlock_payment(employer.user_id, "recruiter", second.id)

        history = service.get_user_payment_history(employer.user_id)

        assert [p.id for p in history] == [newer.id, older.id]
        assert service.get_user_payment_history(employer.user_id, limit=1)[0].id == newer.id
