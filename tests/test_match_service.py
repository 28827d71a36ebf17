"""Tests for match tracking, side-specific views and status history."""
import pytest

from src.matching.exceptions import (
    ContactAlreadyUnlockedError,
    InvalidStatusTransitionError,
    MatchNotFoundError,
    ValidationError,
)
from src.tracking.match_service import MatchService


@pytest.fixture
def service(test_db):
    return MatchService(test_db)


class TestMatchViews:
    """Tests for what each side of a match can see."""

    def test_contact_hidden_until_paid(self, service, factory):
        match = factory.match()

        recruiter_view = service.to_view(match, "recruiter")
        seeker_view = service.to_view(match, "job_seeker")

        assert recruiter_view.contact is None
        assert seeker_view.contact is None
        assert recruiter_view.to_dict()["contact"] is None
        assert recruiter_view.company_name == "Acme Holdings"
        assert recruiter_view.sub_scores["skills"] == 90.0

    def test_paying_side_sees_counterpart(self, service, factory):
        match = factory.match(recruiter_paid=True)

        recruiter_view = service.to_view(match, "recruiter")
        seeker_view = service.to_view(match, "job_seeker")

        assert recruiter_view.contact["email"] == match.job_seeker.email
        assert recruiter_view.contact["phone"] == match.job_seeker.phone
        assert seeker_view.contact is None
        assert seeker_view.counterpart_paid is True

    def test_unlocked_match_shows_both(self, service, factory):
        match = factory.match(recruiter_paid=True, job_seeker_paid=True, contact_unlocked=True)

        assert service.to_view(match, "job_seeker").contact["email"] == match.recruiter.email

    def test_unknown_viewer_type(self, service, factory):
        with pytest.raises(ValidationError):
            service.to_view(factory.match(), "admin")


class TestListing:
    """Tests for paginated match lists."""

    def test_recruiter_matches_best_first(self, service, factory):
        employer = factory.recruiter()
        job = factory.job(employer)
        scores = [72, 95, 81]
        for score in scores:
            factory.match(job=job, score=score)

        page = service.get_recruiter_matches(employer.user_id)

        assert [v.match_score for v in page.items] == [95, 81, 72]
        assert page.total == 3

    def test_pagination(self, service, factory):
        employer = factory.recruiter()
        job = factory.job(employer)
        for score in range(75, 80):
            factory.match(job=job, score=score)

        page = service.get_recruiter_matches(employer.user_id, page=2, limit=2)

        assert [v.match_score for v in page.items] == [77, 76]
        assert page.total == 5
        assert page.to_dict()["page"] == 2

    def test_job_seeker_sees_only_own_active_matches(self, service, factory):
        user, cv = factory.seeker()
        mine = factory.match(cv=cv)
        closed = factory.match(cv=factory.cv(user))
        factory.match()
        service.close_match(closed.id)

        page = service.get_job_seeker_matches(user.id)

        assert [v.match_id for v in page.items] == [mine.id]

    @pytest.mark.parametrize("page,limit", [(0, 20), (1, 0), (1, 101), (True, 20), ("2", 20)])
    def test_invalid_pagination(self, service, page, limit):
        with pytest.raises(ValidationError):
            service.get_recruiter_matches(1, page=page, limit=limit)


class TestPaymentsAndStatus:
    """Tests for paid flags and the status lifecycle."""

    def test_first_payment_activates(self, service, factory):
        match = factory.match()

        service.record_payment(match.id, "job_seeker")

        assert match.job_seeker_paid is True
        assert match.contact_unlocked is False
        assert match.status == "active"

    def test_both_payments_unlock(self, service, factory):
        match = factory.match()

        service.record_payment(match.id, "recruiter")
        service.record_payment(match.id, "job_seeker")

        assert match.contact_unlocked is True
        assert match.contact_unlocked_at is not None
        assert match.status == "mutual_interest"
        history = service.get_status_history(match.id)
        assert [(h.old_status, h.new_status) for h in history] == [
            ("pending", "active"),
            ("active", "mutual_interest"),
        ]

    def test_paying_twice_rejected(self, service, factory):
        match = factory.match()
        service.record_payment(match.id, "recruiter")

        with pytest.raises(ContactAlreadyUnlockedError):
            service.record_payment(match.id, "recruiter")

    def test_invalid_user_type(self, service, factory):
        with pytest.raises(ValidationError):
            service.record_payment(factory.match().id, "employer")

    def test_unknown_match(self, service):
        with pytest.raises(MatchNotFoundError):
            service.record_payment(999, "recruiter")
        with pytest.raises(MatchNotFoundError):
            service.get_status_history(999)

    def test_close_and_expire(self, service, factory):
        closed = service.close_match(factory.match().id, notes="Position filled")
        expired = service.expire_match(factory.match().id)

        assert closed.status == "closed"
        assert closed.is_active is False
        assert expired.status == "expired"
        assert service.get_status_history(closed.id)[0].notes == "Position filled"

    def test_terminal_match_cannot_change(self, service, factory):
        match = service.close_match(factory.match().id)

        with pytest.raises(InvalidStatusTransitionError):
            service.expire_match(match.id)
        with pytest.raises(InvalidStatusTransitionError):
            service.record_payment(match.id, "recruiter")
