"""Contact unlock payments.

A completed payment is the only thing that flips a match's paid flags.
Gateway signature checks happen before these calls, in the web layer.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.matching.exceptions import (
    ContactAlreadyUnlockedError,
    InvalidStatusTransitionError,
    PaymentNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from src.persistence.models import Payment
from src.tracking.match_service import USER_TYPES, MatchService

logger = logging.getLogger(__name__)


class ContactUnlockService:
    """Create and settle contact unlock payments for one side of a match."""

    def __init__(self, session: Session, match_service: MatchService, unlock_price: float = 99.00):
        """
        Initialize payment service.

        Args:
            session: Database session
            match_service: Applies completed payments to matches
            unlock_price: Price in ZAR for one side's contact unlock
        """
        self.session = session
        self.match_service = match_service
        self.unlock_price = Decimal(str(unlock_price)).quantize(Decimal("0.01"))

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.session.get(Payment, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    def create_contact_unlock_payment(self, user_id: int, user_type: str, match_id: int) -> Payment:
        """
        Start a contact unlock for the user's side of a match.

        Returns the existing pending payment when one is already open.

        Raises:
            PermissionDeniedError: user is not that side of the match
            ContactAlreadyUnlockedError: that side already paid
        """
        if user_type not in USER_TYPES:
            raise ValidationError(f"user_type must be one of {USER_TYPES}")

        match = self.match_service.get_match(match_id)
        owner_id = match.recruiter_id if user_type == "recruiter" else match.job_seeker_id
        if owner_id != user_id:
            raise PermissionDeniedError("You are not part of this match")

        if match.status in MatchService.TERMINAL_STATUSES:
            raise InvalidStatusTransitionError(match.status, "active")

        already_paid = match.recruiter_paid if user_type == "recruiter" else match.job_seeker_paid
        if already_paid:
            raise ContactAlreadyUnlockedError(match_id, user_type)

        pending = self.session.scalar(
            select(Payment).where(
                Payment.match_id == match_id,
                Payment.user_id == user_id,
                Payment.user_type == user_type,
                Payment.status == "pending",
            )
        )
        if pending is not None:
            return pending

        payment = Payment(
            user_id=user_id,
            user_type=user_type,
            payment_type="contact_unlock",
            amount=self.unlock_price,
            currency="ZAR",
            status="pending",
            provider="payfast",
            match_id=match_id,
            description=f"Contact unlock for match {match_id}",
        )
        self.session.add(payment)
        self.session.commit()
        logger.info("Created contact unlock payment %s for match %s (%s)", payment.id, match_id, user_type)
        return payment

    def process_successful_payment(self, payment_id: int, provider_reference: Optional[str] = None) -> Payment:
        """
        Mark a payment completed and unlock the paying side of the match.

        Processing an already completed payment again changes nothing.
        """
        payment = self.get_payment(payment_id)
        if payment.status == "completed":
            logger.info("Payment %s already completed, ignoring repeat notification", payment_id)
            return payment
        if payment.status != "pending":
            raise InvalidStatusTransitionError(payment.status, "completed")

        payment.status = "completed"
        payment.paid_at = datetime.now(timezone.utc)
        if provider_reference:
            payment.provider_reference = provider_reference

        try:
            # Commits the payment together with the match flags
            self.match_service.record_payment(payment.match_id, payment.user_type)
        except ContactAlreadyUnlockedError:
            logger.warning(
                "Match %s already unlocked for %s; payment %s recorded without changes",
                payment.match_id,
                payment.user_type,
                payment_id,
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info("Payment %s completed for match %s (%s)", payment_id, payment.match_id, payment.user_type)
        return payment

    def mark_payment_failed(self, payment_id: int, reason: Optional[str] = None) -> Payment:
        payment = self.get_payment(payment_id)
        if payment.status == "failed":
            return payment
        if payment.status != "pending":
            raise InvalidStatusTransitionError(payment.status, "failed")

        payment.status = "failed"
        payment.failure_reason = reason
        self.session.commit()
        logger.info("Payment %s failed: %s", payment_id, reason or "no reason given")
        return payment

    def get_user_payment_history(self, user_id: int, limit: int = 50) -> list[Payment]:
        """Most recent payments first."""
        stmt = (
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))
