"""Exceptions for matching, ranking and contact unlock flows.

Each exception carries the HTTP status the endpoint layer should answer with.
"""


class MatchingError(Exception):
    """Base exception for the matching service."""

    http_status = 500
    public_message = "Something went wrong. Please try again later."


class ValidationError(MatchingError):
    """Raised when request input is missing or malformed."""

    http_status = 400

    def __init__(self, message: str):
        self.public_message = message
        super().__init__(message)


class AuthenticationRequiredError(MatchingError):
    """Raised when an operation needs an authenticated user."""

    http_status = 401
    public_message = "Authentication required"

    def __init__(self):
        super().__init__(self.public_message)


class PermissionDeniedError(MatchingError):
    """Raised when the user lacks the role or ownership for an operation."""

    http_status = 403

    def __init__(self, reason: str = "Access denied"):
        self.public_message = reason
        super().__init__(reason)


class CandidateNotFoundError(MatchingError):
    """Raised when a candidate has no user record or no CV."""

    http_status = 404

    def __init__(self, candidate_id: int):
        self.candidate_id = candidate_id
        self.public_message = "Candidate not found"
        super().__init__(f"Candidate not found: {candidate_id}")


class MatchNotFoundError(MatchingError):
    """Raised when a match id does not exist."""

    http_status = 404

    def __init__(self, match_id: int):
        self.match_id = match_id
        self.public_message = "Match not found"
        super().__init__(f"Match not found: {match_id}")


class PaymentNotFoundError(MatchingError):
    """Raised when a payment id does not exist."""

    http_status = 404

    def __init__(self, payment_id: int):
        self.payment_id = payment_id
        self.public_message = "Payment not found"
        super().__init__(f"Payment not found: {payment_id}")


class ContactAlreadyUnlockedError(MatchingError):
    """Raised when a side tries to pay for a contact it already unlocked."""

    http_status = 409

    def __init__(self, match_id: int, user_type: str):
        self.match_id = match_id
        self.user_type = user_type
        self.public_message = "Contact already unlocked for this match"
        super().__init__(f"Contact already unlocked for match {match_id} ({user_type})")


class InvalidStatusTransitionError(MatchingError):
    """Raised when a match status change is not allowed."""

    http_status = 409

    def __init__(self, old_status: str, new_status: str):
        self.old_status = old_status
        self.new_status = new_status
        self.public_message = "Match cannot change to that status"
        super().__init__(f"Invalid match status transition: {old_status} -> {new_status}")


class MatchingEngineError(MatchingError):
    """Raised when a batch run fails on persistence."""

    http_status = 500

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Matching engine failed: {reason}")
