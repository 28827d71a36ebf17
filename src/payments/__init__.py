"""Contact unlock payments."""
from .unlock_service import ContactUnlockService

__all__ = ["ContactUnlockService"]
