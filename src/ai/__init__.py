"""AI provider access (xAI / OpenAI chat completions)."""
from .client import AIError, AIResult, ChatCompletionClient, ProviderConfig

__all__ = ["AIError", "AIResult", "ChatCompletionClient", "ProviderConfig"]
