"""Authentication adapters: token providers consumed by the API client."""

from fetchkit.infrastructure.auth.token_store import InMemoryTokenProvider

__all__ = ["InMemoryTokenProvider"]
