"""In-memory access-token holder.

Keeps the token for the lifetime of the process only; the API client asks it
for the current token before each request.
"""

import asyncio
import logging
from typing import Optional

from fetchkit.domain.interfaces.token_provider import TokenProvider
from fetchkit.domain.models.common import BearerToken

logger = logging.getLogger(__name__)


class InMemoryTokenProvider(TokenProvider):
    """TokenProvider backed by a single in-memory value."""

    def __init__(self, token: Optional[str] = None):
        self._token: Optional[BearerToken] = None
        self._lock = asyncio.Lock()
        if token:
            self._token = BearerToken(token.strip())

    async def get_token(self) -> Optional[BearerToken]:
        return self._token

    async def set_token(self, token: str) -> None:
        """Stores a new access token.

        Raises:
            ValueError: If the token is empty or blank.
        """
        if not token or not token.strip():
            raise ValueError("Access token must not be empty")
        async with self._lock:
            self._token = BearerToken(token.strip())
        logger.info("Access token updated.")

    async def sign_out(self) -> None:
        async with self._lock:
            self._token = None
        logger.info("Access token cleared.")

    @property
    def is_signed_in(self) -> bool:
        return self._token is not None
