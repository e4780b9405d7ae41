"""Interface for bearer-token suppliers.

The API client asks the provider for a token before every outgoing request;
it never stores the token itself.
"""

import abc
from typing import Optional

from fetchkit.domain.models.common import BearerToken


class TokenProvider(abc.ABC):
    """Abstract Base Class for access-token suppliers."""

    @abc.abstractmethod
    async def get_token(self) -> Optional[BearerToken]:
        """Returns the current access token, or None when signed out."""
        pass
