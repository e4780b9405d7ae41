"""Domain Event definitions.

Represents significant occurrences (auth failures, retries, failed calls)
that collaborators can subscribe to through the EventDispatcher.
"""

from fetchkit.domain.events.api_events import (
    ApiCallFailed,
    DomainEvent,
    RetryScheduled,
    TokenExpired,
    Unauthorized,
)
from fetchkit.domain.events.dispatcher import EventDispatcher

__all__ = [
    "ApiCallFailed",
    "DomainEvent",
    "EventDispatcher",
    "RetryScheduled",
    "TokenExpired",
    "Unauthorized",
]
