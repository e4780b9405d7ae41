"""Domain Events related to API calls and authentication.

Auth signals (TokenExpired, Unauthorized) are published on every 401 so that
collaborators can trigger re-authentication; RetryScheduled and ApiCallFailed
describe the resilience path.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Authentication Signals ---

@dataclass
class TokenExpired(DomainEvent):
    """Published on a 401 response that carries the token-expired marker."""
    method: str
    url: str
    status_code: int = 401
    timestamp: float = field(default_factory=time.time)


@dataclass
class Unauthorized(DomainEvent):
    """Published on a 401 response without the token-expired marker."""
    method: str
    url: str
    status_code: int = 401
    timestamp: float = field(default_factory=time.time)


# --- Resilience Events ---

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled after a transient failure."""
    method: str
    url: str
    attempt_number: int
    status_code: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a call fails definitively (after retries)."""
    method: str
    url: str
    status_code: int
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
