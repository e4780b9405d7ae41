"""API Resilience Implementations.

Contains the retry policy used for transient HTTP failures: which statuses
are retryable and how long to back off between attempts.
Bounded Context: API Resilience
"""

from fetchkit.infrastructure.resilience.backoff import RetryPolicy, is_transient_status

__all__ = ["RetryPolicy", "is_transient_status"]
