"""fetchkit: resilient JSON API client and coalescing content cache.

Public entry points are re-exported here for convenience; the layered
packages (domain, core, infrastructure) remain the canonical import paths.
"""

from fetchkit.domain.models.errors import ApiError, FetchkitError, NoDataFoundError
from fetchkit.domain.models.json_types import RawJson
from fetchkit.domain.models.paging import Page, PagedResult
from fetchkit.infrastructure.http.api_client import ApiClient
from fetchkit.infrastructure.content.content_loader import ContentLoader

__all__ = [
    "ApiClient",
    "ApiError",
    "ContentLoader",
    "FetchkitError",
    "NoDataFoundError",
    "Page",
    "PagedResult",
    "RawJson",
]

__version__ = "0.1.0"
