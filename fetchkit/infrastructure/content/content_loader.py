"""Coalescing, TTL-cached loader for static JSON content.

A logical resource name ``X`` maps to ``content/X.json`` under the static base
URL. For each name at most one network fetch is in flight: the first caller
creates a shared task (the "ticket") and every concurrent caller awaits that
same task. Successful bodies are cached as raw bytes for a short TTL and
decoded per call, so cached data is never shared between callers in mutable
form.

Content is best-effort: fetch and decode failures are logged and surface as
None, never as exceptions.
"""

import asyncio
import functools
import logging
from typing import Any, Dict, Iterable, Optional, Set

import httpx

from fetchkit.domain.interfaces.cache import CacheService
from fetchkit.domain.models.common import CacheKey, ResourceName, content_path
from fetchkit.domain.models.json_types import RawJson
from fetchkit.infrastructure.cache.caching_service import MemoryCacheService
from fetchkit.infrastructure.config.settings import DEFAULT_CACHE_TTL_SECONDS
from fetchkit.infrastructure.http.decoding import decode_body
from fetchkit.infrastructure.http.transport import DEFAULT_TIMEOUT_SECONDS, build_async_client

logger = logging.getLogger(__name__)


class ContentLoader:
    """Loads named JSON resources with request coalescing and a memory cache."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        cache: Optional[CacheService] = None,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the ContentLoader.

        Args:
            base_url: Static content base address. Required unless http_client is given.
            http_client: Pre-built client to use; it is not closed by aclose().
            cache: Cache to store raw bytes in (a MemoryCacheService by default).
            ttl_seconds: Lifetime of a cached resource.
            timeout: Request timeout in seconds (owned client only).
            transport: Transport override for the owned client (tests).
        """
        if ttl_seconds <= 0:
            logger.warning(f"Invalid content TTL {ttl_seconds!r}; using {DEFAULT_CACHE_TTL_SECONDS}s")
            ttl_seconds = DEFAULT_CACHE_TTL_SECONDS
        if http_client is None:
            if not base_url:
                raise ValueError("ContentLoader requires a base_url or an http_client")
            http_client = build_async_client(base_url, timeout=timeout, transport=transport)
            self._owns_client = True
        else:
            self._owns_client = False
        self._http = http_client
        self.ttl_seconds = ttl_seconds
        self._cache = cache if cache is not None else MemoryCacheService(default_ttl=ttl_seconds)
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()
        self._background: Set[asyncio.Task] = set()
        logger.info(f"ContentLoader initialized for {self._http.base_url} (ttl={ttl_seconds}s)")

    async def __aenter__(self) -> "ContentLoader":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cancels pending preloads and fetches, then closes the owned HTTP client."""
        pending = list(self._background) + list(self._in_flight.values())
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._owns_client:
            await self._http.aclose()

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    # --- Fetching ---

    async def fetch_bytes(self, name: str) -> Optional[bytes]:
        """Returns the raw bytes for name from cache or a (shared) network fetch.

        Returns:
            The body bytes, or None if the resource is missing, the fetch failed
            or the loader was closed while the fetch was in flight.
        """
        key = CacheKey(name)
        cached = await self._cache.get(key)
        if cached is not None:
            return cached

        async with self._lock:
            task = self._in_flight.get(name)
            if task is None:
                # A ticket may have settled while we waited for the lock
                cached = await self._cache.get(key)
                if cached is not None:
                    return cached
                task = asyncio.get_running_loop().create_task(self._fetch_and_store(ResourceName(name)))
                self._in_flight[name] = task
                task.add_done_callback(functools.partial(self._release_ticket, name))
                logger.debug(f"Started content fetch for '{name}'")
            else:
                logger.debug(f"Joining in-flight content fetch for '{name}'")

        # Shield so one waiter's cancellation does not cancel the shared fetch
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            # Only aclose() cancels the shared fetch itself
            logger.debug(f"Content fetch for '{name}' cancelled by loader shutdown")
            return None

    def _release_ticket(self, name: str, task: asyncio.Task) -> None:
        if self._in_flight.get(name) is task:
            del self._in_flight[name]

    async def _fetch_and_store(self, name: ResourceName) -> Optional[bytes]:
        path = content_path(name)
        try:
            response = await self._http.get(path)
            if not response.is_success:
                logger.info(f"Content '{name}' unavailable: HTTP {response.status_code} for {path}")
                return None
            content = response.content
            await self._cache.set(CacheKey(name), content, ttl=self.ttl_seconds)
            logger.debug(f"Cached content '{name}' ({len(content)} bytes)")
            return content
        except httpx.HTTPError as e:
            logger.warning(f"Network error loading content '{name}': {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error loading content '{name}': {e}", exc_info=True)
            return None

    # --- Decoding ---

    async def get(self, name: str, shape: Any = RawJson) -> Optional[Any]:
        """Loads name and decodes it into shape.

        RawJson returns a freshly parsed tree owned by the caller; str/bytes
        return the body verbatim; any other shape is validated with pydantic.

        Returns:
            The decoded value, or None if missing, unreachable or undecodable.
        """
        content = await self.fetch_bytes(name)
        if content is None:
            return None
        try:
            return decode_body(content, shape)
        except ValueError as e:
            # json.JSONDecodeError, UnicodeDecodeError and pydantic.ValidationError
            logger.warning(f"Could not decode content '{name}' as {getattr(shape, '__name__', shape)}: {e}")
            return None

    # --- Warm-up ---

    async def preload(self, names: Iterable[str]) -> Dict[str, bool]:
        """Fetches all names concurrently, ignoring failures.

        Returns:
            Mapping of name to whether it is now available.
        """
        unique = list(dict.fromkeys(names))
        results = await asyncio.gather(*(self.fetch_bytes(n) for n in unique), return_exceptions=True)
        report = {}
        for name, result in zip(unique, results):
            if isinstance(result, BaseException):
                logger.debug(f"Preload of '{name}' failed: {result}")
            report[name] = isinstance(result, bytes)
        logger.info(f"Preloaded {sum(report.values())}/{len(report)} content resource(s)")
        return report

    def schedule_preload(self, names: Iterable[str]) -> asyncio.Task:
        """Starts preload(names) in the background and returns its task."""
        task = asyncio.get_running_loop().create_task(self.preload(list(names)))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # --- Cache management ---

    async def invalidate(self, name: str) -> None:
        await self._cache.delete(CacheKey(name))

    async def clear(self) -> None:
        await self._cache.clear()
