"""Resilient typed JSON client for the remote API.

Wraps an httpx.AsyncClient and adds:
- bearer authentication (default header and/or a per-request TokenProvider)
- retry with capped exponential backoff for transient statuses on typed GETs
- typed decoding through pydantic and heuristic paged-shape discovery
- structured ApiError construction for every non-success response
- TokenExpired / Unauthorized signals on 401 responses
"""

import logging
from typing import Any, Callable, List, Optional

import httpx
from pydantic_core import to_jsonable_python

from fetchkit.domain.events.api_events import (
    ApiCallFailed,
    RetryScheduled,
    TokenExpired,
    Unauthorized,
)
from fetchkit.domain.events.dispatcher import EventDispatcher
from fetchkit.domain.interfaces.token_provider import TokenProvider
from fetchkit.domain.models.common import QueryParams, build_query
from fetchkit.domain.models.errors import ApiError, NoDataFoundError
from fetchkit.domain.models.json_types import JsonValue, RawJson
from fetchkit.domain.models.paging import Page, PagedResult
from fetchkit.infrastructure.http.decoding import decode_response, decode_value
from fetchkit.infrastructure.http.paging import discover_page
from fetchkit.infrastructure.http.transport import DEFAULT_TIMEOUT_SECONDS, build_async_client
from fetchkit.infrastructure.resilience.backoff import RetryPolicy, is_transient_status

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_EXPIRED_HEADER = "Token-Expired"
JSON_MEDIA_TYPE = "application/json"

_NO_BODY = object()


class ApiClient:
    """Typed HTTP client for JSON APIs."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        token_provider: Optional[TokenProvider] = None,
        dispatcher: Optional[EventDispatcher] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        token_expired_header: str = DEFAULT_TOKEN_EXPIRED_HEADER,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the ApiClient.

        Args:
            base_url: API base address. Required unless http_client is given.
            http_client: Pre-built client to use; it is not closed by aclose().
            token_provider: Optional supplier consulted before every request.
            dispatcher: Event dispatcher for auth and resilience events.
            retry_policy: Backoff policy for typed GET retries.
            timeout: Default request timeout in seconds (owned client only).
            token_expired_header: Response header marking an expired token on 401.
            transport: Transport override for the owned client (tests).
        """
        if http_client is None:
            if not base_url:
                raise ValueError("ApiClient requires a base_url or an http_client")
            http_client = build_async_client(base_url, timeout=timeout, transport=transport)
            self._owns_client = True
        else:
            self._owns_client = False
        self._http = http_client
        self._http.headers["Accept"] = JSON_MEDIA_TYPE
        self._token_provider = token_provider
        self.dispatcher = dispatcher or EventDispatcher()
        self.retry_policy = retry_policy or RetryPolicy()
        self.token_expired_header = token_expired_header
        logger.info(f"ApiClient initialized for {self._http.base_url}")

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Closes the underlying client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    # --- Authentication ---

    def set_bearer_token(self, token: str) -> None:
        """Sets the default Authorization header for all subsequent requests.

        Raises:
            ValueError: If the token is empty or blank.
        """
        if token is None or not str(token).strip():
            raise ValueError("Bearer token must not be empty")
        self._http.headers["Authorization"] = f"Bearer {str(token).strip()}"
        logger.debug("Default bearer token set.")

    def clear_bearer_token(self) -> None:
        """Removes the default Authorization header."""
        self._http.headers.pop("Authorization", None)
        logger.debug("Default bearer token cleared.")

    @property
    def has_bearer_token(self) -> bool:
        return "Authorization" in self._http.headers

    def on_token_expired(self, handler: Callable[[TokenExpired], None]) -> Callable[[], None]:
        """Subscribes to TokenExpired signals; returns an unsubscribe callable."""
        return self.dispatcher.subscribe(TokenExpired, handler)

    def on_unauthorized(self, handler: Callable[[Unauthorized], None]) -> Callable[[], None]:
        """Subscribes to Unauthorized signals; returns an unsubscribe callable."""
        return self.dispatcher.subscribe(Unauthorized, handler)

    # --- Request plumbing ---

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        query: Optional[QueryParams] = None,
        body: Any = _NO_BODY,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Builds and sends one request, then fires auth signals if needed."""
        headers = {}
        if self._token_provider is not None:
            token = await self._token_provider.get_token()
            if token and token.strip():
                headers["Authorization"] = f"Bearer {token.strip()}"

        params = build_query(query)
        extra: dict = {}
        if body is not _NO_BODY:
            extra["json"] = to_jsonable_python(body)
        if timeout is not None:
            extra["timeout"] = timeout

        request = self._http.build_request(
            method,
            endpoint,
            params=params or None,
            headers=headers,
            **extra,
        )
        response = await self._http.send(request)
        logger.debug(f"{method} {request.url} -> {response.status_code}")
        self._publish_auth_signal(response)
        return response

    def _publish_auth_signal(self, response: httpx.Response) -> None:
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return
        method = response.request.method
        url = str(response.request.url)
        if self.token_expired_header in response.headers:
            logger.warning(f"Access token expired ({method} {url})")
            self.dispatcher.publish(TokenExpired(method=method, url=url))
        else:
            logger.warning(f"Unauthorized response ({method} {url})")
            self.dispatcher.publish(Unauthorized(method=method, url=url))

    def _failure(self, response: httpx.Response) -> ApiError:
        """Builds the structured error for a non-success response and reports it."""
        error = ApiError.from_response(response)
        logger.error(
            f"{response.request.method} {response.request.url} failed with HTTP "
            f"{error.status_code}: {error.message}"
        )
        self.dispatcher.publish(
            ApiCallFailed(
                method=response.request.method,
                url=str(response.request.url),
                status_code=error.status_code,
                error_message=error.message,
            )
        )
        return error

    def _ensure_success(self, response: httpx.Response) -> httpx.Response:
        if not response.is_success:
            raise self._failure(response)
        return response

    async def _get_with_retry(
        self,
        endpoint: str,
        query: Optional[QueryParams],
        retries: int,
        timeout: Optional[float],
    ) -> httpx.Response:
        """GETs endpoint, retrying transient failures; returns the success response."""
        if retries < 0:
            raise ValueError("retries must be >= 0")

        attempt = 0
        while True:
            try:
                response = await self._send("GET", endpoint, query=query, timeout=timeout)
            except httpx.TransportError as e:
                if attempt >= retries:
                    logger.error(f"GET {endpoint} failed after {attempt + 1} attempt(s): {e}")
                    raise
                logger.warning(f"Transport error on GET {endpoint} (attempt {attempt + 1}/{retries + 1}): {e}")
                await self.retry_policy.wait(attempt)
                attempt += 1
                continue

            if response.is_success:
                return response

            if is_transient_status(response.status_code) and attempt < retries:
                delay = self.retry_policy.delay_for(attempt)
                logger.warning(
                    f"Transient HTTP {response.status_code} on GET {endpoint} "
                    f"(attempt {attempt + 1}/{retries + 1}). Waiting {delay:.2f}s..."
                )
                self.dispatcher.publish(
                    RetryScheduled(
                        method="GET",
                        url=str(response.request.url),
                        attempt_number=attempt + 1,
                        status_code=response.status_code,
                        delay_seconds=delay,
                    )
                )
                await self.retry_policy.wait(attempt)
                attempt += 1
                continue

            raise self._failure(response)

    # --- Raw JSON operations ---

    async def get_json(
        self, endpoint: str, query: Optional[QueryParams] = None, *, timeout: Optional[float] = None
    ) -> Optional[JsonValue]:
        """GETs endpoint and returns the parsed JSON tree (None for an empty body).

        Raises:
            ApiError: On any non-success status.
        """
        response = await self._send("GET", endpoint, query=query, timeout=timeout)
        return decode_response(self._ensure_success(response), RawJson)

    async def post_json(self, endpoint: str, body: Any, *, timeout: Optional[float] = None) -> Optional[JsonValue]:
        """POSTs body as JSON and returns the parsed JSON tree (None for an empty body)."""
        response = await self._send("POST", endpoint, body=body, timeout=timeout)
        return decode_response(self._ensure_success(response), RawJson)

    # --- Typed operations ---

    async def get(
        self,
        endpoint: str,
        shape: Any = RawJson,
        query: Optional[QueryParams] = None,
        retries: int = 1,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[Any]:
        """Typed GET with retry of transient failures.

        Args:
            endpoint: Path relative to the base URL.
            shape: Decode target (str, RawJson, a pydantic model, List[Model], ...).
            query: Optional query parameters; empty values are dropped.
            retries: Extra attempts allowed after the first one.
            timeout: Optional per-attempt timeout in seconds.

        Returns:
            The decoded body, or None when the body is empty.

        Raises:
            ApiError: On a non-transient failure or when retries are exhausted.
            pydantic.ValidationError: If the body does not match shape.
        """
        response = await self._get_with_retry(endpoint, query, retries, timeout)
        return decode_response(response, shape)

    async def get_paged(
        self,
        endpoint: str,
        item_shape: Any = RawJson,
        query: Optional[QueryParams] = None,
        *,
        page_shape: Any = None,
        retries: int = 1,
        timeout: Optional[float] = None,
    ) -> PagedResult:
        """GETs a list endpoint and returns its items plus a total count.

        With page_shape (e.g. ``Page[Item]``) the body is decoded straight into
        that envelope; otherwise the envelope is discovered heuristically.

        Raises:
            NoDataFoundError: If the response contains no array at all.
            ApiError: On non-success responses.
        """
        response = await self._get_with_retry(endpoint, query, retries, timeout)

        if page_shape is not None:
            page = decode_response(response, page_shape)
            if page is None:
                return PagedResult(items=[], total=0)
            if isinstance(page, Page):
                return page.to_result()
            items = list(getattr(page, "items"))
            return PagedResult(items=items, total=getattr(page, "total", len(items)))

        tree = decode_response(response, RawJson)
        discovered = discover_page(tree)
        if discovered is None:
            logger.warning(f"No array found in paged response from {endpoint}")
            raise NoDataFoundError(response.status_code, body=response.text)

        raw_items, total = discovered
        items: List[Any] = decode_value(raw_items, List[item_shape]) if item_shape is not RawJson else list(raw_items)
        logger.debug(f"Discovered page from {endpoint}: {len(items)} item(s), total={total}")
        return PagedResult(items=items, total=total)

    async def post(
        self, endpoint: str, body: Any, shape: Any = RawJson, *, timeout: Optional[float] = None
    ) -> Optional[Any]:
        """Single-attempt typed POST. Raises ApiError on non-success."""
        response = await self._send("POST", endpoint, body=body, timeout=timeout)
        return decode_response(self._ensure_success(response), shape)

    async def put(
        self, endpoint: str, body: Any, shape: Any = RawJson, *, timeout: Optional[float] = None
    ) -> Optional[Any]:
        """Single-attempt typed PUT. Raises ApiError on non-success."""
        response = await self._send("PUT", endpoint, body=body, timeout=timeout)
        return decode_response(self._ensure_success(response), shape)

    async def delete(
        self, endpoint: str, query: Optional[QueryParams] = None, *, timeout: Optional[float] = None
    ) -> None:
        """Single-attempt DELETE. Raises ApiError on non-success."""
        response = await self._send("DELETE", endpoint, query=query, timeout=timeout)
        self._ensure_success(response)
