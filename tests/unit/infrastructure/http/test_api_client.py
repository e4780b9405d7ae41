import asyncio
import json
from typing import List, Optional

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from fetchkit.domain.events.api_events import ApiCallFailed, RetryScheduled, TokenExpired, Unauthorized
from fetchkit.domain.interfaces.token_provider import TokenProvider
from fetchkit.domain.models.api_model import ApiModel
from fetchkit.domain.models.errors import ApiError, NoDataFoundError
from fetchkit.domain.models.paging import Page, PagedResult
from fetchkit.infrastructure.auth.token_store import InMemoryTokenProvider
from fetchkit.infrastructure.http.api_client import ApiClient
from fetchkit.infrastructure.resilience.backoff import RetryPolicy

BASE_URL = "https://api.test/"


class Device(ApiModel):
    id: int
    name: str


@pytest.fixture
def make_client(mock_transport_factory, fake_sleep):
    """Builds an ApiClient over a mock transport with a recording sleep."""

    def factory(handler, **kwargs) -> ApiClient:
        kwargs.setdefault("retry_policy", RetryPolicy(sleep=fake_sleep))
        return ApiClient(BASE_URL, transport=mock_transport_factory(handler), **kwargs)

    return factory


def scripted(*responses: httpx.Response):
    """Handler returning the given responses in order."""
    remaining = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        return remaining.pop(0)

    return handler


# --- Raw JSON operations ---

@pytest.mark.asyncio
async def test_get_json_returns_tree(make_client, recorded_requests):
    async with make_client(scripted(httpx.Response(200, json={"ok": True}))) as client:
        result = await client.get_json("status")
    assert result == {"ok": True}
    assert str(recorded_requests[0].url) == "https://api.test/status"
    assert recorded_requests[0].headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_get_json_empty_body_is_none(make_client):
    async with make_client(scripted(httpx.Response(204))) as client:
        assert await client.get_json("status") is None


@pytest.mark.asyncio
async def test_query_drops_empty_values(make_client, recorded_requests):
    async with make_client(scripted(httpx.Response(200, json=[]))) as client:
        await client.get_json("devices", query={"site": "north", "tag": None, "q": "", "active": True})
    assert list(recorded_requests[0].url.params.multi_items()) == [("site", "north"), ("active", "true")]


@pytest.mark.asyncio
async def test_query_pairs_keep_order_and_repeats(make_client, recorded_requests):
    async with make_client(scripted(httpx.Response(200, json=[]))) as client:
        await client.get_json("devices", query=[("id", 2), ("id", 1)])
    assert recorded_requests[0].url.params.get_list("id") == ["2", "1"]


@pytest.mark.asyncio
async def test_post_json_serializes_body(make_client, recorded_requests):
    async with make_client(scripted(httpx.Response(201, json={"id": 9}))) as client:
        result = await client.post_json("devices", {"name": "pump"})
    assert result == {"id": 9}
    request = recorded_requests[0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"name": "pump"}


@pytest.mark.asyncio
async def test_get_json_does_not_retry(make_client, recorded_requests):
    async with make_client(scripted(httpx.Response(503))) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get_json("status")
    assert exc_info.value.status_code == 503
    assert len(recorded_requests) == 1


# --- Typed GET with retry ---

@pytest.mark.asyncio
async def test_get_decodes_model(make_client):
    async with make_client(scripted(httpx.Response(200, json={"ID": "4", "Name": "fan"}))) as client:
        device = await client.get("devices/4", Device)
    assert device == Device(id=4, name="fan")


@pytest.mark.asyncio
async def test_get_retries_transient_failures(make_client, recorded_requests, sleep_calls):
    handler = scripted(
        httpx.Response(503),
        httpx.Response(503),
        httpx.Response(200, json={"id": 1, "name": "ok"}),
    )
    async with make_client(handler) as client:
        retried: List[RetryScheduled] = []
        client.dispatcher.subscribe(RetryScheduled, retried.append)
        device = await client.get("devices/1", Device, retries=2)

    assert device.name == "ok"
    assert len(recorded_requests) == 3
    assert sleep_calls == [0.25, 0.5]
    assert all(delay <= 2.0 for delay in sleep_calls)
    assert [event.attempt_number for event in retried] == [1, 2]


@pytest.mark.asyncio
async def test_get_raises_when_retries_exhausted(make_client, recorded_requests, sleep_calls):
    handler = scripted(httpx.Response(429), httpx.Response(429))
    async with make_client(handler) as client:
        failures: List[ApiCallFailed] = []
        client.dispatcher.subscribe(ApiCallFailed, failures.append)
        with pytest.raises(ApiError) as exc_info:
            await client.get("devices", retries=1)
    assert exc_info.value.status_code == 429
    assert len(recorded_requests) == 2
    assert sleep_calls == [0.25]
    assert len(failures) == 1


@pytest.mark.asyncio
async def test_backoff_is_capped(make_client, sleep_calls):
    responses = [httpx.Response(500) for _ in range(5)] + [httpx.Response(200, json=[])]
    async with make_client(scripted(*responses)) as client:
        await client.get("devices", retries=5)
    assert sleep_calls == [0.25, 0.5, 1.0, 2.0, 2.0]


@pytest.mark.asyncio
async def test_non_transient_status_is_not_retried(make_client, recorded_requests, sleep_calls):
    async with make_client(scripted(httpx.Response(400, json={"message": "bad filter"}))) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get("devices", retries=3)
    assert exc_info.value.message == "bad filter"
    assert len(recorded_requests) == 1
    assert sleep_calls == []


@pytest.mark.asyncio
async def test_transport_errors_are_retried(make_client, recorded_requests):
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"id": 1, "name": "back"})

    async with make_client(handler) as client:
        device = await client.get("devices/1", Device, retries=1)
    assert device.name == "back"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_transport_error_propagates_when_exhausted(make_client):
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    async with make_client(handler) as client:
        with pytest.raises(httpx.ReadTimeout):
            await client.get("devices", retries=0)


@pytest.mark.asyncio
async def test_negative_retries_rejected(make_client):
    async with make_client(scripted()) as client:
        with pytest.raises(ValueError):
            await client.get("devices", retries=-1)


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_retrying(mock_transport_factory, recorded_requests):
    waiting = asyncio.Event()

    async def blocking_sleep(delay: float) -> None:
        waiting.set()
        await asyncio.Event().wait()

    client = ApiClient(
        BASE_URL,
        transport=mock_transport_factory(lambda request: httpx.Response(503)),
        retry_policy=RetryPolicy(sleep=blocking_sleep),
    )
    async with client:
        call = asyncio.create_task(client.get("devices", retries=5))
        await waiting.wait()
        call.cancel()
        with pytest.raises(asyncio.CancelledError):
            await call
    assert len(recorded_requests) == 1


class PlainCounter(BaseModel):
    total_count: int


@pytest.mark.asyncio
async def test_get_plain_model_matches_fields_ignoring_case(make_client):
    async with make_client(scripted(httpx.Response(200, json={"Total_Count": "4"}))) as client:
        result = await client.get("counters/1", PlainCounter)
    assert result == PlainCounter(total_count=4)


@pytest.mark.asyncio
async def test_get_decode_failure_propagates(make_client):
    async with make_client(scripted(httpx.Response(200, json={"unexpected": 1}))) as client:
        with pytest.raises(ValidationError):
            await client.get("devices/1", Device)


@pytest.mark.asyncio
async def test_get_str_shape_returns_text(make_client):
    async with make_client(scripted(httpx.Response(200, text="plain body"))) as client:
        assert await client.get("readme", str) == "plain body"


# --- Structured errors ---

@pytest.mark.asyncio
async def test_error_message_from_json_body(make_client):
    async with make_client(scripted(httpx.Response(404, json={"detail": "not found"}))) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get("devices/99", retries=0)
    error = exc_info.value
    assert error.status_code == 404
    assert error.message == "not found"
    assert json.loads(error.body) == {"detail": "not found"}


@pytest.mark.asyncio
async def test_error_message_falls_back_to_reason_phrase(make_client):
    async with make_client(scripted(httpx.Response(404, text="<html>nope</html>"))) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get("devices/99", retries=0)
    assert exc_info.value.message == "Not Found"
    assert exc_info.value.body == "<html>nope</html>"


# --- Authentication ---

@pytest.mark.asyncio
async def test_bearer_token_round_trip(make_client, recorded_requests):
    handler = scripted(*(httpx.Response(200, json={}) for _ in range(3)))
    async with make_client(handler) as client:
        client.set_bearer_token("abc")
        await client.get_json("a")
        await client.get("b")
        client.clear_bearer_token()
        await client.get_json("c")

    assert recorded_requests[0].headers["Authorization"] == "Bearer abc"
    assert recorded_requests[1].headers["Authorization"] == "Bearer abc"
    assert "Authorization" not in recorded_requests[2].headers
    assert client.has_bearer_token is False


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["", "   ", None])
async def test_blank_bearer_token_rejected(make_client, token):
    async with make_client(scripted()) as client:
        with pytest.raises(ValueError):
            client.set_bearer_token(token)


@pytest.mark.asyncio
async def test_token_provider_consulted_per_request(make_client, recorded_requests):
    provider = InMemoryTokenProvider("first")
    handler = scripted(httpx.Response(200, json={}), httpx.Response(200, json={}))
    async with make_client(handler, token_provider=provider) as client:
        await client.get_json("a")
        await provider.set_token("second")
        await client.get_json("b")
    assert recorded_requests[0].headers["Authorization"] == "Bearer first"
    assert recorded_requests[1].headers["Authorization"] == "Bearer second"


@pytest.mark.asyncio
async def test_provider_token_overrides_default_header(make_client, recorded_requests):
    async with make_client(scripted(httpx.Response(200, json={})), token_provider=InMemoryTokenProvider("fresh")) as client:
        client.set_bearer_token("stale")
        await client.get_json("a")
    assert recorded_requests[0].headers["Authorization"] == "Bearer fresh"


@pytest.mark.asyncio
async def test_empty_provider_token_keeps_default_header(make_client, recorded_requests):
    class NoToken(TokenProvider):
        async def get_token(self) -> Optional[str]:
            return None

    async with make_client(scripted(httpx.Response(200, json={})), token_provider=NoToken()) as client:
        client.set_bearer_token("default")
        await client.get_json("a")
    assert recorded_requests[0].headers["Authorization"] == "Bearer default"


@pytest.mark.asyncio
async def test_401_with_marker_signals_token_expired(make_client, recorded_requests):
    response = httpx.Response(401, headers={"Token-Expired": "true"})
    async with make_client(scripted(response)) as client:
        expired: List[TokenExpired] = []
        unauthorized: List[Unauthorized] = []
        client.on_token_expired(expired.append)
        client.on_unauthorized(unauthorized.append)
        with pytest.raises(ApiError) as exc_info:
            await client.get("secure", retries=2)

    assert exc_info.value.status_code == 401
    assert len(expired) == 1
    assert expired[0].url == "https://api.test/secure"
    assert unauthorized == []
    assert len(recorded_requests) == 1


@pytest.mark.asyncio
async def test_401_without_marker_signals_unauthorized(make_client):
    async with make_client(scripted(httpx.Response(401))) as client:
        expired: List[TokenExpired] = []
        unauthorized: List[Unauthorized] = []
        client.on_token_expired(expired.append)
        client.on_unauthorized(unauthorized.append)
        with pytest.raises(ApiError):
            await client.get_json("secure")
    assert expired == []
    assert len(unauthorized) == 1
    assert unauthorized[0].method == "GET"


@pytest.mark.asyncio
async def test_custom_token_expired_header(make_client):
    response = httpx.Response(401, headers={"X-Session-Expired": "1"})
    async with make_client(scripted(response), token_expired_header="X-Session-Expired") as client:
        expired: List[TokenExpired] = []
        client.on_token_expired(expired.append)
        with pytest.raises(ApiError):
            await client.get_json("secure")
    assert len(expired) == 1


@pytest.mark.asyncio
async def test_failing_signal_handler_does_not_break_request(make_client):
    def broken(event):
        raise RuntimeError("subscriber bug")

    async with make_client(scripted(httpx.Response(401))) as client:
        client.on_unauthorized(broken)
        with pytest.raises(ApiError) as exc_info:
            await client.get_json("secure")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_unsubscribe_stops_signals(make_client):
    async with make_client(scripted(httpx.Response(401))) as client:
        seen: List[Unauthorized] = []
        unsubscribe = client.on_unauthorized(seen.append)
        unsubscribe()
        with pytest.raises(ApiError):
            await client.get_json("secure")
    assert seen == []


# --- Paged GET ---

@pytest.mark.asyncio
async def test_get_paged_discovers_envelope(make_client):
    body = {"data": {"results": [{"id": 1, "name": "a"}], "meta": {"total": 10}}}
    async with make_client(scripted(httpx.Response(200, json=body))) as client:
        page = await client.get_paged("devices", Device)
    assert isinstance(page, PagedResult)
    assert page.items == [Device(id=1, name="a")]
    assert page.total == 10


@pytest.mark.asyncio
async def test_get_paged_raw_items(make_client):
    async with make_client(scripted(httpx.Response(200, json=[1, 2, 3]))) as client:
        page = await client.get_paged("numbers")
    assert page.items == [1, 2, 3]
    assert page.total == 3


@pytest.mark.asyncio
async def test_get_paged_without_array_raises_no_data(make_client):
    async with make_client(scripted(httpx.Response(200, json={"status": "ok"}))) as client:
        with pytest.raises(NoDataFoundError) as exc_info:
            await client.get_paged("devices")
    assert exc_info.value.status_code == 200
    assert exc_info.value.message == "No data found"
    assert isinstance(exc_info.value, ApiError)


@pytest.mark.asyncio
async def test_get_paged_with_typed_envelope_skips_discovery(make_client):
    body = {"Items": [{"id": 1, "name": "a"}], "Total": "25", "other": [1, 2, 3, 4, 5]}
    async with make_client(scripted(httpx.Response(200, json=body))) as client:
        page = await client.get_paged("devices", page_shape=Page[Device])
    assert page.items == [Device(id=1, name="a")]
    assert page.total == 25


@pytest.mark.asyncio
async def test_get_paged_error_status(make_client):
    async with make_client(scripted(httpx.Response(403, json={"title": "forbidden"}))) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get_paged("devices", retries=0)
    assert exc_info.value.message == "forbidden"


# --- Writes ---

@pytest.mark.asyncio
async def test_put_returns_decoded_body(make_client, recorded_requests):
    async with make_client(scripted(httpx.Response(200, json={"id": 2, "name": "renamed"}))) as client:
        device = await client.put("devices/2", Device(id=2, name="renamed"), Device)
    assert device.name == "renamed"
    assert recorded_requests[0].method == "PUT"
    assert json.loads(recorded_requests[0].content) == {"id": 2, "name": "renamed"}


@pytest.mark.asyncio
async def test_post_is_single_attempt(make_client, recorded_requests):
    async with make_client(scripted(httpx.Response(503))) as client:
        with pytest.raises(ApiError):
            await client.post("devices", {"name": "x"})
    assert len(recorded_requests) == 1


@pytest.mark.asyncio
async def test_post_empty_response_is_none(make_client):
    async with make_client(scripted(httpx.Response(204))) as client:
        assert await client.post("devices", {"name": "x"}, Device) is None


@pytest.mark.asyncio
async def test_delete_success_and_failure(make_client, recorded_requests):
    handler = scripted(httpx.Response(204), httpx.Response(409, json={"error": "in use"}))
    async with make_client(handler) as client:
        assert await client.delete("devices/1") is None
        with pytest.raises(ApiError) as exc_info:
            await client.delete("devices/2", query={"force": False})
    assert exc_info.value.message == "in use"
    assert recorded_requests[1].method == "DELETE"
    assert recorded_requests[1].url.params["force"] == "false"


# --- Lifecycle ---

@pytest.mark.asyncio
async def test_injected_client_is_left_open(mock_transport_factory):
    http_client = httpx.AsyncClient(base_url=BASE_URL, transport=mock_transport_factory(scripted()))
    async with ApiClient(http_client=http_client):
        pass
    assert not http_client.is_closed
    await http_client.aclose()


def test_requires_base_url_or_client():
    with pytest.raises(ValueError):
        ApiClient()
