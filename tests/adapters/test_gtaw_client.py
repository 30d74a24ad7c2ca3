from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx
import pytest

from rostersync.adapters.gtaw import GtawRosterFetcher
from rostersync.adapters.http_resilience import ResilientClient
from rostersync.config import GtawConfig, ResilienceConfig
from rostersync.domain.errors import (
    MalformedUpstreamPayload,
    UpstreamAuthExpired,
    UpstreamUnavailable,
)

if TYPE_CHECKING:
    from collections.abc import Callable


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory


def _fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> GtawRosterFetcher:
    config = GtawConfig(
        access_token="token-123",
        resilience=ResilienceConfig(name="gtaw", base_url="https://ucp.gta.world/api/"),
    )
    return GtawRosterFetcher(config=config, client_factory=_make_client_factory(handler))


@pytest.fixture
def members_payload() -> dict[str, object]:
    return {
        "data": {
            "id": 3,
            "name": "Los Santos Police Department",
            "members": [
                {
                    "character_id": 11,
                    "character_name": "John Doe",
                    "user_id": 100,
                    "rank": 4,
                    "rank_name": "Sergeant",
                    "last_online": "2024-05-01T18:00:00Z",
                    "last_duty": "",
                },
                {
                    "character_id": 12,
                    "character_name": "Jane Roe",
                    "user_id": 101,
                    "rank": 1,
                    "rank_name": "Cadet",
                },
            ],
        }
    }


def test_fetch_members_sends_bearer_token_and_parses_roster(
    members_payload: dict[str, object],
) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=members_payload)

    members = _fetcher(handler).fetch_members(3)

    assert str(seen[0].url) == "https://ucp.gta.world/api/faction/3"
    assert seen[0].headers["Authorization"] == "Bearer token-123"
    assert [(member.character_id, member.rank_name) for member in members] == [
        (11, "Sergeant"),
        (12, "Cadet"),
    ]
    assert members[0].last_online == datetime(2024, 5, 1, 18, 0, tzinfo=UTC)
    assert members[0].last_duty is None


def test_fetch_abas_keeps_scores_as_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/faction/3/abas"
        return httpx.Response(
            200,
            json={"data": [{"character_id": 11, "abas": "12.50"}, {"character_id": 12, "abas": 3}]},
        )

    entries = _fetcher(handler).fetch_abas(3)

    assert [(entry.character_id, entry.abas) for entry in entries] == [(11, "12.50"), (12, "3")]


def test_fetch_abas_numeric_scores_lose_trailing_zeros() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b'{"data": [{"character_id": 11, "abas": 12.00}]}')

    (entry,) = _fetcher(handler).fetch_abas(3)

    assert entry.abas == "12.0"


def test_unauthorized_response_requires_reauthentication() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Unauthenticated."})

    with pytest.raises(UpstreamAuthExpired):
        _fetcher(handler).fetch_members(3)


def test_server_error_is_reported_with_status() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="oops")

    with pytest.raises(UpstreamUnavailable) as excinfo:
        _fetcher(handler).fetch_abas(3)

    assert excinfo.value.status_code == 500


def test_network_failure_is_reported_as_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable) as excinfo:
        _fetcher(handler).fetch_members(3)

    assert excinfo.value.status_code is None


@pytest.mark.parametrize(
    "body",
    [
        b"<html>maintenance</html>",
        b'{"data": {"members": [{"character_id": "eleven"}]}}',
        b'{"members": []}',
    ],
)
def test_malformed_payload_is_rejected(body: bytes) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    with pytest.raises(MalformedUpstreamPayload):
        _fetcher(handler).fetch_members(3)
