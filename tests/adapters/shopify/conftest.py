"""Shared fixtures for Shopify adapter tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import pytest

from httpx_retries import RetryTransport

from metasync.adapters.http_resilience import ResilientClient, build_retry
from metasync.adapters.shopify import ShopifyDataStore, ShopifyGraphQLClient
from metasync.config.shopify import ShopConfig, shopify_resilience

if TYPE_CHECKING:
    from collections.abc import Callable

    from metasync.config import ResilienceConfig

ShopifyPayload = dict[str, object]
FIXTURES = Path(__file__).resolve().parents[2] / "data" / "shopify"


def load_payload(name: str) -> ShopifyPayload:
    return json.loads((FIXTURES / f"{name}.json").read_text())


@dataclass
class FakeShopify:
    """Answers queued responses in order and keeps every request body."""

    responses: list[httpx.Response] = field(default_factory=list[httpx.Response])
    requests: list[httpx.Request] = field(default_factory=list[httpx.Request])

    def reply(self, payload: ShopifyPayload, status_code: int = 200) -> None:
        self.responses.append(httpx.Response(status_code, json=payload))

    def reply_raw(self, response: httpx.Response) -> None:
        self.responses.append(response)

    def body(self, position: int = -1) -> dict[str, object]:
        return json.loads(self.requests[position].content)

    def variables(self, position: int = -1) -> dict[str, object]:
        variables = self.body(position)["variables"]
        assert isinstance(variables, dict)
        return variables  # pyright: ignore[reportUnknownVariableType]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def client_factory(
        self, *, retrying: bool = False
    ) -> Callable[[ResilienceConfig], ResilientClient]:
        """Route requests here; ``retrying`` keeps the retry layer, without backoff."""

        def factory(resilience: ResilienceConfig) -> ResilientClient:
            client = ResilientClient(resilience)
            transport: httpx.AsyncBaseTransport = httpx.MockTransport(self.handle)
            if retrying:
                retry = build_retry(replace(resilience.retry, backoff_factor=0.0))
                transport = RetryTransport(transport=transport, retry=retry)
            client._client = httpx.AsyncClient(transport=transport)  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            return client

        return factory


@pytest.fixture
def shop_config() -> ShopConfig:
    return ShopConfig(
        name="dev",
        domain="dev-shop.myshopify.com",
        access_token="shpat_test",
        api_version="2025-04",
        protected=False,
        resilience=shopify_resilience("dev-shop.myshopify.com", "shpat_test", "2025-04"),
    )


@pytest.fixture
def fake_shopify() -> FakeShopify:
    return FakeShopify()


@pytest.fixture
def graphql_client(shop_config: ShopConfig, fake_shopify: FakeShopify) -> ShopifyGraphQLClient:
    return ShopifyGraphQLClient(shop_config, client_factory=fake_shopify.client_factory())


@pytest.fixture
def shopify_store(graphql_client: ShopifyGraphQLClient) -> ShopifyDataStore:
    return ShopifyDataStore(graphql_client, page_size=50)


@pytest.fixture
def definitions_payload() -> ShopifyPayload:
    return load_payload("definitions")


@pytest.fixture
def metaobjects_payload() -> ShopifyPayload:
    return load_payload("metaobjects")


@pytest.fixture
def retrying_store(shop_config: ShopConfig, fake_shopify: FakeShopify) -> ShopifyDataStore:
    factory = fake_shopify.client_factory(retrying=True)
    return ShopifyDataStore(ShopifyGraphQLClient(shop_config, client_factory=factory), page_size=50)


@pytest.fixture
def metafield_definitions_payload() -> ShopifyPayload:
    return load_payload("metafield_definitions")
