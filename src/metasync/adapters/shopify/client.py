"""GraphQL client for the Shopify Admin API."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import count
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from metasync.adapters.http_resilience import ResilientClient
from metasync.domain.ports import DataStoreError

from .schema import GraphQLResponse

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from metasync.config.http_resilience import ResilienceConfig
    from metasync.config.shopify import ShopConfig

    from .schema import GraphQLError, ResponseExtensions

log = getLogger(__name__)

GRAPHQL_PATH = "graphql.json"
HTTP_TOO_MANY_REQUESTS = 429


class ShopifyAPIError(DataStoreError):
    """Raised when a Shopify call fails at the transport or GraphQL level."""

    def __init__(
        self,
        message: str,
        *,
        shop_name: str,
        operation_name: str,
        operation_id: str,
        errors: tuple[str, ...] = (),
    ) -> None:
        super().__init__(
            f"{shop_name}: {operation_name} ({operation_id}): {message}",
            store_name=shop_name,
            operation_name=operation_name,
            operation_id=operation_id,
        )
        self.shop_name = shop_name
        self.errors = errors


class ShopifyThrottledError(ShopifyAPIError):
    """Raised when Shopify refuses a call because the query cost budget is exhausted."""


@dataclass(slots=True)
class RateLimitStatus:
    """Last known GraphQL cost budget, as reported by ``extensions.cost.throttleStatus``."""

    maximum_available: float | None = None
    currently_available: float | None = None
    restore_rate: float | None = None

    @property
    def percent_used(self) -> float:
        if not self.maximum_available or self.currently_available is None:
            return 0.0
        return 100.0 - (self.currently_available / self.maximum_available * 100.0)

    def is_nearing_limit(self, threshold: float = 80) -> bool:
        return self.percent_used > threshold


class ShopifyGraphQLClient:
    """Send GraphQL operations to one shop.

    Use as an async context manager; the underlying :class:`ResilientClient` is
    created on entry and closed on exit. Every call gets an operation id
    (``<shop>-<operation>-<sequence>``) that is attached to raised errors and
    log lines.
    """

    def __init__(
        self,
        config: ShopConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self.config = config
        self.rate_limit = RateLimitStatus()
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None
        self._sequence = count(1)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def graphql_url(self) -> str:
        base_url = self.config.resilience.base_url
        if base_url is None:
            raise ValueError(f"Missing base_url for shop {self.config.name}")
        return f"{base_url.rstrip('/')}/{GRAPHQL_PATH}"

    async def __aenter__(self) -> ShopifyGraphQLClient:
        if self._client is None:
            self._client = self._client_factory(self.config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def execute(
        self,
        query: str,
        variables: Mapping[str, object] | None = None,
        *,
        operation_name: str,
        retry: bool = True,
    ) -> dict[str, object]:
        """Run one operation and return its ``data`` object.

        Top-level GraphQL errors are logged; they only raise when the response
        is throttled or carries no data at all. Mutations pass ``retry=False`` so
        a failed write is never sent twice.
        """

        if self._client is None:
            raise RuntimeError("ShopifyGraphQLClient must be used as an async context manager")
        operation_id = f"{self.config.name}-{operation_name}-{next(self._sequence)}"
        log.debug("%s: sending %s", self.config.name, operation_id)

        try:
            response = await self._client.post(
                self.graphql_url,
                json={"query": query, "variables": dict(variables or {})},
                retry=retry,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            error_type = (
                ShopifyThrottledError
                if exc.response.status_code == HTTP_TOO_MANY_REQUESTS
                else ShopifyAPIError
            )
            raise error_type(
                f"HTTP {exc.response.status_code}",
                shop_name=self.config.name,
                operation_name=operation_name,
                operation_id=operation_id,
            ) from exc
        except httpx.HTTPError as exc:
            raise ShopifyAPIError(
                f"request failed: {exc}",
                shop_name=self.config.name,
                operation_name=operation_name,
                operation_id=operation_id,
            ) from exc

        try:
            payload = GraphQLResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ShopifyAPIError(
                "malformed response",
                shop_name=self.config.name,
                operation_name=operation_name,
                operation_id=operation_id,
            ) from exc

        self._record_cost(payload.extensions)
        if payload.errors:
            messages = tuple(error.message for error in payload.errors)
            log.error(
                "%s: GraphQL errors in %s: %s",
                self.config.name,
                operation_id,
                ", ".join(messages),
            )
            if payload.throttled:
                raise ShopifyThrottledError(
                    "throttled",
                    shop_name=self.config.name,
                    operation_name=operation_name,
                    operation_id=operation_id,
                    errors=messages,
                )
        if payload.data is None:
            raise ShopifyAPIError(
                _describe(payload.errors),
                shop_name=self.config.name,
                operation_name=operation_name,
                operation_id=operation_id,
                errors=tuple(error.message for error in payload.errors),
            )
        return payload.data

    def _record_cost(self, extensions: ResponseExtensions | None) -> None:
        if extensions is None or extensions.cost is None:
            return
        status = extensions.cost.throttle_status
        if status is None:
            return
        self.rate_limit = RateLimitStatus(
            maximum_available=status.maximum_available,
            currently_available=status.currently_available,
            restore_rate=status.restore_rate,
        )
        if self.rate_limit.is_nearing_limit():
            log.warning(
                "%s: %.0f%% of the GraphQL cost budget used (%.0f/%.0f available)",
                self.config.name,
                self.rate_limit.percent_used,
                status.currently_available,
                status.maximum_available,
            )


def _describe(errors: list[GraphQLError]) -> str:
    if not errors:
        return "response contained no data"
    return "; ".join(error.message for error in errors)
