"""Shopify Admin GraphQL adapter for metaobject definitions and metaobjects."""

from __future__ import annotations

from .client import RateLimitStatus, ShopifyAPIError, ShopifyGraphQLClient, ShopifyThrottledError
from .store import ShopifyDataStore

__all__ = [
    "RateLimitStatus",
    "ShopifyAPIError",
    "ShopifyDataStore",
    "ShopifyGraphQLClient",
    "ShopifyThrottledError",
]
