"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError, ProtectedShopError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .shopify import (
    DEFAULT_SHOPIFY_API_VERSION,
    ShopConfig,
    get_shop_config,
    shop_env_prefix,
)
from .sync import DEFAULT_ITEM_LIMIT, DEFAULT_PAGE_SIZE, SyncConfig, get_sync_config

__all__ = [
    "DEFAULT_ITEM_LIMIT",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_SHOPIFY_API_VERSION",
    "ConfigurationError",
    "MissingConfigurationError",
    "ProtectedShopError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ShopConfig",
    "SyncConfig",
    "configure_logging",
    "env_flag",
    "get_shop_config",
    "get_sync_config",
    "require_env_var",
    "require_env_vars",
    "shop_env_prefix",
]
