"""Shopify shop configuration values."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from .env import env_flag, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_SHOPIFY_API_VERSION = "2025-04"
SHOPIFY_TIMEOUT_SECONDS = 30.0

_NON_ALNUM = re.compile(r"[^A-Z0-9]+")


@dataclass(frozen=True, slots=True)
class ShopConfig:
    """Connection details for one Shopify store."""

    name: str
    domain: str
    access_token: str
    resilience: ResilienceConfig
    api_version: str = DEFAULT_SHOPIFY_API_VERSION
    protected: bool = True


def shop_env_prefix(name: str) -> str:
    """Return the environment prefix for a shop name, e.g. ``METASYNC_SHOP_DEV_STORE_``."""

    slug = _NON_ALNUM.sub("_", name.strip().upper()).strip("_")
    if not slug:
        raise ValueError(f"Invalid shop name: {name!r}")
    return f"METASYNC_SHOP_{slug}_"


def shopify_api_version() -> str:
    value = os.getenv("SHOPIFY_API_VERSION")
    return value.strip() if value and value.strip() else DEFAULT_SHOPIFY_API_VERSION


def shopify_resilience(domain: str, access_token: str, api_version: str) -> ResilienceConfig:
    # 429 is left out on purpose: throttling must surface to the caller as a failure
    return ResilienceConfig(
        name=f"shopify:{domain}",
        base_url=f"https://{domain}/admin/api/{api_version}",
        timeout_seconds=SHOPIFY_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        retry=RetryPolicy(total=3, status_forcelist=frozenset({502, 503, 504})),
        default_headers={
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": access_token,
        },
    )


def get_shop_config(name: str) -> ShopConfig:
    prefix = shop_env_prefix(name)
    values = require_env_vars((f"{prefix}DOMAIN", f"{prefix}ACCESS_TOKEN"))
    domain = values[f"{prefix}DOMAIN"]
    token = values[f"{prefix}ACCESS_TOKEN"]
    api_version = shopify_api_version()
    return ShopConfig(
        name=name,
        domain=domain,
        access_token=token,
        api_version=api_version,
        protected=env_flag(f"{prefix}PROTECTED", default=True),
        resilience=shopify_resilience(domain, token, api_version),
    )
