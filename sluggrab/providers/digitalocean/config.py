"""DigitalOcean provider configuration.

Immutable configuration dataclass for the DigitalOcean API client.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DO_API_URL = "https://api.digitalocean.com/v2"

TOKEN_ENV_VARS = ("DO_API_TOKEN", "DIGITALOCEAN_TOKEN")


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class DigitalOcean:
    """DigitalOcean API configuration.

    Example:
        >>> from sluggrab.providers.digitalocean import DigitalOcean
        >>> config = DigitalOcean(token="dop_v1_...")

    Args:
        token: API token. Falls back to DO_API_TOKEN, then DIGITALOCEAN_TOKEN.
        api_url: API base URL. Default: https://api.digitalocean.com/v2.
        request_timeout: Per-request timeout in seconds. Default: 30.
        page_size: Droplets requested per listing page. Default: 100.
    """

    token: str | None = None
    api_url: str = DO_API_URL
    request_timeout: float = 30.0
    page_size: int = 100

    def __repr__(self) -> str:
        token = "***" if self.token else None
        return (
            f"DigitalOcean(token={token!r}, api_url={self.api_url!r}, "
            f"request_timeout={self.request_timeout!r}, page_size={self.page_size!r})"
        )


def get_token(environ: dict[str, str] | None = None) -> str | None:
    """Get the DigitalOcean API token from the environment, if any."""
    env = os.environ if environ is None else environ
    for name in TOKEN_ENV_VARS:
        if token := env.get(name):
            return token
    return None


# =============================================================================
# Exports
# =============================================================================

__all__ = ["DO_API_URL", "DigitalOcean", "TOKEN_ENV_VARS", "get_token"]
