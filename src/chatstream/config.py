"""Server configuration loaded from the process environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .providers import ProviderAdapter

ENV_PREFIX = "CHATSTREAM_"


@dataclass
class Settings:
    """Proxy server settings.

    Provider secrets are not stored here. They are read from each adapter's
    ``env_var`` when a request needs them, so a key exported after startup
    is picked up.
    """

    host: str = "127.0.0.1"
    port: int = 4096
    upstream_timeout: float = 60.0
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from CHATSTREAM_* environment variables."""
        defaults = cls()
        return cls(
            host=os.environ.get(f"{ENV_PREFIX}HOST", defaults.host),
            port=int(os.environ.get(f"{ENV_PREFIX}PORT", defaults.port)),
            upstream_timeout=float(
                os.environ.get(f"{ENV_PREFIX}UPSTREAM_TIMEOUT", defaults.upstream_timeout)
            ),
            log_level=os.environ.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level).upper(),
        )

    def secret_for(self, provider: ProviderAdapter) -> str | None:
        """Return the provider's API key, or None if it is not configured."""
        return os.environ.get(provider.env_var) or None
