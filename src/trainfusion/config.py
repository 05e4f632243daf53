"""Engine configuration for trainfusion."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from trainfusion.exceptions import FusionConfigError


@dataclasses.dataclass(frozen=True)
class FusionConfig:
    """Engine configuration.

    Parameters
    ----------
    feed_url : str
        Streaming endpoint emitting ``snapshot`` and ``heartbeat`` events.
    ttl_seconds : float
        Age after which a trip's last live report is hidden from the
        published positions.
    reconnect_delay : float
        Fixed delay in seconds between a transport error and the next
        connection attempt.
    heartbeat_interval : float
        Expected heartbeat period of the feed server.  A stream that stays
        silent for twice this long is treated as dropped.
    connect_timeout : float
        Seconds allowed for establishing the streaming connection.
    tick_interval : float
        Period of the position recompute loop in seconds.
    """

    feed_url: str = "http://localhost:8000/api/trains/stream"
    ttl_seconds: float = 15.0
    reconnect_delay: float = 5.0
    heartbeat_interval: float = 15.0
    connect_timeout: float = 10.0
    tick_interval: float = 1 / 60

    def __post_init__(self) -> None:
        if not self.feed_url.strip():
            raise FusionConfigError("feed_url must be non-empty")
        for name in ("ttl_seconds", "reconnect_delay", "heartbeat_interval", "connect_timeout", "tick_interval"):
            value = getattr(self, name)
            if value <= 0:
                raise FusionConfigError(f"{name} must be positive (got {value})")

    @property
    def read_timeout(self) -> float:
        """Silence on the stream longer than this drops the connection."""
        return self.heartbeat_interval * 2

    @classmethod
    def from_env(cls, **overrides: Any) -> FusionConfig:
        """Create configuration from ``TRAINFUSION_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        url = env.get("TRAINFUSION_FEED_URL")
        if url is not None:
            config_kwargs["feed_url"] = url

        _ENV_FLOAT_MAP = {
            "TRAINFUSION_TTL_SECONDS": "ttl_seconds",
            "TRAINFUSION_RECONNECT_DELAY": "reconnect_delay",
            "TRAINFUSION_HEARTBEAT_INTERVAL": "heartbeat_interval",
            "TRAINFUSION_CONNECT_TIMEOUT": "connect_timeout",
            "TRAINFUSION_TICK_INTERVAL": "tick_interval",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise FusionConfigError(f"{env_key} must be a number (got {val!r})") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
