"""Engine configuration for pylocsync."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from pylocsync._constants import (
    BASE_URL,
    DEFAULT_DISPLACEMENT_M,
    DEFAULT_MAX_INTERVAL_MS,
    DEFAULT_MIN_INTERVAL_MS,
    SAVE_LOCATION_PATH,
)
from pylocsync.exceptions import LocSyncConfigError
from pylocsync.models.profile import Accuracy, SamplingProfile


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class LocSyncConfig:
    """Engine configuration.

    Parameters
    ----------
    base_url : str
        Scheme and host of the location service.
    save_path : str
        Path of the save-location endpoint.
    default_displacement_m : float
        Displacement threshold applied when the engine starts.
    min_interval_ms : int
        Fastest interval the provider may deliver fixes at.
    max_interval_ms : int
        Interval after which the provider reports even without movement.
    accuracy : str
        Provider priority (``"high"``, ``"balanced"`` or ``"low"``).
    request_timeout : float
        Total timeout in seconds for one save-location request.
    notify_max_attempts : int
        Delivery attempts per event before the notifier gives up.
    notify_retry_delay : float
        Seconds between notifier delivery attempts.
    background_refresh_interval : float
        Seconds between background sends of the last-known fix while
        running. ``0`` disables the refresh.
    api_trace_enabled : bool
        Log redacted request/response payloads at DEBUG level.
    """

    base_url: str = BASE_URL
    save_path: str = SAVE_LOCATION_PATH
    default_displacement_m: float = DEFAULT_DISPLACEMENT_M
    min_interval_ms: int = DEFAULT_MIN_INTERVAL_MS
    max_interval_ms: int = DEFAULT_MAX_INTERVAL_MS
    accuracy: str = Accuracy.HIGH.value
    request_timeout: float = 15.0
    notify_max_attempts: int = 3
    notify_retry_delay: float = 0.5
    background_refresh_interval: float = 0.0
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise LocSyncConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.notify_max_attempts < 1:
            raise LocSyncConfigError(f"notify_max_attempts must be at least 1, got {self.notify_max_attempts}")
        if self.background_refresh_interval < 0:
            raise LocSyncConfigError(
                f"background_refresh_interval must not be negative, got {self.background_refresh_interval}"
            )
        # Fail early on a profile the engine could never start with.
        self.default_profile()

    @property
    def save_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.save_path}"

    def default_profile(self) -> SamplingProfile:
        """Build the sampling profile applied at engine start."""
        try:
            return SamplingProfile(
                min_interval_ms=self.min_interval_ms,
                max_interval_ms=self.max_interval_ms,
                min_displacement_m=self.default_displacement_m,
                accuracy=Accuracy(self.accuracy),
            )
        except ValueError as exc:
            raise LocSyncConfigError(f"Invalid sampling defaults: {exc}") from exc

    @classmethod
    def from_env(cls, **overrides: Any) -> LocSyncConfig:
        """Create configuration from environment variables.

        Reads optional ``LOCSYNC_*`` variables. Explicit keyword arguments
        override environment values.

        Raises
        ------
        LocSyncConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_CONFIG_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "LOCSYNC_BASE_URL": ("base_url", str),
            "LOCSYNC_SAVE_PATH": ("save_path", str),
            "LOCSYNC_DEFAULT_DISPLACEMENT_M": ("default_displacement_m", float),
            "LOCSYNC_MIN_INTERVAL_MS": ("min_interval_ms", int),
            "LOCSYNC_MAX_INTERVAL_MS": ("max_interval_ms", int),
            "LOCSYNC_ACCURACY": ("accuracy", str),
            "LOCSYNC_REQUEST_TIMEOUT": ("request_timeout", float),
            "LOCSYNC_NOTIFY_MAX_ATTEMPTS": ("notify_max_attempts", int),
            "LOCSYNC_NOTIFY_RETRY_DELAY": ("notify_retry_delay", float),
            "LOCSYNC_BACKGROUND_REFRESH_INTERVAL": ("background_refresh_interval", float),
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, (field_name, parse) in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = parse(val.strip())
            except ValueError as exc:
                raise LocSyncConfigError(f"Invalid value for {env_key}: {val!r}") from exc

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("LOCSYNC_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
