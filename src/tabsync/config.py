"""Server configuration for tabsync."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable, Mapping
from datetime import timedelta
from typing import Any

from tabsync._constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEVICE_TIMEOUT_S,
    SWEEP_INTERVAL_S,
    TITLE_FETCH_TIMEOUT_S,
)
from tabsync.exceptions import TabSyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, convert: Callable[[str], Any]) -> Any:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return convert(raw.strip())
    except ValueError as exc:
        raise TabSyncConfigError(f"{key} must be numeric, got {raw!r}", variable=key) from exc


@dataclasses.dataclass(frozen=True)
class TabSyncConfig:
    """Server configuration.

    Parameters
    ----------
    port : int
        HTTP listener port (snapshot, single-add and discovery endpoints).
    host : str
        Interface both listeners bind to.
    ws_port : int
        Push-channel listener port. ``0`` picks an ephemeral port; the
        bound value is advertised through ``GET /ip``.
    advertise_ip : str or None
        Address reported to clients. Auto-detected when ``None``.
    show_qr : bool
        Whether the startup banner includes the discovery hint. Rendering
        an actual QR code is left to the desktop shell.
    title_timeout : float
        Seconds allowed for one outbound title fetch.
    device_timeout : float
        Seconds of inactivity after which a device is evicted.
    sweep_interval : float
        Seconds between two staleness sweeps.
    broadcast_on_sweep : bool
        Push a fresh snapshot when the sweep evicts devices. Off by
        default: connected clients learn about evictions on the next
        unrelated update.
    static_dir : str or None
        Optional directory served at ``/`` (web viewer).
    log_level : str
        Root logging level used by the CLI.
    """

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    ws_port: int = 0
    advertise_ip: str | None = None
    show_qr: bool = True
    title_timeout: float = TITLE_FETCH_TIMEOUT_S
    device_timeout: float = DEVICE_TIMEOUT_S
    sweep_interval: float = SWEEP_INTERVAL_S
    broadcast_on_sweep: bool = False
    static_dir: str | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        for name in ("port", "ws_port"):
            value = getattr(self, name)
            if not 0 <= value <= 65535:
                raise TabSyncConfigError(f"{name} must be between 0 and 65535, got {value}", variable=name)
        for name in ("title_timeout", "device_timeout", "sweep_interval"):
            value = getattr(self, name)
            if value <= 0:
                raise TabSyncConfigError(f"{name} must be positive, got {value}", variable=name)

    @property
    def device_timeout_delta(self) -> timedelta:
        return timedelta(seconds=self.device_timeout)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, **overrides: Any) -> TabSyncConfig:
        """Create configuration from ``TABSYNC_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        env
            Mapping to read from. Defaults to :data:`os.environ`.
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TabSyncConfig
            Populated configuration.
        """
        if env is None:
            env = os.environ

        config_kwargs: dict[str, Any] = {}

        _ENV_STRING_MAP = {
            "TABSYNC_HOST": "host",
            "TABSYNC_IP": "advertise_ip",
            "TABSYNC_STATIC_DIR": "static_dir",
            "TABSYNC_LOG_LEVEL": "log_level",
        }
        for env_key, field_name in _ENV_STRING_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()

        _ENV_NUMERIC_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "TABSYNC_PORT": ("port", int),
            "TABSYNC_WS_PORT": ("ws_port", int),
            "TABSYNC_TITLE_TIMEOUT": ("title_timeout", float),
            "TABSYNC_DEVICE_TIMEOUT": ("device_timeout", float),
            "TABSYNC_SWEEP_INTERVAL": ("sweep_interval", float),
        }
        for env_key, (field_name, convert) in _ENV_NUMERIC_MAP.items():
            if field_name in overrides:
                continue
            val = _env_number(env, env_key, convert)
            if val is not None:
                config_kwargs[field_name] = val

        # The shell sets TABSYNC_NO_QR=1 when the user hides the QR code.
        if "show_qr" not in overrides:
            config_kwargs["show_qr"] = not _env_bool(env.get("TABSYNC_NO_QR"), False)

        if "broadcast_on_sweep" not in overrides:
            config_kwargs["broadcast_on_sweep"] = _env_bool(env.get("TABSYNC_SWEEP_BROADCAST"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
