"""Configuration: TOML file, environment and command-line overrides.

Sources are merged with precedence command line > environment > file >
defaults, then validated into an immutable ``Settings`` value that is passed
down explicitly. Nothing in the core reads the environment.

File layout (``sluggrab.toml`` in the working directory, or ``--config``)::

    [sluggrab]
    slug = "gpu-h100x8-640gb"
    regions = ["tor1", "nyc2"]
    image = "gpu-h100x8-base"
    desired_count = 2
    webhook_url = "https://hooks.slack.com/services/..."
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sluggrab.inventory import ListingPolicy
from sluggrab.logging import LOG_LEVELS, LogConfig
from sluggrab.providers.digitalocean import DigitalOcean, get_token
from sluggrab.providers.digitalocean.config import DO_API_URL
from sluggrab.scheduler import DEFAULT_INTERVAL, OverlapPolicy

type RawConfig = dict[str, Any]

PROJECT_CONFIG_NAME = "sluggrab.toml"
CONFIG_SECTION = "sluggrab"

WEBHOOK_FORMATS = ("auto", "json", "text")

_ENV_KEYS = {
    "WEBHOOK_URL": "webhook_url",
    "NAME_PREFIX": "name_prefix",
    "DO_API_URL": "api_url",
}


class ConfigError(ValueError):
    """Invalid or missing configuration; fatal at startup."""


@dataclass(frozen=True, slots=True)
class DesiredState:
    """What the fleet should look like, per region.

    Args:
        size: Droplet size slug to maintain (e.g. ``gpu-h100x8-640gb``).
        image: Image slug or ID for new droplets.
        regions: Region codes, reconciled in this order.
        desired_count: Droplets of ``size`` wanted in each region.
        ssh_keys: SSH key IDs or fingerprints added to new droplets.
        webhook_url: Optional notification endpoint.
        name_prefix: Prefix for droplet names; defaults to ``size``.
        webhook_format: ``auto``, ``json`` or ``text``.
    """

    size: str
    image: str
    regions: tuple[str, ...]
    desired_count: int
    ssh_keys: tuple[str, ...] = ()
    webhook_url: str | None = None
    name_prefix: str | None = None
    webhook_format: str = "auto"

    def __post_init__(self) -> None:
        if not self.regions:
            raise ConfigError("At least one region is required")
        if not self.size:
            raise ConfigError("A droplet size slug is required")
        if not self.image:
            raise ConfigError("An image is required")
        if self.desired_count < 0:
            raise ConfigError(f"desired_count must be >= 0, got {self.desired_count}")
        if self.webhook_format not in WEBHOOK_FORMATS:
            raise ConfigError(
                f"Unknown webhook format {self.webhook_format!r}. Valid: {', '.join(WEBHOOK_FORMATS)}"
            )

    @property
    def prefix(self) -> str:
        return self.name_prefix or self.size


@dataclass(frozen=True, slots=True)
class Settings:
    desired: DesiredState
    provider: DigitalOcean
    interval: float = DEFAULT_INTERVAL
    listing_policy: ListingPolicy = ListingPolicy.FAIL_OPEN
    overlap: OverlapPolicy = OverlapPolicy.SKIP
    once: bool = False
    notify_timeout: float = 10.0
    log: LogConfig = field(default_factory=LogConfig)


# =============================================================================
# Loading
# =============================================================================


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def load_config(*, path: Path | None = None, project_dir: Path | None = None) -> RawConfig:
    """Read the ``[sluggrab]`` table of the config file, if there is one.

    An explicit ``path`` must exist; the project file is optional.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        raw = _read_toml(path)
    else:
        raw = _read_toml((project_dir or Path.cwd()) / PROJECT_CONFIG_NAME)

    section = raw.get(CONFIG_SECTION, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{CONFIG_SECTION}] must be a table")
    return dict(section)


def env_overrides(environ: Mapping[str, str]) -> RawConfig:
    return {key: environ[var] for var, key in _ENV_KEYS.items() if environ.get(var)}


def split_csv(value: str | list[Any] | tuple[Any, ...] | None) -> tuple[str, ...]:
    """``"a, b"`` or ``["a", "b,c"]`` → ``("a", "b", "c")``, duplicates dropped."""
    match value:
        case None:
            return ()
        case str():
            items = value.split(",")
        case list() | tuple():
            items = [part for v in value for part in str(v).split(",")]
        case _:
            items = [str(value)]
    return tuple(dict.fromkeys(s.strip() for s in items if s.strip()))


def _normalize(layer: RawConfig) -> RawConfig:
    layer = {k: v for k, v in layer.items() if v is not None}
    if "region" in layer or "regions" in layer:
        layer["regions"] = split_csv(layer.get("regions")) + split_csv(layer.pop("region", None))
    return layer


def _merge(*layers: RawConfig) -> RawConfig:
    """Later layers win; ``region`` and ``regions`` are one key."""
    merged: RawConfig = {}
    for layer in layers:
        merged.update(_normalize(layer))
    return merged


def _int(raw: RawConfig, key: str) -> int:
    value = raw.get(key)
    if value is None:
        raise ConfigError(f"Missing required option: {key}")
    match value:
        case bool():
            pass
        case int():
            return value
        case str() if value.strip().lstrip("+-").isdigit():
            return int(value)
    raise ConfigError(f"{key} must be an integer, got {value!r}")


def _float(raw: RawConfig, key: str, default: float) -> float:
    value = raw.get(key, default)
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}") from None
    if result <= 0:
        raise ConfigError(f"{key} must be positive, got {result}")
    return result


def _enum[E](enum_cls: type[E], raw: RawConfig, key: str, default: E) -> E:
    value = raw.get(key)
    if value is None:
        return default
    try:
        return enum_cls(value)  # type: ignore[call-arg]
    except ValueError:
        valid = ", ".join(m.value for m in enum_cls)  # type: ignore[attr-defined]
        raise ConfigError(f"Unknown {key} {value!r}. Valid: {valid}") from None


def build_settings(
    cli: RawConfig,
    *,
    environ: Mapping[str, str],
    file: RawConfig | None = None,
) -> Settings:
    """Merge the configuration layers and validate them into ``Settings``."""
    raw = _merge(file or {}, env_overrides(environ), cli)

    token = get_token(dict(environ))
    if not token:
        raise ConfigError("DO_API_TOKEN environment variable is not set")

    regions = split_csv(raw.get("regions"))
    for key in ("slug", "image"):
        if not raw.get(key):
            raise ConfigError(f"Missing required option: {key}")

    desired = DesiredState(
        size=str(raw["slug"]),
        image=str(raw["image"]),
        regions=tuple(dict.fromkeys(regions)),
        desired_count=_int(raw, "desired_count"),
        ssh_keys=split_csv(raw.get("ssh_keys")),
        webhook_url=raw.get("webhook_url") or None,
        name_prefix=raw.get("name_prefix") or None,
        webhook_format=str(raw.get("webhook_format", "auto")),
    )

    provider = DigitalOcean(
        token=token,
        api_url=str(raw.get("api_url", DO_API_URL)),
        request_timeout=_float(raw, "request_timeout", 30.0),
    )

    log_level = str(raw.get("log_level", "INFO")).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level {log_level!r}. Valid: {', '.join(LOG_LEVELS)}")

    return Settings(
        desired=desired,
        provider=provider,
        interval=_float(raw, "interval", DEFAULT_INTERVAL),
        listing_policy=_enum(ListingPolicy, raw, "listing_policy", ListingPolicy.FAIL_OPEN),
        overlap=_enum(OverlapPolicy, raw, "overlap", OverlapPolicy.SKIP),
        once=bool(raw.get("once", False)),
        notify_timeout=_float(raw, "notify_timeout", 10.0),
        log=LogConfig(level=log_level, file=raw.get("log_file") or None),  # type: ignore[arg-type]
    )


__all__ = [
    "CONFIG_SECTION",
    "ConfigError",
    "DesiredState",
    "PROJECT_CONFIG_NAME",
    "RawConfig",
    "Settings",
    "build_settings",
    "env_overrides",
    "load_config",
    "split_csv",
]
