"""Command-line entry point.

    sluggrab --slug gpu-h100x8-640gb --region tor1 --region nyc2 \\
        --image gpu-h100x8-base --desired-count 2

Exit status is 1 on configuration errors (missing ``DO_API_TOKEN``, no
region, ...) or any unhandled error. Without ``--once`` the process runs
until it is interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from loguru import logger

from sluggrab import app
from sluggrab.config import ConfigError, RawConfig, build_settings, load_config
from sluggrab.logging import LOG_LEVELS, LogConfig, setup_logging

log = logger.bind(component="cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sluggrab",
        description="Keep a fixed number of DigitalOcean droplets of one size slug alive per region.",
    )
    parser.add_argument("--slug", help="Droplet size slug (e.g. gpu-h100x8-640gb)")
    parser.add_argument(
        "--region", action="append", dest="region",
        help="Region to deploy droplets in (e.g. tor1); repeat or comma-separate for several",
    )
    parser.add_argument("--image", help="Image to use for the droplets (e.g. gpu-h100x8-base)")
    parser.add_argument(
        "--desired-count", "--desired_count", type=int, dest="desired_count",
        help="Desired number of droplets to maintain in each region",
    )
    parser.add_argument("--ssh-keys", "--ssh_keys", dest="ssh_keys", help="Comma-separated SSH key IDs")
    parser.add_argument(
        "--webhook-url", "--webhook_url", dest="webhook_url",
        help="Webhook URL to notify when droplets are created (overrides WEBHOOK_URL)",
    )
    parser.add_argument(
        "--webhook-format", dest="webhook_format", choices=("auto", "json", "text"),
        help="Payload shape: raw JSON event or chat {text}; auto detects known chat hosts",
    )
    parser.add_argument("--name-prefix", dest="name_prefix", help="Droplet name prefix (overrides NAME_PREFIX)")
    parser.add_argument("--interval", type=float, help="Seconds between passes (default 30)")
    parser.add_argument(
        "--listing-policy", dest="listing_policy", choices=("fail-open", "strict"),
        help="On a failed inventory page: use what was listed (fail-open) or skip the region (strict)",
    )
    parser.add_argument(
        "--overlap", choices=("skip", "queue"),
        help="What a tick does while the previous pass is still running",
    )
    parser.add_argument("--once", action="store_true", default=None, help="Run a single pass and exit")
    parser.add_argument("--config", type=Path, help="Path to a sluggrab.toml file")
    parser.add_argument("--log-level", dest="log_level", help="Console log level (default INFO)")
    parser.add_argument("--log-file", dest="log_file", help="Also log to this file at DEBUG level")
    return parser


def _cli_overrides(args: argparse.Namespace) -> RawConfig:
    raw = {k: v for k, v in vars(args).items() if k != "config"}
    return {k: v for k, v in raw.items() if v is not None}


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    env = os.environ if environ is None else environ

    level = (args.log_level or "INFO").upper()
    setup_logging(LogConfig(level=level if level in LOG_LEVELS else "INFO"))  # type: ignore[arg-type]

    try:
        settings = build_settings(
            _cli_overrides(args),
            environ=env,
            file=load_config(path=args.config),
        )
    except ConfigError as e:
        log.error("{err}", err=e)
        return 1

    setup_logging(settings.log)

    try:
        asyncio.run(app.run(settings))
    except KeyboardInterrupt:
        log.info("Interrupted, exiting")
        return 130
    except Exception:
        log.exception("Fatal error")
        return 1
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
