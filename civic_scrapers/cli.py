"""CLI entrypoint for civic organization location scrapers."""

from __future__ import annotations

import argparse
import os
import re
import signal
import sys
import threading
from pathlib import Path
from typing import Mapping

from civic_scrapers.common.config_loader import ConfigBundle, list_organizations, load_all_configs
from civic_scrapers.common.constants import (
    EXIT_HARD_FAIL,
    EXIT_INTERRUPTED,
    EXIT_PARTIAL,
    EXIT_SUCCESS,
    EXIT_USAGE,
    USER_AGENT,
)
from civic_scrapers.common.errors import ConfigError, PipelineError
from civic_scrapers.common.ids import generate_run_id
from civic_scrapers.common.logging import build_logger, log_event
from civic_scrapers.common.models import CrawlConfig, GeocodeSettings
from civic_scrapers.extract.strategy import build_strategy
from civic_scrapers.pipeline.crawl import CrawlOrchestrator

TRUTHY_RE = re.compile(r"^(1|true|yes)$", re.IGNORECASE)


def _env_lower(env: Mapping[str, str], key: str) -> str | None:
    value = (env.get(key) or "").strip().lower()
    return value or None


def _env_number(env: Mapping[str, str], key: str, cast):
    value = (env.get(key) or "").strip()
    return cast(value) if value else None


def parse_args(argv: list[str], env: Mapping[str, str] | None = None) -> argparse.Namespace:
    env = os.environ if env is None else env
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("org", nargs="?", default=_env_lower(env, "ORG"))
    parser.add_argument("--concurrency", type=int, default=_env_number(env, "CONCURRENCY", int))
    parser.add_argument("--sleep-ms", type=int, default=_env_number(env, "SLEEP_MS", int))
    parser.add_argument(
        "--geocode",
        action="store_true",
        default=bool(TRUTHY_RE.match((env.get("GEOCODE") or "").strip())),
    )
    parser.add_argument("--geo-rate-ms", type=int, default=_env_number(env, "GEO_RATE_MS", int))
    parser.add_argument("--max-geocodes", type=int, default=_env_number(env, "MAX_GEOCODES", int))
    parser.add_argument("--only-region", default=_env_lower(env, "ONLY_COUNTY"))
    parser.add_argument("--only-locality", default=_env_lower(env, "ONLY_CITY"))
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--allow-unknown-config", action="store_true")
    parser.add_argument("--data-dir", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument(
        "--log-level",
        default=(env.get("LOG_LEVEL") or "INFO").upper(),
        choices=["DEBUG", "VERBOSE", "INFO", "WARN", "WARNING", "ERROR", "SILENT"],
        type=str.upper,
    )
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def build_crawl_config(args: argparse.Namespace, bundle: ConfigBundle, run_id: str) -> CrawlConfig:
    runtime = bundle.runtime
    org_cfg = bundle.organizations[args.org]
    http = runtime["http"]
    geo = runtime["geocode"]

    geocode = GeocodeSettings(
        enabled=bool(args.geocode or geo["enabled"]),
        rate_seconds=(args.geo_rate_ms if args.geo_rate_ms is not None else geo["rate_ms"]) / 1000,
        max_calls=args.max_geocodes if args.max_geocodes is not None else int(geo["max_calls"]),
        endpoint=geo["endpoint"],
        timeout_seconds=float(geo["timeout_seconds"]),
        country_name=org_cfg["geocode"]["country_name"],
        country_code=org_cfg["geocode"]["country_code"],
    )
    output_dir = Path(args.data_dir) if args.data_dir else Path(runtime["output_dir"])
    return CrawlConfig(
        org_slug=args.org,
        concurrency=args.concurrency or int(runtime["concurrency"]),
        pause_seconds=(args.sleep_ms if args.sleep_ms is not None else runtime["sleep_ms"]) / 1000,
        only_region=args.only_region,
        only_locality=args.only_locality,
        output_dir=output_dir,
        output_filename=org_cfg["output"]["filename"],
        partial_filename=org_cfg["output"]["partial_filename"],
        cache_path=Path(runtime["cache_path"]),
        user_agent=USER_AGENT,
        max_attempts=int(http["max_attempts"]),
        base_delay_seconds=http["base_delay_ms"] / 1000,
        timeout_seconds=float(http["timeout_seconds"]),
        geocode=geocode,
        run_id=run_id,
    )


def install_signal_handlers(cancel_event: threading.Event) -> dict:
    def _handle(_signum, _frame) -> None:
        cancel_event.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handle)
    return previous


def restore_signal_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def usage(available: list[str]) -> str:
    names = ", ".join(available) or "(none configured)"
    return (
        "Usage: civic-scrapers <org> [--geocode] [--concurrency N] [--sleep-ms MS]\n"
        "   or: ORG=<org> [CONCURRENCY=3] [SLEEP_MS=600] [GEOCODE=1] civic-scrapers\n"
        f"Available orgs: {names}\n"
    )


def run_command(args: argparse.Namespace, cancel_event: threading.Event | None = None) -> int:
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    available = list_organizations(config_dir)
    if not args.org or args.org not in available:
        sys.stderr.write(usage(available))
        return EXIT_USAGE

    bundle = load_all_configs(
        config_dir,
        allow_unknown=args.allow_unknown_config,
        overlay_config_dir=overlay_config_dir,
    )
    run_id = args.run_id or generate_run_id()
    config = build_crawl_config(args, bundle, run_id)
    logger = build_logger(run_id, data_dir=config.output_dir, level=args.log_level)
    log_event(
        logger,
        f"Runtime configuration: concurrency={config.concurrency} pause={config.pause_seconds}s "
        f"geocode={config.geocode.enabled} only_region={config.only_region} only_locality={config.only_locality}",
        run_id=run_id,
        org=config.org_slug,
        stage="init",
        event="RUN_CONFIG",
    )

    strategy = build_strategy(bundle.organizations[args.org])
    orchestrator = CrawlOrchestrator(config, strategy, logger=logger, cancel_event=cancel_event)
    result = orchestrator.run()

    if result.interrupted:
        return EXIT_INTERRUPTED
    if args.strict and result.counters.errors:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    cancel_event = threading.Event()
    previous = install_signal_handlers(cancel_event)
    try:
        return run_command(args, cancel_event)
    except ConfigError as exc:
        sys.stderr.write(f"Configuration error: {exc}\n")
        return EXIT_HARD_FAIL
    except PipelineError as exc:
        sys.stderr.write(f"{exc.error_code}: {exc}\n")
        return EXIT_HARD_FAIL
    except Exception as exc:
        sys.stderr.write(f"UNEXPECTED_ERROR: {exc}\n")
        return EXIT_HARD_FAIL
    finally:
        restore_signal_handlers(previous)


if __name__ == "__main__":
    raise SystemExit(main())
