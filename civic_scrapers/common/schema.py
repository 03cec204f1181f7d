"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from civic_scrapers.common.errors import ConfigError

ORGANIZATION_TOP_KEYS = {
    "organization",
    "strategy",
    "site",
    "discovery",
    "extraction",
    "geocode",
    "output",
}
RUNTIME_TOP_KEYS = {
    "concurrency",
    "sleep_ms",
    "output_dir",
    "cache_path",
    "http",
    "geocode",
}


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    _assert_mapping(obj, ctx)
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_string_list(value: object, ctx: str, *, allow_empty: bool = False) -> None:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{ctx} must be a list of strings")
    if not value and not allow_empty:
        raise ConfigError(f"{ctx} must not be empty")


def _assert_positive(value: object, ctx: str, *, allow_zero: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx} must be a number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{ctx} must be positive")


def validate_organization_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_required_keys(cfg, ORGANIZATION_TOP_KEYS, "organization config")
    _assert_no_unknown_keys(cfg, ORGANIZATION_TOP_KEYS, "organization config", allow_unknown)

    _assert_required_keys(cfg["organization"], {"slug", "name"}, "organization")
    _assert_required_keys(cfg["site"], {"base_url", "root_marker"}, "site")
    _assert_required_keys(cfg["discovery"], {"locality_heading_markers", "deny_slugs"}, "discovery")
    _assert_string_list(cfg["discovery"]["locality_heading_markers"], "discovery.locality_heading_markers")
    _assert_string_list(cfg["discovery"]["deny_slugs"], "discovery.deny_slugs", allow_empty=True)
    _assert_required_keys(
        cfg["extraction"],
        {"address_labels", "welcome_markers", "marker_selector", "lead_selector"},
        "extraction",
    )
    _assert_string_list(cfg["extraction"]["address_labels"], "extraction.address_labels")
    _assert_string_list(cfg["extraction"]["welcome_markers"], "extraction.welcome_markers", allow_empty=True)
    _assert_required_keys(cfg["geocode"], {"country_name", "country_code"}, "geocode")
    _assert_required_keys(cfg["output"], {"filename", "partial_filename"}, "output")
    if cfg["output"]["filename"] == cfg["output"]["partial_filename"]:
        raise ConfigError("output.filename and output.partial_filename must differ")

    return cfg


def validate_runtime_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_required_keys(cfg, RUNTIME_TOP_KEYS, "runtime config")
    _assert_no_unknown_keys(cfg, RUNTIME_TOP_KEYS, "runtime config", allow_unknown)

    _assert_positive(cfg["concurrency"], "concurrency")
    _assert_positive(cfg["sleep_ms"], "sleep_ms", allow_zero=True)
    _assert_required_keys(cfg["http"], {"max_attempts", "base_delay_ms", "timeout_seconds"}, "http")
    _assert_positive(cfg["http"]["max_attempts"], "http.max_attempts")
    _assert_required_keys(
        cfg["geocode"],
        {"enabled", "rate_ms", "max_calls", "endpoint", "timeout_seconds"},
        "geocode",
    )
    _assert_positive(cfg["geocode"]["rate_ms"], "geocode.rate_ms", allow_zero=True)
    _assert_positive(cfg["geocode"]["max_calls"], "geocode.max_calls", allow_zero=True)

    return cfg
