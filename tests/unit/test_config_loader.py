from pathlib import Path

import pytest

from civic_scrapers.common.config_loader import list_organizations, load_all_configs
from civic_scrapers.common.errors import ConfigError


def test_load_all_configs_from_repo_config_dir():
    bundle = load_all_configs(Path("config"))
    assert set(bundle.organizations) == {"rodekors"}
    assert bundle.organizations["rodekors"]["site"]["base_url"] == "https://www.rodekors.no"
    assert bundle.runtime["geocode"]["rate_ms"] == 1100
    assert bundle.runtime["http"]["max_attempts"] == 3


def test_list_organizations_skips_runtime(tmp_path: Path):
    (tmp_path / "runtime.yml").write_text("{}", encoding="utf-8")
    (tmp_path / "b.yml").write_text("{}", encoding="utf-8")
    (tmp_path / "a.yml").write_text("{}", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("", encoding="utf-8")

    assert list_organizations(tmp_path) == ["a", "b"]


def test_load_all_configs_applies_overlay_values(tmp_path: Path):
    base = tmp_path / "base"
    overlay = tmp_path / "overlay"
    base.mkdir()
    overlay.mkdir()

    (base / "runtime.yml").write_text(Path("config/runtime.yml").read_text(encoding="utf-8"), encoding="utf-8")
    (base / "rodekors.yml").write_text(Path("config/rodekors.yml").read_text(encoding="utf-8"), encoding="utf-8")
    (overlay / "runtime.yml").write_text(
        """concurrency: 2
geocode:
  enabled: true
""",
        encoding="utf-8",
    )
    (overlay / "rodekors.yml").write_text(
        """site:
  base_url: https://staging.rodekors.no
""",
        encoding="utf-8",
    )

    bundle = load_all_configs(base, overlay_config_dir=overlay)

    assert bundle.runtime["concurrency"] == 2
    assert bundle.runtime["geocode"]["enabled"] is True
    assert bundle.runtime["geocode"]["rate_ms"] == 1100
    assert bundle.organizations["rodekors"]["site"]["base_url"] == "https://staging.rodekors.no"
    assert bundle.organizations["rodekors"]["site"]["root_marker"] == "lokalforeninger"


def test_load_all_configs_requires_runtime(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_all_configs(tmp_path)


def test_overlay_must_be_mapping(tmp_path: Path):
    base = tmp_path / "base"
    overlay = tmp_path / "overlay"
    base.mkdir()
    overlay.mkdir()
    (base / "runtime.yml").write_text(Path("config/runtime.yml").read_text(encoding="utf-8"), encoding="utf-8")
    (overlay / "runtime.yml").write_text("- not\n- a mapping\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_all_configs(base, overlay_config_dir=overlay)
