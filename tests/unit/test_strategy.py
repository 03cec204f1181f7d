from pathlib import Path

import pytest

from civic_scrapers.common.errors import ConfigError
from civic_scrapers.common.fs import read_yaml
from civic_scrapers.extract.strategy import SiteStrategy, build_strategy

BASE = "https://www.rodekors.no/lokalforeninger/"


def _strategy() -> SiteStrategy:
    return build_strategy(read_yaml(Path("config/rodekors.yml")))


def test_start_url_and_host():
    strategy = _strategy()
    assert strategy.start_url == BASE
    assert strategy.host == "www.rodekors.no"


def test_canonical_drops_query_fragment_and_normalises_slash():
    strategy = _strategy()
    assert strategy.canonical("/lokalforeninger/agder?x=1#top") == BASE + "agder/"
    assert strategy.canonical("kristiansand//", BASE + "agder/") == BASE + "agder/kristiansand/"


def test_parse_location_depths():
    strategy = _strategy()
    assert strategy.parse_location(BASE + "agder/kristiansand/").region == "agder"
    assert strategy.parse_location(BASE + "agder/kristiansand/").locality == "kristiansand"
    assert strategy.parse_location(BASE + "agder/kristiansand/aktiviteter/").depth == 3
    assert strategy.parse_location(BASE).depth == 0
    assert strategy.parse_location("https://example.org/lokalforeninger/agder/").region is None


def test_region_links():
    strategy = _strategy()
    assert strategy.is_region_link("/lokalforeninger/agder/")
    assert strategy.is_region_link("/lokalforeninger/agder")
    assert not strategy.is_region_link("/lokalforeninger/")
    assert not strategy.is_region_link("/lokalforeninger/agder/kristiansand/")
    assert not strategy.is_region_link("/om/")
    assert not strategy.is_region_link("https://example.org/lokalforeninger/agder/")


def test_locality_links_respect_deny_list_and_region():
    strategy = _strategy()
    assert strategy.is_locality_link(BASE + "agder/kristiansand/", "agder")
    assert not strategy.is_locality_link(BASE + "agder/kontakt/", "agder")
    assert not strategy.is_locality_link(BASE + "agder/St%C3%B8tte/", "agder")
    assert not strategy.is_locality_link(BASE + "oslo/frogner/", "agder")
    assert not strategy.is_locality_link(BASE + "agder/kristiansand/aktiviteter/", "agder")
    assert strategy.is_locality_link(BASE + "oslo/frogner/")


def test_heading_markers_are_case_insensitive():
    strategy = _strategy()
    assert strategy.is_locality_heading("  LOKALFORENINGER I Agder ")
    assert not strategy.is_locality_heading("Nyheter")
    assert strategy.is_welcome_heading("Velkommen til oss!")


def test_city_name_is_title_cased_slug():
    strategy = _strategy()
    assert strategy.city_name(BASE + "oslo/gamle-oslo/") == "Gamle-Oslo"
    assert strategy.city_name(BASE + "oslo/") is None


def test_build_strategy_rejects_unknown_name():
    cfg = read_yaml(Path("config/rodekors.yml"))
    cfg["strategy"] = "flat"
    with pytest.raises(ConfigError):
        build_strategy(cfg)
