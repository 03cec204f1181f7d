from __future__ import annotations

from pathlib import Path

import pytest

from civic_scrapers.common.fs import read_yaml
from civic_scrapers.common.models import CrawlConfig
from civic_scrapers.extract.page import PageExtractor
from civic_scrapers.extract.strategy import build_strategy
from civic_scrapers.pipeline.crawl import CrawlOrchestrator

BASE = "https://www.rodekors.no/lokalforeninger/"
PAGES = Path("tests/fixtures/pages")
SITE = {
    BASE: "index.html",
    BASE + "agder/": "region_agder.html",
    BASE + "oslo/": "region_fallback.html",
    BASE + "agder/arendal/": "locality_regex.html",
    BASE + "agder/kristiansand/": "locality_full.html",
    BASE + "agder/vennesla/": "locality_marker_quotes.html",
    BASE + "oslo/frogner/": "locality_geocode.html",
    BASE + "oslo/grunerlokka/": "locality_no_address.html",
}


class FixtureClient:
    def get_text(self, url: str, **_kwargs) -> str:
        return (PAGES / SITE[url]).read_text(encoding="utf-8")


def _strategy():
    return build_strategy(read_yaml(Path("config/rodekors.yml")))


def _run_once(data_dir: Path, run_id: str) -> Path:
    config = CrawlConfig(
        org_slug="rodekors",
        concurrency=1,
        pause_seconds=0,
        output_dir=data_dir,
        output_filename="rodekors-local.json",
        partial_filename="rodekors-local.partial.json",
        cache_path=data_dir / "geocode-cache.json",
        run_id=run_id,
    )
    result = CrawlOrchestrator(config, _strategy(), client=FixtureClient()).run()
    assert result.status == "success"
    return config.output_path


@pytest.mark.regression
def test_record_file_is_byte_stable_for_same_inputs(tmp_path: Path):
    first = _run_once(tmp_path / "first", "run-a")
    second = _run_once(tmp_path / "second", "run-b")

    assert first.read_bytes() == second.read_bytes()


@pytest.mark.regression
def test_full_page_record_snapshot():
    html = (PAGES / "locality_full.html").read_text(encoding="utf-8")
    record = PageExtractor(FixtureClient(), _strategy()).extract_html(BASE + "agder/kristiansand/", html).record

    assert record.to_dict() == {
        "name": "Kristiansand Røde Kors",
        "description": "Vi er frivillige i Kristiansand.",
        "image": "https://www.rodekors.no/media/kristiansand.jpg",
        "address": "Tollbodgata 10, 4611 Kristiansand",
        "email": "post@kristiansand-rk.no",
        "source": BASE + "agder/kristiansand/",
        "coordinates": [58.14671, 7.99561],
        "notes": "<p>Vi har åpent hver tirsdag.</p> <h3>Aktiviteter</h3> <ul><li>Leksehjelp</li></ul>",
        "organization": "Røde Kors",
        "city": "Kristiansand",
    }
