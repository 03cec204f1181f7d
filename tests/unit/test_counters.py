from civic_scrapers.common.models import ExtractionMeta, ExtractionResult, LocalityRecord
from civic_scrapers.pipeline.counters import CrawlCounters


def _result(coord_source=None, coordinates=None, geocode_tried=False) -> ExtractionResult:
    record = LocalityRecord(
        name="X",
        description=None,
        image=None,
        address="Gata 1, 1234 Sted",
        email=None,
        source_url="https://www.rodekors.no/lokalforeninger/a/b/",
        coordinates=coordinates,
        notes=None,
        organization="Røde Kors",
        city="B",
    )
    return ExtractionResult(record=record, meta=ExtractionMeta(coord_source, geocode_tried, True))


def test_record_written_tracks_coordinate_source():
    counters = CrawlCounters()
    counters.record_written(_result("page", (1.0, 2.0)))
    counters.record_written(_result("regex", (1.0, 2.0)))
    counters.record_written(_result("geocode", (1.0, 2.0), geocode_tried=True))
    counters.record_written(_result(None, None, geocode_tried=True))
    counters.record_written(_result(None, None, geocode_tried=False))

    assert counters.total_written == 5
    assert counters.coords_from_page == 1
    assert counters.coords_from_regex == 1
    assert counters.coords_geocoded == 1
    assert counters.geocode_missed == 1


def test_summary_omits_processed():
    counters = CrawlCounters()
    counters.record_skipped()
    counters.record_error()
    counters.task_done()
    counters.task_done()

    assert counters.processed == 2
    assert counters.summary() == {
        "total_written": 0,
        "coords_from_page": 0,
        "coords_from_regex": 0,
        "coords_geocoded": 0,
        "geocode_missed": 0,
        "skipped_no_address": 1,
        "errors": 1,
    }
