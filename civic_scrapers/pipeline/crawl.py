"""Crawl orchestration: discover, extract in parallel, finalize exactly once."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from civic_scrapers.common.http import HttpClient, RetryConfig, TimeoutConfig
from civic_scrapers.common.ids import generate_run_id
from civic_scrapers.common.logging import default_logger, log_event
from civic_scrapers.common.models import CrawlConfig, ExtractionResult, LocalityRecord
from civic_scrapers.common.time_utils import elapsed_ms
from civic_scrapers.discovery.links import LinkDiscoverer
from civic_scrapers.extract.page import PageExtractor
from civic_scrapers.extract.strategy import SiteStrategy
from civic_scrapers.geocode.cache import GeocodeCache
from civic_scrapers.geocode.geocoder import Geocoder
from civic_scrapers.pipeline.counters import CrawlCounters
from civic_scrapers.pipeline.export import write_records
from civic_scrapers.pipeline.reports import write_run_summary

STATUS_SUCCESS = "success"
STATUS_INTERRUPTED = "interrupted"
STATUS_FAILED = "failed"
POLL_SECONDS = 0.25

ProgressCallback = Callable[[int, int, CrawlCounters], None]


@dataclass(frozen=True)
class CrawlResult:
    run_id: str
    status: str
    records: list[LocalityRecord]
    counters: CrawlCounters
    localities_total: int
    output_path: Path | None
    summary_path: Path | None

    @property
    def interrupted(self) -> bool:
        return self.status == STATUS_INTERRUPTED


def logging_progress(logger: logging.Logger, label: str = "Scraping") -> ProgressCallback:
    def report(processed: int, total: int, counters: CrawlCounters) -> None:
        percent = int(processed * 100 / total) if total else 100
        log_event(
            logger,
            f"{label}: {processed}/{total} ({percent}%) page:{counters.coords_from_page} "
            f"geo:{counters.coords_geocoded} skip:{counters.skipped_no_address} err:{counters.errors}",
            event="PROGRESS",
            stage="extract",
            records_out=counters.total_written,
        )

    return report


class CrawlOrchestrator:
    """Init -> DiscoverRegions -> DiscoverLocalities -> Extract -> Finalize.

    Setting ``cancel_event`` while extracting stops scheduling, abandons queued
    tasks, and routes to a partial finalize: accumulated records go to the
    partial file, the primary file is left untouched, and the geocode cache is
    flushed once in-flight tasks have returned. Finalize runs once however the
    run ends.
    """

    def __init__(
        self,
        config: CrawlConfig,
        strategy: SiteStrategy,
        *,
        client: HttpClient | None = None,
        geocoder: Geocoder | None = None,
        discoverer: LinkDiscoverer | None = None,
        extractor: PageExtractor | None = None,
        logger: logging.Logger | None = None,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.config = config
        self.strategy = strategy
        self.run_id = config.run_id or generate_run_id()
        self.logger = logger or default_logger()
        self.cancel_event = cancel_event or threading.Event()
        self.progress = progress or logging_progress(self.logger)

        self._owns_client = client is None
        self.client = client or HttpClient(
            user_agent=config.user_agent,
            timeout=TimeoutConfig(read=config.timeout_seconds),
            retry=RetryConfig(max_attempts=config.max_attempts, base_delay=config.base_delay_seconds),
            sleep=self.cancel_event.wait,
            cancel_event=self.cancel_event,
            logger=self.logger,
        )
        self.geocoder = geocoder or Geocoder(
            GeocodeCache(config.cache_path, logger=self.logger),
            self.client,
            config.geocode,
            sleep=self.cancel_event.wait,
            cancel_event=self.cancel_event,
            logger=self.logger,
        )
        self.discoverer = discoverer or LinkDiscoverer(self.client, strategy, logger=self.logger)
        self.extractor = extractor or PageExtractor(self.client, strategy, self.geocoder, logger=self.logger)

        self.counters = CrawlCounters()
        self.records: list[LocalityRecord] = []
        self.localities_total = 0
        self._result: CrawlResult | None = None
        self._executor: ThreadPoolExecutor | None = None

    def _log_stage(self, stage: str, event: str, **fields) -> None:
        log_event(
            self.logger,
            f"stage {event.split('_')[-1].lower()}",
            run_id=self.run_id,
            org=self.strategy.slug,
            stage=stage,
            event=event,
            status="ok",
            **fields,
        )

    def discover(self) -> list[str]:
        self._log_stage("discover-regions", "STAGE_START")
        regions = self.discoverer.discover_regions()
        if self.config.only_region:
            regions = [url for url in regions if self.strategy.parse_location(url).region == self.config.only_region]
            log_event(self.logger, f"only_region={self.config.only_region} -> {len(regions)} match(es)", stage="discover-regions")
        self._log_stage("discover-regions", "STAGE_END", records_out=len(regions))

        self._log_stage("discover-localities", "STAGE_START")
        localities: dict[str, None] = {}
        for region_url in regions:
            if self.cancel_event.is_set():
                break
            for url in self.discoverer.discover_localities(region_url):
                localities[url] = None

        urls = list(localities)
        if self.config.only_locality:
            urls = [url for url in urls if self.strategy.parse_location(url).locality == self.config.only_locality]
            log_event(
                self.logger,
                f"only_locality={self.config.only_locality} -> {len(urls)} match(es)",
                stage="discover-localities",
            )
        self._log_stage("discover-localities", "STAGE_END", records_out=len(urls))
        return urls

    def _task(self, url: str) -> ExtractionResult | None:
        if self.cancel_event.is_set():
            return None
        try:
            return self.extractor.extract(url)
        finally:
            self.cancel_event.wait(self.config.pause_seconds)

    def _complete(self, url: str, future: Future) -> None:
        try:
            result = future.result()
        except Exception as exc:
            self.counters.record_error()
            log_event(
                self.logger,
                f"Error {url}: {exc}",
                level=logging.ERROR,
                stage="extract",
                url=url,
                event="RECORD_ERROR",
                status="error",
                error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
            )
        else:
            if result is None:
                return
            if not result.record.address:
                self.counters.record_skipped()
                log_event(
                    self.logger,
                    f"Skip (no address): {url}",
                    level=logging.DEBUG,
                    stage="extract",
                    url=url,
                    event="RECORD_SKIPPED",
                    status="skipped",
                )
            else:
                self.records.append(result.record)
                self.counters.record_written(result)
        self.counters.task_done()
        if not self.cancel_event.is_set():
            self.progress(self.counters.processed, self.localities_total, self.counters)

    def extract_all(self, urls: list[str]) -> None:
        self.localities_total = len(urls)
        self._log_stage("extract", "STAGE_START", records_out=len(urls))
        executor = self._executor = ThreadPoolExecutor(max_workers=self.config.concurrency, thread_name_prefix="extract")
        try:
            pending = {executor.submit(self._task, url): url for url in urls}
            while pending and not self.cancel_event.is_set():
                done, _ = wait(pending, timeout=POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    self._complete(pending.pop(future), future)
            # Keep whatever finished between the last poll and the cancellation.
            for future in [f for f in pending if f.done() and not f.cancelled()]:
                self._complete(pending.pop(future), future)
        except KeyboardInterrupt:
            self.cancel_event.set()
            raise
        finally:
            executor.shutdown(wait=not self.cancel_event.is_set(), cancel_futures=True)
        self._log_stage("extract", "STAGE_END", records_out=len(self.records))

    def run(self) -> CrawlResult:
        started = time.monotonic()
        self._log_stage("init", "STAGE_START")
        self.geocoder.load()
        self._log_stage("init", "STAGE_END")

        try:
            urls = self.discover()
            if not self.cancel_event.is_set():
                self.extract_all(urls)
        except KeyboardInterrupt:
            self.cancel_event.set()
        except BaseException:
            self.finalize(STATUS_FAILED, started)
            raise

        status = STATUS_INTERRUPTED if self.cancel_event.is_set() else STATUS_SUCCESS
        return self.finalize(status, started)

    def _join_workers(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)

    def finalize(self, status: str, started: float | None = None) -> CrawlResult:
        if self._result is not None:
            return self._result

        self._log_stage("finalize", "STAGE_START")
        output_path: Path | None = None
        summary_file: Path | None = None
        try:
            if status == STATUS_SUCCESS:
                output_path = write_records(self.config.output_path, self.records)
                log_event(self.logger, f"Wrote {len(self.records)} records -> {output_path}", stage="finalize")
            elif status == STATUS_INTERRUPTED or self.records:
                output_path = write_records(self.config.partial_path, self.records)
                log_event(
                    self.logger,
                    f"Saved partial -> {output_path} ({len(self.records)} records)",
                    level=logging.WARNING,
                    stage="finalize",
                    event="RUN_INTERRUPTED" if status == STATUS_INTERRUPTED else "RUN_FAILED",
                    status=status,
                )
            summary_file = write_run_summary(
                self.config.output_dir,
                run_id=self.run_id,
                org_slug=self.strategy.slug,
                status=status,
                localities_total=self.localities_total,
                counters=self.counters,
                geocode_calls=self.geocoder.calls,
                output_path=output_path or self.config.output_path,
            )
        finally:
            self._result = CrawlResult(
                run_id=self.run_id,
                status=status,
                records=list(self.records),
                counters=self.counters,
                localities_total=self.localities_total,
                output_path=output_path,
                summary_path=summary_file,
            )
            # In-flight tasks finish before the cache is saved.
            self._join_workers()
            try:
                self.geocoder.save()
            finally:
                if self._owns_client:
                    self.client.close()

        log_event(
            self.logger,
            "Counts " + " ".join(f"{key}={value}" for key, value in self.counters.summary().items()),
            run_id=self.run_id,
            org=self.strategy.slug,
            stage="finalize",
            event="RUN_SUMMARY",
            status=status,
            records_out=len(self.records),
            duration_ms=elapsed_ms(started) if started is not None else None,
        )
        self._log_stage("finalize", "STAGE_END")
        return self._result
