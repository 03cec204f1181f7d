"""HTTP client with bounded retries and linear backoff."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_incrementing,
)

from civic_scrapers.common.constants import USER_AGENT
from civic_scrapers.common.errors import FetchError
from civic_scrapers.common.logging import default_logger, log_event

TEXTUAL_MARKERS = ("html", "xml")


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    read: float = 25.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.8


class RetryableHttpError(FetchError):
    pass


def truncate_url(url: str, limit: int = 120) -> str:
    if len(url) <= limit:
        return url
    return url[: limit - 1] + "…"


def is_textual(content_type: str | None) -> bool:
    if not content_type:
        return True
    lowered = content_type.lower()
    return lowered.startswith("text/") or any(marker in lowered for marker in TEXTUAL_MARKERS)


class HttpClient:
    def __init__(
        self,
        *,
        user_agent: str = USER_AGENT,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: threading.Event | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.session = requests.Session()
        self.logger = logger or default_logger()
        self._sleep = sleep
        self.cancel_event = cancel_event or threading.Event()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, accept: str) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": accept}

    def _send(
        self,
        url: str,
        *,
        accept: str,
        params: dict[str, Any] | None,
        timeout: TimeoutConfig | None,
    ) -> requests.Response:
        req_timeout = timeout or self.timeout
        try:
            response = self.session.request(
                method="GET",
                url=url,
                params=params,
                headers=self._headers(accept),
                timeout=(req_timeout.connect, req_timeout.read),
            )
        except requests.RequestException as exc:
            raise RetryableHttpError(f"Request failed: {exc}", url=url) from exc
        status = response.status_code
        if not 200 <= status < 300:
            raise RetryableHttpError(f"HTTP status: {status}", url=url)
        return response

    def _fetch_text(self, url: str, timeout: TimeoutConfig | None) -> str:
        response = self._send(url, accept="text/html,application/xhtml+xml", params=None, timeout=timeout)
        if not is_textual(response.headers.get("Content-Type")):
            raise RetryableHttpError(f"Non-textual response: {response.headers.get('Content-Type')}", url=url)
        return response.text

    def _fetch_json(self, url: str, params: dict[str, Any] | None, timeout: TimeoutConfig | None) -> Any:
        response = self._send(url, accept="application/json", params=params, timeout=timeout)
        try:
            return response.json()
        except ValueError as exc:
            raise RetryableHttpError(f"Invalid JSON payload from {url}", url=url) from exc

    def _log_retry(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        wait_ms = int(state.next_action.sleep * 1000) if state.next_action else 0
        url = state.kwargs.get("url", "")
        log_event(
            self.logger,
            f"Retry in {wait_ms}ms -> {truncate_url(url)}: {exc}",
            level=logging.WARNING,
            event="FETCH_RETRY",
            status="retry",
            url=url,
            attempt=state.attempt_number,
        )

    def _call_with_retries(self, func: Callable[..., Any], url: str, attempts: int | None, **kwargs: Any) -> Any:
        max_attempts = attempts or self.retry.max_attempts
        retrying = Retrying(
            # No further attempts once the run is cancelled.
            stop=stop_after_attempt(max_attempts) | stop_when_event_set(self.cancel_event),
            wait=wait_incrementing(start=self.retry.base_delay, increment=self.retry.base_delay),
            retry=retry_if_exception_type(RetryableHttpError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return retrying(func, url=url, **kwargs)
        except RetryableHttpError as exc:
            made = retrying.statistics.get("attempt_number", max_attempts)
            raise FetchError(
                f"GET {truncate_url(url)} failed after {made} attempt(s): {exc}",
                url=url,
                attempts=made,
            ) from exc

    def get_text(self, url: str, *, timeout: TimeoutConfig | None = None, attempts: int | None = None) -> str:
        return self._call_with_retries(
            self._fetch_text,
            url,
            attempts,
            timeout=timeout,
        )

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        timeout: TimeoutConfig | None = None,
        attempts: int | None = None,
    ) -> Any:
        return self._call_with_retries(
            self._fetch_json,
            url,
            attempts,
            params=params,
            timeout=timeout,
        )
