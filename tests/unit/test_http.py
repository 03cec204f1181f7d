from __future__ import annotations

import threading

import pytest
import requests

from civic_scrapers.common.errors import FetchError
from civic_scrapers.common.http import HttpClient, RetryConfig, is_textual, truncate_url


class FakeResponse:
    def __init__(self, status_code: int, text: str = "", payload=None, content_type: str | None = "text/html", raises_json: bool = False):
        self.status_code = status_code
        self.text = text
        self.headers = {"Content-Type": content_type} if content_type else {}
        self._payload = payload
        self._raises_json = raises_json

    def json(self):
        if self._raises_json:
            raise ValueError("bad json")
        return self._payload


class ScriptedSession:
    def __init__(self, outcomes: list):
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    def request(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        return None


def _client(outcomes: list, sleeps: list[float], **retry) -> tuple[HttpClient, ScriptedSession]:
    client = HttpClient(retry=RetryConfig(**retry), sleep=sleeps.append)
    session = ScriptedSession(outcomes)
    client.session = session
    return client, session


def test_get_text_success_sends_user_agent():
    sleeps: list[float] = []
    client, session = _client([FakeResponse(200, "<html>ok</html>")], sleeps)

    assert client.get_text("https://example.com/") == "<html>ok</html>"
    assert session.calls[0]["headers"]["User-Agent"].startswith("CivicSupportScrapers/")
    assert session.calls[0]["method"] == "GET"
    assert sleeps == []


def test_get_text_retries_503_with_linear_backoff_then_fails():
    sleeps: list[float] = []
    client, session = _client([FakeResponse(503), FakeResponse(503), FakeResponse(503)], sleeps, max_attempts=3, base_delay=0.8)

    with pytest.raises(FetchError) as excinfo:
        client.get_text("https://example.com/down/")

    assert len(session.calls) == 3
    assert sleeps == pytest.approx([0.8, 1.6])
    assert sum(sleeps) >= 2.4 - 1e-9
    assert excinfo.value.attempts == 3
    assert excinfo.value.url == "https://example.com/down/"
    assert "503" in str(excinfo.value.__cause__)


def test_get_text_recovers_after_transient_failures():
    sleeps: list[float] = []
    client, session = _client(
        [requests.ConnectionError("reset"), FakeResponse(502), FakeResponse(200, "<p>hi</p>")],
        sleeps,
    )

    assert client.get_text("https://example.com/") == "<p>hi</p>"
    assert len(session.calls) == 3
    assert sleeps == pytest.approx([0.8, 1.6])


def test_get_text_rejects_non_textual_body():
    sleeps: list[float] = []
    client, _session = _client(
        [FakeResponse(200, "{}", content_type="application/json")],
        sleeps,
        max_attempts=1,
    )

    with pytest.raises(FetchError):
        client.get_text("https://example.com/api")


def test_client_error_status_is_retried_until_exhausted():
    sleeps: list[float] = []
    client, session = _client([FakeResponse(404), FakeResponse(404)], sleeps, max_attempts=2)

    with pytest.raises(FetchError):
        client.get_text("https://example.com/missing/")
    assert len(session.calls) == 2


def test_get_json_single_attempt_and_invalid_json():
    sleeps: list[float] = []
    client, session = _client([FakeResponse(200, raises_json=True)], sleeps)

    with pytest.raises(FetchError):
        client.get_json("https://example.com/search", params={"q": "x"}, attempts=1)
    assert len(session.calls) == 1
    assert session.calls[0]["params"] == {"q": "x"}
    assert sleeps == []


def test_get_json_returns_payload():
    sleeps: list[float] = []
    client, _session = _client([FakeResponse(200, payload=[{"lat": "1", "lon": "2"}])], sleeps)

    assert client.get_json("https://example.com/search") == [{"lat": "1", "lon": "2"}]


def test_is_textual_and_truncate_url():
    assert is_textual(None)
    assert is_textual("text/html; charset=utf-8")
    assert is_textual("application/xhtml+xml")
    assert not is_textual("image/png")
    assert truncate_url("https://example.com/" + "a" * 200).endswith("…")
    assert len(truncate_url("https://example.com/" + "a" * 200)) == 120


def test_cancelled_client_stops_retrying():
    sleeps: list[float] = []
    cancel_event = threading.Event()
    cancel_event.set()
    client = HttpClient(retry=RetryConfig(max_attempts=3), sleep=sleeps.append, cancel_event=cancel_event)
    session = ScriptedSession([FakeResponse(503), FakeResponse(503), FakeResponse(503)])
    client.session = session

    with pytest.raises(FetchError) as excinfo:
        client.get_text("https://example.com/down/")

    assert len(session.calls) == 1
    assert sleeps == []
    assert excinfo.value.attempts == 1
