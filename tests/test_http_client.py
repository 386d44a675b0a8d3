"""Tests for the blocking HTTP client."""

from unittest import mock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from includo.config import AuditConfig
from includo.http_client import FetchResult, HttpClient

URL = "https://example.com/"


def _response(status=200, body=b"<html></html>", headers=None, url=URL, history=()):
    resp = mock.Mock()
    resp.status_code = status
    resp.content = body
    resp.url = url
    resp.history = list(history)
    resp.headers = CaseInsensitiveDict(
        headers if headers is not None else {"Content-Type": "text/html"}
    )
    return resp


@pytest.fixture
def session():
    s = requests.Session()
    yield s
    s.close()


class TestHttpClient:
    """Tests for HttpClient.get."""

    def test_successful_fetch(self, session):
        """Test a 200 response becomes an ok FetchResult."""
        resp = _response(
            body="caf\xe9".encode("latin-1"),
            headers={"Content-Type": "text/html; charset=ISO-8859-1"},
            url="https://example.com/home",
            history=[object()],
        )
        client = HttpClient(session, timeout_s=5)
        with mock.patch.object(session, "get", return_value=resp) as get:
            result = client.get(URL)

        get.assert_called_once_with(URL, timeout=5, verify=False, allow_redirects=True)
        assert result.ok
        assert result.error is None
        assert result.final_url == "https://example.com/home"
        assert result.redirect_count == 1
        assert result.content_type == "text/html; charset=ISO-8859-1"
        assert result.text == "caf\xe9"
        assert result.fetched_at > 0

    def test_http_error_status(self, session):
        """Test 4xx/5xx responses are reported, not raised."""
        client = HttpClient(session)
        with mock.patch.object(session, "get", return_value=_response(status=404)):
            result = client.get(URL)
        assert not result.ok
        assert result.status_code == 404
        assert result.error == "HTTP 404"

    def test_transport_error(self, session):
        """Test connection failures come back as status 0 with the reason."""
        client = HttpClient(session)
        with mock.patch.object(
            session, "get", side_effect=requests.ConnectionError("refused")
        ):
            result = client.get(URL)
        assert not result.ok
        assert result.status_code == 0
        assert result.body == b""
        assert "refused" in result.error

    def test_retry_after_transport_error(self, session):
        """Test transport errors are retried with exponential backoff."""
        client = HttpClient(session, max_retries=2, backoff_base_s=0.5)
        outcomes = [requests.Timeout("slow"), requests.Timeout("slow"), _response()]
        with mock.patch.object(
            session, "get", side_effect=outcomes
        ), mock.patch("includo.http_client.time.sleep") as sleep:
            result = client.get(URL)
        assert result.ok
        assert sleep.call_args_list == [mock.call(0.5), mock.call(1.0)]

    def test_retry_honours_retry_after(self, session):
        """Test a transient status waits for Retry-After before retrying."""
        busy = _response(status=503, headers={"Retry-After": "3"})
        client = HttpClient(session, max_retries=1)
        with mock.patch.object(
            session, "get", side_effect=[busy, _response()]
        ), mock.patch("includo.http_client.time.sleep") as sleep:
            result = client.get(URL)
        assert result.ok
        sleep.assert_called_once_with(3.0)

    def test_retries_exhausted(self, session):
        """Test the last transient response is returned once retries run out."""
        client = HttpClient(session, max_retries=1)
        with mock.patch.object(
            session, "get", return_value=_response(status=503, headers={})
        ) as get, mock.patch("includo.http_client.time.sleep"):
            result = client.get(URL)
        assert get.call_count == 2
        assert result.status_code == 503
        assert result.error == "HTTP 503"

    def test_no_retry_by_default(self, session):
        """Test the default client makes a single attempt."""
        client = HttpClient(session)
        with mock.patch.object(
            session, "get", return_value=_response(status=503)
        ) as get, mock.patch("includo.http_client.time.sleep") as sleep:
            client.get(URL)
        assert get.call_count == 1
        sleep.assert_not_called()

    def test_session_setup(self, session):
        """Test the user agent and redirect limit are applied to the session."""
        HttpClient(session, user_agent="TestAgent/1.0", max_redirects=3)
        assert session.headers["User-Agent"] == "TestAgent/1.0"
        assert session.max_redirects == 3

    def test_from_config(self, session):
        """Test the client is built from configuration values."""
        config = AuditConfig(
            user_agent="Configured/2.0",
            timeout_s=7.5,
            max_redirects=2,
            verify_tls=True,
        )
        client = HttpClient.from_config(config, session=session)
        assert session.headers["User-Agent"] == "Configured/2.0"
        assert session.max_redirects == 2
        with mock.patch.object(session, "get", return_value=_response()) as get:
            client.get(URL)
        get.assert_called_once_with(
            URL, timeout=7.5, verify=True, allow_redirects=True
        )


class TestFetchResult:
    """Tests for FetchResult properties."""

    def test_empty_body_is_not_ok(self):
        """Test a 200 with an empty body is not auditable."""
        result = FetchResult(
            url=URL, final_url=URL, status_code=200, body=b"", elapsed_s=0.1
        )
        assert not result.ok

    def test_text_defaults_to_utf8(self):
        """Test bodies without a charset decode as UTF-8 with replacement."""
        result = FetchResult(
            url=URL,
            final_url=URL,
            status_code=200,
            body="€".encode("utf-8") + b"\xff",
            elapsed_s=0.1,
            headers={"content-type": "text/html"},
        )
        assert result.content_type == "text/html"
        assert result.text == "€\ufffd"

    def test_unknown_charset_falls_back(self):
        """Test an unknown declared charset falls back to UTF-8."""
        result = FetchResult(
            url=URL,
            final_url=URL,
            status_code=200,
            body=b"plain",
            elapsed_s=0.1,
            headers={"Content-Type": "text/html; charset=x-made-up"},
        )
        assert result.text == "plain"
