"""
Unit tests for input openers (stdin, local path, gzip, remote feed)

Remote fetching is tested with requests.get patched out.
"""

import gzip
import io
from unittest.mock import MagicMock, patch

import pytest
import requests
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from services.datex import extract_pairs_from_path
from services.datex.core.errors import SourceOpenError
from services.datex.utils.sources import is_url, maybe_decompress, open_source, open_url


FEED_XML = (
    b'<d2LogicalModel><siteMeasurements><measurementSiteReference id="S1"/>'
    b'<speed>10</speed><vehicleFlowRate>100</vehicleFlowRate>'
    b'</siteMeasurements></d2LogicalModel>'
)


class RawBody(io.BytesIO):
    """Stand-in for urllib3's raw response body."""
    decode_content = False


def mock_response(body: bytes):
    response = MagicMock()
    response.raw = RawBody(body)
    response.raise_for_status.return_value = None
    return response


# ============================================================================
# Helper Tests
# ============================================================================

def test_is_url():
    assert is_url("https://example.org/feed.xml")
    assert is_url("http://example.org/feed.xml")
    assert not is_url("/data/feed.xml")
    assert not is_url("-")


def test_maybe_decompress_plain():
    stream = maybe_decompress(io.BytesIO(FEED_XML))
    assert stream.read() == FEED_XML


def test_maybe_decompress_gzip():
    stream = maybe_decompress(io.BytesIO(gzip.compress(FEED_XML)))
    assert stream.read() == FEED_XML


# ============================================================================
# Local Input Tests
# ============================================================================

def test_open_source_missing_path(tmp_path):
    with pytest.raises(FileNotFoundError):
        with open_source(str(tmp_path / "missing.xml")):
            pass


def test_open_source_path(tmp_path):
    path = tmp_path / "feed.xml"
    path.write_bytes(FEED_XML)

    with open_source(path) as stream:
        assert stream.read() == FEED_XML


def test_open_source_stdin(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(gzip.compress(FEED_XML))))

    with open_source("-") as stream:
        assert stream.read() == FEED_XML


# ============================================================================
# Remote Feed Tests
# ============================================================================

def test_open_url_streams_body():
    response = mock_response(FEED_XML)
    with patch("services.datex.utils.sources.requests.get", return_value=response) as get:
        with open_url("https://example.org/feed.xml", timeout=5) as stream:
            assert stream.read() == FEED_XML

    get.assert_called_once_with("https://example.org/feed.xml", stream=True, timeout=5)
    assert response.raw.decode_content is True
    response.close.assert_called_once()


def test_open_url_gzip_payload():
    response = mock_response(gzip.compress(FEED_XML))
    with patch("services.datex.utils.sources.requests.get", return_value=response):
        with open_url("https://example.org/feed.xml.gz") as stream:
            assert stream.read() == FEED_XML


def test_open_url_connection_error():
    with patch(
        "services.datex.utils.sources.requests.get",
        side_effect=requests.exceptions.ConnectionError("refused"),
    ):
        with pytest.raises(SourceOpenError):
            with open_url("https://example.org/feed.xml"):
                pass


def test_open_url_http_error():
    response = mock_response(b"")
    response.raise_for_status.side_effect = requests.exceptions.HTTPError("404 Client Error")
    with patch("services.datex.utils.sources.requests.get", return_value=response):
        with pytest.raises(SourceOpenError) as exc_info:
            with open_url("https://example.org/missing.xml"):
                pass

    assert "404" in str(exc_info.value)


def test_extract_from_url():
    sink = io.StringIO()
    with patch(
        "services.datex.utils.sources.requests.get",
        return_value=mock_response(FEED_XML),
    ):
        stats = extract_pairs_from_path("https://example.org/feed.xml", sink, timeout=5)

    assert sink.getvalue() == "1 S1 10 100\n"
    assert stats.pairs_emitted == 1
