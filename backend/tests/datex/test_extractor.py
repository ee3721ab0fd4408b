"""
End-to-end tests for the extraction driver

Tests cover:
1. Speed / flow and coordinate documents
2. Announcement ordering
3. Overflow, read errors and unclosed blocks
4. Path / gzip input and the line iterator
5. Bounded memory on a large feed
"""

import gzip
import io
import os
import tempfile

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from services.datex import (
    ExtractionConfig,
    ExtractionStats,
    extract_pairs,
    extract_pairs_from_path,
    iter_records,
)
from services.datex.streaming.memory_profiler import assert_memory_limit


SPEED_FLOW_XML = b'''<?xml version="1.0" encoding="UTF-8"?>
<d2LogicalModel xmlns="http://datex2.eu/schema/2/2_0" modelBaseVersion="2">
  <payloadPublication>
    <publicationTime>2024-05-01T10:00:00Z</publicationTime>
    <siteMeasurements>
      <measurementSiteReference targetClass="MeasurementSiteRecord" id="S1" version="1"/>
      <measuredValue index="1">
        <measuredValue>
          <basicData>
            <averageVehicleSpeed><speed>10.0</speed></averageVehicleSpeed>
          </basicData>
        </measuredValue>
      </measuredValue>
      <measuredValue index="2">
        <measuredValue>
          <basicData>
            <averageVehicleSpeed><speed>20.0</speed></averageVehicleSpeed>
          </basicData>
        </measuredValue>
      </measuredValue>
      <measuredValue index="3">
        <measuredValue>
          <basicData>
            <vehicleFlow><vehicleFlowRate>100</vehicleFlowRate></vehicleFlow>
          </basicData>
        </measuredValue>
      </measuredValue>
      <measuredValue index="4">
        <measuredValue>
          <basicData>
            <vehicleFlow><vehicleFlowRate>200</vehicleFlowRate></vehicleFlow>
          </basicData>
        </measuredValue>
      </measuredValue>
    </siteMeasurements>
  </payloadPublication>
</d2LogicalModel>'''

EXPECTED_SPEED_FLOW = ["2024-05-01T10:00:00Z", "1 S1 10 100", "2 S1 20 200"]

COORDINATES_XML = b'''<?xml version="1.0" encoding="UTF-8"?>
<d2LogicalModel xmlns="http://datex2.eu/schema/2/2_0">
  <payloadPublication>
    <publicationTime>2024-05-01T00:00:00Z</publicationTime>
    <measurementSiteTable id="NDW01_MT" version="1">
      <measurementSiteRecord id="S1" version="3">
        <measurementSiteRecordVersionTime>2020-01-01T00:00:00Z</measurementSiteRecordVersionTime>
        <measurementSiteLocation>
          <locationForDisplay>
            <latitude>52.1</latitude>
            <longitude>4.3</longitude>
          </locationForDisplay>
        </measurementSiteLocation>
      </measurementSiteRecord>
    </measurementSiteTable>
  </payloadPublication>
</d2LogicalModel>'''


# ============================================================================
# Test Fixtures
# ============================================================================

@pytest.fixture(params=["bounded", "growable"])
def config(request):
    return ExtractionConfig(queue_policy=request.param)


@pytest.fixture
def speed_flow_file():
    with tempfile.NamedTemporaryFile(mode='wb', suffix='.xml', delete=False) as f:
        f.write(SPEED_FLOW_XML)
        temp_path = f.name

    yield temp_path

    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def speed_flow_gzip_file():
    with tempfile.NamedTemporaryFile(mode='wb', suffix='.xml.gz', delete=False) as f:
        f.write(gzip.compress(SPEED_FLOW_XML))
        temp_path = f.name

    yield temp_path

    if os.path.exists(temp_path):
        os.unlink(temp_path)


def run(xml: bytes, config=None):
    sink = io.StringIO()
    stats = extract_pairs(io.BytesIO(xml), sink, config)
    return sink.getvalue().splitlines(), stats


def block(site_attr: str, speeds, flows) -> str:
    parts = [f"<siteMeasurements>{site_attr}"]
    parts += [f"<speed>{v}</speed>" for v in speeds]
    parts += [f"<vehicleFlowRate>{v}</vehicleFlowRate>" for v in flows]
    parts.append("</siteMeasurements>")
    return "".join(parts)


def document(*blocks: str) -> bytes:
    return ("<d2LogicalModel>" + "".join(blocks) + "</d2LogicalModel>").encode("utf-8")


# ============================================================================
# Speed / Flow Tests
# ============================================================================

def test_speed_flow_end_to_end(config):
    lines, stats = run(SPEED_FLOW_XML, config)

    assert lines == EXPECTED_SPEED_FLOW
    assert stats.pairs_emitted == 2
    assert stats.announcements == 1
    assert stats.blocks_opened == 1
    assert stats.blocks_closed == 1
    assert stats.read_error is None
    assert not stats.unclosed_block


def test_announcement_precedes_pairs(config):
    lines, _ = run(SPEED_FLOW_XML, config)

    assert lines[0] == "2024-05-01T10:00:00Z"
    assert all(line[0].isdigit() for line in lines[1:])


def test_index_restarts_per_block(config):
    xml = document(
        block('<measurementSiteReference id="S1"/>', [1.5], [10]),
        block('<measurementSiteReference id="S2"/>', [2.5, 3.5], [20, 30]),
    )
    lines, stats = run(xml, config)

    assert lines == ["1 S1 1.5 10", "1 S2 2.5 20", "2 S2 3.5 30"]
    assert stats.blocks_closed == 2


def test_site_sentinel_only_when_absent(config):
    xml = document(
        block("", [1], [10]),
        block('<measurementSiteReference id=""/>', [2], [20]),
    )
    lines, _ = run(xml, config)

    assert lines == ["1 (unknown_site) 1 10", "1  2 20"]


def test_leftovers_do_not_leak_into_next_block(config):
    xml = document(
        block('<measurementSiteReference id="S1"/>', [1, 2, 3], [10]),
        block('<measurementSiteReference id="S2"/>', [], [20]),
    )
    lines, stats = run(xml, config)

    assert lines == ["1 S1 1 10"]
    assert stats.leftovers_discarded == 3


def test_values_outside_block_ignored(config):
    xml = b"<d2LogicalModel><speed>1</speed><vehicleFlowRate>2</vehicleFlowRate></d2LogicalModel>"
    lines, stats = run(xml, config)

    assert lines == []
    assert stats.unhandled_elements == 3


def test_malformed_values_skipped(config):
    xml = document(block('<measurementSiteReference id="S1"/>', ["abc", 5], ["", 50]))
    lines, stats = run(xml, config)

    assert lines == ["1 S1 5 50"]
    assert stats.malformed_numbers == 2


def test_very_long_integer_skipped_without_stopping(config):
    xml = document(block('<measurementSiteReference id="S1"/>', [10], ["9" * 5000, 200]))
    lines, stats = run(xml, config)

    assert lines == ["1 S1 10 200"]
    assert stats.malformed_numbers == 1
    assert stats.read_error is None


def test_bounded_overflow_drops_newest():
    config = ExtractionConfig(queue_policy="bounded", queue_capacity=2)
    xml = document(block('<measurementSiteReference id="S1"/>', [1.5, 2.5, 3.5], [10, 20, 30]))
    lines, stats = run(xml, config)

    assert lines == ["1 S1 1.5 10", "2 S1 2.5 20"]
    assert stats.values_dropped == 1
    assert stats.leftovers_discarded == 1
    assert stats.diagnostics == ["speed queue full (max 2), dropping value"]


def test_growable_keeps_every_value():
    config = ExtractionConfig(queue_policy="growable", initial_capacity=1)
    speeds = list(range(1, 201))
    flows = list(range(1001, 1201))
    xml = document(block('<measurementSiteReference id="S1"/>', speeds, flows))
    lines, stats = run(xml, config)

    assert len(lines) == 200
    assert lines[-1] == "200 S1 200 1200"
    assert stats.values_dropped == 0


def test_bounded_text_truncates_site_identifier():
    config = ExtractionConfig(text_policy="bounded", max_text=3)
    xml = document(block('<measurementSiteReference id="ABCDEFG"/>', [1], [2]))
    lines, _ = run(xml, config)

    assert lines == ["1 ABC 1 2"]


def test_dynamic_text_keeps_site_identifier():
    config = ExtractionConfig(text_policy="dynamic", max_text=3)
    xml = document(block('<measurementSiteReference id="ABCDEFG"/>', [1], [2]))
    lines, _ = run(xml, config)

    assert lines == ["1 ABCDEFG 1 2"]


# ============================================================================
# Coordinates Tests
# ============================================================================

def test_coordinates_end_to_end(config):
    config.variant = "coordinates"
    lines, stats = run(COORDINATES_XML, config)

    assert lines == ["2024-05-01T00:00:00Z", "S1 2020-01-01T00:00:00Z 52.1 4.3"]
    assert stats.pairs_emitted == 1


def test_coordinates_without_version_time(config):
    config.variant = "coordinates"
    xml = (
        b'<measurementSiteTable><measurementSiteRecord id="S7">'
        b'<latitude>51.5</latitude><longitude>5.25</longitude>'
        b'</measurementSiteRecord></measurementSiteTable>'
    )
    lines, _ = run(xml, config)

    assert lines == ["S7 (unknown_date) 51.5 5.25"]


def test_unknown_variant_rejected():
    with pytest.raises(ValueError):
        run(SPEED_FLOW_XML, ExtractionConfig(variant="travel-time"))


# ============================================================================
# Error Handling Tests
# ============================================================================

def test_read_error_keeps_earlier_output(config):
    xml = (
        b'<d2LogicalModel><siteMeasurements><measurementSiteReference id="S1"/>'
        b'<speed>10</speed><vehicleFlowRate>100</vehicleFlowRate>'
        b'<speed>20</speed><<broken'
    )
    lines, stats = run(xml, config)

    assert lines == ["1 S1 10 100"]
    assert stats.read_error
    assert stats.diagnostics[-1].startswith("XML read error encountered")


def test_unclosed_block_is_not_flushed(config):
    xml = b'<siteMeasurements><measurementSiteReference id="S1"/><speed>10</speed>'
    lines, stats = run(xml, config)

    assert lines == []
    assert stats.unclosed_block
    assert stats.read_error


# ============================================================================
# Input Tests
# ============================================================================

def test_extract_from_path(speed_flow_file, config):
    sink = io.StringIO()
    stats = extract_pairs_from_path(speed_flow_file, sink, config)

    assert sink.getvalue().splitlines() == EXPECTED_SPEED_FLOW
    assert stats.pairs_emitted == 2


def test_extract_from_gzip_path(speed_flow_gzip_file):
    sink = io.StringIO()
    extract_pairs_from_path(speed_flow_gzip_file, sink)

    assert sink.getvalue().splitlines() == EXPECTED_SPEED_FLOW


def test_extract_from_missing_path():
    with pytest.raises(FileNotFoundError):
        extract_pairs_from_path("/nonexistent/feed.xml", io.StringIO())


def test_small_chunks_give_same_output():
    lines, _ = run(SPEED_FLOW_XML, ExtractionConfig(chunk_size=3))

    assert lines == EXPECTED_SPEED_FLOW


def test_iter_records(config):
    stats = ExtractionStats()
    records = list(iter_records(io.BytesIO(SPEED_FLOW_XML), config, stats=stats))

    assert records == EXPECTED_SPEED_FLOW
    assert stats.pairs_emitted == 2


def test_iter_records_is_lazy():
    records = iter_records(io.BytesIO(SPEED_FLOW_XML))

    assert next(records) == "2024-05-01T10:00:00Z"
    assert next(records) == "1 S1 10 100"


# ============================================================================
# Memory Tests
# ============================================================================

class CountingSink:
    """Text sink that counts lines without keeping them."""

    def __init__(self):
        self.lines = 0

    def write(self, text):
        self.lines += text.count("\n")

    def flush(self):
        pass


def test_memory_stays_bounded_on_large_feed():
    blocks = [
        block(f'<measurementSiteReference id="S{i}"/>', [i + 0.5, i + 1.5], [i, i + 1])
        for i in range(20000)
    ]
    xml = document(*blocks)
    stream = io.BytesIO(xml)
    sink = CountingSink()

    with assert_memory_limit(8 * 1024 * 1024, "Large feed extraction"):
        stats = extract_pairs(stream, sink)

    assert stats.pairs_emitted == 40000
    assert sink.lines == 40000
