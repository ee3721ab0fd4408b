"""
Constants for DATEX II pair extraction.

This module defines the element names, sentinels, limits and I/O sizes used
throughout the extraction pipeline.
"""

import sys

# ============================================================================
# Recognized Element Names (namespace-stripped, case-sensitive)
# ============================================================================

PUBLICATION_TIME = "publicationTime"

# Speed / flow variant (MeasuredDataPublication)
SITE_MEASUREMENTS = "siteMeasurements"
MEASUREMENT_SITE_REFERENCE = "measurementSiteReference"
SPEED = "speed"
VEHICLE_FLOW_RATE = "vehicleFlowRate"

# Coordinate variant (MeasurementSiteTablePublication)
MEASUREMENT_SITE_TABLE = "measurementSiteTable"
MEASUREMENT_SITE_RECORD = "measurementSiteRecord"
MEASUREMENT_SITE_RECORD_VERSION_TIME = "measurementSiteRecordVersionTime"
LATITUDE = "latitude"
LONGITUDE = "longitude"

# Attribute carrying the site identifier on reference/record elements
SITE_ID_ATTRIBUTE = "id"

# ============================================================================
# Sentinels
# ============================================================================

UNKNOWN_SITE = "(unknown_site)"
UNKNOWN_DATE = "(unknown_date)"

# ============================================================================
# Queue Limits
# ============================================================================

# Maximum unmatched values per kind for the bounded policy
DEFAULT_QUEUE_CAPACITY = 64

# Starting capacity of a growable queue (doubles on demand)
DEFAULT_INITIAL_CAPACITY = 16

# Upper bound for growable capacity arithmetic (size_t / sizeof(slot))
MAX_GROWABLE_CAPACITY = sys.maxsize // 8

QUEUE_POLICIES = ("bounded", "growable")

# ============================================================================
# Text Capture
# ============================================================================

# 512-byte buffer minus its terminator
DEFAULT_MAX_TEXT = 511

TEXT_POLICIES = ("bounded", "dynamic")

# ============================================================================
# Numeric Ranges
# ============================================================================

# Integer values are held to a signed 64-bit range
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1

# ============================================================================
# I/O
# ============================================================================

DEFAULT_CHUNK_SIZE = 64 * 1024  # bytes fed to the pull parser per read

OUTPUT_BUFFER_SIZE = 8 * 1024 * 1024  # 8 MiB stdout buffer

GZIP_MAGIC = b"\x1f\x8b"

DEFAULT_FETCH_TIMEOUT = 30  # seconds

# Diagnostics kept verbatim per run (all of them are still counted)
MAX_RECORDED_DIAGNOSTICS = 100
