"""
Tests for request normalization helpers and environment-driven defaults
"""

import pytest
from fastapi import HTTPException
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from api.helpers import normalize_choice, normalize_optional_str, normalize_positive_int
from config import build_cors_origins, default_extraction_config


def test_normalize_optional_str():
    assert normalize_optional_str("  /data/feed.xml ") == "/data/feed.xml"
    assert normalize_optional_str("   ") is None
    assert normalize_optional_str(None) is None


def test_normalize_choice():
    assert normalize_choice(None, ["bounded", "growable"], "bounded", "queue_policy") == "bounded"
    assert normalize_choice(" growable ", ["bounded", "growable"], "bounded", "queue_policy") == "growable"
    with pytest.raises(HTTPException) as exc_info:
        normalize_choice("ring", ["bounded", "growable"], "bounded", "queue_policy")
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("value, expected", [(None, None), ("", None), ("8", 8), (8, 8)])
def test_normalize_positive_int(value, expected):
    assert normalize_positive_int(value, "queue_capacity") == expected


@pytest.mark.parametrize("value", ["abc", "0", -1])
def test_normalize_positive_int_rejects(value):
    with pytest.raises(HTTPException) as exc_info:
        normalize_positive_int(value, "queue_capacity")
    assert exc_info.value.status_code == 400


def test_default_extraction_config_ignores_none_overrides():
    config = default_extraction_config(queue_policy=None, queue_capacity=8)

    assert config.queue_capacity == 8
    assert config.queue_policy in ("bounded", "growable")


def test_default_extraction_config_validates():
    with pytest.raises(ValueError):
        default_extraction_config(text_policy="unbounded")


def test_cors_origins_is_list():
    assert isinstance(build_cors_origins(), list)


def test_default_extraction_config_initial_capacity_override():
    config = default_extraction_config(queue_policy="growable", initial_capacity=4)

    assert config.queue_policy == "growable"
    assert config.initial_capacity == 4
