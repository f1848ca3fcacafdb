"""Tests for extraction config loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from citeparse.core.config import (
    DEFAULT_LIMITS,
    ExtractionConfig,
    ExtractionLimits,
    load_extraction_config,
)

DEFAULT_CONFIG_PATH = (
    Path(__file__).resolve().parent.parent / "extraction_configs" / "default.yaml"
)


@pytest.fixture()
def write_config(tmp_path):
    """Write YAML text to a file in a temp directory and return its path."""
    def _write(text, name="config.yaml"):
        path = tmp_path / name
        path.write_text(text)
        return path
    return _write


# ── Loading ──────────────────────────────────────────────────────────


def test_default_config_file_matches_defaults():
    config = load_extraction_config(DEFAULT_CONFIG_PATH)
    assert config == ExtractionConfig()


def test_partial_config_keeps_other_defaults(write_config):
    path = write_config("limits:\n  sample_count: 10\nstrict_citation_ids: false\n")
    config = load_extraction_config(path)
    assert config.limits.sample_count == 10
    assert config.limits.max_full_expansion == 1000
    assert config.strict_citation_ids is False


def test_empty_config_file(write_config):
    assert load_extraction_config(write_config("", "empty.yaml")) == ExtractionConfig()


# ── Validation ───────────────────────────────────────────────────────


def test_sample_count_below_two_rejected(write_config):
    path = write_config("limits:\n  sample_count: 1\n", "bad.yaml")
    with pytest.raises(ValidationError):
        load_extraction_config(path)


def test_non_positive_limit_rejected():
    with pytest.raises(ValidationError):
        ExtractionLimits(max_input_length=0)


def test_default_limits():
    assert DEFAULT_LIMITS.max_input_length == 100_000
    assert DEFAULT_LIMITS.max_full_expansion == 1000
    assert DEFAULT_LIMITS.sample_count == 50
    assert DEFAULT_LIMITS.max_depth == 50
    assert DEFAULT_LIMITS.attachment_id_length == 20
