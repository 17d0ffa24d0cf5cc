"""Shared pytest fixtures: parsed SPECTRO reports used across test modules."""

from pathlib import Path

import pytest

from spectro_sum.source.core.parse_spectro import parse_spectro_output

TEST_FILES = Path(__file__).parent / "test_files" / "spectro_outs"

FIXTURE_HCCH = str(TEST_FILES / "hcch.out")
FIXTURE_H2O = str(TEST_FILES / "h2o.out")


@pytest.fixture(scope="session")
def hcch_summary():
    return parse_spectro_output(FIXTURE_HCCH)


@pytest.fixture(scope="session")
def h2o_summary():
    return parse_spectro_output(FIXTURE_H2O)
