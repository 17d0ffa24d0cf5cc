"""Tests for spectro_sum.source.core.batch."""

from pathlib import Path

import pytest

from spectro_sum.source.core.batch import summarize_many
from spectro_sum.source.core.parse_spectro import SpectroParseError

TEST_FILES = Path(__file__).parent / "test_files" / "spectro_outs"

FIXTURE_HCCH = str(TEST_FILES / "hcch.out")
FIXTURE_H2O = str(TEST_FILES / "h2o.out")


class TestSummarizeMany:

    def test_input_order(self, hcch_summary, h2o_summary):
        results = summarize_many([FIXTURE_H2O, FIXTURE_HCCH, FIXTURE_H2O], max_workers=2)
        assert results == [h2o_summary, hcch_summary, h2o_summary]

    def test_kwargs_forwarded(self):
        (ret,) = summarize_many([FIXTURE_H2O], symmetry=False)
        assert ret.mode_symmetry_labels == []

    def test_empty(self):
        assert summarize_many([]) == []

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            summarize_many([FIXTURE_H2O, str(tmp_path / "missing.out")])

    def test_structural_error_raises(self, tmp_path):
        bad = tmp_path / "bad.out"
        bad.write_text(
            "   CURVILINEAR INTERNAL COORDINATES\n"
            "   NO.  TYPE  ATOMS\n"
            "     1  WAG  H(  1)  C(  2)\n"
        )
        with pytest.raises(SpectroParseError):
            summarize_many([str(bad)])
