"""Tests for runner report loading."""

import json

import pytest

from specbridge.core.errors import ReportDecodeError
from specbridge.core.report import RawReport, read_report


class TestRawReport:
    """Tests for RawReport decoding."""

    def test_buckets(self):
        """Test the four buckets are decoded, with pass under its alias."""
        report = RawReport.from_json(
            json.dumps(
                {
                    "results": {
                        "pass": [{"descriptions": ["outer", "works"]}],
                        "fail": [{"descriptions": ["outer", "breaks"], "msg": "expected 1"}],
                        "errs": [{"descriptions": ["outer", "errors"], "msg": "boom"}],
                        "fatal": [],
                    },
                    "locations": {"outer::works": 2},
                }
            )
        )

        assert report.results.passed[0].descriptions == ["outer", "works"]
        assert report.results.passed[0].msg is None
        assert [e.msg for e in report.results.failed] == ["expected 1", "boom"]
        assert report.locations == {"outer::works": 2}

    def test_failed_order(self):
        """Test failures are ordered fail, errs, fatal."""
        report = RawReport.from_json(
            json.dumps(
                {
                    "results": {
                        "fatal": [{"descriptions": ["c"]}],
                        "errs": [{"descriptions": ["b"]}],
                        "fail": [{"descriptions": ["a"]}],
                    }
                }
            )
        )
        assert [e.descriptions for e in report.results.failed] == [["a"], ["b"], ["c"]]

    def test_lua_empty_tables(self):
        """Test empty tables encoded as objects or null are read as empty lists."""
        report = RawReport.from_json(
            '{"results": {"pass": {}, "fail": null, "errs": [], "fatal": {}}, "locations": []}'
        )
        assert report.results.passed == []
        assert report.results.failed == []
        assert report.locations == {}

    def test_missing_results(self):
        report = RawReport.from_json('{"locations": {}}')
        assert report.results is None

    def test_invalid_json(self):
        with pytest.raises(ReportDecodeError):
            RawReport.from_json("{not json")

    def test_invalid_shape(self):
        with pytest.raises(ReportDecodeError):
            RawReport.from_json('{"results": {"pass": [{"descriptions": 5}]}}')


class TestReadReport:
    """Tests for read_report."""

    def test_reads_file(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text('{"results": {"pass": [{"descriptions": ["x"]}]}, "locations": {"x": 1}}')
        report = read_report(path)
        assert len(report.results.passed) == 1

    def test_missing_file(self, tmp_path):
        """Test an unreadable destination gives a report without results."""
        report = read_report(tmp_path / "missing.json")
        assert report.results is None
        assert report.locations == {}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text("")
        assert read_report(path).results is None

    def test_decode_error_propagates(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text("garbage")
        with pytest.raises(ReportDecodeError):
            read_report(path)
