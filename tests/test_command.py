"""Tests for runner invocation descriptors."""

import os
from pathlib import Path

import pytest

from specbridge.core.command import (
    build_descriptor,
    find_runner_script,
    new_results_path,
    serialize_filters,
)
from specbridge.core.errors import RunnerScriptNotFound
from specbridge.core.positions import Position, PositionNode, PositionType, Tree

ROOT = "/project"
FILE = "/project/spec.lua"


@pytest.fixture
def tree():
    test = PositionNode(
        Position(id=f"{FILE}::ns::t", type=PositionType.TEST, name="t", path=FILE, range=(3, 2, 5, 6))
    )
    namespace = PositionNode(
        Position(id=f"{FILE}::ns", type=PositionType.NAMESPACE, name="ns", path=FILE, range=(1, 0, 9, 4)),
        [test],
    )
    file_node = PositionNode(
        Position(id=FILE, type=PositionType.FILE, name="spec.lua", path=FILE, range=(1, 0, 10, 0)),
        [namespace],
    )
    directory = Position(id=ROOT, type=PositionType.DIR, name="project", path=ROOT)
    return Tree.from_node(PositionNode(directory, [file_node]))


class TestSerializeFilters:
    """Tests for serialize_filters."""

    def test_lua_table_literal(self):
        assert serialize_filters([(1, 9), (3, 5)]) == "{ { 1, 9 }, { 3, 5 } }"

    def test_empty(self):
        assert serialize_filters([]) == "{}"


class TestBuildDescriptor:
    """Tests for build_descriptor."""

    def test_test_selection(self, tree):
        """Test the command carries script, results path, file and filters."""
        descriptor = build_descriptor(tree, f"{FILE}::ns::t", "/tmp/results.json", "/opt/run_tests.sh")

        assert descriptor.command == [
            "/opt/run_tests.sh",
            "/tmp/results.json",
            FILE,
            "{ { 1, 9 }, { 3, 5 } }",
        ]
        assert descriptor.results_path == "/tmp/results.json"
        assert descriptor.file == FILE
        assert descriptor.filters == [(1, 9), (3, 5)]

    def test_file_selection(self, tree):
        descriptor = build_descriptor(tree, FILE, "/tmp/r.json", "run.sh")
        assert descriptor.command[-1] == "{}"
        assert descriptor.file == FILE

    def test_directory_selection(self, tree):
        """Test directories never yield a descriptor."""
        assert build_descriptor(tree, ROOT, "/tmp/r.json", "run.sh") is None
        assert build_descriptor(tree, None, "/tmp/r.json", "run.sh") is None

    def test_no_tree(self):
        assert build_descriptor(None, None, "/tmp/r.json", "run.sh") is None

    def test_to_dict(self, tree):
        data = build_descriptor(tree, f"{FILE}::ns", "/tmp/r.json", "run.sh").to_dict()
        assert data["filters"] == [[1, 9]]
        assert data["file"] == FILE


class TestResultsPath:
    """Tests for new_results_path."""

    def test_paths_are_unique(self):
        first = new_results_path()
        second = new_results_path()
        try:
            assert first != second
            assert os.path.exists(first)
        finally:
            os.remove(first)
            os.remove(second)


class TestFindRunnerScript:
    """Tests for find_runner_script."""

    def test_relative_to_base_dir(self, tmp_path):
        script = tmp_path / "run_tests.sh"
        script.write_text("#!/bin/sh\n")
        assert find_runner_script("run_tests.sh", tmp_path) == script.resolve()

    def test_absolute(self, tmp_path):
        script = tmp_path / "run.sh"
        script.write_text("")
        assert find_runner_script(str(script), Path("/elsewhere")) == script.resolve()

    def test_missing(self, tmp_path):
        with pytest.raises(RunnerScriptNotFound):
            find_runner_script("run_tests.sh", tmp_path)
