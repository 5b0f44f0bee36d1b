"""Run orchestration: discover, run and reconcile one selection."""

import logging
import os
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Optional

from specbridge.config import SpecBridgeConfig
from specbridge.core.command import (
    InvocationDescriptor,
    build_descriptor,
    find_runner_script,
    new_results_path,
)
from specbridge.core.discovery import (
    DeclarationQuery,
    StructuralQueryEngine,
    TreeBuilder,
    is_test_file,
)
from specbridge.core.errors import SelectionError
from specbridge.core.executor import RawRunOutput, TestExecutor
from specbridge.core.filters import Filter, derive_filters
from specbridge.core.positions import PositionType, Tree
from specbridge.core.reconciler import ReconciledResult, reconcile
from specbridge.core.report import read_report

logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """Reconciled results of one runner invocation."""

    descriptor: InvocationDescriptor
    output: RawRunOutput
    results: dict[str, ReconciledResult] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return any(r.failed for r in self.results.values())

    def to_dict(self) -> dict:
        """Convert to dictionary format."""
        return {
            "descriptor": self.descriptor.to_dict(),
            "output": self.output.to_dict(),
            "results": {key: r.to_dict() for key, r in self.results.items()},
        }


class SpecBridge:
    """Entry point tying discovery, the runner and reconciliation together."""

    def __init__(
        self,
        config: SpecBridgeConfig,
        base_dir: Path,
        engine: Optional[StructuralQueryEngine] = None,
        executor: Optional[TestExecutor] = None,
    ):
        """Initialize from an explicit configuration.

        Args:
            config: Loaded configuration
            base_dir: Directory relative runner paths are resolved from
            engine: Structural query engine, defaults to the Lua tree-sitter engine
            executor: Runner executor, defaults to one built from the config
        """
        self.config = config
        self.base_dir = base_dir

        if engine is None:
            from specbridge.core.treesitter import LuaQueryEngine

            engine = LuaQueryEngine()

        paths = config.get_absolute_paths(base_dir)
        self.executor = executor or TestExecutor(
            working_directory=paths["working_directory"],
            timeout_seconds=config.runner.timeout_seconds,
            environment=config.runner.environment,
        )
        self.builder = TreeBuilder(
            engine,
            DeclarationQuery(
                namespace_pattern=config.discovery.namespace_pattern,
                test_pattern=config.discovery.test_pattern,
            ),
            partial(is_test_file, suffixes=config.discovery.test_file_suffixes),
        )

    def discover(self, path: Path | str) -> Optional[Tree]:
        """Discover the position tree of a file or directory."""
        return self.builder.build(path)

    def filters(self, tree: Tree, position_id: str) -> Optional[list[Filter]]:
        return derive_filters(tree, position_id)

    def build_descriptor(
        self,
        tree: Optional[Tree],
        position_id: Optional[str] = None,
        results_path: Optional[str] = None,
    ) -> Optional[InvocationDescriptor]:
        """Build the runner invocation for a selection, or None if it cannot run."""
        script = find_runner_script(self.config.runner.script, self.base_dir)
        return build_descriptor(
            tree, position_id, results_path or new_results_path(), script
        )

    def run(self, path: Path | str, position_id: Optional[str] = None) -> RunOutcome:
        """Run a file or a position within it and reconcile the results.

        Raises:
            SelectionError: If nothing was discovered, the position is unknown or
                a directory was selected
        """
        tree = self.discover(path)
        if tree is None:
            raise SelectionError(f"No test positions found in {path}")
        if position_id is not None and position_id not in tree:
            raise SelectionError(f"Unknown position: {position_id}")

        results_path = new_results_path()
        try:
            descriptor = self.build_descriptor(tree, position_id, results_path)
            if descriptor is None:
                raise SelectionError(
                    f"{position_id or tree.root.id} is a directory and cannot be run as one invocation"
                )

            output = self.executor.execute(descriptor)
            logger.info(
                "Runner exited with %d after %dms", output.exit_code, output.duration_ms
            )

            report = read_report(results_path)
            results = reconcile(report, tree.subtree(descriptor.file), descriptor.file)
        finally:
            if os.path.exists(results_path):
                os.remove(results_path)

        return RunOutcome(descriptor=descriptor, output=output, results=results)

    def reconcile_report(
        self, report_path: Path | str, file_path: Path | str
    ) -> dict[str, ReconciledResult]:
        """Reconcile an existing report file against a spec file."""
        tree = self.discover(file_path)
        if tree is None:
            raise SelectionError(f"No test positions found in {file_path}")
        if tree.root.type != PositionType.FILE:
            raise SelectionError(f"{file_path} is not a spec file")
        report = read_report(report_path)
        return reconcile(report, tree, tree.root.id)
