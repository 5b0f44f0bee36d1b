"""Invocation descriptors for the external spec runner."""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from specbridge.core.errors import RunnerScriptNotFound
from specbridge.core.filters import Filter, derive_filters
from specbridge.core.positions import Tree


@dataclass
class InvocationDescriptor:
    """Everything needed to launch one runner process."""

    command: list[str]
    results_path: str
    file: str
    filters: list[Filter] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary format."""
        return {
            "command": self.command,
            "results_path": self.results_path,
            "file": self.file,
            "filters": [list(f) for f in self.filters],
        }


def serialize_filters(filters: list[Filter]) -> str:
    """Render filters as the Lua table literal the runner script reads."""
    if not filters:
        return "{}"
    inner = ", ".join(f"{{ {start}, {end} }}" for start, end in filters)
    return f"{{ {inner} }}"


def new_results_path() -> str:
    """Allocate a fresh results file for a single run."""
    fd, path = tempfile.mkstemp(prefix="specbridge-", suffix=".json")
    os.close(fd)
    return path


def find_runner_script(script: str, base_dir: Path | str | None = None) -> Path:
    """Resolve the runner script, relative to ``base_dir`` when not absolute."""
    path = Path(script)
    if not path.is_absolute():
        path = Path(base_dir or Path.cwd()) / path
    path = path.resolve()
    if not path.is_file():
        raise RunnerScriptNotFound(f"Runner script not found: {path}")
    return path


def build_descriptor(
    tree: Optional[Tree],
    position_id: Optional[str],
    results_path: str,
    script: Path | str,
) -> Optional[InvocationDescriptor]:
    """Build the invocation for running the selected position.

    Args:
        tree: Discovered position tree
        position_id: Selected position, defaults to the tree root
        results_path: Where the runner should write its JSON report
        script: Runner script to invoke

    Returns:
        The descriptor, or None when there is no tree or the selection is
        a directory
    """
    if tree is None:
        return None

    pos = tree.get(position_id) if position_id else tree.root
    filters = derive_filters(tree, pos.id)
    if filters is None:
        return None

    return InvocationDescriptor(
        command=[str(script), results_path, pos.path, serialize_filters(filters)],
        results_path=results_path,
        file=pos.path,
        filters=filters,
    )
