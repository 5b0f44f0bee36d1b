"""Reconciliation of runner reports onto discovered positions.

The runner reports every check under a name path built at runtime, and
records, for each flat alias it used, the source line it came from. A single
declaration may be reported under several aliases (for example a ``describe``
inside a loop), so results are first keyed by alias, then each alias is
attached to the position whose declaration starts at or before its line, and
finally every combination of enclosing namespace aliases is tried to find the
keys a test was actually reported under.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from itertools import product
from typing import Iterable, Optional

from specbridge.core.errors import StructuralDesyncError
from specbridge.core.positions import ID_SEPARATOR, PositionType, Tree
from specbridge.core.report import RawReport, RawResultEntry

logger = logging.getLogger(__name__)


class ResultStatus(str, Enum):
    """Reconciled outcome of a position."""

    PASSED = "passed"
    FAILED = "failed"


@dataclass
class ReconciledResult:
    """Authoritative result for one position."""

    status: ResultStatus
    short: Optional[str] = None
    errors: Optional[list[str]] = None

    @property
    def failed(self) -> bool:
        return self.status == ResultStatus.FAILED

    def to_dict(self) -> dict:
        """Convert to the published result shape."""
        data: dict = {"status": self.status.value}
        if self.short is not None:
            data["short"] = self.short
        if self.errors is not None:
            data["errors"] = [{"message": message} for message in self.errors]
        return data


def join_results(
    base: Optional[ReconciledResult], update: Optional[ReconciledResult]
) -> Optional[ReconciledResult]:
    """Merge two results for the same position; any failure wins."""
    if base is None:
        return update
    if update is None:
        return base

    failed = base.failed or update.failed
    errors = None
    if base.errors or update.errors:
        errors = [*(base.errors or []), *(update.errors or [])]

    return ReconciledResult(
        status=ResultStatus.FAILED if failed else ResultStatus.PASSED,
        short=base.short if base.short is not None else update.short,
        errors=errors,
    )


def alias_key(file_id: str, parts: Iterable[str]) -> str:
    return ID_SEPARATOR.join([file_id, *parts])


def _convert(entry: RawResultEntry, status: ResultStatus) -> ReconciledResult:
    return ReconciledResult(
        status=status,
        short=entry.msg,
        errors=[entry.msg] if entry.msg else None,
    )


def _flatten(report: RawReport, file_id: str) -> dict[str, ReconciledResult]:
    results: dict[str, ReconciledResult] = {}

    for entry in report.results.passed:
        key = alias_key(file_id, entry.descriptions)
        results[key] = join_results(results.get(key), _convert(entry, ResultStatus.PASSED))

    file_result = ReconciledResult(status=ResultStatus.PASSED, errors=[])
    for entry in report.results.failed:
        key = alias_key(file_id, entry.descriptions)
        results[key] = join_results(results.get(key), _convert(entry, ResultStatus.FAILED))
        file_result.status = ResultStatus.FAILED
        if entry.msg:
            file_result.errors.append(entry.msg)

    results[file_id] = file_result
    return results


def _aliases_by_position(report: RawReport, tree: Tree) -> dict[str, list[str]]:
    aliases: dict[str, list[str]] = {}
    for alias, line in report.locations.items():
        pos = tree.nearest_by_line(line)
        if pos is None:
            raise StructuralDesyncError(alias, line)
        aliases.setdefault(pos.id, []).append(alias)
    return aliases


def reconcile(report: RawReport, tree: Tree, file_id: str) -> dict[str, ReconciledResult]:
    """Map a runner report onto the positions of a file tree.

    Args:
        report: Decoded runner report
        tree: Position tree of the file that was run
        file_id: Identity of that file, used as the prefix of every alias key

    Returns:
        Results keyed by position id, plus the whole-file result under
        ``file_id``. Alias keys no position claimed are kept as they are.

    Raises:
        StructuralDesyncError: If a reported line precedes every position
    """
    if report.results is None:
        return {}

    results = _flatten(report, file_id)
    aliases = _aliases_by_position(report, tree)

    for pos in tree.iter_nodes():
        if pos.type != PositionType.TEST or pos.id in results:
            continue
        own_aliases = aliases.get(pos.id)
        if not own_aliases:
            continue

        namespace_aliases: list[list[Optional[str]]] = []
        for parent in tree.iter_parents(pos.id):
            if parent.type != PositionType.NAMESPACE:
                break
            namespace_aliases.insert(0, aliases.get(parent.id) or [None])

        merged = None
        for combination in product(*namespace_aliases):
            prefix = [alias for alias in combination if alias is not None]
            for alias in own_aliases:
                found = results.pop(alias_key(file_id, [*prefix, alias]), None)
                merged = join_results(merged, found)

        if merged is not None:
            results[pos.id] = merged

    unclaimed = [key for key in results if key != file_id and key not in tree]
    if unclaimed:
        logger.debug("%d reported keys matched no position: %s", len(unclaimed), unclaimed)

    return results
