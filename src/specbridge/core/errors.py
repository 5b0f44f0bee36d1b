"""Exceptions raised by the specbridge core."""


class SpecBridgeError(Exception):
    """Base class for specbridge errors."""


class SelectionError(SpecBridgeError):
    """Raised when a selected position cannot be run on its own."""


class RunnerScriptNotFound(SpecBridgeError):
    """Raised when the runner script cannot be located."""


class ReportDecodeError(SpecBridgeError):
    """Raised when a results file is not a valid runner report."""


class ReconciliationError(SpecBridgeError):
    """Raised when a report cannot be mapped onto the position tree."""


class StructuralDesyncError(ReconciliationError):
    """Raised when the report references a line no position covers."""

    def __init__(self, alias: str, line: int):
        self.alias = alias
        self.line = line
        super().__init__(f"Node not found for line {line} (alias {alias!r})")
