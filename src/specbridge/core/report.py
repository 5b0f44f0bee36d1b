"""Runner report models and loading."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from specbridge.core.errors import ReportDecodeError

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> Any:
    # Lua JSON encoders write an empty table as {} and may drop it as null
    if value is None:
        return []
    if isinstance(value, dict):
        return list(value.values())
    return value


class RawResultEntry(BaseModel):
    """One outcome reported by the runner."""

    descriptions: list[str] = Field(default_factory=list, description="Reported name path, outermost first")
    msg: Optional[str] = Field(default=None, description="Failure message")

    @field_validator("descriptions", mode="before")
    @classmethod
    def validate_descriptions(cls, v: Any) -> Any:
        return _as_list(v)


class RawResults(BaseModel):
    """The four outcome buckets of a runner report."""

    model_config = ConfigDict(populate_by_name=True)

    passed: list[RawResultEntry] = Field(default_factory=list, alias="pass")
    fail: list[RawResultEntry] = Field(default_factory=list)
    errs: list[RawResultEntry] = Field(default_factory=list)
    fatal: list[RawResultEntry] = Field(default_factory=list)

    @field_validator("passed", "fail", "errs", "fatal", mode="before")
    @classmethod
    def validate_bucket(cls, v: Any) -> Any:
        return _as_list(v)

    @property
    def failed(self) -> list[RawResultEntry]:
        """All failing entries, in fail, errs, fatal order."""
        return [*self.fail, *self.errs, *self.fatal]


class RawReport(BaseModel):
    """Full JSON output of one runner invocation."""

    results: Optional[RawResults] = None
    locations: dict[str, int] = Field(default_factory=dict, description="Alias to source line")

    @field_validator("locations", mode="before")
    @classmethod
    def validate_locations(cls, v: Any) -> Any:
        if v is None or v == []:
            return {}
        return v

    @classmethod
    def from_json(cls, data: str) -> "RawReport":
        """Decode a report, raising ReportDecodeError on malformed input."""
        try:
            return cls.model_validate(json.loads(data))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ReportDecodeError(f"Invalid runner report: {e}") from e


def read_report(path: Path | str) -> RawReport:
    """Read the report a runner wrote to ``path``.

    A missing, unreadable or empty file means the runner produced nothing,
    which yields a report without results rather than an error.
    """
    try:
        data = Path(path).read_text()
    except OSError as e:
        logger.warning("Could not read results file %s: %s", path, e)
        return RawReport()

    if not data.strip():
        logger.warning("Results file %s is empty", path)
        return RawReport()

    return RawReport.from_json(data)
