"""Runner process executor.

This module launches the external spec runner described by an
InvocationDescriptor and captures its output. The runner's exit status is
recorded but results always come from the report file it writes.
"""

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from specbridge.core.command import InvocationDescriptor

logger = logging.getLogger(__name__)


@dataclass
class RawRunOutput:
    """Raw output from one runner invocation."""

    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int
    command: list[str]

    def to_dict(self) -> dict:
        """Convert to dictionary format."""
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "duration_ms": self.duration_ms,
            "command": self.command,
        }


class TestExecutor:
    """Executes runner invocations and captures output."""

    __test__ = False

    def __init__(
        self,
        working_directory: Path,
        timeout_seconds: int = 300,
        environment: Optional[dict[str, str]] = None,
    ):
        """Initialize the executor.

        Args:
            working_directory: Directory to run the runner in
            timeout_seconds: Maximum time to allow for one invocation
            environment: Additional environment variables to set
        """
        self.working_directory = working_directory
        self.timeout_seconds = timeout_seconds
        self.environment = environment or {}

    def execute(self, descriptor: InvocationDescriptor) -> RawRunOutput:
        """Run the invocation and capture its output.

        Failures to launch or a timeout are reported through the returned
        output with exit code -1 instead of being raised.
        """
        env = {**os.environ, **self.environment}
        command = descriptor.command

        logger.debug("Running %s", command)
        start_time = time.time()

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                cwd=self.working_directory,
                timeout=self.timeout_seconds,
                env=env,
            )
            duration_ms = int((time.time() - start_time) * 1000)

            return RawRunOutput(
                stdout=result.stdout,
                stderr=result.stderr,
                exit_code=result.returncode,
                duration_ms=duration_ms,
                command=command,
            )

        except subprocess.TimeoutExpired:
            logger.warning("Runner timed out after %s seconds", self.timeout_seconds)
            return RawRunOutput(
                stdout="",
                stderr=f"Runner timed out after {self.timeout_seconds} seconds",
                exit_code=-1,
                duration_ms=self.timeout_seconds * 1000,
                command=command,
            )

        except OSError as e:
            logger.warning("Could not start runner: %s", e)
            return RawRunOutput(
                stdout="",
                stderr=f"Error executing runner: {e}",
                exit_code=-1,
                duration_ms=int((time.time() - start_time) * 1000),
                command=command,
            )
