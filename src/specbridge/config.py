"""Configuration management for SpecBridge."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

CONFIG_NAMES = ["specbridge.json", ".specbridge.json"]


class DiscoveryConfig(BaseModel):
    """Which files are specs and which calls declare positions."""

    test_file_suffixes: list[str] = Field(
        default_factory=lambda: ["_spec.lua"], description="File name suffixes of spec files"
    )
    namespace_pattern: str = Field(default="describe", description="Regex matched against namespace callees")
    test_pattern: str = Field(default="it", description="Regex matched against test callees")

    @field_validator("test_file_suffixes")
    @classmethod
    def validate_suffixes(cls, v: list[str]) -> list[str]:
        if not v or not all(s.strip() for s in v):
            raise ValueError("At least one non-empty test file suffix is required")
        return v

    @field_validator("namespace_pattern", "test_pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Callee pattern cannot be empty")
        return v


class RunnerConfig(BaseModel):
    """External runner invocation."""

    script: str = Field(default="run_tests.sh", description="Runner script, relative to the config file")
    working_directory: str = Field(default=".", description="Directory to run the runner in")
    timeout_seconds: int = Field(default=300, description="Runner timeout")
    environment: dict[str, str] = Field(default_factory=dict, description="Additional environment variables")

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Timeout must be at least 1 second")
        return v

    @field_validator("script")
    @classmethod
    def validate_script(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Runner script cannot be empty")
        return v


class SpecBridgeConfig(BaseModel):
    """Main configuration for SpecBridge."""

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    log_level: str = Field(default="WARNING", description="Logging level name")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_file(cls, path: Path | str) -> "SpecBridgeConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def find(cls, start_dir: Path | str | None = None) -> Optional[Path]:
        """Find the nearest configuration file, searching up the directory tree."""
        current = Path(start_dir or Path.cwd()).resolve()
        for directory in [current, *current.parents]:
            for name in CONFIG_NAMES:
                config_path = directory / name
                if config_path.exists():
                    return config_path
        return None

    @classmethod
    def find_and_load(cls, start_dir: Path | str | None = None) -> "SpecBridgeConfig":
        """Find and load configuration file, searching up the directory tree."""
        config_path = cls.find(start_dir)
        if config_path is None:
            raise FileNotFoundError(
                "No configuration file found. Create specbridge.json or run 'specbridge init'"
            )
        return cls.from_file(config_path)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def get_absolute_paths(self, base_dir: Path | str | None = None) -> dict[str, Path]:
        """Get absolute paths for the configured runner directories."""
        base_dir = Path(base_dir or Path.cwd())

        return {
            "working_directory": (base_dir / self.runner.working_directory).resolve(),
        }


def get_default_config() -> SpecBridgeConfig:
    """Return a default configuration."""
    return SpecBridgeConfig(
        discovery=DiscoveryConfig(),
        runner=RunnerConfig(script="run_tests.sh", working_directory="."),
    )


def create_example_config(output_path: Path | str) -> Path:
    """Create an example configuration file."""
    output_path = Path(output_path)
    config = get_default_config()
    config.runner.environment = {"PLENARY_DIR": "~/.local/share/nvim/lazy/plenary.nvim"}
    config.to_file(output_path)
    return output_path
