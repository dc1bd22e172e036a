"""
Loan Compiler TOML Configuration Loader

Loads loan-compiler.toml with environment variable overrides.

Environment variable mapping:
    [compiler] solc_version  → LOAN_SOLC_VERSION
    [compiler] optimize      → LOAN_OPTIMIZE
    [compiler] optimize_runs → LOAN_OPTIMIZE_RUNS
    [contract] source        → LOAN_CONTRACT_SOURCE
    [contract] name          → LOAN_CONTRACT_NAME
    [output]   directory     → LOAN_OUTPUT_DIR
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    SOLC_VERSION,
    CONTRACT_NAME,
    DEFAULT_OPTIMIZE_RUNS,
    DEFAULT_CONFIG_FILE,
    parse_bool,
)
from ..exceptions import ConfigurationError
from ..logger import get_logger

logger = get_logger(__name__)


def _env_bool(name: str, value: str) -> bool:
    parsed = parse_bool(value)
    if not isinstance(parsed, bool):
        raise ConfigurationError(f"{name} must be true or false, got {value!r}")
    return parsed


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _require_type(key: str, value: Any, expected: type) -> None:
    # bool is a subclass of int, so `optimize_runs = true` must not pass as 1
    if not isinstance(value, expected) or (expected is not bool and isinstance(value, bool)):
        raise ConfigurationError(
            f"{key} must be of type {expected.__name__}, got {type(value).__name__} {value!r}"
        )


@dataclass
class CompilerSectionConfig:
    """[compiler] section."""
    solc_version: str = str(SOLC_VERSION)
    optimize: bool = True
    optimize_runs: int = DEFAULT_OPTIMIZE_RUNS
    install_solc: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompilerSectionConfig":
        return cls(
            solc_version=data.get("solc_version", str(SOLC_VERSION)),
            optimize=data.get("optimize", True),
            optimize_runs=data.get("optimize_runs", DEFAULT_OPTIMIZE_RUNS),
            install_solc=data.get("install_solc", True),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("LOAN_SOLC_VERSION"):
            self.solc_version = v
        if v := os.environ.get("LOAN_OPTIMIZE"):
            self.optimize = _env_bool("LOAN_OPTIMIZE", v)
        if v := os.environ.get("LOAN_OPTIMIZE_RUNS"):
            self.optimize_runs = _env_int("LOAN_OPTIMIZE_RUNS", v)

    def validate(self) -> None:
        _require_type("compiler.solc_version", self.solc_version, str)
        _require_type("compiler.optimize", self.optimize, bool)
        _require_type("compiler.optimize_runs", self.optimize_runs, int)
        _require_type("compiler.install_solc", self.install_solc, bool)
        if self.optimize_runs < 1:
            raise ConfigurationError(
                f"compiler.optimize_runs must be a positive integer, got {self.optimize_runs!r}"
            )


@dataclass
class ContractSectionConfig:
    """[contract] section. An empty source selects the bundled loan.sol."""
    source: str = ""
    name: str = str(CONTRACT_NAME)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractSectionConfig":
        return cls(
            source=data.get("source", ""),
            name=data.get("name", str(CONTRACT_NAME)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LOAN_CONTRACT_SOURCE"):
            self.source = v
        if v := os.environ.get("LOAN_CONTRACT_NAME"):
            self.name = v

    def validate(self) -> None:
        _require_type("contract.source", self.source, str)
        _require_type("contract.name", self.name, str)


@dataclass
class OutputSectionConfig:
    """[output] section."""
    directory: str = ""
    json: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputSectionConfig":
        return cls(
            directory=data.get("directory", ""),
            json=data.get("json", False),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("LOAN_OUTPUT_DIR"):
            self.directory = v

    def validate(self) -> None:
        _require_type("output.directory", self.directory, str)
        _require_type("output.json", self.json, bool)


@dataclass
class CompilerConfig:
    """
    Unified compiler configuration.

    Loads every section of loan-compiler.toml and applies environment
    variable overrides.
    """
    compiler: CompilerSectionConfig = field(default_factory=CompilerSectionConfig)
    contract: ContractSectionConfig = field(default_factory=ContractSectionConfig)
    output: OutputSectionConfig = field(default_factory=OutputSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompilerConfig":
        """Create CompilerConfig from a parsed TOML dict."""
        return cls(
            compiler=CompilerSectionConfig.from_dict(data.get("compiler", {})),
            contract=ContractSectionConfig.from_dict(data.get("contract", {})),
            output=OutputSectionConfig.from_dict(data.get("output", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "CompilerConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to loan-compiler.toml

        Returns:
            CompilerConfig instance
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            cfg.validate()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        cfg.validate()
        logger.debug("Loaded configuration from %s", config_path)
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.compiler.apply_env()
        self.contract.apply_env()
        self.output.apply_env()

    def validate(self) -> None:
        """Reject values of the wrong type, e.g. `optimize = "false"`."""
        self.compiler.validate()
        self.contract.validate()
        self.output.validate()


def load_config(path: Optional[str] = None) -> CompilerConfig:
    """
    Load compiler configuration.

    Resolution order:
        1. Explicit *path* argument
        2. LOAN_COMPILER_CONFIG env var
        3. ./loan-compiler.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("LOAN_COMPILER_CONFIG", DEFAULT_CONFIG_FILE)

    return CompilerConfig.from_file(path)
