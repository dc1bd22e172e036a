"""
Loan Compiler Configuration

Loads loan-compiler.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    CompilerConfig,
    CompilerSectionConfig,
    ContractSectionConfig,
    OutputSectionConfig,
    load_config,
)

__all__ = [
    "CompilerConfig",
    "CompilerSectionConfig",
    "ContractSectionConfig",
    "OutputSectionConfig",
    "load_config",
]
