"""
Loan Compiler Exceptions

Custom exception classes for the loan contract compiler.
"""


class LoanCompilerException(Exception):
    """Base exception for the loan compiler."""
    pass


class ContractSourceError(LoanCompilerException):
    """Contract source file is missing or unreadable."""
    pass


class CompilationError(LoanCompilerException):
    """Solidity compiler rejected the source or is unavailable."""
    pass


class ContractNotFoundError(CompilationError):
    """Requested contract is not present in the compiler output."""
    pass


class InterfaceParseError(LoanCompilerException):
    """Compiler returned a malformed ABI description."""
    pass


class ArtifactWriteError(LoanCompilerException):
    """Compiled artifacts could not be written to disk."""
    pass


class ConfigurationError(LoanCompilerException):
    """Configuration error."""
    pass
