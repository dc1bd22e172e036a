"""
Loan Contract Compiler Package

Compiles the bundled Loan Solidity contract into bytecode and ABI.
Core imports are lazily loaded so that importing the package does not
pull in solcx:

    from loan_compiler.compiler import compile_file, CompiledContract
    from loan_compiler.exceptions import CompilationError
"""

__version__ = "1.0.0"


# Lazy imports to avoid loading solcx at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'compile_file':
        from .compiler import compile_file
        return compile_file
    elif name == 'CompiledContract':
        from .compiler import CompiledContract
        return CompiledContract
    elif name == 'main':
        from .cli import main
        return main
    raise AttributeError(f"module 'loan_compiler' has no attribute {name!r}")

__all__ = ['compile_file', 'CompiledContract', 'main', '__version__']
