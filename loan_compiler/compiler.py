"""
Loan Contract Compiler

Reads a Solidity source file, compiles it with solc through py-solc-x and
extracts the deployment bytecode and the ABI of a single contract.

Usage:
    >>> from loan_compiler.compiler import compile_file, format_report
    >>> contract = compile_file()
    >>> for line in format_report(contract):
    ...     print(line)
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import solcx
from solcx.exceptions import SolcError, SolcInstallationError

from .constants import (
    SOLC_VERSION,
    CONTRACT_FILE,
    CONTRACT_NAME,
    CONTRACTS_DIR,
    DEFAULT_OPTIMIZE_RUNS,
    OUTPUT_VALUES,
    ABI_JSON_INDENT,
)
from .exceptions import (
    ArtifactWriteError,
    CompilationError,
    ContractNotFoundError,
    ContractSourceError,
    InterfaceParseError,
)
from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class CompiledContract:
    """Compiler output for one contract."""
    name: str
    bytecode: str
    abi: List[Dict[str, Any]]
    runtime_bytecode: str = ""
    solc_version: str = ""
    optimize: bool = True
    optimize_runs: Optional[int] = None

    @property
    def bytecode_size(self) -> int:
        """Deployment bytecode size in bytes."""
        return len(self.bytecode) // 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractName": self.name,
            "abi": self.abi,
            "bytecode": self.bytecode,
            "runtimeBytecode": self.runtime_bytecode,
            "compiler": {
                "version": self.solc_version,
                "optimize": self.optimize,
                "runs": self.optimize_runs,
            },
        }


def resolve_contract_path(
    filename: Union[str, Path] = CONTRACT_FILE,
    base_dir: Optional[Path] = None,
) -> Path:
    """
    Resolve a contract source path.

    Relative names are resolved against the bundled contracts directory
    unless *base_dir* is given. The result is always fully resolved.
    """
    path = Path(str(filename))
    if not path.is_absolute():
        path = (base_dir or CONTRACTS_DIR) / path
    return path.resolve()


def read_source(path: Union[str, Path]) -> str:
    """Read a Solidity source file as UTF-8 text."""
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ContractSourceError(f"Contract source not found: {path}") from None
    except (OSError, UnicodeDecodeError) as e:
        raise ContractSourceError(f"Cannot read contract source {path}: {e}") from e


def ensure_solc(version: str = SOLC_VERSION, install: bool = True) -> str:
    """
    Make sure the requested solc version is available to py-solc-x.

    Args:
        version: solc version, e.g. "0.8.24".
        install: Download the compiler when it is missing.

    Returns:
        The version string.
    """
    version = str(version).lstrip("v")
    installed = {str(v) for v in solcx.get_installed_solc_versions()}
    if version in installed:
        return version

    if not install:
        raise CompilationError(
            f"solc {version} is not installed and automatic installation is disabled"
        )

    logger.info("Installing solc %s...", version)
    try:
        solcx.install_solc(version)
    except SolcInstallationError as e:
        raise CompilationError(f"Failed to install solc {version}: {e}") from e
    return version


def parse_interface(raw: Union[str, List[Any]]) -> List[Dict[str, Any]]:
    """
    Parse a serialized ABI description.

    solc emits the ABI as a JSON string in combined-json output. Values that
    were already decoded are accepted as they are.
    """
    if isinstance(raw, (str, bytes)):
        try:
            abi = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InterfaceParseError(f"Malformed ABI JSON: {e}") from e
    else:
        abi = raw

    if not isinstance(abi, list):
        raise InterfaceParseError(
            f"ABI must be a JSON array, got {type(abi).__name__}"
        )
    return abi


def _select_contract(compiled: Dict[str, Dict[str, Any]], contract_name: str) -> Dict[str, Any]:
    # Keys look like "<stdin>:Loan"
    for key, output in compiled.items():
        if key.rsplit(":", 1)[-1] == contract_name:
            return output

    found = sorted(key.rsplit(":", 1)[-1] for key in compiled)
    raise ContractNotFoundError(
        f"Contract '{contract_name}' not found in compiler output "
        f"(found: {', '.join(found) or 'none'})"
    )


def compile_contract(
    source: str,
    contract_name: str = CONTRACT_NAME,
    optimize: bool = True,
    optimize_runs: int = DEFAULT_OPTIMIZE_RUNS,
    solc_version: Optional[str] = None,
    install: bool = True,
) -> CompiledContract:
    """
    Compile Solidity source text and extract one contract.

    Args:
        source: Solidity source code.
        contract_name: Contract to extract from the compiler output.
        optimize: Enable the solc optimizer.
        optimize_runs: Optimizer runs, used only when optimizing.
        solc_version: solc version; defaults to `SOLC_VERSION`.
        install: Download solc when the version is missing.

    Returns:
        CompiledContract with bytecode and parsed ABI.
    """
    version = ensure_solc(solc_version or SOLC_VERSION, install=install)

    logger.info(
        "Compiling %s with solc %s (optimize=%s)", contract_name, version, optimize
    )
    try:
        compiled = solcx.compile_source(
            source,
            output_values=OUTPUT_VALUES,
            solc_version=version,
            optimize=optimize,
            optimize_runs=optimize_runs if optimize else None,
        )
    except SolcError as e:
        message = (e.stderr_data or e.message or str(e)).strip()
        raise CompilationError(f"solc {version} failed:\n{message}") from e

    output = _select_contract(compiled, contract_name)

    bytecode = output.get("bin", "")
    if not bytecode:
        raise CompilationError(
            f"Contract '{contract_name}' produced no bytecode (abstract contract or interface?)"
        )

    contract = CompiledContract(
        name=contract_name,
        bytecode=bytecode,
        abi=parse_interface(output.get("abi", "[]")),
        runtime_bytecode=output.get("bin-runtime", ""),
        solc_version=version,
        optimize=optimize,
        optimize_runs=optimize_runs if optimize else None,
    )
    logger.info(
        "Compiled %s: %d bytes, %d ABI entries",
        contract_name, contract.bytecode_size, len(contract.abi),
    )
    return contract


def compile_file(
    path: Optional[Union[str, Path]] = None,
    contract_name: str = CONTRACT_NAME,
    optimize: bool = True,
    optimize_runs: int = DEFAULT_OPTIMIZE_RUNS,
    solc_version: Optional[str] = None,
    install: bool = True,
) -> CompiledContract:
    """Resolve, read and compile a contract source file. Defaults to the bundled loan.sol."""
    source_path = Path(path) if path is not None else resolve_contract_path()
    logger.debug("Reading %s", source_path)
    source = read_source(source_path)
    return compile_contract(
        source,
        contract_name=contract_name,
        optimize=optimize,
        optimize_runs=optimize_runs,
        solc_version=solc_version,
        install=install,
    )


def format_report(contract: CompiledContract) -> List[str]:
    """Render the bytecode and ABI lines printed by the command line tool."""
    return [
        f"Bytecode: {contract.bytecode}",
        f"ABI: {contract.abi}",
    ]


def write_artifacts(contract: CompiledContract, output_dir: Union[str, Path]) -> Tuple[Path, Path]:
    """
    Save `<Name>.bin` and `<Name>.abi` into *output_dir*.

    Returns:
        Paths of the bytecode and ABI files.
    """
    output_dir = Path(output_dir)
    bin_path = output_dir / f"{contract.name}.bin"
    abi_path = output_dir / f"{contract.name}.abi"

    try:
        output_dir.mkdir(parents=True, exist_ok=True)

        with open(bin_path, "w", encoding="utf-8") as f:
            f.write(contract.bytecode)

        with open(abi_path, "w", encoding="utf-8") as f:
            json.dump(contract.abi, f, indent=ABI_JSON_INDENT)
    except OSError as e:
        raise ArtifactWriteError(f"Cannot write artifacts to {output_dir}: {e}") from e

    logger.info("Saved %s and %s", bin_path, abi_path)
    return bin_path, abi_path
