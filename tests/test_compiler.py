"""
Tests for the loan contract compiler pipeline.

The solc boundary is mocked for everything except the end-to-end smoke
test, which compiles the bundled loan.sol with a real solc binary.
"""

import json
from unittest.mock import patch

import pytest
from solcx.exceptions import SolcError

from loan_compiler.compiler import (
    CompiledContract,
    compile_contract,
    compile_file,
    ensure_solc,
    format_report,
    parse_interface,
    read_source,
    resolve_contract_path,
    write_artifacts,
)
from loan_compiler.constants import CONTRACTS_DIR, SOLC_VERSION
from loan_compiler.exceptions import (
    ArtifactWriteError,
    CompilationError,
    ContractNotFoundError,
    ContractSourceError,
    InterfaceParseError,
)


LOAN_ABI = [
    {"inputs": [], "name": "fund", "outputs": [], "stateMutability": "payable", "type": "function"},
    {"inputs": [], "name": "repay", "outputs": [], "stateMutability": "payable", "type": "function"},
]

LOAN_BIN = "608060405234801561001057600080fd5b50"


# ============================================================================
# Fixtures & Helpers
# ============================================================================

@pytest.fixture
def fake_solcx():
    """solcx module stand-in with solc already installed."""
    with patch("loan_compiler.compiler.solcx") as mock_solcx:
        mock_solcx.get_installed_solc_versions.return_value = [str(SOLC_VERSION)]
        mock_solcx.compile_source.return_value = {
            "<stdin>:Loan": {
                "abi": json.dumps(LOAN_ABI),
                "bin": LOAN_BIN,
                "bin-runtime": "6080604052",
            },
            "<stdin>:Helper": {"abi": [], "bin": "6000", "bin-runtime": "6000"},
        }
        yield mock_solcx


@pytest.fixture
def loan_contract():
    return CompiledContract(name="Loan", bytecode=LOAN_BIN, abi=LOAN_ABI, solc_version="0.8.24")


# ============================================================================
# Source resolution
# ============================================================================

class TestSourceResolution:

    def test_default_path_is_bundled_loan_sol(self):
        path = resolve_contract_path()
        assert path == (CONTRACTS_DIR / "loan.sol").resolve()
        assert path.is_file()

    def test_bundled_source_defines_loan(self):
        source = read_source(resolve_contract_path())
        assert "contract Loan" in source

    def test_absolute_path_is_resolved(self, tmp_path):
        target = tmp_path / "Other.sol"
        assert resolve_contract_path(target) == target.resolve()

    def test_absolute_and_relative_paths_agree(self, tmp_path):
        nested = tmp_path / "contracts" / ".." / "Other.sol"
        assert nested.is_absolute()
        assert resolve_contract_path(nested) == resolve_contract_path("Other.sol", base_dir=tmp_path)

    def test_relative_path_uses_base_dir(self, tmp_path):
        assert resolve_contract_path("Other.sol", base_dir=tmp_path) == (tmp_path / "Other.sol").resolve()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ContractSourceError, match="not found"):
            read_source(tmp_path / "missing.sol")


# ============================================================================
# ABI parsing
# ============================================================================

class TestParseInterface:

    def test_parses_json_string(self):
        assert parse_interface(json.dumps(LOAN_ABI)) == LOAN_ABI

    def test_accepts_decoded_list(self):
        assert parse_interface(LOAN_ABI) is LOAN_ABI

    def test_empty_abi(self):
        assert parse_interface("[]") == []

    def test_malformed_json(self):
        with pytest.raises(InterfaceParseError, match="Malformed"):
            parse_interface('[{"type": "function"')

    def test_non_array_rejected(self):
        with pytest.raises(InterfaceParseError, match="JSON array"):
            parse_interface('{"type": "function"}')


# ============================================================================
# solc management
# ============================================================================

class TestEnsureSolc:

    def test_installed_version_is_not_downloaded(self, fake_solcx):
        assert ensure_solc("0.8.24") == "0.8.24"
        fake_solcx.install_solc.assert_not_called()

    def test_leading_v_is_stripped(self, fake_solcx):
        assert ensure_solc("v0.8.24") == "0.8.24"

    def test_missing_version_is_installed(self, fake_solcx):
        assert ensure_solc("0.8.20") == "0.8.20"
        fake_solcx.install_solc.assert_called_once_with("0.8.20")

    def test_missing_version_without_install(self, fake_solcx):
        with pytest.raises(CompilationError, match="not installed"):
            ensure_solc("0.8.20", install=False)
        fake_solcx.install_solc.assert_not_called()


# ============================================================================
# Compilation
# ============================================================================

class TestCompileContract:

    def test_extracts_bytecode_and_abi(self, fake_solcx):
        contract = compile_contract("contract Loan {}")

        assert contract.name == "Loan"
        assert contract.bytecode == LOAN_BIN
        assert contract.runtime_bytecode == "6080604052"
        assert contract.abi == LOAN_ABI
        assert contract.bytecode_size == len(LOAN_BIN) // 2
        assert contract.solc_version == str(SOLC_VERSION)

    def test_optimizer_enabled_by_default(self, fake_solcx):
        compile_contract("contract Loan {}")

        kwargs = fake_solcx.compile_source.call_args.kwargs
        assert kwargs["optimize"] is True
        assert kwargs["optimize_runs"] == 200
        assert kwargs["solc_version"] == str(SOLC_VERSION)

    def test_optimizer_disabled(self, fake_solcx):
        contract = compile_contract("contract Loan {}", optimize=False)

        kwargs = fake_solcx.compile_source.call_args.kwargs
        assert kwargs["optimize"] is False
        assert kwargs["optimize_runs"] is None
        assert contract.optimize_runs is None

    def test_selects_requested_contract(self, fake_solcx):
        contract = compile_contract("contract Helper {}", contract_name="Helper")
        assert contract.bytecode == "6000"
        assert contract.abi == []

    def test_unknown_contract(self, fake_solcx):
        with pytest.raises(ContractNotFoundError) as exc_info:
            compile_contract("contract Loan {}", contract_name="Escrow")
        assert "Helper, Loan" in str(exc_info.value)

    def test_compiler_error_is_wrapped(self, fake_solcx):
        fake_solcx.compile_source.side_effect = SolcError(
            message="solc returned non-zero exit status 1",
            command=["solc", "--combined-json"],
            return_code=1,
            stderr_data="ParserError: Expected ';' but got '}'",
        )
        with pytest.raises(CompilationError, match="ParserError"):
            compile_contract("contract Loan { uint x }")

    def test_empty_bytecode(self, fake_solcx):
        fake_solcx.compile_source.return_value = {
            "<stdin>:Loan": {"abi": "[]", "bin": "", "bin-runtime": ""},
        }
        with pytest.raises(CompilationError, match="no bytecode"):
            compile_contract("abstract contract Loan {}")

    def test_compile_file_reads_source(self, fake_solcx, tmp_path):
        source_file = tmp_path / "Loan.sol"
        source_file.write_text("contract Loan {}", encoding="utf-8")

        compile_file(source_file)

        assert fake_solcx.compile_source.call_args.args[0] == "contract Loan {}"

    def test_compile_file_defaults_to_bundled_source(self, fake_solcx):
        compile_file()

        source = fake_solcx.compile_source.call_args.args[0]
        assert "contract Loan" in source


# ============================================================================
# Output
# ============================================================================

class TestOutput:

    def test_format_report(self, loan_contract):
        lines = format_report(loan_contract)

        assert lines[0] == f"Bytecode: {LOAN_BIN}"
        assert lines[1] == f"ABI: {LOAN_ABI}"
        assert len(lines) == 2

    def test_to_dict(self, loan_contract):
        data = loan_contract.to_dict()
        assert data["contractName"] == "Loan"
        assert data["abi"] == LOAN_ABI
        assert data["compiler"]["version"] == "0.8.24"

    def test_write_artifacts(self, loan_contract, tmp_path):
        bin_path, abi_path = write_artifacts(loan_contract, tmp_path / "build")

        assert bin_path == tmp_path / "build" / "Loan.bin"
        assert bin_path.read_text() == LOAN_BIN
        assert json.loads(abi_path.read_text()) == LOAN_ABI

    def test_write_artifacts_into_existing_file(self, loan_contract, tmp_path):
        blocker = tmp_path / "build"
        blocker.write_text("not a directory")

        with pytest.raises(ArtifactWriteError, match="Cannot write artifacts"):
            write_artifacts(loan_contract, blocker)


# ============================================================================
# End-to-end
# ============================================================================

@pytest.fixture(scope="module")
def real_solc():
    """Real solc binary, downloaded if needed; skips when unavailable."""
    try:
        return ensure_solc(str(SOLC_VERSION))
    except Exception as e:
        pytest.skip(f"solc {SOLC_VERSION} unavailable: {e}")


def test_compile_bundled_loan_contract(real_solc):
    """Smoke test: the bundled contract compiles to bytecode and a valid ABI."""
    contract = compile_file(solc_version=real_solc)

    assert contract.bytecode
    assert all(c in "0123456789abcdef" for c in contract.bytecode.lower())
    assert all("type" in entry for entry in contract.abi)

    names = {entry.get("name") for entry in contract.abi if entry["type"] == "function"}
    assert {"fund", "repay", "claimDefault", "repaymentAmount"} <= names
    assert any(entry["type"] == "constructor" for entry in contract.abi)
