#!/usr/bin/env python3
"""
Loan Compiler CLI

Compiles a Solidity contract and prints its bytecode and ABI.

Usage:
    loan-compile [SOURCE] [--contract NAME] [--no-optimize] [--runs N]
                 [--solc-version VERSION] [--no-install] [--json]
                 [--output-dir DIR] [--config FILE] [--log-level LEVEL]

Without SOURCE the bundled loan.sol is compiled.
"""

import json
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .compiler import compile_file, format_report, resolve_contract_path, write_artifacts
from .config import load_config
from .exceptions import LoanCompilerException
from .logger import get_logger, set_log_level

logger = get_logger(__name__)


@click.command("loan-compile")
@click.argument("source", required=False, type=click.Path(dir_okay=False))
@click.option(
    "--contract", "-c",
    "contract_name",
    help="Contract to extract from the compiler output (default: Loan)"
)
@click.option(
    "--no-optimize",
    is_flag=True,
    help="Disable the solc optimizer"
)
@click.option(
    "--runs",
    type=click.IntRange(min=1),
    help="Optimizer runs (default: 200)"
)
@click.option(
    "--solc-version",
    help="solc version to compile with"
)
@click.option(
    "--no-install",
    is_flag=True,
    help="Fail instead of downloading a missing solc version"
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Print the compiled artifact as a JSON document"
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False),
    help="Also write <Name>.bin and <Name>.abi to this directory"
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to loan-compiler.toml"
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default: LOG_LEVEL or INFO)"
)
@click.version_option(version=__version__, prog_name="loan-compile")
def cli(
    source: Optional[str],
    contract_name: Optional[str],
    no_optimize: bool,
    runs: Optional[int],
    solc_version: Optional[str],
    no_install: bool,
    as_json: bool,
    output_dir: Optional[str],
    config_path: Optional[str],
    log_level: Optional[str],
):
    """Compile a Solidity contract and print its bytecode and ABI.

    Examples:

        loan-compile

        loan-compile contracts/Loan.sol --contract Loan --no-optimize

        loan-compile --json --output-dir build/
    """
    if log_level:
        set_log_level(log_level)

    try:
        config = load_config(config_path)

        source = source or config.contract.source
        if source:
            source_path = resolve_contract_path(source, base_dir=Path.cwd())
        else:
            source_path = resolve_contract_path()

        contract = compile_file(
            source_path,
            contract_name=contract_name or config.contract.name,
            optimize=config.compiler.optimize and not no_optimize,
            optimize_runs=runs or config.compiler.optimize_runs,
            solc_version=solc_version or config.compiler.solc_version,
            install=config.compiler.install_solc and not no_install,
        )

        output_dir = output_dir or config.output.directory
        if output_dir:
            write_artifacts(contract, output_dir)
    except LoanCompilerException as e:
        raise click.ClickException(str(e))

    if as_json or config.output.json:
        click.echo(json.dumps(contract.to_dict(), indent=2))
    else:
        for line in format_report(contract):
            click.echo(line)


def main():
    cli()


if __name__ == "__main__":
    main()
