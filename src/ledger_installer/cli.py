#!/usr/bin/env python3
"""
Ledger installer CLI.

Resolves one command from the environment (``LEDGER_COMMAND``,
``LEDGER_TESTNET``, ``LEDGER_SOLANA``) or the equivalent options, opens the
Ledger over HID and runs the matching workflow. This module is the only place
that turns a failure into a message on stderr and a process exit status.
"""

from __future__ import annotations

import logging
import sys
from typing import NoReturn, Optional

import click
from rich.console import Console

from ledger_installer import __version__
from ledger_installer.commands import Operation, UpdateFirmware, resolve_operation
from ledger_installer.config import LedgerConfig
from ledger_installer.device.manager import build_device_manager
from ledger_installer.device.transport import open_transport
from ledger_installer.exceptions import LedgerInstallerError
from ledger_installer.logging_config import setup_logging
from ledger_installer.workflows import run_operation, update_firmware

logger = logging.getLogger(__name__)

console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)


def _cli_fail(exc: LedgerInstallerError, exit_code: int = 1) -> NoReturn:
    """Report a failure on stderr and terminate the process."""
    logger.error("CLI error: %s", exc.message, exc_info=True, extra={"details": exc.details})
    err_console.print(exc.message, style="bold red", markup=False)
    sys.exit(exit_code)


def execute(operation: Operation, config: LedgerConfig) -> None:
    """Open the device and run ``operation`` on it."""
    if isinstance(operation, UpdateFirmware):
        # Fails before any device contact.
        update_firmware()

    with open_transport(config.exchange_timeout) as session:
        manager = build_device_manager(session, config)
        run_operation(operation, manager, console)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--command",
    "command",
    metavar="KEYWORD",
    help="getinfo, genuinecheck, installapp, updateapp, openapp or updatefirm. "
    "Overrides LEDGER_COMMAND.",
)
@click.option("--testnet", is_flag=True, help="Use the Bitcoin testnet app (same as LEDGER_TESTNET).")
@click.option("--solana", is_flag=True, help="Use the Solana app (same as LEDGER_SOLANA). Wins over --testnet.")
@click.option("--verbose", "-v", is_flag=True, help="Write debug logs to stderr.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    help="Append JSON logs to this file (same as LEDGER_LOG_FILE).",
)
@click.version_option(__version__, prog_name="ledger-installer")
def cli(
    command: Optional[str],
    testnet: bool,
    solana: bool,
    verbose: bool,
    log_file: Optional[str],
):
    """
    Manage a Ledger hardware wallet: inspect it, check it is genuine, and
    install, update or open the Bitcoin and Solana apps.

    Example:
        LEDGER_COMMAND=installapp LEDGER_TESTNET=1 ledger-installer
    """
    try:
        config = LedgerConfig.from_env().with_overrides(
            command=command, testnet=testnet, solana=solana, log_file=log_file
        )
    except LedgerInstallerError as exc:
        _cli_fail(exc)

    setup_logging(
        level="DEBUG" if verbose else config.log_level,
        log_file=config.log_file,
        enable_console=verbose,
    )

    try:
        operation = resolve_operation(config)
        logger.debug("Resolved operation %r", operation)
        execute(operation, config)
    except LedgerInstallerError as exc:
        _cli_fail(exc)
    except KeyboardInterrupt:
        err_console.print("\nOperation cancelled by user", style="yellow")
        sys.exit(130)


def main():
    """Main CLI entry point"""
    cli()


if __name__ == "__main__":
    main()
