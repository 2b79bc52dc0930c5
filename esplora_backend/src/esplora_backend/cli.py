"""
esplora-backend CLI using Typer.

Run without a sub-command, it is the lightningd plugin (JSON-RPC on
stdin/stdout). The sub-commands run a single backend method against the
configured explorers and print lightningd's response object.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger
from pydantic import ValidationError

from esplora_backend.backends.esplora import EsploraBackend
from esplora_backend.config import Settings, get_settings
from esplora_backend.errors import BackendError
from esplora_backend.log import setup_logging
from esplora_backend.plugin import run_plugin

app = typer.Typer(add_completion=False, invoke_without_command=True)

EndpointOption = Annotated[
    str | None,
    typer.Option(
        "--esplora-api-endpoint", envvar="ESPLORA_API_ENDPOINT", help="Esplora API URL"
    ),
]
BlockchairOption = Annotated[
    str | None,
    typer.Option(
        "--blockchair-api-endpoint",
        envvar="BLOCKCHAIR_API_ENDPOINT",
        help="Raw block API URL",
    ),
]
CainfoOption = Annotated[
    Path | None,
    typer.Option("--cainfo", envvar="ESPLORA_CAINFO", help="Path to CA bundle"),
]
VerboseOption = Annotated[
    int | None,
    typer.Option("--verbose", "-v", envvar="ESPLORA_VERBOSE", help="Echo HTTP traffic when > 0"),
]
LogLevelOption = Annotated[str, typer.Option("--log-level", envvar="LOG_LEVEL")]


def run_async(coro):  # type: ignore[no-untyped-def]
    return asyncio.run(coro)


def build_settings(
    esplora_api_endpoint: str | None,
    blockchair_api_endpoint: str | None,
    cainfo: Path | None,
    verbose: int | None,
    log_level: str,
) -> Settings:
    setup_logging("DEBUG" if verbose else log_level)
    try:
        return get_settings(
            esplora_api_endpoint=esplora_api_endpoint,
            blockchair_api_endpoint=blockchair_api_endpoint,
            esplora_cainfo=cainfo,
            esplora_verbose=verbose,
            log_level=log_level,
        )
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)


def run_method(
    settings: Settings, call: Callable[[EsploraBackend], Awaitable[Any]]
) -> None:
    """Run one backend call and print its lightningd response."""

    async def _run() -> dict[str, Any]:
        backend = EsploraBackend(settings)
        try:
            result = await call(backend)
            return result.to_response()
        finally:
            await backend.close()

    try:
        response = run_async(_run())
    except BackendError as e:
        logger.error(str(e))
        raise typer.Exit(1)
    except OSError as e:
        logger.error(f"Cannot load CA bundle {settings.esplora_cainfo}: {e}")
        raise typer.Exit(1)

    typer.echo(json.dumps(response, indent=2))


@app.callback()
def main(ctx: typer.Context) -> None:
    """Bitcoin backend plugin for lightningd using the Esplora API."""
    if ctx.invoked_subcommand is not None:
        return

    try:
        run_async(run_plugin(sys.stdout))
    except KeyboardInterrupt:
        pass


@app.command()
def chaininfo(
    esplora_api_endpoint: EndpointOption = None,
    blockchair_api_endpoint: BlockchairOption = None,
    cainfo: CainfoOption = None,
    verbose: VerboseOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Show chain id and block count."""
    settings = build_settings(
        esplora_api_endpoint, blockchair_api_endpoint, cainfo, verbose, log_level
    )
    run_method(settings, lambda backend: backend.get_chain_info())


@app.command()
def block(
    height: Annotated[int, typer.Argument(min=0, help="Block height")],
    esplora_api_endpoint: EndpointOption = None,
    blockchair_api_endpoint: BlockchairOption = None,
    cainfo: CainfoOption = None,
    verbose: VerboseOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Fetch the raw block at a height."""
    settings = build_settings(
        esplora_api_endpoint, blockchair_api_endpoint, cainfo, verbose, log_level
    )
    run_method(settings, lambda backend: backend.get_raw_block_by_height(height))


@app.command()
def feerate(
    blocks: Annotated[int, typer.Argument(min=1, help="Confirmation target in blocks")],
    mode: Annotated[str, typer.Option(help="Estimate mode (accepted, not used)")] = "CONSERVATIVE",
    esplora_api_endpoint: EndpointOption = None,
    blockchair_api_endpoint: BlockchairOption = None,
    cainfo: CainfoOption = None,
    verbose: VerboseOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Estimate the feerate in sat/kB for a confirmation target."""
    settings = build_settings(
        esplora_api_endpoint, blockchair_api_endpoint, cainfo, verbose, log_level
    )
    run_method(settings, lambda backend: backend.get_fee_rate(blocks, mode))


@app.command()
def utxo(
    txid: Annotated[str, typer.Argument(help="Transaction id")],
    vout: Annotated[str, typer.Argument(help="Output index")],
    esplora_api_endpoint: EndpointOption = None,
    blockchair_api_endpoint: BlockchairOption = None,
    cainfo: CainfoOption = None,
    verbose: VerboseOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Show amount and script of an unspent output."""
    settings = build_settings(
        esplora_api_endpoint, blockchair_api_endpoint, cainfo, verbose, log_level
    )
    run_method(settings, lambda backend: backend.get_utxo(txid, vout))


@app.command()
def broadcast(
    tx: Annotated[str, typer.Argument(help="Raw transaction hex")],
    esplora_api_endpoint: EndpointOption = None,
    blockchair_api_endpoint: BlockchairOption = None,
    cainfo: CainfoOption = None,
    verbose: VerboseOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Broadcast a raw transaction."""
    settings = build_settings(
        esplora_api_endpoint, blockchair_api_endpoint, cainfo, verbose, log_level
    )
    run_method(settings, lambda backend: backend.send_raw_transaction(tx))


if __name__ == "__main__":
    app()
