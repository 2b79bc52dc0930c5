"""
lightningd plugin boundary.

lightningd talks to its Bitcoin backend plugin with JSON-RPC 2.0 over the
plugin's stdin/stdout, each message followed by a blank line. The plugin
answers `getmanifest` and `init`, then serves the five backend methods.
Backend requests run as independent asyncio tasks so several can be in flight;
handlers share only the frozen Settings and the HTTP connection pool.
"""

from __future__ import annotations

import asyncio
import codecs
import json
import sys
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TextIO

from loguru import logger
from pydantic import ValidationError

from esplora_backend.backends.base import ChainBackend
from esplora_backend.backends.esplora import EsploraBackend
from esplora_backend.config import Settings, settings_from_plugin_options
from esplora_backend.errors import BackendError
from esplora_backend.log import setup_plugin_logging

# Generic error code lightningd expects from a Bitcoin backend
BCLI_ERROR = 400
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

READ_CHUNK_SIZE = 65536

BackendFactory = Callable[[Settings], ChainBackend]
RpcHandler = Callable[[ChainBackend, dict[str, Any]], Awaitable[dict[str, Any]]]


class PluginError(Exception):
    """Error answered to lightningd with an explicit JSON-RPC code."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class RpcMethod:
    name: str
    usage: str
    description: str
    params: tuple[str, ...]
    handler: RpcHandler


def _int_param(method: str, params: dict[str, Any], name: str, minimum: int = 0) -> int:
    value = params.get(name)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise PluginError(INVALID_PARAMS, f"{method}: '{name}' should be an integer >= {minimum}")
    return value


def _str_param(method: str, params: dict[str, Any], name: str) -> str:
    value = params.get(name)
    if not isinstance(value, str):
        raise PluginError(INVALID_PARAMS, f"{method}: '{name}' should be a string")
    return value


async def _getchaininfo(backend: ChainBackend, params: dict[str, Any]) -> dict[str, Any]:
    logger.info("getchaininfo")
    if params.get("last_height") is not None:
        logger.debug(f"getchaininfo last_height={params['last_height']}")
    return (await backend.get_chain_info()).to_response()


async def _getrawblockbyheight(backend: ChainBackend, params: dict[str, Any]) -> dict[str, Any]:
    height = _int_param("getrawblockbyheight", params, "height")
    logger.info(f"getrawblockbyheight {height}")
    return (await backend.get_raw_block_by_height(height)).to_response()


async def _getfeerate(backend: ChainBackend, params: dict[str, Any]) -> dict[str, Any]:
    blocks = _int_param("getfeerate", params, "blocks", minimum=1)
    mode = _str_param("getfeerate", params, "mode")
    logger.info(f"getfeerate for blocks {blocks}")
    return (await backend.get_fee_rate(blocks, mode)).to_response()


async def _getutxout(backend: ChainBackend, params: dict[str, Any]) -> dict[str, Any]:
    txid = _str_param("getutxout", params, "txid")
    # lightningd sends vout as a number; the backend takes it as a string
    vout = params.get("vout")
    if isinstance(vout, int) and not isinstance(vout, bool):
        vout = str(vout)
    if not isinstance(vout, str):
        raise PluginError(INVALID_PARAMS, "getutxout: 'vout' should be a string or integer")
    logger.info(f"getutxout {txid}:{vout}")
    return (await backend.get_utxo(txid, vout)).to_response()


async def _sendrawtransaction(backend: ChainBackend, params: dict[str, Any]) -> dict[str, Any]:
    tx = _str_param("sendrawtransaction", params, "tx")
    logger.info("sendrawtransaction")
    return (await backend.send_raw_transaction(tx)).to_response()


RPC_METHODS: dict[str, RpcMethod] = {
    method.name: method
    for method in (
        RpcMethod(
            "getrawblockbyheight",
            "height",
            "Get the bitcoin block at a given height",
            ("height",),
            _getrawblockbyheight,
        ),
        RpcMethod(
            "getchaininfo",
            "[last_height]",
            "Get the chain id, the header count, the block count, and whether this is IBD.",
            ("last_height",),
            _getchaininfo,
        ),
        RpcMethod(
            "getfeerate",
            "blocks mode",
            "Get the Bitcoin feerate in btc/kilo-vbyte.",
            ("blocks", "mode"),
            _getfeerate,
        ),
        RpcMethod(
            "sendrawtransaction",
            "tx [allowhighfees]",
            "Send a raw transaction to the Bitcoin network.",
            ("tx", "allowhighfees"),
            _sendrawtransaction,
        ),
        RpcMethod(
            "getutxout",
            "txid vout",
            "Get informations about an output, identified by a {txid} an a {vout}",
            ("txid", "vout"),
            _getutxout,
        ),
    )
}

PLUGIN_OPTION_MANIFEST: list[dict[str, Any]] = [
    {
        "name": "esplora-api-endpoint",
        "type": "string",
        "description": "The URL of the esplora instance to hit (including '/api').",
    },
    {
        "name": "blockchair-api-endpoint",
        "type": "string",
        "description": "Select the blockchair api url only to fetch rawblocks.",
    },
    {
        "name": "esplora-cainfo",
        "type": "string",
        "description": "Set path to Certificate Authority (CA) bundle.",
    },
    {
        "name": "esplora-verbose",
        "type": "int",
        "default": 0,
        "description": "Set verbose output (default 0).",
    },
]


def bind_params(method: RpcMethod, params: Any) -> dict[str, Any]:
    """Accept params as an object or a positional array; extra params are ignored."""
    if params is None:
        return {}
    if isinstance(params, dict):
        return params
    if isinstance(params, list):
        return dict(zip(method.params, params, strict=False))
    raise PluginError(INVALID_PARAMS, f"{method.name}: params must be an object or array")


class Plugin:
    """
    JSON-RPC endpoint serving lightningd.

    Args:
        stdout: Stream the responses and log notifications are written to
        backend_factory: Builds the backend from the settings received in init
    """

    def __init__(self, stdout: TextIO, backend_factory: BackendFactory = EsploraBackend):
        self.stdout = stdout
        self.backend_factory = backend_factory
        self.settings: Settings | None = None
        self.backend: ChainBackend | None = None
        self._write_lock = threading.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    def write(self, message: dict[str, Any]) -> None:
        data = json.dumps(message)
        with self._write_lock:
            self.stdout.write(data + "\n\n")
            self.stdout.flush()

    def notify_log(self, level: str, message: str) -> None:
        self.write(
            {"jsonrpc": "2.0", "method": "log", "params": {"level": level, "message": message}}
        )

    def _respond(self, request_id: Any, result: dict[str, Any]) -> None:
        self.write({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _respond_error(self, request_id: Any, code: int, message: str) -> None:
        self.write(
            {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}
        )

    def manifest(self) -> dict[str, Any]:
        return {
            "options": PLUGIN_OPTION_MANIFEST,
            "rpcmethods": [
                {"name": m.name, "usage": m.usage, "description": m.description}
                for m in RPC_METHODS.values()
            ],
            "subscriptions": [],
            "hooks": [],
            "dynamic": False,
        }

    def init(self, params: dict[str, Any]) -> dict[str, Any]:
        """
        Build settings and the backend from lightningd's options.

        Invalid options or an unloadable CA bundle disable the plugin instead
        of killing lightningd.
        """
        options = params.get("options") or {}
        try:
            settings = settings_from_plugin_options(options)
        except ValidationError as e:
            logger.error(f"Invalid esplora options: {e}")
            return {"disable": f"invalid options: {e}"}

        self.settings = settings
        setup_plugin_logging(self.notify_log, "DEBUG" if settings.verbose else settings.log_level)
        try:
            self.backend = self.backend_factory(settings)
        except OSError as e:
            # ssl.SSLError is an OSError
            logger.error(f"Cannot load CA bundle {settings.esplora_cainfo}: {e}")
            return {"disable": f"cannot load esplora-cainfo {settings.esplora_cainfo}: {e}"}
        logger.info(
            f"esplora initialized. api={settings.esplora_api_endpoint} "
            f"rawblocks={settings.blockchair_api_endpoint}"
        )
        return {}

    async def handle_message(self, message: Any) -> None:
        """Handle one decoded JSON-RPC message."""
        if not isinstance(message, dict):
            logger.warning(f"Ignoring malformed message: {message!r}")
            return

        method = message.get("method")
        request_id = message.get("id")
        if request_id is None:
            # Notifications need no answer and none are subscribed
            logger.debug(f"Ignoring notification {method}")
            return

        if method == "getmanifest":
            self._respond(request_id, self.manifest())
        elif method == "init":
            self._respond(request_id, self.init(message.get("params") or {}))
        elif method in RPC_METHODS:
            task = asyncio.create_task(self.dispatch(request_id, method, message.get("params")))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            self._respond_error(request_id, METHOD_NOT_FOUND, f"Unknown method: {method}")

    async def dispatch(self, request_id: Any, method: str, params: Any) -> None:
        """Run one backend method and write its result or error."""
        rpc = RPC_METHODS[method]
        try:
            if self.backend is None:
                raise PluginError(BCLI_ERROR, f"{method}: plugin not initialized")
            result = await rpc.handler(self.backend, bind_params(rpc, params))
        except PluginError as e:
            logger.warning(e.message)
            self._respond_error(request_id, e.code, e.message)
        except BackendError as e:
            err = f"{method}: {e}"
            logger.info(err)
            self._respond_error(request_id, BCLI_ERROR, err)
        except Exception as e:
            logger.exception(f"Unexpected error in {method}: {e}")
            self._respond_error(request_id, BCLI_ERROR, f"{method}: {e}")
        else:
            self._respond(request_id, result)

    async def run(self, reader: asyncio.StreamReader) -> None:
        """Serve requests from reader until EOF, then drain in-flight requests."""
        decoder = json.JSONDecoder()
        text_decoder = codecs.getincrementaldecoder("utf-8")()
        buffer = ""

        try:
            while True:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                buffer += text_decoder.decode(chunk)

                while True:
                    buffer = buffer.lstrip()
                    if not buffer:
                        break
                    try:
                        message, end = decoder.raw_decode(buffer)
                    except json.JSONDecodeError:
                        # Incomplete message, wait for more data
                        break
                    buffer = buffer[end:]
                    await self.handle_message(message)

            if buffer.strip():
                logger.warning(f"Discarding undecodable input: {buffer[:80]!r}")

            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
        finally:
            if self.backend is not None:
                await self.backend.close()


async def connect_stdin() -> asyncio.StreamReader:
    """Wrap the process stdin in an asyncio StreamReader."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def run_plugin(stdout: TextIO) -> None:
    plugin = Plugin(stdout)
    setup_plugin_logging(plugin.notify_log, "INFO")
    reader = await connect_stdin()
    await plugin.run(reader)
