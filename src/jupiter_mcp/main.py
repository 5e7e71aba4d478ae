"""Main entry point - wires the tool server and runs the selected transport."""

import asyncio
import logging
import signal
import sys
from typing import Optional

import uvicorn
from pydantic import ValidationError as PydanticValidationError

from jupiter_mcp.api.app import create_app
from jupiter_mcp.chain.solana_rpc import SolanaRpcClient
from jupiter_mcp.config import Settings, Transport, get_settings
from jupiter_mcp.errors import ConfigurationError
from jupiter_mcp.mcp.dispatcher import ToolDispatcher
from jupiter_mcp.mcp.server import McpServer
from jupiter_mcp.routing.jupiter import JupiterQuoteClient
from jupiter_mcp.services.balance_service import BalanceService
from jupiter_mcp.signing.signer import Signer
from jupiter_mcp.swap.executor import SwapExecutor

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False) -> None:
    """Log to stderr; stdout carries the stdio protocol."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


class Application:
    """Owns the shared clients and the MCP server."""

    def __init__(self, settings: Settings, signer: Signer):
        self.settings = settings
        self.signer = signer
        self.chain = SolanaRpcClient(
            settings.rpc_url,
            commitment=settings.solana_commitment,
            timeout=settings.rpc_timeout,
        )
        self.quote_client = JupiterQuoteClient(
            base_url=settings.jupiter_api_url,
            api_key=settings.jupiter_api_key or None,
            timeout=settings.quote_timeout,
        )
        self.executor = SwapExecutor.from_settings(settings, self.quote_client, self.chain, signer)
        self.dispatcher = ToolDispatcher(
            BalanceService(self.chain),
            self.executor,
            default_slippage_bps=settings.default_slippage_bps,
        )
        self.server = McpServer(self.dispatcher)
        self.api_server: Optional[uvicorn.Server] = None
        self._shutdown_event = asyncio.Event()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Application":
        """Validate configuration and load the wallet.

        Raises:
            ConfigurationError: If the network or key configuration is invalid
        """
        network = settings.network
        signer = Signer.from_settings(settings)
        logger.info(f"Network: {network.value} ({settings.rpc_url})")
        return cls(settings, signer)

    async def run(self) -> None:
        """Run the configured transport until it stops or shutdown is requested.

        In-flight requests are finished or cancelled before the clients close.
        """
        if self.settings.transport == Transport.HTTP:
            transport = asyncio.create_task(self._run_api())
        else:
            transport = asyncio.create_task(self.server.run_stdio())
        shutdown = asyncio.create_task(self._shutdown_event.wait())

        try:
            await asyncio.wait({transport, shutdown}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            shutdown.cancel()
            await self._stop_transport(transport)
            await self.close()

        if not transport.cancelled() and transport.exception() is not None:
            raise transport.exception()

    async def _stop_transport(self, transport: asyncio.Task) -> None:
        if not transport.done():
            if self.api_server is not None:
                # uvicorn lets in-flight requests complete before serve() returns
                self.api_server.should_exit = True
            else:
                transport.cancel()
        await asyncio.gather(transport, return_exceptions=True)
        logger.info("Transport stopped")

    async def _run_api(self) -> None:
        app = create_app(self.server, self.settings)
        config = uvicorn.Config(
            app,
            host=self.settings.api_host,
            port=self.settings.api_port,
            log_level="debug" if self.settings.debug else "info",
        )
        self.api_server = uvicorn.Server(config)
        logger.info(f"Starting HTTP transport on {self.settings.api_host}:{self.settings.api_port}")
        await self.api_server.serve()

    async def close(self) -> None:
        """Close shared network clients."""
        logger.info("Cleaning up...")
        await self.quote_client.close()
        await self.chain.close()
        logger.info("Cleanup complete")

    def shutdown(self) -> None:
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def load_application(settings: Optional[Settings] = None) -> Application:
    """Build the application; exits the process on configuration errors."""
    try:
        settings = settings or get_settings()
        return Application.from_settings(settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        sys.exit(1)
    except PydanticValidationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)


def main():
    """Main entry point."""
    try:
        debug = get_settings().debug
    except PydanticValidationError:
        debug = False
    configure_logging(debug)
    logger.info("Starting jupiter-mcp...")

    app = load_application()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.run())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
