#!/usr/bin/env python3
"""
MCP Orchestrator Interactive CLI

Connects to a tool host and chats with the model from the terminal. All
queries share one session, so the conversation carries over between lines.
"""

import argparse
import asyncio
import logging
import sys
import threading
from typing import Callable, Optional

from .config import config
from .errors import ConfigurationError, ToolHostConnectionError
from .orchestrator import MCPOrchestrator

logger = logging.getLogger(__name__)

QUIT_COMMAND = "quit"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


async def ainput(prompt: str, input_func: Callable[[str], str] = input) -> str:
    """
    Read a line without blocking the event loop.

    The read runs on a daemon thread so a pending prompt never holds up
    interpreter exit.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def _deliver(value: Optional[str], error: Optional[BaseException]) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(value or "")

    def _read() -> None:
        try:
            line = input_func(prompt)
        except BaseException as e:
            loop.call_soon_threadsafe(_deliver, None, e)
        else:
            loop.call_soon_threadsafe(_deliver, line, None)

    threading.Thread(target=_read, name="cli-input", daemon=True).start()
    return await future


def print_banner(orchestrator: MCPOrchestrator) -> None:
    """Print the welcome banner."""
    print("\nMCP Client Started!")
    if len(orchestrator.catalog):
        print("Available tools:")
        print(orchestrator.catalog.get_tools_summary())
    print(f"Type your queries or '{QUIT_COMMAND}' to exit.")


class InteractiveCLI:
    """Read-eval-print loop over a single session."""

    def __init__(
        self,
        orchestrator: MCPOrchestrator,
        session_id: Optional[str] = None,
        input_func: Callable[[str], str] = input,
    ):
        self.orchestrator = orchestrator
        self.session_id = session_id or config.sessions.cli_session_id
        self.input_func = input_func

    async def process_query(self, query: str) -> None:
        """Run one query and print the result or the error."""
        try:
            response = await self.orchestrator.process_query(self.session_id, query)
        except Exception as e:
            logger.debug("Query failed", exc_info=True)
            print(f"\nError: {e}")
            return
        print("\n" + response)

    async def run(self) -> None:
        """Prompt until the user types quit or closes stdin."""
        print_banner(self.orchestrator)
        while True:
            try:
                message = await ainput("\nQuery: ", self.input_func)
            except EOFError:
                print()
                break
            if message.strip().lower() == QUIT_COMMAND:
                break
            if not message.strip():
                continue
            await self.process_query(message)


async def _run(args: argparse.Namespace) -> int:
    try:
        orchestrator = MCPOrchestrator()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        await orchestrator.connect(args.server_script)
    except ToolHostConnectionError as e:
        print(f"Failed to connect to MCP server: {e}", file=sys.stderr)
        await orchestrator.cleanup()
        return 1

    try:
        await InteractiveCLI(orchestrator, session_id=args.session_id).run()
    finally:
        await orchestrator.cleanup()
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="MCP Orchestrator Interactive CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ./weather/server.py          # Chat using a Python tool host
  %(prog)s ./weather/build/index.js -v  # Node tool host, verbose logging
""",
    )
    parser.add_argument(
        "server_script",
        nargs="?",
        default=config.tool_host.server_script_path or None,
        help="Path to the MCP tool host script (.py or .js); defaults to SERVER_SCRIPT_PATH",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--session-id",
        type=str,
        default=None,
        help=f"Session id for the conversation (default: {config.sessions.cli_session_id})",
    )
    args = parser.parse_args()

    if not args.server_script:
        parser.print_usage()
        return

    setup_logging(args.verbose)

    try:
        exit_code = asyncio.run(_run(args))
    except KeyboardInterrupt:
        print("\nGoodbye!")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
