"""CLI argument parsing and the interactive chat loop."""

import asyncio
import logging
import os
import sys
from typing import Callable, List, Optional

from .app import Callisto
from .config import ConfigurationError, Settings, missing_env_vars

logger = logging.getLogger(__name__)

QUIT_COMMAND = "quit"
CLEAR_COMMAND = "clear"


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(description="Callisto meeting assistant")
    parser.add_argument(
        "--config-dir",
        default=None,
        help="Directory holding mcp-config.json, setup-config.json and credential files",
    )
    parser.add_argument("--history-file", default=None, help="Chat history JSON file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


async def chat_loop(
    app: Callisto,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> None:
    """Read queries until ``quit`` or end of input."""
    await app.initialize()
    write("\nCallisto started!")
    write(f"Connected to servers: {', '.join(app.connected_servers) or 'none'}")
    write("Type your queries or 'quit' to exit.")
    write("Type 'clear' to start a new conversation.")

    while True:
        try:
            line = await asyncio.to_thread(read_line, "\nQuery: ")
        except EOFError:
            break

        command = line.strip().lower()
        if command == QUIT_COMMAND:
            app.clear_history()
            break
        if command == CLEAR_COMMAND:
            app.clear_history()
            write("Conversation history cleared.")
            continue

        reply = await app.chat(line)
        write(f"\n{reply}")


async def _run(app: Callisto) -> None:
    try:
        await chat_loop(app)
    finally:
        await app.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(name)s - %(message)s",
    )

    try:
        settings = Settings.from_env()
        if args.config_dir:
            settings.config_dir = args.config_dir
        if args.history_file:
            settings.history_file = args.history_file

        missing = missing_env_vars(os.environ)
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        app = Callisto(settings)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(_run(app))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
