"""Main CLI entry point."""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console

from mail_extractor.core.database.store import RecordStore
from mail_extractor.core.sync.orchestrator import SyncOrchestrator
from mail_extractor.utils.config_manager import ConfigManager
from mail_extractor.utils.console import get_console
from mail_extractor.utils.errors import MailExtractorError, format_error_message
from mail_extractor.utils.logging import async_log_call, get_logger, init_logging

from .cli_parser import setup_argument_parser
from .commands import CommandContext
from .router import CommandRouter

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _args_to_dict(args) -> Dict[str, Any]:
    """Convert argparse Namespace to dictionary."""
    return {
        key: value
        for key, value in vars(args).items()
        if key != "command" and value is not None
    }


def build_context(
    config_manager: ConfigManager,
    console: Optional[Console] = None,
    db_path: Optional[str] = None,
) -> CommandContext:
    """Wire the store and orchestrator from the application config."""
    config = config_manager.config
    store = RecordStore(Path(db_path or config.database.database_path).expanduser())
    orchestrator = SyncOrchestrator(
        store,
        connect_timeout=config.network.connect_timeout,
        read_timeout=config.network.read_timeout,
    )
    return CommandContext(
        store=store,
        orchestrator=orchestrator,
        config_manager=config_manager,
        console=console,
    )


@async_log_call
async def dispatch_command(args, context: CommandContext) -> int:
    """Dispatch command via router.

    Returns:
        Exit code (0 = success, 1 = error)
    """
    try:
        router = CommandRouter(context)
        success = await router.route(args.command, _args_to_dict(args))
        return EXIT_OK if success else EXIT_FAILURE

    except ValueError as e:
        logger.error(f"Invalid command: {e}")
        context.console.print(f"Error: {e}", style="red", markup=False)
        return EXIT_FAILURE

    except MailExtractorError as e:
        logger.error(f"Command '{args.command}' failed: {e.message}")
        context.console.print(f"Error: {format_error_message(e)}", style="red", markup=False)
        return EXIT_FAILURE

    except Exception as e:
        logger.exception(f"Command '{args.command}' failed unexpectedly: {e}")
        context.console.print(format_error_message(e), style="red", markup=False)
        return EXIT_FAILURE

    finally:
        await context.store.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    console = get_console()

    try:
        parser = setup_argument_parser()
        args = parser.parse_args(argv)

        try:
            config_manager = ConfigManager()
        except MailExtractorError as e:
            console.print(f"Configuration error: {e.message}", style="red", markup=False)
            return EXIT_FAILURE

        init_logging(args.log_level or config_manager.config.logging.log_level)
        context = build_context(config_manager, console=console, db_path=args.db_path)

        return asyncio.run(dispatch_command(args, context))

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return EXIT_INTERRUPTED

    except ValueError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
