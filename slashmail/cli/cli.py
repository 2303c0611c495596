"""Main CLI entry point."""

import os
import sys
from dataclasses import dataclass
from typing import List, Optional

from rich.console import Console

from slashmail.core.imap.connection import connect
from slashmail.ui.components import PasswordPrompt
from slashmail.utils.config_manager import ConfigManager
from slashmail.utils.console import get_console, print_error, print_warning
from slashmail.utils.errors import MissingCredentialsError, SlashmailError, format_error_message
from slashmail.utils.logging import get_logger, init_logging

from .cli_parser import setup_argument_parser
from .commands import COMMAND_HANDLERS
from .completions import generate_completion, generate_manpage

logger = get_logger(__name__)

USER_ENV = "SLASHMAIL_USER"
PASSWORD_ENV = "SLASHMAIL_PASS"

GENERATOR_COMMANDS = ("completions", "man")

ENVIRONMENT_HELP = {
    USER_ENV: "IMAP username, used when --user is not given.",
    PASSWORD_ENV: "IMAP password. When unset the password is prompted for.",
    "SLASHMAIL_HOME": "Directory holding config.json and logs (default: ~/.slashmail).",
}


@dataclass(frozen=True)
class ConnectionSettings:
    """Connection parameters after merging flags, environment and config."""

    host: str
    port: int
    tls: bool
    user: str


def resolve_settings(args, config_manager: ConfigManager) -> ConnectionSettings:
    """Merge connection flags over the config file.

    Command-line flags win over the environment, which wins over the
    config file.
    """

    account = config_manager.config.account

    host = getattr(args, "host", None) or account.host
    tls = getattr(args, "tls", False) or account.tls
    port = getattr(args, "port", None) or account.resolved_port(tls)
    user = getattr(args, "user", None) or os.environ.get(USER_ENV) or account.user

    if not user:
        raise MissingCredentialsError(
            f"No IMAP user given. Use --user or set {USER_ENV}."
        )

    return ConnectionSettings(host=host, port=port, tls=tls, user=user)


def resolve_password(console: Console) -> str:
    """Password from the environment, or an interactive prompt."""

    password = os.environ.get(PASSWORD_ENV)
    if password:
        return password

    password = PasswordPrompt(console).ask()
    if not password:
        raise MissingCredentialsError(
            f"No IMAP password given. Set {PASSWORD_ENV} or enter it when prompted."
        )
    return password


def run_generator(parser, args, console: Console) -> int:
    """Print a completion script or the man page. No connection is made."""

    if args.command == "completions":
        text = generate_completion(parser, args.shell)
    else:
        text = generate_manpage(parser, ENVIRONMENT_HELP)

    console.print(text, end="", markup=False, highlight=False, emoji=False, soft_wrap=True)
    return 0


def dispatch_command(args, config_manager: ConfigManager, console: Console) -> int:
    """Connect, run the selected command, and log out.

    Returns:
        Exit code (0 = success, 1 = error)
    """

    handler_class = COMMAND_HANDLERS.get(args.command)
    if handler_class is None:
        print_error(f"Unknown command: {args.command}", console)
        return 1

    settings = resolve_settings(args, config_manager)
    password = resolve_password(console)

    session = connect(
        settings.host,
        settings.port,
        settings.tls,
        settings.user,
        password,
        timeout=config_manager.config.account.network_timeout,
    )

    with session:
        handler = handler_class(config_manager, console)
        return handler.safe_execute(session, args)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    console = get_console()

    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    if args.command in GENERATOR_COMMANDS:
        return run_generator(parser, args, console)

    try:
        config_manager = ConfigManager.load(getattr(args, "config", None))
        logging_config = config_manager.config.logging
        init_logging(
            getattr(args, "log_level", None) or logging_config.log_level,
            logging_config.console_level,
        )
        logger.debug(f"Running command: {args.command}")

        return dispatch_command(args, config_manager, console)

    except KeyboardInterrupt:
        print_warning("\nInterrupted by user", console)
        return 130  # Standard SIGINT exit code

    except SlashmailError as e:
        logger.info(f"Command failed: {e.message}", extra={"error": e.to_dict()})
        print_error(f"Error: {format_error_message(e)}", console)
        return 1


if __name__ == "__main__":
    sys.exit(main())
