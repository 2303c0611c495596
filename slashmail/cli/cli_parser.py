"""Argument parser configuration for the slashmail CLI"""

import argparse
from pathlib import Path

from slashmail import __version__

from .completions import SHELLS


## Argument Adding Utilities

def add_connection_arguments(parser: argparse.ArgumentParser, suppress: bool = False) -> None:
    """Add connection options.

    Added to the main parser and, with ``suppress``, to every subcommand so
    the options work on either side of the command name.
    """

    default = argparse.SUPPRESS if suppress else None
    group = parser.add_argument_group("connection")

    group.add_argument(
        "--host",
        default=default,
        help="IMAP host (default: 127.0.0.1)"
    )
    group.add_argument(
        "--port",
        type=int,
        default=default,
        help="IMAP port (default: 1143 plain, 993 TLS)"
    )
    group.add_argument(
        "--tls",
        action="store_true",
        default=argparse.SUPPRESS if suppress else False,
        help="Use TLS (required for remote IMAP servers)"
    )
    group.add_argument(
        "-u", "--user",
        default=default,
        help="IMAP username (or SLASHMAIL_USER)"
    )
    group.add_argument(
        "--config",
        type=Path,
        default=default,
        help="Path to config file"
    )
    group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=default,
        help="File log level (default: from config, INFO)"
    )

def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the search filter arguments shared by every search-based command."""

    filter_group = parser.add_argument_group("filters", "Select messages")

    filter_group.add_argument(
        "-f", "--folder",
        help="Folder to search (default: INBOX)"
    )
    filter_group.add_argument(
        "--all-folders",
        action="store_true",
        help="Search across all folders (excludes Trash, Spam)"
    )
    filter_group.add_argument(
        "--subject",
        help="Subject contains"
    )
    filter_group.add_argument(
        "--from",
        dest="sender",
        help="From address contains"
    )
    filter_group.add_argument(
        "--to",
        dest="recipient",
        help="To address contains"
    )
    filter_group.add_argument(
        "--cc",
        help="CC address contains"
    )
    filter_group.add_argument(
        "--since",
        help="Messages since date (YYYY-MM-DD or 7d, 2w, 3m, 1y)"
    )
    filter_group.add_argument(
        "--before",
        help="Messages before date (YYYY-MM-DD or 7d, 2w, 3m, 1y)"
    )
    filter_group.add_argument(
        "--larger",
        help="Messages larger than N bytes (supports K/M suffix)"
    )

def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number

def add_limit_argument(parser: argparse.ArgumentParser, help_text: str) -> None:
    """Add -n/--limit."""

    parser.add_argument(
        "-n", "--limit",
        type=_positive_int,
        help=help_text
    )

def add_confirmation_arguments(parser: argparse.ArgumentParser, dry_run: bool = True) -> None:
    """Add --yes and, for mutating commands, --dry-run."""

    parser.add_argument(
        "--yes",
        action="store_true",
        help="Skip confirmation (batch mode)"
    )
    if dry_run:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would change without acting"
        )


## Command Setup Functions

def setup_search_commands(subparsers) -> None:
    """Setup search and count commands."""

    search_parser = subparsers.add_parser(
        "search",
        help="Search messages by criteria",
        description="List messages matching the filters, newest first"
    )
    add_filter_arguments(search_parser)
    add_limit_argument(search_parser, "Limit number of results")

    count_parser = subparsers.add_parser(
        "count",
        help="Count matching messages (no FETCH)",
        description="Count messages matching the filters without fetching them"
    )
    add_filter_arguments(count_parser)

def setup_manage_commands(subparsers) -> None:
    """Setup delete, move and mark commands."""

    delete_parser = subparsers.add_parser(
        "delete",
        help="Search + delete matching messages (move to Trash)",
    )
    add_filter_arguments(delete_parser)
    delete_parser.add_argument(
        "--trash-folder",
        help="Destination trash folder (default: Trash)"
    )
    add_limit_argument(delete_parser, "Limit number of messages to act on")
    add_confirmation_arguments(delete_parser)

    move_parser = subparsers.add_parser(
        "move",
        help="Search + move matching messages to a folder",
    )
    add_filter_arguments(move_parser)
    move_parser.add_argument(
        "--dest",
        required=True,
        help="Destination folder"
    )
    add_limit_argument(move_parser, "Limit number of messages to act on")
    add_confirmation_arguments(move_parser)

    mark_parser = subparsers.add_parser(
        "mark",
        help="Search + set/unset flags on matching messages",
    )
    add_filter_arguments(mark_parser)
    flag_group = mark_parser.add_argument_group("flags")
    flag_group.add_argument(
        "--read",
        action="store_true",
        help="Mark as read (\\Seen)"
    )
    flag_group.add_argument(
        "--unread",
        action="store_true",
        help="Mark as unread (remove \\Seen)"
    )
    flag_group.add_argument(
        "--flagged",
        action="store_true",
        help="Set \\Flagged"
    )
    flag_group.add_argument(
        "--unflagged",
        action="store_true",
        help="Remove \\Flagged"
    )
    add_limit_argument(mark_parser, "Limit number of messages to act on")
    add_confirmation_arguments(mark_parser)

def setup_export_command(subparsers) -> None:
    """Setup the export command."""

    export_parser = subparsers.add_parser(
        "export",
        help="Search + export matching messages as .eml files",
    )
    add_filter_arguments(export_parser)
    add_limit_argument(export_parser, "Limit number of results")
    export_parser.add_argument(
        "-o", "--output-dir",
        type=Path,
        default=Path("."),
        help="Output directory for .eml files (default: current directory)"
    )
    add_confirmation_arguments(export_parser, dry_run=False)
    export_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing .eml files"
    )

def setup_info_commands(subparsers) -> None:
    """Setup quota and status commands."""

    subparsers.add_parser(
        "quota",
        help="Show mailbox quota usage",
    )
    subparsers.add_parser(
        "status",
        help="Show per-folder message statistics",
    )


def setup_generator_commands(subparsers) -> None:
    """Setup completions and man, which run without a server connection."""

    completions_parser = subparsers.add_parser(
        "completions",
        help="Generate shell completions",
        description="Print a completion script for the given shell"
    )
    completions_parser.add_argument(
        "shell",
        choices=SHELLS,
        help="Shell to generate for"
    )

    subparsers.add_parser(
        "man",
        help="Generate man page",
        description="Print the slashmail(1) man page in roff format"
    )


## Main Parser Setup

def setup_argument_parser() -> argparse.ArgumentParser:
    """Setup the main argument parser for the slashmail CLI."""

    parser = argparse.ArgumentParser(
        prog="slashmail",
        description="IMAP CLI for searching, managing, and inspecting email",
        epilog="Use 'slashmail <command> --help' for command-specific help."
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"slashmail {__version__}",
    )
    add_connection_arguments(parser)

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        help="Command to execute"
    )

    setup_search_commands(subparsers)
    setup_manage_commands(subparsers)
    setup_export_command(subparsers)
    setup_info_commands(subparsers)

    for subparser in subparsers.choices.values():
        add_connection_arguments(subparser, suppress=True)

    setup_generator_commands(subparsers)

    return parser
