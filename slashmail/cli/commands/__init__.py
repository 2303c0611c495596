"""Command handlers for the slashmail CLI

Each command has its own module with a ``BaseCommandHandler`` subclass;
``COMMAND_HANDLERS`` maps subcommand names to handler classes.
"""

from .base import BaseCommandHandler
from .count import CountCommandHandler
from .delete import DeleteCommandHandler
from .export import ExportCommandHandler
from .mark import MarkCommandHandler
from .move import MoveCommandHandler
from .quota import QuotaCommandHandler
from .search import SearchCommandHandler
from .status import StatusCommandHandler

COMMAND_HANDLERS = {
    "search": SearchCommandHandler,
    "count": CountCommandHandler,
    "delete": DeleteCommandHandler,
    "move": MoveCommandHandler,
    "mark": MarkCommandHandler,
    "export": ExportCommandHandler,
    "quota": QuotaCommandHandler,
    "status": StatusCommandHandler,
}

__all__ = [
    'COMMAND_HANDLERS',
    'BaseCommandHandler',
    'CountCommandHandler',
    'DeleteCommandHandler',
    'ExportCommandHandler',
    'MarkCommandHandler',
    'MoveCommandHandler',
    'QuotaCommandHandler',
    'SearchCommandHandler',
    'StatusCommandHandler',
]
