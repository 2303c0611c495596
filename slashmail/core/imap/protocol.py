"""IMAP protocol operations - capability-aware mutations over a session."""

from typing import Optional

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.imap.constants import Capabilities, IMAPFlags
from slashmail.utils.errors import NetworkError, PartialMutationError, ProtocolError
from slashmail.utils.logging import get_logger

logger = get_logger(__name__)


class IMAPProtocol:
    """Mutation orchestration on top of an ``IMAPSession``."""

    def __init__(self, session: IMAPSession):
        """Initialise IMAP protocol handler.

        Args:
            session: Authenticated IMAPSession
        """
        self.session = session
        self._selected_folder: Optional[str] = None

    def select_folder(self, folder: str) -> None:
        """Select an IMAP folder for mutations.

        Raises:
            ProtocolError: If folder selection fails
        """
        if self._selected_folder == folder and self.session.selected_folder == folder:
            logger.debug(f"Folder {folder} already selected, skipping")
            return

        try:
            self.session.select(folder)
        except ProtocolError as e:
            raise ProtocolError(
                f"Failed to select folder '{folder}': {e.message}",
                details={"folder": folder},
            ) from e

        self._selected_folder = folder

    def move_or_fallback(self, uid_set: str, dest: str) -> None:
        """Move ``uid_set`` from the selected folder to ``dest``.

        Uses UID MOVE when advertised. Otherwise copies, flags the source
        messages ``\\Deleted`` and expunges. Each step aborts the rest on
        failure and nothing is undone, so a failure after the copy can leave
        messages in both folders.

        Raises:
            ProtocolError: If MOVE or COPY is rejected (nothing changed)
            PartialMutationError: If STORE or EXPUNGE fails after the copy
        """
        if self.session.has_capability(Capabilities.MOVE):
            try:
                self.session.uid_move(uid_set, dest)
            except ProtocolError as e:
                raise ProtocolError(
                    f"UID MOVE to '{dest}' failed: {e.message}",
                    details={"destination": dest},
                ) from e
            return

        logger.debug(f"Server lacks MOVE, using COPY/STORE/EXPUNGE to '{dest}'")

        try:
            self.session.uid_copy(uid_set, dest)
        except ProtocolError as e:
            raise ProtocolError(
                f"UID COPY to '{dest}' failed: {e.message}",
                details={"destination": dest},
            ) from e

        try:
            self.session.uid_store(uid_set, f"+FLAGS ({IMAPFlags.DELETED})")
            self.session.expunge()
        except (ProtocolError, NetworkError) as e:
            raise PartialMutationError(
                f"Messages were copied to '{dest}' but could not be removed "
                f"from the source: {e.message}",
                details={"destination": dest},
            ) from e

    def store_flags(self, uid_set: str, flag_op: str) -> None:
        """Apply one flag update (e.g. ``+FLAGS (\\Seen)``) to ``uid_set``."""
        try:
            self.session.uid_store(uid_set, flag_op)
        except ProtocolError as e:
            raise ProtocolError(
                f"UID STORE {flag_op} failed: {e.message}",
                details={"flags": flag_op},
            ) from e
