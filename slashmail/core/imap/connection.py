"""IMAP session management - connection setup and the command surface.

``IMAPSession`` wraps one authenticated ``imaplib`` client. Plain and TLS
transports only differ in how the client is constructed in ``connect``;
every command goes through the same methods afterwards.
"""

import imaplib
import re
import ssl
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Set, Tuple

from slashmail.core.imap.constants import IMAPResponse
from slashmail.core.search.query import imap_quote
from slashmail.utils.errors import (
    CommandRejectedError,
    InvalidCredentialsError,
    NetworkError,
    NetworkTimeoutError,
    ProtocolError,
)
from slashmail.utils.logging import get_logger

logger = get_logger(__name__)

LOOPBACK_HOSTS = ("127.0.0.1", "::1", "localhost")

_FETCH_START_RE = re.compile(rb"^\d+ \(")
_FETCH_UID_RE = re.compile(rb"\bUID (\d+)")
_FETCH_SIZE_RE = re.compile(rb"\bRFC822\.SIZE (\d+)")
_FETCH_FLAGS_RE = re.compile(rb"\bFLAGS \(([^)]*)\)")
_LIST_RE = re.compile(
    rb'^\((?P<flags>[^)]*)\)\s+(?P<delim>"(?:[^"\\]|\\.)*"|NIL)\s+(?P<name>.*)$',
    re.IGNORECASE,
)

# Tag used for the completion line of a reconstructed raw response
RAW_RESPONSE_TAG = b"RAW"


@dataclass(frozen=True)
class FetchRecord:
    """One message from a UID FETCH response.

    ``uid`` is None when the server omitted it. ``data`` holds the literal
    payload (header fields or the full message, depending on the request).
    """

    uid: Optional[int]
    size: Optional[int] = None
    flags: Tuple[str, ...] = ()
    data: bytes = b""


def is_loopback(host: str) -> bool:
    """Check whether ``host`` names the local machine."""
    return host in LOOPBACK_HOSTS


def parse_fetch_response(data: List) -> List[FetchRecord]:
    """Group imaplib FETCH data into per-message records.

    imaplib returns a flat list where a message with a literal is a
    ``(meta, literal)`` tuple followed by a closing ``b')'`` (possibly with
    trailing items such as ``b' UID 5)'``), and a message without a literal
    is a single bytes item.
    """
    records: List[FetchRecord] = []
    meta: Optional[bytes] = None
    payload = b""

    def finish() -> None:
        if meta is None:
            return
        uid_match = _FETCH_UID_RE.search(meta)
        size_match = _FETCH_SIZE_RE.search(meta)
        flags_match = _FETCH_FLAGS_RE.search(meta)
        records.append(
            FetchRecord(
                uid=int(uid_match.group(1)) if uid_match else None,
                size=int(size_match.group(1)) if size_match else None,
                flags=tuple(
                    flag.decode("ascii", errors="replace")
                    for flag in flags_match.group(1).split()
                )
                if flags_match
                else (),
                data=payload,
            )
        )

    for item in data:
        if item is None:
            continue
        if isinstance(item, tuple):
            head, literal = item[0], item[1]
            if _FETCH_START_RE.match(head):
                finish()
                meta, payload = head, literal or b""
            elif meta is not None:
                meta += b" " + head
                payload += literal or b""
        elif isinstance(item, bytes):
            if _FETCH_START_RE.match(item):
                finish()
                meta, payload = item, b""
            elif meta is not None:
                meta += item
    finish()

    return records


def parse_list_line(item) -> Optional[str]:
    """Extract the mailbox name from one LIST response item."""
    if isinstance(item, tuple):
        # Name sent as a literal
        return item[1].decode("utf-8", errors="replace") if item[1] else None
    if not isinstance(item, bytes):
        return None

    match = _LIST_RE.match(item.strip())
    if not match:
        logger.debug(f"Unrecognised LIST line: {item[:80]!r}")
        return None

    name = match.group("name").strip()
    if name.startswith(b'"') and name.endswith(b'"') and len(name) >= 2:
        name = re.sub(rb"\\(.)", rb"\1", name[1:-1])

    return name.decode("utf-8", errors="replace")


class IMAPSession:
    """One authenticated IMAP session.

    Commands are strictly sequential: every method blocks until the server
    has completed the exchange. The session must not be shared between
    concurrent operations.
    """

    def __init__(self, client: imaplib.IMAP4):
        self._client = client
        self._capabilities: Optional[FrozenSet[str]] = None
        self.selected_folder: Optional[str] = None

    def __enter__(self) -> "IMAPSession":
        return self

    def __exit__(self, exc_type, exc_value, exc_tb) -> None:
        self.logout()

    ## Helpers

    def _execute(self, operation: str, func: Callable, *args, **details) -> List:
        """Run one imaplib command and return its data, raising on failure."""

        try:
            typ, data = func(*args)

        except (TimeoutError, ssl.SSLError, imaplib.IMAP4.abort, OSError) as e:
            error_type = NetworkTimeoutError if isinstance(e, TimeoutError) else NetworkError
            raise error_type(
                f"Connection lost during {operation}: {e}",
                details={"operation": operation, **details},
            ) from e
        except imaplib.IMAP4.error as e:
            raise CommandRejectedError(
                f"{operation} rejected by server: {e}",
                details={"operation": operation, **details},
            ) from e
        except UnicodeEncodeError as e:
            raise ProtocolError(
                f"{operation} arguments cannot be sent as ASCII: {e}",
                details={"operation": operation, **details},
            ) from e

        if typ != IMAPResponse.OK:
            message = data[0] if data else b"No response"
            if isinstance(message, bytes):
                message = message.decode("utf-8", errors="replace")
            raise CommandRejectedError(
                f"{operation} failed: {typ} {message}",
                details={"operation": operation, "response": str(message), **details},
            )

        return data

    ## Capabilities

    @property
    def capabilities(self) -> FrozenSet[str]:
        """Capability tokens advertised by the server, upper-cased."""

        if self._capabilities is None:
            try:
                data = self._execute("CAPABILITY", self._client.capability)
                raw = b" ".join(d for d in data if isinstance(d, bytes))
                tokens = raw.decode("ascii", errors="replace").split()
            except ProtocolError:
                # Fall back to the greeting capabilities imaplib recorded
                tokens = list(getattr(self._client, "capabilities", ()))
            self._capabilities = frozenset(token.upper() for token in tokens)
            logger.debug(
                "Server capabilities",
                extra={"capabilities": sorted(self._capabilities)},
            )

        return self._capabilities

    def has_capability(self, token: str) -> bool:
        return token.upper() in self.capabilities

    ## Mailbox commands

    def select(self, folder: str) -> int:
        """Select ``folder`` read-write and return its message count."""

        data = self._execute(
            "SELECT", self._client.select, imap_quote(folder), folder=folder
        )
        self.selected_folder = folder
        logger.debug(f"Selected IMAP folder: {folder}")

        try:
            return int(data[0])
        except (TypeError, ValueError, IndexError):
            return 0

    def list_folders(self, reference: str = "", pattern: str = "*") -> List[str]:
        """List mailbox names matching ``pattern`` under ``reference``."""

        data = self._execute(
            "LIST",
            self._client.list,
            imap_quote(reference),
            pattern,
            pattern=pattern,
        )

        folders = []
        for item in data:
            name = parse_list_line(item)
            if name:
                folders.append(name)

        logger.debug(f"Retrieved {len(folders)} folders")
        return folders

    ## Message commands

    def uid_search(self, query: str) -> Set[int]:
        """Run UID SEARCH and return the matching UIDs."""

        if query.isascii():
            data = self._execute(
                "UID SEARCH", self._client.uid, "SEARCH", query, query=query
            )
        else:
            data = self._execute(
                "UID SEARCH",
                self._client.uid,
                "SEARCH",
                "CHARSET",
                "UTF-8",
                query.encode("utf-8"),
                query=query,
            )

        uids: Set[int] = set()
        for line in data:
            if not line:
                continue
            for token in line.split():
                if not token.isdigit():
                    raise ProtocolError(
                        "Failed to parse UIDs from search response",
                        details={"query": query, "token": token[:20]},
                    )
                uids.add(int(token))

        logger.debug("UID search completed", extra={"query": query, "count": len(uids)})
        return uids

    def uid_fetch(self, uid_set: str, items: str) -> List[FetchRecord]:
        data = self._execute(
            "UID FETCH", self._client.uid, "FETCH", uid_set, items, uid_set=uid_set[:80]
        )
        return parse_fetch_response(data)

    def uid_move(self, uid_set: str, dest: str) -> None:
        self._execute(
            "UID MOVE", self._client.uid, "MOVE", uid_set, imap_quote(dest), destination=dest
        )

    def uid_copy(self, uid_set: str, dest: str) -> None:
        self._execute(
            "UID COPY", self._client.uid, "COPY", uid_set, imap_quote(dest), destination=dest
        )

    def uid_store(self, uid_set: str, flag_op: str) -> None:
        """Apply a flag update such as ``+FLAGS (\\Seen)`` to ``uid_set``."""

        operation, _, flags = flag_op.partition(" ")
        self._execute(
            "UID STORE", self._client.uid, "STORE", uid_set, operation, flags, flags=flag_op
        )

    def expunge(self) -> None:
        self._execute("EXPUNGE", self._client.expunge)

    ## Raw commands

    def run_command(self, command: str) -> bytes:
        """Send a command imaplib has no wrapper for and return the response.

        The response is rebuilt as protocol text: one ``* TYPE data`` line per
        untagged response received, then a completion line. A NO or BAD
        completion raises ``CommandRejectedError``.
        """

        name, _, args = command.partition(" ")
        self._client.untagged_responses.clear()

        arguments = []
        if args:
            arguments.append(args if args.isascii() else args.encode("utf-8"))

        data = self._execute(
            name.upper(),
            self._client.xatom,
            name,
            *arguments,
            command=command[:80],
        )

        lines = []
        for response_type, values in list(self._client.untagged_responses.items()):
            for value in values:
                if isinstance(value, tuple):
                    value = b" ".join(part for part in value if part)
                value = value or b""
                line = b"* " + response_type.encode("ascii") + (b" " + value if value else b"")
                lines.append(line)
        self._client.untagged_responses.clear()

        completion = data[0] if data and isinstance(data[0], bytes) else b""
        lines.append(RAW_RESPONSE_TAG + b" OK " + completion)

        return b"\r\n".join(lines) + b"\r\n"

    ## Lifecycle

    def logout(self) -> None:
        """Log out, ignoring errors from an already broken connection."""

        try:
            self._client.logout()
            logger.debug("IMAP session closed")
        except (imaplib.IMAP4.error, OSError) as e:
            logger.debug(f"Logout failed: {e}")


def connect(
    host: str,
    port: int,
    tls: bool,
    user: str,
    password: str,
    timeout: Optional[float] = 30.0,
) -> IMAPSession:
    """Open and authenticate an IMAP session.

    Raises:
        NetworkError: If the server cannot be reached
        InvalidCredentialsError: If the server rejects the login
    """

    if not tls and not is_loopback(host):
        logger.warning(
            f"Connecting to {host} without TLS. Credentials will be sent in "
            "plaintext; use --tls for remote servers."
        )

    try:
        if tls:
            context = ssl.create_default_context()
            context.minimum_version = ssl.TLSVersion.TLSv1_2
            client = imaplib.IMAP4_SSL(host, port, ssl_context=context, timeout=timeout)
        else:
            client = imaplib.IMAP4(host, port, timeout=timeout)

    except (OSError, imaplib.IMAP4.error) as e:
        raise NetworkError(
            f"Failed to connect to {host}:{port}: {e}",
            details={"host": host, "port": port, "tls": tls},
        ) from e

    try:
        client.login(user, password)

    except (imaplib.IMAP4.abort, OSError) as e:
        raise NetworkError(
            f"Connection lost during login: {e}",
            details={"host": host, "port": port},
        ) from e
    except imaplib.IMAP4.error as e:
        try:
            client.logout()
        except (imaplib.IMAP4.error, OSError):
            pass
        raise InvalidCredentialsError(
            f"IMAP login failed: {e}",
            details={"host": host, "user": user},
        ) from e

    logger.info("IMAP login successful", extra={"host": host, "port": port, "tls": tls})
    return IMAPSession(client)
