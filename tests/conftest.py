"""
Shared test fixtures and configuration for pytest
"""
import os
import tempfile

# Keep config and log files out of the real home directory
os.environ.setdefault("SLASHMAIL_HOME", tempfile.mkdtemp(prefix="slashmail-tests-"))

import pytest
from rich.console import Console

from slashmail.core.models.message import SearchCriteria
from slashmail.utils.console import reset_console

from .test_helpers import FakeIMAPSession, MessageFactory


@pytest.fixture
def console():
    """Recording console that never touches the terminal"""
    return Console(record=True, width=300, force_terminal=False, color_system=None)


@pytest.fixture
def fake_session():
    """Session with a small INBOX/Archive/Trash/Spam mailbox set"""
    session = FakeIMAPSession(capabilities={"IMAP4REV1"})
    session.add_folder("INBOX", [
        MessageFactory.create(subject="Invoice 1", sender="billing@example.com", day=1),
        MessageFactory.create(subject="Meeting", sender="boss@example.com", day=3),
        MessageFactory.create(subject="Invoice 2", sender="billing@example.com", day=2),
    ])
    session.add_folder("Archive", [
        MessageFactory.create(subject="Old invoice", sender="billing@example.com", day=4),
    ])
    session.add_folder("Trash", [
        MessageFactory.create(subject="Deleted invoice", sender="billing@example.com", day=5),
    ])
    session.add_folder("Spam")
    return session


@pytest.fixture
def criteria():
    """Default single-folder criteria"""
    return SearchCriteria()


@pytest.fixture(autouse=True)
def clear_env_vars():
    """Clear slashmail environment variables before each test"""
    env_vars = ['SLASHMAIL_USER', 'SLASHMAIL_PASS']
    original = {}
    for var in env_vars:
        original[var] = os.environ.get(var)
        if var in os.environ:
            del os.environ[var]

    yield

    # Restore original environment
    for var, value in original.items():
        if value is not None:
            os.environ[var] = value
        elif var in os.environ:
            del os.environ[var]


@pytest.fixture(autouse=True)
def fresh_console():
    """Reset the shared console between tests"""
    reset_console()
    yield
    reset_console()
