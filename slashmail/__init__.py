"""slashmail - search and batch-manage IMAP mailboxes from the command line."""

__version__ = "0.1.0"
