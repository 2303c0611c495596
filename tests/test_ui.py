"""
Tests for user interface components and display functions

Tests cover:
- Size formatting
- Message, status and quota tables
- Confirmation prompts
"""
from unittest.mock import patch

from slashmail.core.operations import FolderStatus, QuotaResource
from slashmail.ui.components import ConfirmPrompt, MessageTable, QuotaTable, StatusTable, format_size

from .test_helpers import ConsoleTestHelper, MessageFactory


class TestFormatSize:
    """Tests for human-readable sizes"""

    def test_bytes(self):
        assert format_size(0) == "0B"
        assert format_size(999) == "999B"

    def test_kilobytes(self):
        assert format_size(1024) == "1K"
        assert format_size(2048) == "2K"

    def test_megabytes(self):
        assert format_size(1_048_576) == "1.0M"
        assert format_size(1_572_864) == "1.5M"


class TestMessageTable:
    """Tests for the search result table"""

    def test_display_rows(self, console):
        """Test rows and count are printed"""
        rows = [
            MessageFactory.create_row(1, subject="Hello", sender="alice@example.com"),
            MessageFactory.create_row(2, subject="World", size=2048),
        ]

        MessageTable(console).display(rows)

        output = console.export_text()
        ConsoleTestHelper.assert_text_in_output(
            output, ["UID", "Hello", "alice@example.com", "2K", "2 message(s)"]
        )
        assert "Folder" not in output

    def test_folder_column(self, console):
        """Test the folder column appears for cross-folder rows"""
        MessageTable(console).display([MessageFactory.create_row(1, folder="Archive")])

        ConsoleTestHelper.assert_text_in_output(console.export_text(), ["Folder", "Archive"])

    def test_markup_not_interpreted(self, console):
        """Test header text containing markup is shown literally"""
        MessageTable(console).display([MessageFactory.create_row(1, subject="[bold]hi[/bold]")])

        assert "[bold]hi[/bold]" in console.export_text()

    def test_empty(self, console):
        """Test an empty result message"""
        MessageTable(console).display([])
        assert "No messages found." in console.export_text()


class TestStatusTable:
    """Tests for the folder status table"""

    def test_totals_skip_unknown(self, console):
        """Test unknown folders show ? and are left out of totals"""
        StatusTable(console).display([
            FolderStatus("INBOX", 10, 2, 1),
            FolderStatus("Archive", 5, 0, 0),
            FolderStatus("Broken"),
        ])

        output = console.export_text()
        ConsoleTestHelper.assert_text_in_output(output, ["INBOX", "Broken", "?", "Total", "15"])


class TestQuotaTable:
    """Tests for the quota table"""

    def test_storage_in_kib(self, console):
        """Test STORAGE values are shown as sizes"""
        QuotaTable(console).display([
            QuotaResource("STORAGE", 1024, 2048),
            QuotaResource("MESSAGE", 10, 1000),
        ])

        output = console.export_text()
        ConsoleTestHelper.assert_text_in_output(
            output, ["1.0M", "2.0M", "50.0%", "MESSAGE", "1000", "1.0%"]
        )

    def test_usage_style(self):
        """Test high usage is highlighted"""
        assert QuotaTable._usage_style(95.0) == "red"
        assert QuotaTable._usage_style(80.0) == "yellow"
        assert QuotaTable._usage_style(10.0) == ""

    def test_empty(self, console):
        """Test servers reporting no resources"""
        QuotaTable(console).display([])
        assert "No quota information available." in console.export_text()


class TestConfirmPrompt:
    """Tests for the confirmation prompt"""

    def test_confirmed(self, console):
        with patch('slashmail.ui.components.prompts.Confirm.ask', return_value=True) as ask:
            assert ConfirmPrompt(console)("Proceed?")

        assert ask.call_args.kwargs["default"] is False

    def test_closed_input_declines(self, console):
        """Test Ctrl-D counts as no"""
        with patch('slashmail.ui.components.prompts.Confirm.ask', side_effect=EOFError):
            assert ConfirmPrompt(console).ask("Proceed?") is False
