"""
Tests for CLI command processing and argument handling

Tests cover:
- Argument parsing
- Connection setting resolution
- Command execution end to end against a fake session
- Error reporting and exit codes
- User interaction
"""
from argparse import Namespace
from unittest.mock import patch

import pytest

from slashmail.cli.cli import main, resolve_password, resolve_settings
from slashmail.cli.cli_parser import setup_argument_parser
from slashmail.cli.commands import COMMAND_HANDLERS
from slashmail.utils.config_manager import AppConfig, ConfigManager
from slashmail.utils.errors import MissingCredentialsError, NetworkError

from .test_helpers import ConsoleTestHelper


@pytest.fixture
def run_cli(fake_session, console, monkeypatch):
    """Run main() against the fake session and capture output"""
    monkeypatch.setenv("SLASHMAIL_USER", "user@example.com")
    monkeypatch.setenv("SLASHMAIL_PASS", "secret")

    def run(*argv):
        with patch('slashmail.cli.cli.connect', return_value=fake_session) as mock_connect, \
                patch('slashmail.cli.cli.get_console', return_value=console):
            code = main(list(argv))
        run.connect = mock_connect
        return code, console.export_text()

    return run


class TestArgumentParsing:
    """Tests for the argument parser"""

    def test_all_commands_registered(self):
        """Test every subcommand has a handler"""
        parser = setup_argument_parser()
        for command in ["search", "count", "delete", "move", "mark", "export", "quota", "status"]:
            args = parser.parse_args(
                [command, "--dest", "X"] if command == "move" else [command]
            )
            assert args.command in COMMAND_HANDLERS

    def test_filters(self):
        """Test filter flags map to criteria fields"""
        args = setup_argument_parser().parse_args([
            "search", "--from", "a@example.com", "--to", "b@example.com",
            "--subject", "hi", "--since", "7d", "--larger", "1M", "-n", "5",
        ])

        assert args.sender == "a@example.com"
        assert args.recipient == "b@example.com"
        assert args.subject == "hi"
        assert args.since == "7d"
        assert args.larger == "1M"
        assert args.limit == 5

    def test_connection_options_before_or_after_command(self):
        """Test connection flags work on either side of the command"""
        parser = setup_argument_parser()

        before = parser.parse_args(["--host", "a", "--tls", "search"])
        after = parser.parse_args(["search", "--host", "b", "-u", "me"])

        assert (before.host, before.tls) == ("a", True)
        assert (after.host, after.user, after.tls) == ("b", "me", False)

    def test_log_level_upper_cased(self):
        """Test --log-level accepts lower case"""
        args = setup_argument_parser().parse_args(["--log-level", "debug", "status"])
        assert args.log_level == "DEBUG"

    def test_move_requires_destination(self):
        """Test move without --dest is a usage error"""
        with pytest.raises(SystemExit):
            setup_argument_parser().parse_args(["move"])

    def test_limit_must_be_positive(self):
        """Test a zero limit is rejected"""
        with pytest.raises(SystemExit):
            setup_argument_parser().parse_args(["search", "-n", "0"])

    def test_export_has_no_dry_run(self):
        """Test export only takes --yes and --force"""
        with pytest.raises(SystemExit):
            setup_argument_parser().parse_args(["export", "--dry-run"])


class TestSettingsResolution:
    """Tests for merging flags, environment and config"""

    def make_args(self, **kwargs):
        defaults = {'host': None, 'port': None, 'tls': False, 'user': None}
        defaults.update(kwargs)
        return Namespace(**defaults)

    def test_defaults(self, monkeypatch):
        """Test built-in defaults with a user from the environment"""
        monkeypatch.setenv("SLASHMAIL_USER", "env-user")

        settings = resolve_settings(self.make_args(), ConfigManager(AppConfig()))

        assert (settings.host, settings.port, settings.tls, settings.user) == (
            "127.0.0.1", 1143, False, "env-user",
        )

    def test_tls_default_port(self):
        """Test --tls switches the default port to 993"""
        settings = resolve_settings(self.make_args(tls=True, user="u"), ConfigManager(AppConfig()))
        assert settings.port == 993

    def test_flags_override_config(self, monkeypatch):
        """Test command-line flags win over environment and config"""
        monkeypatch.setenv("SLASHMAIL_USER", "env-user")
        config = AppConfig(account={"host": "cfg", "port": 1993, "user": "cfg-user"})

        settings = resolve_settings(
            self.make_args(host="flag", port=2000, user="flag-user"), ConfigManager(config)
        )

        assert (settings.host, settings.port, settings.user) == ("flag", 2000, "flag-user")

    def test_config_values_used(self):
        """Test config supplies anything not given on the command line"""
        config = AppConfig(account={"host": "cfg", "port": 1993, "tls": True, "user": "cfg-user"})

        settings = resolve_settings(self.make_args(), ConfigManager(config))

        assert (settings.host, settings.port, settings.tls, settings.user) == (
            "cfg", 1993, True, "cfg-user",
        )

    def test_missing_user(self):
        """Test no user anywhere raises MissingCredentialsError"""
        with pytest.raises(MissingCredentialsError):
            resolve_settings(self.make_args(), ConfigManager(AppConfig()))

    def test_password_from_environment(self, monkeypatch, console):
        """Test SLASHMAIL_PASS skips the prompt"""
        monkeypatch.setenv("SLASHMAIL_PASS", "secret")
        assert resolve_password(console) == "secret"

    def test_password_prompt(self, console):
        """Test the password is prompted for when not in the environment"""
        with patch('slashmail.ui.components.prompts.Prompt.ask', return_value="typed"):
            assert resolve_password(console) == "typed"

    def test_password_prompt_closed(self, console):
        """Test a closed stdin is a missing credential"""
        with patch('slashmail.ui.components.prompts.Prompt.ask', side_effect=EOFError):
            with pytest.raises(MissingCredentialsError):
                resolve_password(console)


class TestCommandExecution:
    """Tests for running commands end to end"""

    def test_search(self, run_cli, fake_session):
        """Test search prints a table and logs out"""
        code, output = run_cli("search", "--subject", "invoice")

        assert code == 0
        ConsoleTestHelper.assert_text_in_output(output, ["Invoice 1", "Invoice 2", "2 message(s)"])
        assert "Meeting" not in output
        assert fake_session.logged_out
        run_cli.connect.assert_called_once_with(
            "127.0.0.1", 1143, False, "user@example.com", "secret", timeout=30
        )

    def test_search_all_folders_shows_folder(self, run_cli):
        """Test cross-folder results include the folder column"""
        code, output = run_cli("search", "--all-folders")

        assert code == 0
        ConsoleTestHelper.assert_text_in_output(output, ["Folder", "Archive", "4 message(s)"])
        assert "Deleted invoice" not in output

    def test_search_no_matches(self, run_cli):
        """Test an empty result"""
        code, output = run_cli("search", "--subject", "zzz")

        assert code == 0
        assert "No messages found." in output

    def test_count(self, run_cli):
        """Test count output"""
        code, output = run_cli("count", "--subject", "invoice")

        assert code == 0
        assert "2 message(s) in INBOX" in output

    def test_delete_with_yes(self, run_cli, fake_session):
        """Test delete moves to Trash without prompting"""
        code, output = run_cli("delete", "--subject", "Meeting", "--yes")

        assert code == 0
        assert "Moved 1 message(s) to Trash." in output
        assert len(fake_session.folders["Trash"]) == 2

    def test_delete_dry_run(self, run_cli, fake_session):
        """Test dry run changes nothing"""
        code, output = run_cli("delete", "--dry-run")

        assert code == 0
        assert "Dry run: 3 message(s) would be moved to Trash." in output
        assert len(fake_session.folders["INBOX"]) == 3

    def test_delete_declined(self, run_cli, fake_session):
        """Test answering no at the prompt aborts"""
        with patch('slashmail.ui.components.prompts.Confirm.ask', return_value=False):
            code, output = run_cli("delete")

        assert code == 0
        assert "Aborted." in output
        assert len(fake_session.folders["INBOX"]) == 3

    def test_move_missing_destination(self, run_cli):
        """Test an unknown destination fails with nothing changed"""
        code, output = run_cli("move", "--dest", "Nowhere", "--yes")

        assert code == 1
        ConsoleTestHelper.assert_text_in_output(output, ["Nowhere", "does not exist", "nothing was changed"])

    def test_move_partial_failure(self, run_cli, fake_session):
        """Test a failure after some folders moved says so"""
        fake_session.add_folder("Done")
        fake_session.fail('uid_copy', after=1)

        code, output = run_cli("move", "--all-folders", "--dest", "Done", "--yes")

        assert code == 1
        assert "some changes were already applied" in output

    def test_mark(self, run_cli, fake_session):
        """Test mark updates flags"""
        code, output = run_cli("mark", "--flagged", "--subject", "Meeting", "--yes")

        assert code == 0
        assert "Updated 1 message(s)." in output
        assert "\\Flagged" in fake_session.folders["INBOX"][2].flags

    def test_mark_dry_run(self, run_cli):
        """Test mark dry run describes the action"""
        code, output = run_cli("mark", "--read", "--dry-run")

        assert code == 0
        assert "Dry run: would mark read 3 message(s)." in output

    def test_mark_without_flags(self, run_cli, fake_session):
        """Test mark without a flag is rejected before searching"""
        code, output = run_cli("mark", "--yes")

        assert code == 1
        assert "Specify at least one flag" in output
        assert "uid_search" not in fake_session.call_names()

    def test_export(self, run_cli, tmp_path):
        """Test export writes files and reports the count"""
        code, output = run_cli("export", "-o", str(tmp_path), "--yes")

        assert code == 0
        assert "Exported 3 message(s)" in output
        assert len(list(tmp_path.glob("*.eml"))) == 3

    def test_status(self, run_cli):
        """Test status lists folders with a total"""
        code, output = run_cli("status")

        assert code == 0
        ConsoleTestHelper.assert_text_in_output(output, ["INBOX", "Archive", "Total"])

    def test_quota_unsupported(self, run_cli):
        """Test quota on a server without QUOTA"""
        code, output = run_cli("quota")

        assert code == 1
        assert "does not support QUOTA" in output

    def test_quota(self, run_cli, fake_session):
        """Test quota usage table"""
        fake_session.capabilities = frozenset({"QUOTA"})

        code, output = run_cli("quota")

        assert code == 0
        ConsoleTestHelper.assert_text_in_output(output, ["STORAGE", "50.0%"])

    def test_invalid_date(self, run_cli):
        """Test a malformed date is reported"""
        code, output = run_cli("search", "--since", "yesterday")

        assert code == 1
        assert "Invalid date 'yesterday'" in output


class TestErrorHandling:
    """Tests for top-level error handling"""

    def test_missing_user(self, console, monkeypatch):
        """Test a missing user exits with status 1"""
        with patch('slashmail.cli.cli.get_console', return_value=console):
            code = main(["search"])

        assert code == 1
        assert "No IMAP user given" in console.export_text()

    def test_connection_error(self, console, monkeypatch):
        """Test connection failures exit with status 1"""
        monkeypatch.setenv("SLASHMAIL_USER", "u")
        monkeypatch.setenv("SLASHMAIL_PASS", "p")

        with patch('slashmail.cli.cli.connect', side_effect=NetworkError("Failed to connect")), \
                patch('slashmail.cli.cli.get_console', return_value=console):
            code = main(["status"])

        assert code == 1
        assert "Failed to connect" in console.export_text()

    def test_keyboard_interrupt(self, console, monkeypatch):
        """Test Ctrl-C exits with status 130"""
        monkeypatch.setenv("SLASHMAIL_USER", "u")
        monkeypatch.setenv("SLASHMAIL_PASS", "p")

        with patch('slashmail.cli.cli.connect', side_effect=KeyboardInterrupt), \
                patch('slashmail.cli.cli.get_console', return_value=console):
            assert main(["status"]) == 130

    def test_missing_config_file(self, console, tmp_path):
        """Test an explicit config path must exist"""
        with patch('slashmail.cli.cli.get_console', return_value=console):
            code = main(["--config", str(tmp_path / "missing.json"), "status"])

        assert code == 1
        assert "Configuration file not found" in console.export_text()
