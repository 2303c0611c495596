"""
Tests for configuration management

Tests cover:
- Configuration loading and defaults
- Configuration validation
- Port defaults per transport
- Error reporting for bad files
"""
import json

import pytest

from slashmail.utils.config_manager import AccountConfig, AppConfig, ConfigManager
from slashmail.utils.errors import InvalidConfigError, MissingConfigError


def write_config(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestConfigurationDefaults:
    """Tests for default configuration values"""

    def test_defaults_without_file(self):
        """Test defaults are used when no config file exists"""
        manager = ConfigManager.load()

        assert manager.path is None
        assert manager.config.account.host == "127.0.0.1"
        assert manager.config.account.tls is False
        assert manager.config.folders.default_folder == "INBOX"
        assert manager.config.folders.trash_folder == "Trash"
        assert manager.config.logging.log_level == "INFO"

    def test_default_ports(self):
        """Test the port follows the transport unless set"""
        account = AccountConfig()
        assert account.resolved_port(tls=False) == 1143
        assert account.resolved_port(tls=True) == 993
        assert AccountConfig(port=1993).resolved_port(tls=True) == 1993

    def test_default_timeout(self):
        """Test the network timeout default"""
        assert AppConfig().account.network_timeout == 30


class TestConfigurationLoading:
    """Tests for reading config files"""

    def test_load_partial_file(self, tmp_path):
        """Test missing sections fall back to defaults"""
        path = write_config(tmp_path / "config.json", {
            "account": {"host": "imap.example.com", "tls": True, "user": "me"},
        })

        manager = ConfigManager.load(path)

        assert manager.path == path
        assert manager.config.account.host == "imap.example.com"
        assert manager.config.account.resolved_port(True) == 993
        assert manager.config.folders.trash_folder == "Trash"

    def test_load_folders(self, tmp_path):
        """Test folder defaults can be overridden"""
        path = write_config(tmp_path / "config.json", {
            "folders": {"default_folder": "Work", "trash_folder": "Deleted Items"},
        })

        config = ConfigManager.load(path).config

        assert config.folders.default_folder == "Work"
        assert config.folders.trash_folder == "Deleted Items"


class TestConfigurationValidation:
    """Tests for rejecting bad configuration"""

    def test_missing_explicit_file(self, tmp_path):
        """Test an explicit path must exist"""
        with pytest.raises(MissingConfigError):
            ConfigManager.load(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON is rejected"""
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(InvalidConfigError) as exc_info:
            ConfigManager.load(path)

        assert "not valid JSON" in exc_info.value.message

    def test_non_object(self, tmp_path):
        """Test the top level must be an object"""
        path = write_config(tmp_path / "config.json", ["a", "b"])

        with pytest.raises(InvalidConfigError):
            ConfigManager.load(path)

    def test_unknown_key(self, tmp_path):
        """Test unknown keys are rejected"""
        path = write_config(tmp_path / "config.json", {"account": {"hostname": "x"}})

        with pytest.raises(InvalidConfigError):
            ConfigManager.load(path)

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_out_of_range(self, tmp_path, port):
        """Test port numbers are range checked"""
        path = write_config(tmp_path / "config.json", {"account": {"port": port}})

        with pytest.raises(InvalidConfigError):
            ConfigManager.load(path)
