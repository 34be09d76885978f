"""
Tests for configuration and environment variables.
"""
import logging
import os
from pathlib import Path

import pytest

from tagmux.utils import Config, setup_logging, truncate_text, get_file_hash, safe_unicode_path

ENV_VARS = ['TAGMUX_CHUNK_SIZE', 'TAGMUX_SYNC_SCAN_LIMIT', 'TAGMUX_NAMESPACE',
            'TAGMUX_ID3V2_VERSION', 'TAGMUX_POPM_EMAIL', 'TAGMUX_FSYNC']


class TestConfig:
    """Tests for Config class and environment variables."""

    def setup_method(self):
        """Clear TAGMUX_ variables before each test."""
        self.saved_env = {var: os.environ.pop(var) for var in ENV_VARS if var in os.environ}

    def teardown_method(self):
        """Restore the environment after each test."""
        for var in ENV_VARS:
            os.environ.pop(var, None)
        os.environ.update(self.saved_env)

    def test_defaults_are_valid(self):
        Config.validate()
        assert Config.DEFAULT_NAMESPACE == "com.apple.iTunes"
        assert Config.ID3V2_VERSION is None

    def test_no_env_keeps_defaults(self):
        Config.load_from_env()
        assert Config.CHUNK_SIZE == 64 * 1024
        assert Config.FSYNC is True

    def test_numeric_env_vars(self):
        os.environ['TAGMUX_CHUNK_SIZE'] = '4096'
        os.environ['TAGMUX_SYNC_SCAN_LIMIT'] = '1024'
        Config.load_from_env()
        assert Config.CHUNK_SIZE == 4096
        assert Config.SYNC_SCAN_LIMIT == 1024

    def test_namespace_env_var(self):
        os.environ['TAGMUX_NAMESPACE'] = 'org.example'
        Config.load_from_env()
        assert Config.DEFAULT_NAMESPACE == 'org.example'

    @pytest.mark.parametrize("value, expected", [('3', 3), ('4', 4), ('keep', None), ('AUTO', None)])
    def test_id3v2_version(self, value, expected):
        os.environ['TAGMUX_ID3V2_VERSION'] = value
        Config.load_from_env()
        assert Config.ID3V2_VERSION == expected

    def test_invalid_id3v2_version(self):
        os.environ['TAGMUX_ID3V2_VERSION'] = '2'
        with pytest.raises(ValueError):
            Config.load_from_env()

    def test_popm_email_may_be_empty(self):
        Config.POPM_EMAIL = 'someone@example.com'
        os.environ['TAGMUX_POPM_EMAIL'] = ''
        Config.load_from_env()
        assert Config.POPM_EMAIL == ''

    def test_fsync_variants(self):
        variants = [('1', True), ('true', True), ('YES', True), ('0', False), ('no', False), ('junk', False)]
        for val, expected in variants:
            os.environ['TAGMUX_FSYNC'] = val
            Config.FSYNC = not expected
            Config.load_from_env()
            assert Config.FSYNC is expected, f"Failed for value: {val}"

    def test_validate_rejects_bad_values(self):
        Config.CHUNK_SIZE = 0
        with pytest.raises(ValueError):
            Config.validate()
        Config.CHUNK_SIZE = 1024
        Config.DEFAULT_NAMESPACE = ''
        with pytest.raises(ValueError):
            Config.validate()


class TestHelpers:

    def test_truncate_text(self):
        assert truncate_text("short") == "short"
        assert truncate_text("x" * 60) == "x" * 47 + "..."
        assert truncate_text(None) == ""

    def test_safe_unicode_path(self):
        assert safe_unicode_path(b"caf\xc3\xa9.mp3") == "caf\u00e9.mp3"
        assert safe_unicode_path(b"caf\xe9.mp3") == "caf\u00e9.mp3"
        assert safe_unicode_path(Path("a/b.flac")) == str(Path("a/b.flac"))

    def test_file_hash(self, tmp_path):
        a = tmp_path / "a.bin"
        b = tmp_path / "b.bin"
        a.write_bytes(b"same")
        b.write_bytes(b"same")
        assert get_file_hash(a) == get_file_hash(b)
        b.write_bytes(b"diff")
        assert get_file_hash(a) != get_file_hash(b)

    def test_setup_logging_creates_log_dir(self, tmp_path):
        root = logging.getLogger()
        before = list(root.handlers)
        level = root.level
        try:
            # basicConfig is a no-op once handlers exist
            for handler in before:
                root.removeHandler(handler)
            setup_logging(verbose=True, log_dir=tmp_path / "logs")
            assert (tmp_path / "logs").is_dir()
            assert root.level == logging.DEBUG
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()
            for handler in before:
                root.addHandler(handler)
            root.setLevel(level)
