"""
Unit tests for diskstash utility functions.
"""

import os
import pytest
from pathlib import Path
from unittest.mock import patch

from diskstash.exceptions import CacheDirectoryError, InvalidKeyError
from diskstash.utils import TEMP_PREFIX, ensure_cache_dir, get_default_cache_dir, validate_key


class TestGetDefaultCacheDir:
    """Test get_default_cache_dir() function."""

    def test_default_path(self, monkeypatch):
        monkeypatch.delenv("DISKSTASH_CACHE_DIR", raising=False)
        assert get_default_cache_dir() == Path.home() / ".cache" / "diskstash"

    def test_custom_env(self, tmp_test_dir, monkeypatch):
        custom_path = tmp_test_dir / "custom_cache"
        monkeypatch.setenv("DISKSTASH_CACHE_DIR", str(custom_path))
        assert get_default_cache_dir() == custom_path
        # Resolution alone doesn't create anything
        assert not custom_path.exists()

    def test_empty_env_uses_default(self, monkeypatch):
        monkeypatch.setenv("DISKSTASH_CACHE_DIR", "")
        assert get_default_cache_dir() == Path.home() / ".cache" / "diskstash"


class TestEnsureCacheDir:
    """Test ensure_cache_dir() function."""

    def test_creates_directory(self, tmp_test_dir):
        new_path = tmp_test_dir / "a" / "b"
        assert not new_path.exists()
        assert ensure_cache_dir(new_path) == new_path
        assert new_path.is_dir()

    def test_existing_directory(self, tmp_test_dir):
        assert ensure_cache_dir(tmp_test_dir) == tmp_test_dir

    def test_accepts_string(self, tmp_test_dir):
        assert ensure_cache_dir(str(tmp_test_dir)) == tmp_test_dir

    def test_handles_permission_error(self, tmp_test_dir):
        """Test that mkdir failures become CacheDirectoryError."""
        with patch("pathlib.Path.mkdir") as mock_mkdir:
            mock_mkdir.side_effect = OSError("Permission denied")
            with pytest.raises(CacheDirectoryError, match="Permission denied"):
                ensure_cache_dir(tmp_test_dir / "denied")

    def test_path_is_file(self, tmp_test_dir):
        file_path = tmp_test_dir / "file"
        file_path.write_text("x")
        with pytest.raises(CacheDirectoryError):
            ensure_cache_dir(file_path)


class TestValidateKey:
    """Test validate_key() function."""

    @pytest.mark.parametrize("key", ["a", "user-42", "with space", "dots.in.name", "...", "ünïcödé"])
    def test_valid_keys(self, key):
        assert validate_key(key) == key

    @pytest.mark.parametrize("key", ["", ".", "..", "a/b", "/abs", "nul\x00", TEMP_PREFIX + "1"])
    def test_invalid_keys(self, key):
        with pytest.raises(InvalidKeyError):
            validate_key(key)

    def test_non_string(self):
        with pytest.raises(InvalidKeyError):
            validate_key(b"bytes")

    @pytest.mark.skipif(os.sep != "\\", reason="Windows path separator")
    def test_backslash_on_windows(self):
        with pytest.raises(InvalidKeyError):
            validate_key("a\\b")
