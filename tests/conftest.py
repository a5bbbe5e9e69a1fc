"""
Shared pytest fixtures for diskstash tests.
"""
import tempfile
from pathlib import Path

import pytest

from diskstash.config import CacheSettings
from diskstash.store import CacheStore
from tests.helpers import FakeClock


@pytest.fixture
def tmp_test_dir():
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def cache_dir(tmp_test_dir):
    """Cache directory inside the temporary test directory (not yet created)."""
    return tmp_test_dir / "cache"


@pytest.fixture
def fake_clock():
    """Deterministic millisecond clock."""
    return FakeClock()


@pytest.fixture
def make_store(cache_dir, fake_clock):
    """Factory for stores with a synchronous startup scan and fake clock."""
    def _make_store(**kwargs):
        kwargs.setdefault("scan_in_background", False)
        kwargs.setdefault("clock", fake_clock)
        return CacheStore(kwargs.pop("cache_dir", cache_dir), **kwargs)
    return _make_store


@pytest.fixture
def store(make_store):
    """Store with default limits."""
    return make_store()


@pytest.fixture
def sample_cache_settings(cache_dir):
    """Create sample cache settings."""
    return CacheSettings(
        cache_dir=cache_dir,
        size_limit=1000,
        count_limit=10,
        default_ttl=60,
        scan_in_background=False,
        log_level="DEBUG",
    )


@pytest.fixture
def sample_config_yaml(tmp_test_dir, cache_dir):
    """Create sample config YAML file."""
    config_file = tmp_test_dir / "config.yaml"
    config_file.write_text(f"""
version: 1.0
cache:
  cache_dir: {cache_dir}
  size_limit: 1000
  count_limit: 10
  default_ttl: 60
  scan_in_background: false
  log_level: info
""")
    return str(config_file)
