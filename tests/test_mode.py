"""
Unit tests for the direct/streaming mode selector
"""
import os
import shutil
import tempfile

import pytest

from jsonlogs.errors import IOFailure
from jsonlogs.source.mode import get_file_size_mb, should_stream

MB = 1024 * 1024


@pytest.fixture
def temp_dir_manager(request):
    temp_dir = tempfile.mkdtemp(prefix="mode_test_")

    def cleanup_dir():
        if os.path.exists(temp_dir):
            shutil.rmtree(temp_dir)

    request.addfinalizer(cleanup_dir)
    return temp_dir


def sized_file(directory, name, size):
    path = os.path.join(directory, name)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


class TestShouldStream:
    """Test the size threshold decision"""

    def test_threshold_comparison(self, temp_dir_manager):
        path = sized_file(temp_dir_manager, "five.jsonl", 5 * MB)

        assert not should_stream(path, 10)
        assert should_stream(path, 4)

    def test_exact_threshold_is_direct(self, temp_dir_manager):
        path = sized_file(temp_dir_manager, "ten.jsonl", 10 * MB)

        assert not should_stream(path, 10)
        assert should_stream(path, 9.99)

    def test_default_threshold(self, temp_dir_manager):
        small = sized_file(temp_dir_manager, "small.jsonl", 1024)
        large = sized_file(temp_dir_manager, "large.jsonl", 11 * MB)

        assert not should_stream(small)
        assert should_stream(large)

    @pytest.mark.parametrize("override, expected", [(True, True), (False, False)])
    def test_override_wins(self, temp_dir_manager, override, expected):
        path = sized_file(temp_dir_manager, "any.jsonl", 5 * MB)

        assert should_stream(path, 4 if not expected else 100, override=override) is expected

    def test_override_skips_stat(self, temp_dir_manager):
        missing = os.path.join(temp_dir_manager, "missing.jsonl")

        assert should_stream(missing, override=True) is True

    def test_auto_and_none(self, temp_dir_manager):
        path = sized_file(temp_dir_manager, "auto.jsonl", 5 * MB)

        assert should_stream(path, 4, override="auto")
        assert should_stream(path, 4, override=None)

    def test_invalid_override(self, temp_dir_manager):
        path = sized_file(temp_dir_manager, "bad.jsonl", 10)

        with pytest.raises(ValueError):
            should_stream(path, override="sometimes")

    def test_missing_file(self, temp_dir_manager):
        with pytest.raises(IOFailure) as excinfo:
            should_stream(os.path.join(temp_dir_manager, "missing.jsonl"))
        assert excinfo.value.path.endswith("missing.jsonl")


def test_get_file_size_mb(temp_dir_manager):
    path = sized_file(temp_dir_manager, "half.jsonl", MB // 2)
    assert get_file_size_mb(path) == 0.5
