"""
Unit tests for sampling consumers
"""
import os
import shutil
import tempfile

import pytest

from jsonlogs.analysis.sampling import discover_columns, sample_lines
from jsonlogs.config import load_config
from jsonlogs.source.handle import Workspace


@pytest.fixture
def temp_dir_manager(request):
    temp_dir = tempfile.mkdtemp(prefix="sampling_test_")

    def cleanup_dir():
        if os.path.exists(temp_dir):
            shutil.rmtree(temp_dir)

    request.addfinalizer(cleanup_dir)
    return temp_dir


@pytest.fixture
def workspace():
    ws = Workspace(config=load_config(overrides={"streaming": {"show_progress": False}}))
    yield ws
    ws.close_all()


@pytest.fixture
def wide_file(temp_dir_manager):
    path = os.path.join(temp_dir_manager, "wide.jsonl")
    lines = ['{"n": %d, "ctx": {"user": "u%d"}}' % (i, i) for i in range(1, 101)]
    lines[49] = '{"n": 50, "rare": true}'
    lines[20] = ""
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")
    return path


class TestSampleLines:
    """Test evenly spaced sampling"""

    def test_step(self, workspace, wide_file):
        source = workspace.open_source(wide_file, streaming=True)

        samples = sample_lines(source, 10)

        assert [n for n, _ in samples] == [1, 11, 31, 41, 51, 61, 71, 81, 91]

    def test_small_file_reads_every_line(self, workspace, wide_file):
        source = workspace.open_source(wide_file, streaming=True)

        assert len(sample_lines(source, 1000)) == 99

    def test_invalid_size(self, workspace, wide_file):
        source = workspace.open_source(wide_file)
        with pytest.raises(ValueError):
            sample_lines(source, 0)


class TestDiscoverColumns:
    """Test column discovery in both modes"""

    def test_direct_mode_reads_every_line(self, workspace, wide_file):
        source = workspace.open_source(wide_file, streaming=False)

        assert discover_columns(source) == ["ctx.user", "n", "rare"]

    def test_streaming_mode_samples(self, workspace, wide_file):
        source = workspace.open_source(wide_file, streaming=True)

        assert discover_columns(source, sample_size=10) == ["ctx.user", "n"]

    def test_does_not_fill_parse_cache(self, workspace, wide_file):
        source = workspace.open_source(wide_file, streaming=True)

        discover_columns(source)

        assert len(source.cache) == 0
