"""
Unit tests for the line index and its registry
"""
import os
import shutil
import tempfile
import threading
from unittest.mock import patch

import pytest

from jsonlogs.errors import IOFailure, StalenessMismatch
from jsonlogs.stream import line_index
from jsonlogs.stream.line_index import IndexRegistry


@pytest.fixture
def temp_dir_manager(request):
    temp_dir = tempfile.mkdtemp(prefix="index_test_")

    def cleanup_dir():
        if os.path.exists(temp_dir):
            shutil.rmtree(temp_dir)

    request.addfinalizer(cleanup_dir)
    return temp_dir


@pytest.fixture
def registry():
    return IndexRegistry()


def write_bytes(path, data: bytes, mode="wb"):
    with open(path, mode) as f:
        f.write(data)


def json_lines(count, start=1):
    return b"".join(b'{"n": %d}\n' % i for i in range(start, start + count))


def bump_mtime(path, seconds=5):
    stat = os.stat(path)
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + seconds * 1_000_000_000))


class TestBuildIndex:
    """Test building an index from scratch"""

    def test_offsets_and_count(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "a.jsonl")
        write_bytes(path, b"ab\ncde\n\nf\n")

        index = registry.build_index(path)

        assert index.total_lines == 4
        assert index.offsets == [0, 3, 7, 8, 10]
        assert not index.partial_tail
        assert index.signature.size == 10

    def test_crlf_offsets(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "crlf.jsonl")
        write_bytes(path, b"ab\r\ncd\r\n")

        index = registry.build_index(path)

        assert index.total_lines == 2
        assert index.offsets == [0, 4, 8]

    def test_unterminated_last_line_counts(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "partial.jsonl")
        write_bytes(path, b"a\nb")

        index = registry.build_index(path)

        assert index.total_lines == 2
        assert index.offsets == [0, 2, 3]
        assert index.partial_tail

    def test_empty_file(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "empty.jsonl")
        write_bytes(path, b"")

        index = registry.build_index(path)

        assert index.total_lines == 0
        assert index.offsets == [0]

    def test_offsets_strictly_increasing(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "many.jsonl")
        write_bytes(path, json_lines(500))

        offsets = registry.build_index(path).offsets

        assert all(a < b for a, b in zip(offsets, offsets[1:]))

    def test_unchanged_file_reuses_index(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "same.jsonl")
        write_bytes(path, json_lines(10))

        first = registry.build_index(path)
        with patch.object(line_index, "_scan", wraps=line_index._scan) as scan:
            second = registry.build_index(path)

        assert second is first
        scan.assert_not_called()

    def test_force_rebuilds(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "force.jsonl")
        write_bytes(path, json_lines(10))

        first = registry.build_index(path)
        second = registry.build_index(path, force=True)

        assert second is not first
        assert second.offsets == first.offsets

    def test_missing_file_raises_io_failure(self, registry, temp_dir_manager):
        with pytest.raises(IOFailure):
            registry.build_index(os.path.join(temp_dir_manager, "missing.jsonl"))

    def test_progress_callback(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "progress.jsonl")
        write_bytes(path, json_lines(2500))
        calls = []

        registry.build_index(path, progress_callback=lambda lines, pct: calls.append((lines, pct)))

        assert [lines for lines, _ in calls] == [1000, 2000, 2500]
        assert calls[-1][1] == 100

    def test_failing_progress_callback_is_ignored(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "progress.jsonl")
        write_bytes(path, json_lines(1500))

        def broken(lines, percent):
            raise RuntimeError("observer exploded")

        index = registry.build_index(path, progress_callback=broken)
        assert index.total_lines == 1500

    def test_concurrent_builds_scan_once(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "shared.jsonl")
        write_bytes(path, json_lines(5000))
        results = []

        with patch.object(line_index, "_scan", wraps=line_index._scan) as scan:
            threads = [
                threading.Thread(target=lambda: results.append(registry.build_index(path)))
                for _ in range(4)
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert scan.call_count == 1
        assert len(results) == 4
        assert all(result is results[0] for result in results)


class TestUpdateIndex:
    """Test incremental extension for appended lines"""

    def test_append_matches_fresh_build(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "grow.jsonl")
        write_bytes(path, json_lines(100))
        existing = registry.build_index(path)

        write_bytes(path, json_lines(25, start=101), mode="ab")
        updated = registry.update_index(path, existing)
        fresh = IndexRegistry().build_index(path)

        assert updated.total_lines == 125
        assert updated.offsets == fresh.offsets
        assert updated.signature == fresh.signature
        assert updated.tail_digest == fresh.tail_digest
        assert updated.partial_tail == fresh.partial_tail

    def test_update_rescans_unterminated_line(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "partial.jsonl")
        write_bytes(path, b'{"a": 1}\n{"b":')
        existing = registry.build_index(path)
        assert existing.partial_tail

        write_bytes(path, b' 2}\n{"c": 3}\n', mode="ab")
        updated = registry.update_index(path, existing)
        fresh = IndexRegistry().build_index(path)

        assert updated.total_lines == 3
        assert updated.offsets == fresh.offsets
        assert not updated.partial_tail

    def test_update_scans_only_new_bytes(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "resume.jsonl")
        write_bytes(path, json_lines(10))
        existing = registry.build_index(path)

        write_bytes(path, json_lines(2, start=11), mode="ab")
        with patch.object(line_index, "_scan", wraps=line_index._scan) as scan:
            registry.update_index(path, existing)

        assert scan.call_args[0][1] == existing.end_offset

    def test_unchanged_file_returns_existing(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "same.jsonl")
        write_bytes(path, json_lines(3))
        existing = registry.build_index(path)

        assert registry.update_index(path, existing) is existing

    def test_truncation_is_stale(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "truncate.jsonl")
        write_bytes(path, json_lines(10))
        existing = registry.build_index(path)

        with open(path, "r+b") as f:
            f.truncate(5)

        with pytest.raises(StalenessMismatch):
            registry.update_index(path, existing)

    def test_same_size_rewrite_with_new_mtime_is_stale(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "rewrite.jsonl")
        write_bytes(path, b'{"n": 1}\n{"n": 2}\n')
        existing = registry.build_index(path)

        with open(path, "r+b") as f:
            f.write(b'{"n": 9}')
        bump_mtime(path)

        with pytest.raises(StalenessMismatch):
            registry.update_index(path, existing)

    def test_changed_prefix_before_append_is_stale(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "prefix.jsonl")
        write_bytes(path, json_lines(5))
        existing = registry.build_index(path)

        with open(path, "r+b") as f:
            f.write(b'{"n": 7}')
            f.seek(0, os.SEEK_END)
            f.write(json_lines(3, start=6))
        bump_mtime(path)

        with pytest.raises(StalenessMismatch):
            registry.update_index(path, existing)


class TestRefreshAndQueries:
    """Test refresh, staleness queries and eviction"""

    def test_refresh_extends_on_append(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "tail.jsonl")
        write_bytes(path, json_lines(4))
        registry.build_index(path)

        write_bytes(path, json_lines(2, start=5), mode="ab")

        assert registry.is_modified(path)
        assert registry.refresh(path).total_lines == 6
        assert not registry.is_modified(path)

    def test_refresh_rebuilds_when_mtime_changes(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "inplace.jsonl")
        write_bytes(path, b'{"n": 1}\n{"n": 2}\n')
        first = registry.build_index(path)

        # Same size, different bytes: only the new mtime reveals the change
        write_bytes(path, b'{"n":11}\n{"n":22}\n')
        bump_mtime(path)

        with patch.object(line_index, "_scan", wraps=line_index._scan) as scan:
            rebuilt = registry.refresh(path)

        assert rebuilt is not first
        assert scan.call_args[0][1] == 0
        assert rebuilt.signature != first.signature

    def test_refresh_rebuilds_after_truncate(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "shrink.jsonl")
        write_bytes(path, json_lines(10))
        registry.build_index(path)

        write_bytes(path, json_lines(3))

        assert registry.refresh(path).total_lines == 3

    def test_refresh_builds_when_absent(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "new.jsonl")
        write_bytes(path, json_lines(2))

        assert registry.refresh(path).total_lines == 2

    def test_get_total_lines_builds(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "count.jsonl")
        write_bytes(path, json_lines(42))

        assert path not in registry
        assert registry.get_total_lines(path) == 42
        assert path in registry

    def test_is_modified(self, registry, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "mod.jsonl")
        write_bytes(path, json_lines(2))

        assert registry.is_modified(path)
        registry.build_index(path)
        assert not registry.is_modified(path)

        os.remove(path)
        assert registry.is_modified(path)

    def test_clear(self, registry, temp_dir_manager):
        paths = []
        for name in ("one.jsonl", "two.jsonl"):
            path = os.path.join(temp_dir_manager, name)
            write_bytes(path, json_lines(2))
            registry.build_index(path)
            paths.append(path)

        registry.clear(paths[0])
        assert paths[0] not in registry
        assert paths[1] in registry

        registry.clear()
        assert len(registry) == 0

    def test_clear_drops_build_locks(self, registry, temp_dir_manager):
        paths = []
        for name in ("one.jsonl", "two.jsonl"):
            path = os.path.join(temp_dir_manager, name)
            write_bytes(path, json_lines(2))
            registry.build_index(path)
            paths.append(path)

        registry.clear(paths[0])
        assert list(registry._path_locks) == [paths[1]]

        registry.clear()
        assert registry._path_locks == {}

    def test_registries_are_independent(self, temp_dir_manager):
        path = os.path.join(temp_dir_manager, "iso.jsonl")
        write_bytes(path, json_lines(2))

        first = IndexRegistry()
        second = IndexRegistry()
        first.build_index(path)

        assert path in first
        assert path not in second
