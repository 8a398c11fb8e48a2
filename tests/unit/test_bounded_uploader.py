"""Unit tests for BoundedUploader."""

import asyncio
import random

import pytest

from commit_mirror.domain.entities import FileRef
from commit_mirror.services.bounded_uploader import BoundedUploader


class FakeRepoClient:
    """Returns file bytes after a random delay; fails for selected paths."""

    def __init__(self, failing=(), delay=0.01):
        self.failing = set(failing)
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.calls = []

    async def list_commit_files(self, commit_id, branch=None):
        return []

    async def fetch_file_bytes(self, path, commit_id, branch=None):
        self.calls.append(path)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(random.uniform(0, self.delay))
            if path in self.failing:
                raise RuntimeError(f"download failed: {path}")
            return path.encode()
        finally:
            self.active -= 1


class MemorySink:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.objects = {}

    async def write(self, key, data):
        await asyncio.sleep(0)
        if key in self.failing:
            raise RuntimeError("sink rejected")
        self.objects[key] = data


def refs(n):
    return [FileRef(f"dir/file{i}.txt") for i in range(n)]


class TestBoundedUploader:
    @pytest.mark.asyncio
    async def test_all_files_uploaded_in_input_order(self):
        sink = MemorySink()
        files = refs(12)

        keys = await BoundedUploader(sink).run(files, "abc123", FakeRepoClient())

        assert keys == [f"abc123/{f.path}" for f in files]
        assert sink.objects["abc123/dir/file3.txt"] == b"dir/file3.txt"

    @pytest.mark.parametrize("failures", [0, 1, 3, 10])
    @pytest.mark.asyncio
    async def test_partial_download_failures(self, failures):
        files = refs(10)
        failing = {f.path for f in files[:failures]}

        keys = await BoundedUploader(MemorySink()).run(
            files, "abc123", FakeRepoClient(failing=failing)
        )

        assert len(keys) == 10 - failures
        assert keys == [f"abc123/{f.path}" for f in files if f.path not in failing]

    @pytest.mark.asyncio
    async def test_upload_failure_dropped(self):
        files = refs(3)
        sink = MemorySink(failing={"abc123/dir/file1.txt"})

        keys = await BoundedUploader(sink).run(files, "abc123", FakeRepoClient())

        assert keys == ["abc123/dir/file0.txt", "abc123/dir/file2.txt"]

    @pytest.mark.asyncio
    async def test_concurrency_ceiling(self):
        client = FakeRepoClient(delay=0.02)

        await BoundedUploader(MemorySink(), max_concurrency=3).run(refs(20), "c", client)

        assert len(client.calls) == 20
        assert 1 <= client.peak <= 3

    @pytest.mark.asyncio
    async def test_failed_files_not_retried(self):
        client = FakeRepoClient(failing={"dir/file0.txt"})

        await BoundedUploader(MemorySink()).run(refs(2), "c", client)

        assert client.calls.count("dir/file0.txt") == 1

    @pytest.mark.asyncio
    async def test_empty_file_list(self):
        assert await BoundedUploader(MemorySink()).run([], "c", FakeRepoClient()) == []

    def test_rejects_non_positive_concurrency(self):
        with pytest.raises(ValueError):
            BoundedUploader(MemorySink(), max_concurrency=0)
