"""Tests for the DiskBoard and MemoryBoard backing stores."""

from __future__ import annotations

import threading
from pathlib import Path

import diskcache
import pytest

from pkgcache.cache.backend import BoardBackend, DiskBoard, MemoryBoard


@pytest.fixture(params=["disk", "memory"])
def board(request: pytest.FixtureRequest, tmp_path: Path) -> BoardBackend:
    b: BoardBackend = DiskBoard(tmp_path) if request.param == "disk" else MemoryBoard()
    yield b
    b.close()


class TestRegistration:
    def test_provision_reports_first_registration(self, board: BoardBackend) -> None:
        assert board.provision("ns") is True
        assert board.provision("ns") is False
        assert board.is_registered("ns")

    def test_deregister(self, board: BoardBackend) -> None:
        board.provision("ns")
        assert board.deregister("ns") is True
        assert not board.is_registered("ns")
        assert board.deregister("ns") is False

    def test_close_deregisters_everything(self, board: BoardBackend) -> None:
        board.provision("a")
        board.provision("b")
        board.close()
        assert not board.is_registered("a")
        assert not board.is_registered("b")


class TestEntries:
    def test_put_get(self, board: BoardBackend) -> None:
        board.put("ns", "k", {"x": 1}, created=1700000000.5)
        [entry] = board.get("ns", "k")
        assert entry.key == "k"
        assert entry.value == {"x": 1}
        assert entry.created == 1700000000.5

    def test_get_missing(self, board: BoardBackend) -> None:
        assert board.get("ns", "missing") == []

    def test_entry_without_timestamp(self, board: BoardBackend) -> None:
        board.put("ns", "k", "v", created=None)
        [entry] = board.get("ns", "k")
        assert entry.created is None
        assert entry.created_at is None

    def test_list(self, board: BoardBackend) -> None:
        board.put("ns", "a", 1, created=10.0)
        board.put("ns", "b", 2, created=20.0)
        listed = {e.key: (e.value, e.created) for e in board.list("ns")}
        assert listed == {"a": (1, 10.0), "b": (2, 20.0)}

    def test_delete(self, board: BoardBackend) -> None:
        board.put("ns", "k", 1, created=1.0)
        assert board.delete("ns", "k") is True
        assert board.delete("ns", "k") is False
        assert board.get("ns", "k") == []

    def test_namespaces_do_not_share_keys(self, board: BoardBackend) -> None:
        board.put("a", "k", 1, created=1.0)
        assert board.get("b", "k") == []


class TestDiskBoard:
    def test_namespace_directory(self, tmp_path: Path) -> None:
        board = DiskBoard(tmp_path)
        try:
            board.provision("pkgcache_demo")
            assert board.path("pkgcache_demo") == tmp_path / "pkgcache_demo"
            assert (tmp_path / "pkgcache_demo").is_dir()
            assert board.root == tmp_path
        finally:
            board.close()

    def test_timestamp_is_stored_as_tag(self, tmp_path: Path) -> None:
        board = DiskBoard(tmp_path)
        board.put("ns", "k", "v", created=123.0)
        board.close()

        with diskcache.Cache(str(tmp_path / "ns")) as raw:
            assert raw.get("k", tag=True) == ("v", 123.0)

    def test_foreign_tag_reads_as_missing_timestamp(self, tmp_path: Path) -> None:
        with diskcache.Cache(str(tmp_path / "ns")) as raw:
            raw.set("k", "v", tag="not-a-time")

        board = DiskBoard(tmp_path)
        try:
            [entry] = board.get("ns", "k")
            assert entry.created is None
        finally:
            board.close()

    def test_large_values(self, tmp_path: Path) -> None:
        board = DiskBoard(tmp_path)
        try:
            blob = b"x" * 200_000
            board.put("ns", "blob", blob, created=1.0)
            assert board.get("ns", "blob")[0].value == blob
        finally:
            board.close()

    def test_writes_survive_concurrent_deregister(self, tmp_path: Path) -> None:
        board = DiskBoard(tmp_path)
        errors: list[BaseException] = []

        def write(worker: int) -> None:
            try:
                for i in range(25):
                    board.put("ns", f"{worker}-{i}", i, created=1.0)
            except BaseException as exc:
                errors.append(exc)

        def churn() -> None:
            try:
                for _ in range(25):
                    board.deregister("ns")
                    board.provision("ns")
            except BaseException as exc:
                errors.append(exc)

        threads = [threading.Thread(target=write, args=(n,)) for n in range(4)]
        threads.append(threading.Thread(target=churn))
        try:
            for t in threads:
                t.start()
            for t in threads:
                t.join()
            assert errors == []
            assert len(board.list("ns")) == 100
        finally:
            board.close()


class TestMemoryBoard:
    def test_data_survives_deregister(self) -> None:
        board = MemoryBoard()
        board.put("ns", "k", 1, created=1.0)
        board.deregister("ns")
        assert board.get("ns", "k")[0].value == 1

    def test_path_is_none(self) -> None:
        assert MemoryBoard().path("ns") is None
