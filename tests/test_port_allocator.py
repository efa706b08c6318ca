from __future__ import annotations

import errno
import socket
from pathlib import Path
from unittest.mock import patch

import pytest

from askbridge.engine.errors import NoPortAvailable, PortBindError
from askbridge.engine.port_allocator import PortAllocator
from askbridge.shared.services.port_file import (
    port_file_path,
    read_port_file,
    write_port_file,
)


def _listening_socket() -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    return sock


def test_candidates_wrap_and_never_repeat() -> None:
    allocator = PortAllocator(base_port=1000, max_attempts=5)
    assert allocator.candidates(3) == [1003, 1004, 1000, 1001, 1002]
    assert allocator.candidates(0) == [1000, 1001, 1002, 1003, 1004]
    assert allocator.candidates(7) == allocator.candidates(2)


def test_occupied_base_port_advances_and_publishes(tmp_path: Path) -> None:
    occupied = _listening_socket()
    base = occupied.getsockname()[1]
    roots = [tmp_path / "alpha", tmp_path / "beta"]
    for root in roots:
        root.mkdir()
    allocator = PortAllocator(roots, base_port=base, max_attempts=20)
    try:
        port = allocator.allocate()
        assert port != base
        assert base < port < base + 20
        for root in roots:
            assert read_port_file(root) == port
            assert port_file_path(root).read_text() == str(port)
    finally:
        allocator.release()
        occupied.close()

    for root in roots:
        assert not port_file_path(root).exists()


def test_exhausted_range_raises_no_port_available(tmp_path: Path) -> None:
    occupied = _listening_socket()
    base = occupied.getsockname()[1]
    write_port_file(tmp_path, 12345)
    allocator = PortAllocator([tmp_path], base_port=base, max_attempts=1)
    try:
        with pytest.raises(NoPortAvailable) as excinfo:
            allocator.allocate()
    finally:
        occupied.close()

    assert excinfo.value.attempts == 1
    # Stale descriptor is cleared before binding, even when binding fails.
    assert read_port_file(tmp_path) is None


def test_every_candidate_tried_once_before_giving_up() -> None:
    allocator = PortAllocator(base_port=40000, max_attempts=4)
    tried: list[int] = []

    def in_use(port: int):
        tried.append(port)
        raise OSError(errno.EADDRINUSE, "Address already in use")

    with patch.object(allocator, "_bind", side_effect=in_use):
        with pytest.raises(NoPortAvailable):
            allocator.allocate(start_offset=2)

    assert tried == [40002, 40003, 40000, 40001]


def test_other_bind_errors_are_fatal() -> None:
    allocator = PortAllocator(base_port=40000, max_attempts=10)
    with patch.object(
        allocator, "_bind", side_effect=OSError(errno.EACCES, "Permission denied"),
    ) as bind:
        with pytest.raises(PortBindError) as excinfo:
            allocator.allocate()

    assert bind.call_count == 1
    assert excinfo.value.port == 40000


def test_unwritable_root_does_not_block_allocation(tmp_path: Path) -> None:
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    good_root = tmp_path / "ok"
    good_root.mkdir()
    fake_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    allocator = PortAllocator([not_a_dir, good_root], base_port=40000, max_attempts=1)
    try:
        with patch.object(allocator, "_bind", return_value=fake_socket):
            port = allocator.allocate()
        assert port == 40000
        assert read_port_file(good_root) == 40000
    finally:
        allocator.release()


def test_read_port_file_rejects_garbage(tmp_path: Path) -> None:
    path = port_file_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("not-a-port")
    assert read_port_file(tmp_path) is None
    path.write_text("70000")
    assert read_port_file(tmp_path) is None


def test_port_file_write_is_atomic_and_leaves_no_temp_files(tmp_path: Path) -> None:
    write_port_file(tmp_path, 34500)
    write_port_file(tmp_path, 34501)

    assert read_port_file(tmp_path) == 34501
    assert [p.name for p in port_file_path(tmp_path).parent.iterdir()] == ["port"]
