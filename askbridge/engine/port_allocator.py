"""Port allocator — binds a loopback port and publishes it to project roots."""
from __future__ import annotations

import errno
import logging
import socket
from collections.abc import Iterable
from pathlib import Path

from askbridge.shared.services.port_file import remove_port_file, write_port_file

from .errors import NoPortAvailable, PortBindError

logger = logging.getLogger(__name__)

DEFAULT_BASE_PORT = 34500
DEFAULT_MAX_PORT_ATTEMPTS = 100

_ADDR_IN_USE = {errno.EADDRINUSE}
if hasattr(errno, "WSAEADDRINUSE"):
    _ADDR_IN_USE.add(errno.WSAEADDRINUSE)


class PortAllocator:
    """Scans ``[base_port, base_port + max_attempts)`` for a free port.

    The bound, listening socket is kept on ``self.socket`` so the HTTP
    server can adopt it without a bind race. Every project root receives
    the same port in its descriptor file.
    """

    def __init__(
        self,
        project_roots: Iterable[str | Path] = (),
        base_port: int = DEFAULT_BASE_PORT,
        max_attempts: int = DEFAULT_MAX_PORT_ATTEMPTS,
        host: str = "127.0.0.1",
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.project_roots = [Path(r) for r in project_roots]
        self.base_port = base_port
        self.max_attempts = max_attempts
        self.host = host
        self.port: int | None = None
        self.socket: socket.socket | None = None

    def candidates(self, start_offset: int = 0) -> list[int]:
        """Every port in the range once, starting at ``start_offset`` and wrapping."""
        start = start_offset % self.max_attempts
        return [
            self.base_port + (start + i) % self.max_attempts
            for i in range(self.max_attempts)
        ]

    def allocate(self, start_offset: int = 0) -> int:
        """Bind the first free candidate and publish it.

        Raises ``NoPortAvailable`` when the whole range is in use and
        ``PortBindError`` for any other bind failure.
        """
        self.clear_port_files()

        for port in self.candidates(start_offset):
            try:
                sock = self._bind(port)
            except OSError as exc:
                if exc.errno in _ADDR_IN_USE:
                    logger.debug("Port %d in use, trying next", port)
                    continue
                raise PortBindError(port, str(exc)) from exc
            self.socket = sock
            self.port = port
            logger.info("Bridge bound %s:%d", self.host, port)
            self.publish(port)
            return port

        raise NoPortAvailable(self.base_port, self.max_attempts)

    def _bind(self, port: int) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((self.host, port))
            sock.listen(128)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        return sock

    def publish(self, port: int) -> None:
        """Write the descriptor under every root; failures are only logged."""
        for root in self.project_roots:
            try:
                path = write_port_file(root, port)
                logger.debug("Published port %d to %s", port, path)
            except OSError as exc:
                logger.error("Failed to write port file under %s: %s", root, exc)

    def clear_port_files(self) -> None:
        for root in self.project_roots:
            remove_port_file(root)

    def release(self) -> None:
        """Delete descriptors and close the socket if nobody adopted it."""
        self.clear_port_files()
        if self.socket is not None:
            try:
                self.socket.close()
            except OSError:
                logger.debug("Socket close failed", exc_info=True)
            self.socket = None
        self.port = None
