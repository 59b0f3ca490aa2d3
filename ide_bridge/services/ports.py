# ide_bridge/services/ports.py
import logging
import socket
from typing import Iterable, Optional

log = logging.getLogger(__name__)


def try_bind(port: int, host: str = "127.0.0.1") -> Optional[socket.socket]:
    """Bound, listening socket on `port`, or None when the port is taken."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(128)
    except OSError:
        sock.close()
        return None
    sock.setblocking(False)
    return sock


def is_port_available(port: int, host: str = "127.0.0.1") -> bool:
    sock = try_bind(port, host)
    if sock is None:
        return False
    sock.close()
    return True


def bind_available_port(
    start: int, end: int, preferred: Iterable[int] = (), host: str = "127.0.0.1"
) -> Optional[socket.socket]:
    """
    Bind the first free port among `preferred`, then in `start..end` inclusive.
    Binding (rather than probing) means the port cannot be taken between the
    check and the server start.
    """
    seen = set()
    for port in list(preferred) + list(range(start, end + 1)):
        if port in seen or not 0 < port < 65536:
            continue
        seen.add(port)
        sock = try_bind(port, host)
        if sock is not None:
            log.info("bound %s:%d", host, port)
            return sock
    log.error("no free port in %d-%d on %s", start, end, host)
    return None
