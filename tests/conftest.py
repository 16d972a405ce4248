import socket
import threading

import pytest


class LocalTCPServer:
    """Listener on 127.0.0.1 that optionally sends a banner on accept.

    Accepted connections are held open until close(), so a silent server
    makes the client's banner read time out rather than see EOF.
    """

    def __init__(self, banner: bytes = b"", port: int = 0):
        self.banner = banner
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", port))
        self.sock.listen(128)
        self.sock.settimeout(0.05)
        self.port = self.sock.getsockname()[1]
        self.accepted = 0
        self._conns = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "LocalTCPServer":
        self._thread.start()
        return self

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            self.accepted += 1
            if self.banner:
                try:
                    conn.sendall(self.banner)
                except OSError:
                    pass
            self._conns.append(conn)

    def close(self):
        self._stop.set()
        self._thread.join(timeout=2)
        for conn in self._conns:
            conn.close()
        self.sock.close()


def port_is_closed(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.settimeout(0.2)
        return s.connect_ex(("127.0.0.1", port)) != 0


def find_closed_port() -> int:
    """Reserve and release an ephemeral port so nothing is listening on it"""
    for _ in range(20):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 0))
            port = s.getsockname()[1]
        if port_is_closed(port):
            return port
    pytest.skip("could not find a closed local port")


@pytest.fixture
def closed_port():
    return find_closed_port()


@pytest.fixture
def banner_server():
    server = LocalTCPServer(banner=b"hi\n").start()
    yield server
    server.close()


@pytest.fixture
def silent_server():
    server = LocalTCPServer().start()
    yield server
    server.close()


@pytest.fixture
def isolated_banner_server():
    """Banner server on port P where P-1, P+1 and P+2 are all closed"""
    for _ in range(50):
        server = LocalTCPServer(banner=b"hi\n")
        port = server.port
        if 2 <= port <= 65533 and all(port_is_closed(p) for p in (port - 1, port + 1, port + 2)):
            server.start()
            yield server
            server.close()
            return
        server.close()
    pytest.skip("could not find an isolated local port")
