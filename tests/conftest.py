"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Dict, Generator, Optional, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import ServerConfig, StaticServer
from staticserver.core import ActiveConnectionSet, Connection, ConnectionHandler


INDEX_HTML = b"<html><body>home</body></html>"
ERROR_PAGES = {code: f"<html><h1>error {code}</h1></html>".encode() for code in (400, 403, 404)}


# =============================================================================
# DOCUMENT ROOT
# =============================================================================

@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """
    A small document root:

        www/
        ├── www.scu.edu/index.html
        ├── errors/{400,403,404}.html
        ├── about.html
        ├── style.css
        └── data.bin          (extension not on the allow-list)
    """
    root = tmp_path / "www"
    (root / "www.scu.edu").mkdir(parents=True)
    (root / "www.scu.edu" / "index.html").write_bytes(INDEX_HTML)

    errors = root / "errors"
    errors.mkdir()
    for code, body in ERROR_PAGES.items():
        (errors / f"{code}.html").write_bytes(body)

    (root / "about.html").write_bytes(b"<p>about</p>")
    (root / "style.css").write_bytes(b"body { color: red; }")
    (root / "data.bin").write_bytes(b"\x00\x01\x02")
    return root


@pytest.fixture
def config(docroot: Path) -> ServerConfig:
    """Test configuration: OS-assigned port, short timeouts, console-less."""
    return ServerConfig(
        document_root=str(docroot),
        host="127.0.0.1",
        port=0,
        idle_timeout=2.0,
        server_timeout=None,
        log_file=None,
    )


# =============================================================================
# CLIENT SIDE HELPERS
# =============================================================================

class Client:
    """Minimal blocking HTTP client over one socket."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self.sock.settimeout(5.0)
        self.rfile = sock.makefile("rb")

    def send(self, data: bytes):
        self.sock.sendall(data)

    def request(
        self,
        path: str,
        version: Optional[str] = "HTTP/1.1",
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
    ):
        line = f"{method} {path}" + (f" {version}" if version else "")
        lines = [line] + [f"{name}: {value}" for name, value in (headers or {}).items()]
        self.send(("\r\n".join(lines) + "\r\n\r\n").encode("utf-8"))

    def read_response(self) -> Optional[Tuple[str, Dict[str, str], bytes]]:
        """Read one response: (status line, lowercase headers, body), or None on EOF."""
        status_line = self.rfile.readline()
        if not status_line:
            return None

        headers: Dict[str, str] = {}
        while True:
            line = self.rfile.readline().decode("iso-8859-1").strip()
            if not line:
                break
            name, _, value = line.partition(":")
            headers[name.strip().lower()] = value.strip()

        body = self.rfile.read(int(headers.get("content-length", "0")))
        return status_line.decode("iso-8859-1").rstrip("\r\n"), headers, body

    def get(self, path: str, **kwargs):
        self.request(path, **kwargs)
        return self.read_response()

    def at_eof(self) -> bool:
        """True once the server has closed its side (blocks up to 5 s)."""
        return self.rfile.read(1) == b""

    def close(self):
        self.rfile.close()
        self.sock.close()


class Harness:
    """A ConnectionHandler running on one end of a socket pair."""

    def __init__(self, client: Client, handler: ConnectionHandler,
                 thread: threading.Thread, registry: ActiveConnectionSet):
        self.client = client
        self.handler = handler
        self.thread = thread
        self.registry = registry

    def wait_closed(self, timeout: float = 5.0) -> bool:
        self.thread.join(timeout)
        return not self.thread.is_alive()


@pytest.fixture
def serve_connection(config: ServerConfig):
    """
    Factory: start a ConnectionHandler on a socketpair and return a Harness.

    The server end is registered under client IP 127.0.0.1.
    """
    harnesses = []

    def start(cfg: Optional[ServerConfig] = None,
              registry: Optional[ActiveConnectionSet] = None) -> Harness:
        cfg = cfg or config
        if registry is None:
            registry = ActiveConnectionSet()

        server_sock, client_sock = socket.socketpair()
        conn = Connection(server_sock, ("127.0.0.1", 40000), idle_timeout=cfg.idle_timeout)
        handler = ConnectionHandler(conn, cfg, registry)
        thread = threading.Thread(target=handler.run, name="Handler-test", daemon=True)
        thread.start()

        harness = Harness(Client(client_sock), handler, thread, registry)
        harnesses.append(harness)
        return harness

    yield start

    for harness in harnesses:
        harness.client.close()
        harness.thread.join(timeout=5.0)


# =============================================================================
# RUNNING SERVER
# =============================================================================

class RunningServer:
    """StaticServer running in a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self.thread = threading.Thread(target=server.run, name="Server-test", daemon=True)
        self.port = 0

    def start(self):
        self.thread.start()
        if not self.server.ready.wait(5.0):
            raise RuntimeError("Server failed to start")
        self.port = self.server.address[1]

    def connect(self) -> Client:
        return Client(socket.create_connection(("127.0.0.1", self.port), timeout=5.0))

    def stop(self):
        self.server.shutdown()
        self.thread.join(timeout=10.0)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """A live server on an OS-assigned port."""
    running = RunningServer(StaticServer(config))
    running.start()

    yield running

    running.stop()
