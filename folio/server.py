"""Live-reload development server for Folio.

``folio serve`` builds the site once, serves the output root over HTTP and
rebuilds whenever a source file changes. Browsers are told to reload over
a websocket after every successful rebuild; a failed rebuild is reported
and the previous output keeps being served.

Key classes:
- DevServer: Wires the pieces together and owns the rebuild policy.
- ReloadBroadcaster: Websocket server pushing reload messages.
- SourceWatcher: watchdog handler forwarding relevant source changes.
- LiveReloadHandler: HTTP handler injecting the reload snippet.
"""

from __future__ import annotations

import asyncio
import functools
import json
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site, load_config
from .errors import BuildError

DEFAULT_PORT = 4000

RELOAD_SNIPPET = """
<script>
(() => {{
  const socket = new WebSocket('ws://' + location.hostname + ':{ws_port}');
  socket.onmessage = (event) => {{
    if (JSON.parse(event.data || '{{}}').type === 'reload') location.reload();
  }};
}})();
</script>
"""


def reload_snippet(ws_port: int) -> str:
    """Script tag that reloads the page when the server says so."""
    return RELOAD_SNIPPET.format(ws_port=ws_port)


def inject_snippet(html: str, snippet: str) -> str:
    """Insert ``snippet`` before ``</body>``, or append it when there is none."""
    head, marker, tail = html.rpartition("</body>")
    if not marker:
        return html + snippet
    return f"{head}{snippet}{marker}{tail}"


def resolve_ports(
    config: dict, http_port: int | None, ws_port: int | None
) -> tuple[int, int]:
    """Pick the HTTP and websocket ports.

    Flags beat ``folio.yaml``; the websocket port defaults to the HTTP port
    plus one unless the config pins ``ws_port`` and no HTTP flag was given.
    """
    http = int(http_port or config.get("port") or DEFAULT_PORT)
    if ws_port is not None:
        return http, int(ws_port)
    if http_port is None and config.get("ws_port"):
        return http, int(config["ws_port"])
    return http, http + 1


class LiveReloadHandler(SimpleHTTPRequestHandler):
    """Static file handler for the output root.

    HTML responses get the reload snippet, directories resolve to their
    ``index.html`` and everything else that is missing answers 404 (with
    the site's own ``404.html`` when it has one). Directory listings are
    never shown.
    """

    snippet = reload_snippet(DEFAULT_PORT + 1)

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - send_head never lists
        return self._not_found()

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self._not_found()
        if target.suffix == ".html":
            self._send_page(200, target)
            return None
        return super().send_head()

    def _send_page(self, status: int, page: Path) -> None:
        body = inject_snippet(page.read_text(encoding="utf-8"), self.snippet)
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def _not_found(self):
        root = Path(self.directory)
        for page in (root / "404.html", root / "404" / "index.html"):
            if page.is_file():
                self._send_page(404, page)
                return None
        self.send_error(404, "File not found")
        return None


class ReloadBroadcaster:
    """Websocket server that pushes ``{"type": "reload"}`` to every browser.

    The server runs on its own event loop in a background thread;
    ``reload()`` is safe to call from any other thread.
    """

    def __init__(self, port: int):
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:
        """Serve until the loop is stopped (blocking)."""
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self._serve())
        except OSError as exc:
            print(f"Live reload unavailable, websocket port {self.port}: {exc}")

    async def _serve(self) -> None:  # pragma: no cover - needs a real socket
        async with websockets.serve(self._register, "0.0.0.0", self.port):
            await asyncio.Future()

    async def _register(self, websocket):
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    def reload(self) -> None:
        asyncio.run_coroutine_threadsafe(
            self.send_all(json.dumps({"type": "reload"})), self.loop
        )

    async def send_all(self, message: str) -> None:
        """Send ``message`` to every client, dropping the ones that fail."""
        dead = []
        for client in list(self.clients):
            try:
                await client.send(message)
            except Exception:
                dead.append(client)
        self.clients.difference_update(dead)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class SourceWatcher(FileSystemEventHandler):
    """Forwards file events the server cares about to ``DevServer.rebuild``."""

    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory or not self.server.is_watched(Path(event.src_path)):
            return
        self.server.rebuild(self.include_drafts)


class DevServer:
    """Build, serve and rebuild a site for local authoring.

    Attributes:
        source_root: Site source root, watched recursively.
        config: Contents of ``folio.yaml`` with defaults.
        output_dir: Output root that is served.
        http_port: Port of the HTTP server.
        ws_port: Port of the reload websocket.
        broadcaster: Pushes reload messages to browsers.
    """

    debounce_seconds = 0.05
    settle_seconds = 0.05

    def __init__(
        self,
        source_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
    ):
        self.source_root = source_root
        self.config = load_config(source_root)
        self.output_dir = source_root / self.config.get("output_dir", "_site")
        self.http_port, self.ws_port = resolve_ports(self.config, http_port, ws_port)
        self.root_url = f"http://localhost:{self.http_port}"
        self.broadcaster = ReloadBroadcaster(self.ws_port)
        self._observer: Observer | None = None
        self._busy = False
        self._last_build_at = 0.0
        self._snapshot: tuple | None = None

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover
        self.build(include_drafts)
        self._snapshot = self.snapshot()
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self.broadcaster.run, daemon=True).start()
        self._observer = Observer()
        self._observer.schedule(
            SourceWatcher(self, include_drafts), str(self.source_root), recursive=True
        )
        self._observer.start()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self.broadcaster.stop()

    def _serve_http(self) -> None:  # pragma: no cover - needs a real socket
        handler = functools.partial(
            type(
                "SiteHandler",
                (LiveReloadHandler,),
                {"snippet": reload_snippet(self.ws_port)},
            ),
            directory=str(self.output_dir),
        )
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at {self.root_url}")
        httpd.serve_forever()

    def build(self, include_drafts: bool) -> bool:
        """Build the site; report a failure instead of raising it."""
        try:
            result = build_site(
                self.source_root,
                output_dir=self.output_dir,
                include_drafts=include_drafts,
                root_url=self.root_url,
            )
        except BuildError as exc:
            print(f"Build failed: {exc.kind}: {exc}")
            return False
        for warning in result.warnings:
            print(f"Warning: {warning}")
        return True

    def is_watched(self, path: Path) -> bool:
        """Whether a change to ``path`` should trigger a rebuild.

        Files outside the source root, inside the output root, or under a
        hidden directory (including the build's staging directory) are
        ignored.
        """
        resolved = path.resolve()
        root = self.source_root.resolve()
        output = self.output_dir.resolve()
        if resolved == output or output in resolved.parents:
            return False
        if root not in resolved.parents:
            return False
        rel = resolved.relative_to(root)
        return not any(part.startswith(".") for part in rel.parts)

    def snapshot(self) -> tuple | None:
        """(path, mtime, size) of every watched file; None for an empty tree."""
        entries = []
        for path in sorted(self.source_root.rglob("*")):
            if not self.is_watched(path):
                continue
            try:
                stat = path.stat()
            except OSError:
                continue
            if path.is_dir():
                continue
            rel = path.relative_to(self.source_root).as_posix()
            entries.append((rel, stat.st_mtime_ns, stat.st_size))
        return tuple(entries) or None

    def rebuild(self, include_drafts: bool) -> None:
        """Rebuild after a change unless one is running or nothing changed."""
        if self._busy or time.time() - self._last_build_at < self.debounce_seconds:
            return
        snapshot = self.snapshot()
        if snapshot is not None and snapshot == self._snapshot:
            return
        self._busy = True
        try:
            self._snapshot = snapshot
            print("Change detected; rebuilding...")
            if self.build(include_drafts):
                if self.settle_seconds:
                    time.sleep(self.settle_seconds)
                self.broadcaster.reload()
        finally:
            self._busy = False
            self._last_build_at = time.time()
