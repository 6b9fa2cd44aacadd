"""Local preview server for Quire.

``quire serve`` builds the project, serves the output directory over HTTP
and rebuilds whenever a watched file changes. Every HTML response carries a
small script that listens on a websocket and reloads the page after each
successful rebuild. A failed rebuild is reported and the last good build
stays online.

Key pieces:
- PreviewRequestHandler: Serves the output tree and the site's 404 page.
- StagedOutput: Builds into a staging directory and swaps it into place.
- LiveReloadHub: Tracks connected browsers and tells them to reload.
- DevServer: Ties the build, the watcher and both servers together.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from collections.abc import Iterable
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site
from .config import CONFIG_FILENAME, load_config
from .errors import BuildError

RELOAD_SNIPPET = """<script>
(() => {{
  const socket = new WebSocket(`ws://${{location.hostname}}:{port}`);
  socket.addEventListener("message", (event) => {{
    if (JSON.parse(event.data).type === "reload") location.reload();
  }});
}})();
</script>
"""


def reload_snippet(ws_port: int) -> str:
    return RELOAD_SNIPPET.format(port=ws_port)


def inject_snippet(html: str, snippet: str) -> str:
    """Insert ``snippet`` before the last ``</body>``, or append it."""
    head, body_end, tail = html.rpartition("</body>")
    if not body_end:
        return html + snippet
    return f"{head}{snippet}{body_end}{tail}"


def snapshot(paths: Iterable[Path], root: Path) -> tuple | None:
    """Fingerprint the files under ``paths`` by relative path, mtime and size.

    Entries that cannot be stat'ed, such as dangling symlinks, are skipped.
    Returns None when there is nothing to fingerprint.
    """
    entries = []
    for base in paths:
        files = sorted(base.rglob("*")) if base.is_dir() else [base]
        for file in files:
            if file.is_dir():
                continue
            try:
                info = file.stat()
            except OSError:
                continue
            entries.append((file.relative_to(root).as_posix(), info.st_mtime_ns, info.st_size))
    return tuple(entries) or None


class PreviewRequestHandler(SimpleHTTPRequestHandler):
    """Serves the built site and adds the reload snippet to HTML pages.

    Unknown paths, and folders without an ``index.html``, get the site's
    ``404.html`` with a 404 status instead of a directory listing.
    """

    snippet = reload_snippet(1314)

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - send_head never lists
        return self.send_not_found()

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self.send_not_found()
        if target.suffix != ".html":
            return super().send_head()
        self.send_page(200, target.read_text(encoding="utf-8"))
        return None

    def send_page(self, status: int, html: str) -> None:
        payload = inject_snippet(html, self.snippet).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def send_not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self.send_page(404, page.read_text(encoding="utf-8"))
        else:
            self.send_error(404, "File not found")
        return None


class StagedOutput:
    """An output directory that is only ever replaced by a finished build.

    Builds go to ``<output>.staging``. Publishing renames the current tree
    to ``<output>.old`` and the staging tree to ``<output>``, then deletes
    the old tree. The served path is never deleted in place.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.staging_dir = output_dir.with_name(output_dir.name + ".staging")
        self.retired_dir = output_dir.with_name(output_dir.name + ".old")

    def prepare(self) -> Path:
        """Return an empty staging directory."""
        _remove_tree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)
        return self.staging_dir

    def publish(self) -> None:
        _remove_tree(self.retired_dir)
        if self.output_dir.exists():
            os.replace(self.output_dir, self.retired_dir)
        os.replace(self.staging_dir, self.output_dir)
        _remove_tree(self.retired_dir)

    def owns(self, path: Path) -> bool:
        """Whether ``path`` lies inside one of the build trees."""
        trees = (self.output_dir, self.staging_dir, self.retired_dir)
        return any(path == tree or tree in path.parents for tree in trees)


def _remove_tree(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)


class LiveReloadHub:
    """Websocket endpoint that browsers connect to for reload messages.

    The hub owns its own event loop, run on a background thread; other
    threads hand it work through ``notify_reload``.
    """

    def __init__(self, port: int):
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self.serve())
        except OSError as exc:
            print(f"Live reload failed to start on port {self.port}: {exc}")

    async def serve(self) -> None:  # pragma: no cover - binds a real socket
        async with websockets.serve(self.register, "0.0.0.0", self.port):
            await asyncio.Future()

    async def register(self, websocket) -> None:
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    async def broadcast(self, message: str) -> None:
        """Send ``message`` to every client; drop the ones that fail."""
        clients = list(self.clients)
        results = await asyncio.gather(
            *(client.send(message) for client in clients), return_exceptions=True
        )
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                self.clients.discard(client)

    def notify_reload(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self.broadcast(message), self.loop)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class DevServer:
    """Builds, serves and rebuilds a project for local preview.

    Attributes:
        project_root: Root directory of the project.
        output: Staged output directory that is served.
        http_port: Port of the HTTP server (``port`` in quire.yaml by default).
        ws_port: Port of the live reload websocket (HTTP port + 1 by default).
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
    ):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output = StagedOutput(project_root / self.config.output_dir)
        self.http_port = int(http_port or self.config.port)
        self.ws_port = ws_port if ws_port is not None else self.http_port + 1
        self.hub = LiveReloadHub(self.ws_port)
        self.debounce_seconds = 0.05
        self.settle_seconds = 0.05
        self._observer: Observer | None = None
        self._building = threading.Lock()
        self._last_attempt = float("-inf")
        self._last_signature: tuple | None = None

    @property
    def output_dir(self) -> Path:
        return self.output.output_dir

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.http_port}"

    def watched_paths(self) -> list[Path]:
        return [
            self.project_root / CONFIG_FILENAME,
            self.project_root / self.config.content_dir,
            self.project_root / self.config.layouts_dir,
            self.project_root / self.config.static_dir,
        ]

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - runs forever
        self.build(include_drafts)
        self._last_signature = self._signature()
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self.hub.run, daemon=True).start()
        self._watch(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self.hub.stop()

    def build(self, include_drafts: bool) -> None:
        """Build into staging and publish the result.

        Raises:
            BuildError: If the build fails; the published tree is untouched.
        """
        staging = self.output.prepare()
        build_site(
            self.project_root,
            include_drafts=include_drafts,
            base_url=self.base_url,
            output_dir_override=staging,
        )
        self.output.publish()

    def rebuild(self, include_drafts: bool) -> bool:
        """Rebuild after a file change.

        Calls that arrive within ``debounce_seconds`` of the previous one,
        while another rebuild runs, or when no watched file changed, are
        ignored.

        Returns:
            True if browsers were told to reload.
        """
        if time.monotonic() - self._last_attempt < self.debounce_seconds:
            return False
        if not self._building.acquire(blocking=False):
            return False
        try:
            signature = self._signature()
            if signature is not None and signature == self._last_signature:
                return False
            print("Change detected; rebuilding...")
            try:
                self.build(include_drafts)
            except BuildError as exc:
                print(f"Build failed: {exc}")
                return False
            self._last_signature = signature
            if self.settle_seconds:
                time.sleep(self.settle_seconds)
            self.hub.notify_reload()
            return True
        finally:
            self._last_attempt = time.monotonic()
            self._building.release()

    def _signature(self) -> tuple | None:
        return snapshot(self.watched_paths(), self.project_root)

    def _serve_http(self) -> None:  # pragma: no cover - binds a real socket
        handler_cls = type(
            "PreviewHandler",
            (PreviewRequestHandler,),
            {"snippet": reload_snippet(self.ws_port)},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at {self.base_url}")
        httpd.serve_forever()

    def _watch(self, include_drafts: bool) -> None:
        handler = _ChangeHandler(self, include_drafts)
        observer = Observer()
        for path in self.watched_paths():
            if path.is_dir():
                observer.schedule(handler, str(path), recursive=True)
        # quire.yaml lives at the root; watch it without descending into output.
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        if path.name.startswith(".") or self.server.output.owns(path):
            return
        self.server.rebuild(self.include_drafts)
