"""Wiring of the engine threads and the HTTP metrics endpoint."""
from __future__ import annotations

import html
import logging
import socket
import threading
from dataclasses import dataclass, field
from socketserver import ThreadingMixIn
from typing import Callable, Iterable, List
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app

from .collector import PrometheusCollector, SnapshotCollector
from .config import ExporterConfig
from .monitor import CounterResetLoop, DirectoryPoller, FilePoller
from .resolver import PathResolver
from .store import StateStore

logger = logging.getLogger(__name__)

WSGIApp = Callable[..., Iterable[bytes]]


@dataclass
class Exporter:
    """All long-lived engine components built from one configuration."""

    config: ExporterConfig
    store: StateStore
    file_poller: FilePoller
    directory_poller: DirectoryPoller
    reset_loop: CounterResetLoop
    collector: SnapshotCollector
    _threads: List[threading.Thread] = field(default_factory=list, init=False, repr=False)

    def start(self) -> None:
        """Launch every background loop on its own daemon thread."""

        for name, target in (
            ("file-poller", self.file_poller.run),
            ("dir-poller", self.directory_poller.run),
            ("counter-reset", self.reset_loop.run),
        ):
            thread = threading.Thread(target=target, name=name, daemon=True)
            thread.start()
            self._threads.append(thread)

    def stop(self, timeout: float = 5.0) -> None:
        self.file_poller.stop()
        self.directory_poller.stop()
        self.reset_loop.stop()
        for thread in self._threads:
            thread.join(timeout)
        self._threads.clear()


def build_engine(config: ExporterConfig) -> Exporter:
    store = StateStore()
    return Exporter(
        config=config,
        store=store,
        file_poller=FilePoller(store, PathResolver(config.files), config.interval_seconds),
        directory_poller=DirectoryPoller(store, config.dirs, config.interval_seconds),
        reset_loop=CounterResetLoop(store, config.reset_seconds),
        collector=SnapshotCollector(store),
    )


def build_registry(collector: SnapshotCollector) -> CollectorRegistry:
    """A dedicated registry exposing only this exporter's metrics."""

    registry = CollectorRegistry()
    registry.register(PrometheusCollector(collector))
    return registry


def make_app(registry: CollectorRegistry, config: ExporterConfig) -> WSGIApp:
    metrics_app = make_wsgi_app(registry)
    metrics_path = config.server.metrics_path
    landing_page = render_landing_page(config).encode("utf-8")

    def app(environ, start_response):
        path = environ.get("PATH_INFO", "/") or "/"
        if path == metrics_path:
            return metrics_app(environ, start_response)
        if path == "/":
            start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
            return [landing_page]
        start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
        return [b"Not Found\n"]

    return app


def render_landing_page(config: ExporterConfig) -> str:
    files = "".join(f"<li>{html.escape(path)}</li>" for path in config.files)
    dirs = "".join(f"<li>{html.escape(path)}</li>" for path in config.dirs)
    metrics_path = html.escape(config.server.metrics_path, quote=True)
    return (
        "<html>"
        "<head><title>File Monitor Exporter</title></head>"
        "<body>"
        "<h1>File Monitor Exporter</h1>"
        f"<p>Monitoring files:</p><ul>{files}</ul>"
        f"<p>Monitoring directories:</p><ul>{dirs}</ul>"
        f'<p><a href="{metrics_path}">Metrics</a></p>'
        "</body>"
        "</html>"
    )


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _ThreadingWSGIServerV6(_ThreadingWSGIServer):
    address_family = socket.AF_INET6


class _LoggingHandler(WSGIRequestHandler):
    def log_message(self, format, *args):  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


def serve(config: ExporterConfig) -> None:
    """Start the engine and serve metrics until interrupted."""

    exporter = build_engine(config)
    registry = build_registry(exporter.collector)
    app = make_app(registry, config)

    httpd = make_server(
        config.server.host,
        config.server.port,
        app,
        server_class=_ThreadingWSGIServerV6 if ":" in config.server.host else _ThreadingWSGIServer,
        handler_class=_LoggingHandler,
    )
    exporter.start()
    logger.info("Starting File Monitor Exporter on %s", config.server.listen_address)
    logger.info("Monitoring %s files: %s", len(config.files), ", ".join(config.files))
    logger.info("Monitoring %s directories: %s", len(config.dirs), ", ".join(config.dirs))
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Exporter interrupted by user")
    finally:
        httpd.server_close()
        exporter.stop()
