"""Tests for engine wiring and the WSGI application."""

from pathlib import Path
from typing import Callable, Dict, List, Tuple
from wsgiref.util import setup_testing_defaults

from filewatch_exporter.config import ExporterConfig, ServerConfig
from filewatch_exporter.exporter import (
    build_engine,
    build_registry,
    make_app,
    render_landing_page,
)
from filewatch_exporter.models import WatchTarget


def _call(app, path: str) -> Tuple[str, Dict[str, str], bytes]:
    environ: Dict[str, object] = {"PATH_INFO": path}
    setup_testing_defaults(environ)
    captured: List[object] = []

    def start_response(status, headers, exc_info=None):
        captured.append(status)
        captured.append(dict(headers))

    body = b"".join(app(environ, start_response))
    return captured[0], captured[1], body


class TestBuildEngine:
    """Tests for build_engine."""

    def test_components_share_one_store(self, write_file: Callable[..., Path], tmp_path: Path) -> None:
        watched = write_file("watched.txt", b"abc")
        config = ExporterConfig(files=(str(watched),), dirs=(str(tmp_path),), interval_seconds=2, reset_minutes=1)

        exporter = build_engine(config)
        exporter.file_poller.run_cycle()
        exporter.directory_poller.run_cycle()

        tracked = exporter.store.tracked()
        assert WatchTarget.file(str(watched)) in tracked
        assert WatchTarget.directory(str(tmp_path)) in tracked
        assert exporter.file_poller.interval == 2
        assert exporter.reset_loop.interval == 60
        assert len(exporter.collector.collect()) == 4 + 3

    def test_start_and_stop(self, tmp_path: Path) -> None:
        config = ExporterConfig(dirs=(str(tmp_path),), interval_seconds=0.01, reset_minutes=1)
        exporter = build_engine(config)

        exporter.start()
        exporter.stop()

        assert exporter.file_poller.stopped
        assert exporter.directory_poller.stopped
        assert exporter.reset_loop.stopped


class TestMakeApp:
    """Tests for the WSGI routing."""

    def _app(self, tmp_path: Path, write_file: Callable[..., Path]):
        watched = write_file("app.log", b"hello")
        config = ExporterConfig(
            server=ServerConfig(metrics_path="/probe"),
            files=(str(watched),),
            dirs=(str(tmp_path),),
        )
        exporter = build_engine(config)
        exporter.file_poller.run_cycle()
        exporter.directory_poller.run_cycle()
        return make_app(build_registry(exporter.collector), config), watched

    def test_metrics_path(self, tmp_path: Path, write_file: Callable[..., Path]) -> None:
        app, watched = self._app(tmp_path, write_file)

        status, _headers, body = _call(app, "/probe")

        text = body.decode("utf-8")
        assert status.startswith("200")
        assert f'file_exists{{path="{watched}"}} 1.0' in text
        assert f'file_size_bytes{{path="{watched}"}} 5.0' in text
        assert f'dir_exists{{path="{tmp_path}"}} 1.0' in text
        assert "python_info" not in text

    def test_landing_page(self, tmp_path: Path, write_file: Callable[..., Path]) -> None:
        app, watched = self._app(tmp_path, write_file)

        status, headers, body = _call(app, "/")

        assert status.startswith("200")
        assert headers["Content-Type"].startswith("text/html")
        assert f"<li>{watched}</li>".encode() in body
        assert b'<a href="/probe">Metrics</a>' in body

    def test_unknown_path(self, tmp_path: Path, write_file: Callable[..., Path]) -> None:
        app, _ = self._app(tmp_path, write_file)

        status, _headers, _body = _call(app, "/elsewhere")

        assert status.startswith("404")


class TestLandingPage:
    def test_paths_are_escaped(self) -> None:
        page = render_landing_page(ExporterConfig(files=("/tmp/<script>.log",), dirs=("/srv/a&b",)))

        assert "<li>/tmp/&lt;script&gt;.log</li>" in page
        assert "<li>/srv/a&amp;b</li>" in page
