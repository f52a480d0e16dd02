"""Tests for the mirror copy engine, its output parsers and the backend registry."""

from __future__ import annotations

import shutil
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from structlog.testing import capture_logs

from steamvault.exceptions import MirrorError, MirrorToolNotFoundError
from steamvault.mirror import (
    COMPARING,
    MirrorBackend,
    MirrorBackendRegistry,
    MirrorCopyEngine,
    ParseState,
    ProgressEvent,
    RobocopyBackend,
    RsyncBackend,
    create_default_registry,
)
from steamvault.mirror.registry import default_backend_name
from steamvault.mirror.stream import parse_tab_separated, progress_events


class ScriptBackend(MirrorBackend):
    """Runs a Python snippet in place of a real copy tool."""

    def __init__(self, script: str, failure_code: int = 1) -> None:
        self.script = script
        self.failure_code = failure_code

    @property
    def name(self) -> str:
        return "script"

    @property
    def executable(self) -> str:
        return sys.executable

    def build_command(self, source: Path, destination: Path) -> list[str]:
        return [sys.executable, "-c", self.script, str(source), str(destination)]

    def parse_line(self, line, state):
        return parse_tab_separated(line, state)

    def is_failure(self, returncode: int) -> bool:
        return returncode >= self.failure_code


# ── Output parsing ──


class TestParseTabSeparated:
    def test_file_line_updates_state(self):
        state = ParseState()
        assert parse_tab_separated("\t    New File  \t\t  1024\tmaps\\level1.pak", state) is None
        assert state.current_file == "maps\\level1.pak"

    def test_percentage_reports_last_file(self):
        state = ParseState(current_file="game.exe")
        event = parse_tab_separated("  45.5%", state)
        assert event == ProgressEvent(percentage=45.5, current_file="game.exe")

    def test_percentage_and_name_on_one_line(self):
        state = ParseState()
        event = parse_tab_separated("12%\tdata.bin", state)
        assert event == ProgressEvent(percentage=12.0, current_file="data.bin")

    def test_clamped(self):
        event = parse_tab_separated("250%", ParseState())
        assert event.percentage == 100.0

    def test_line_without_tabs_keeps_file(self):
        state = ParseState(current_file="a")
        assert parse_tab_separated("some banner", state) is None
        assert state.current_file == "a"


class TestRsyncParseLine:
    def test_progress_line(self):
        state = ParseState(current_file="maps/level1.pak")
        event = RsyncBackend().parse_line(
            "     52,428,800  45%   98.21MB/s    0:00:01 (xfr#3, to-chk=10/20)", state
        )
        assert event == ProgressEvent(percentage=45.0, current_file="maps/level1.pak")

    def test_name_line(self):
        state = ParseState()
        assert RsyncBackend().parse_line("maps/level1.pak", state) is None
        assert state.current_file == "maps/level1.pak"

    def test_noise_ignored(self):
        backend = RsyncBackend()
        state = ParseState(current_file="x")
        for line in ("sending incremental file list", "created directory /dst", "done"):
            assert backend.parse_line(line, state) is None
        assert state.current_file == "x"

    def test_file_named_like_noise_kept(self):
        state = ParseState()
        RsyncBackend().parse_line("done.txt", state)
        assert state.current_file == "done.txt"


class TestProgressEvents:
    def test_first_event_is_comparing(self):
        events = list(progress_events([], RobocopyBackend()))
        assert events == [ProgressEvent(percentage=None, current_file=COMPARING)]
        assert events[0].indeterminate

    def test_lazy(self):
        def lines():
            yield "\t\t10\ta.bin\n"
            raise AssertionError("read past the first line")

        it = progress_events(lines(), RobocopyBackend())
        assert next(it).indeterminate

    def test_sequence(self):
        lines = ["\t\t10\ta.bin\n", "  50%\n", "\n", "100%\n", "\t\t20\tb.bin\n", "30%\n"]
        events = list(progress_events(lines, RobocopyBackend()))
        assert [(e.percentage, e.current_file) for e in events] == [
            (None, COMPARING),
            (50.0, "a.bin"),
            (100.0, "a.bin"),
            (30.0, "b.bin"),
        ]


# ── Backends ──


class TestBackendCommands:
    def test_robocopy_command(self):
        cmd = RobocopyBackend().build_command(Path("C:/src"), Path("E:/dst"))
        assert cmd[:3] == ["robocopy", str(Path("C:/src")), str(Path("E:/dst"))]
        assert cmd[3:] == ["/E", "/XJ", "/R:2", "/W:5", "/NDL", "/NJH", "/NJS", "/BYTES"]

    def test_robocopy_failure_threshold(self):
        backend = RobocopyBackend()
        assert not any(backend.is_failure(rc) for rc in range(8))
        assert backend.is_failure(8)
        assert backend.is_failure(16)

    def test_rsync_command(self):
        cmd = RsyncBackend().build_command(Path("/src"), Path("/dst"))
        assert cmd[0] == "rsync"
        assert "-rlt" in cmd
        assert "--info=name1,progress2" in cmd
        assert cmd[-2:] == ["/src/", "/dst/"]

    def test_rsync_failure(self):
        assert not RsyncBackend().is_failure(0)
        assert RsyncBackend().is_failure(23)

    def test_check_prerequisites(self):
        with patch("steamvault.mirror.base.shutil.which", return_value=None):
            assert RsyncBackend().check_prerequisites() == ["rsync"]
        with patch("steamvault.mirror.base.shutil.which", return_value="/usr/bin/rsync"):
            assert RsyncBackend().check_prerequisites() == []


class TestRegistry:
    def test_default_names(self):
        assert create_default_registry().names() == ["robocopy", "rsync"]

    def test_auto_follows_platform(self):
        with patch("steamvault.mirror.registry.sys.platform", "win32"):
            assert default_backend_name() == "robocopy"
        with patch("steamvault.mirror.registry.sys.platform", "linux"):
            assert default_backend_name() == "rsync"

    def test_create_without_check(self):
        backend = create_default_registry().create("robocopy", check=False)
        assert isinstance(backend, RobocopyBackend)

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown mirror backend"):
            create_default_registry().create("xcopy")

    def test_missing_tool(self):
        with patch("steamvault.mirror.base.shutil.which", return_value=None):
            with pytest.raises(MirrorToolNotFoundError, match="rsync"):
                create_default_registry().create("rsync")

    def test_custom_backend(self):
        registry = MirrorBackendRegistry()
        registry.register("script", lambda: ScriptBackend("pass"))
        assert registry.create("script").name == "script"


# ── Engine ──

_EMIT_SCRIPT = r"""
import sys
print("\t\t10\tgame.exe", flush=True)
sys.stdout.write("10%\r50%\r100%\n")
"""


class TestMirrorCopyEngine:
    def test_streams_events_to_sink(self, tmp_path: Path):
        events: list[ProgressEvent] = []
        engine = MirrorCopyEngine(ScriptBackend(_EMIT_SCRIPT))
        result = engine.mirror(tmp_path / "src", tmp_path / "dst", events.append)

        assert events[0].indeterminate
        assert [e.percentage for e in events[1:]] == [10.0, 50.0, 100.0]
        assert all(e.current_file == "game.exe" for e in events[1:])
        assert result.returncode == 0
        assert not result.failed
        assert result.events == 4
        assert (tmp_path / "dst").is_dir()

    def test_failure_code_logged_not_raised(self, tmp_path: Path):
        engine = MirrorCopyEngine(ScriptBackend("import sys; sys.exit(9)", failure_code=8))
        with capture_logs() as logs:
            result = engine.mirror(tmp_path / "src", tmp_path / "dst")
        assert result.returncode == 9
        assert result.failed
        assert any(e["event"] == "mirror.tool_reported_failure" for e in logs)

    def test_sink_errors_swallowed(self, tmp_path: Path):
        def sink(event):
            raise RuntimeError("display broke")

        engine = MirrorCopyEngine(ScriptBackend(_EMIT_SCRIPT))
        result = engine.mirror(tmp_path / "src", tmp_path / "dst", sink)
        assert result.events == 4

    def test_missing_executable(self, tmp_path: Path):
        backend = ScriptBackend("pass")
        with patch.object(
            ScriptBackend, "build_command", return_value=["/nonexistent/steamvault-copy-tool"]
        ):
            with pytest.raises(MirrorToolNotFoundError):
                MirrorCopyEngine(backend).mirror(tmp_path / "src", tmp_path / "dst")

    def test_missing_output_pipe(self, tmp_path: Path):
        proc = MagicMock(stdout=None)
        proc.__enter__.return_value = proc
        with patch("steamvault.mirror.engine.subprocess.Popen", return_value=proc):
            with pytest.raises(MirrorError, match="no output pipe"):
                MirrorCopyEngine(ScriptBackend("pass")).mirror(tmp_path / "src", tmp_path / "dst")
        proc.kill.assert_called_once()


@pytest.mark.skipif(shutil.which("rsync") is None, reason="rsync not installed")
class TestRsyncMirror:
    def _source(self, tmp_path: Path) -> Path:
        src = tmp_path / "src"
        (src / "maps").mkdir(parents=True)
        (src / "game.exe").write_bytes(b"\x00" * 4096)
        (src / "maps" / "level1.pak").write_text("level data")
        return src

    def test_mirrors_tree(self, tmp_path: Path):
        src = self._source(tmp_path)
        dst = tmp_path / "dst"
        result = MirrorCopyEngine(RsyncBackend()).mirror(src, dst)
        assert not result.failed
        assert (dst / "game.exe").read_bytes() == b"\x00" * 4096
        assert (dst / "maps" / "level1.pak").read_text() == "level data"

    def test_second_run_transfers_nothing(self, tmp_path: Path):
        src = self._source(tmp_path)
        dst = tmp_path / "dst"
        engine = MirrorCopyEngine(RsyncBackend())
        engine.mirror(src, dst)
        snapshot = {p: (p.read_bytes(), p.stat().st_mtime_ns) for p in dst.rglob("*") if p.is_file()}

        events: list[ProgressEvent] = []
        result = engine.mirror(src, dst, events.append)

        assert not result.failed
        after = {p: (p.read_bytes(), p.stat().st_mtime_ns) for p in dst.rglob("*") if p.is_file()}
        assert after == snapshot
        # Unchanged files are compared, never listed as transferred.
        assert not any(e.current_file in ("game.exe", "maps/level1.pak") for e in events)

    def test_extra_destination_files_kept(self, tmp_path: Path):
        src = self._source(tmp_path)
        dst = tmp_path / "dst"
        dst.mkdir()
        (dst / "steam_appid.txt").write_text("100")
        MirrorCopyEngine(RsyncBackend()).mirror(src, dst)
        assert (dst / "steam_appid.txt").read_text() == "100"
