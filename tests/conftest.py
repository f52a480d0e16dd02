"""Shared pytest fixtures for steamvault tests — a fake Steam install in tmp_path."""

from __future__ import annotations

import shutil
import time
from pathlib import Path

import pytest

from steamvault.library.models import LibraryRoot
from steamvault.mirror.base import COMPARING, MirrorResult, ProgressEvent


def manifest_text(
    app_id: str | None = "100",
    name: str | None = "Test Game",
    installdir: str | None = "Test Game",
    buildid: str | None = "5",
    state_flags: str | None = "4",
) -> str:
    fields = [
        ("appid", app_id),
        ("name", name),
        ("StateFlags", state_flags),
        ("installdir", installdir),
        ("buildid", buildid),
    ]
    body = "".join(f'\t"{k}"\t\t"{v}"\n' for k, v in fields if v is not None)
    return '"AppState"\n{\n' + body + "}\n"


class FakeSteam:
    """Builds a primary Steam root plus secondary libraries on disk."""

    def __init__(self, base: Path) -> None:
        self.base = base
        self.root = base / "Steam"
        self.secondary: list[Path] = []
        (self.root / "steamapps" / "common").mkdir(parents=True)
        self.write_library_folders()

    def write_library_folders(self, entries: dict[str, str] | None = None) -> Path:
        if entries is None:
            entries = {str(i): str(p) for i, p in enumerate(self.secondary, start=1)}
        lines = ['"LibraryFolders"', "{", '\t"TimeNextStatsReport"\t\t"1700000000"']
        for key, path in entries.items():
            escaped = path.replace("\\", "\\\\")
            lines.append(f'\t"{key}"\t\t"{escaped}"')
        lines.append("}")
        vdf = self.root / "steamapps" / "libraryfolders.vdf"
        vdf.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return vdf

    def add_library(self, name: str) -> Path:
        path = self.base / name
        (path / "steamapps" / "common").mkdir(parents=True)
        self.secondary.append(path)
        self.write_library_folders()
        return path

    def add_app(
        self,
        app_id: str,
        library: Path | None = None,
        name: str | None = "Test Game",
        installdir: str | None = None,
        buildid: str | None = "5",
        state_flags: str | None = "4",
        files: dict[str, str] | None = None,
    ) -> Path:
        library = library or self.root
        installdir = installdir if installdir is not None else f"Game{app_id}"
        manifest = library / "steamapps" / f"appmanifest_{app_id}.acf"
        manifest.write_text(
            manifest_text(app_id, name, installdir, buildid, state_flags), encoding="utf-8"
        )
        install = library / "steamapps" / "common" / installdir
        install.mkdir(parents=True, exist_ok=True)
        for rel, content in (files or {"game.exe": f"binary {app_id}"}).items():
            target = install / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return manifest

    def write_raw_manifest(self, filename: str, text: str, library: Path | None = None) -> Path:
        manifest = (library or self.root) / "steamapps" / filename
        manifest.write_text(text, encoding="utf-8")
        return manifest


class CopyTreeEngine:
    """Stand-in for MirrorCopyEngine that copies with shutil and records calls."""

    def __init__(self, after_copy=None) -> None:
        self.calls: list[tuple[Path, Path]] = []
        self.after_copy = after_copy

    def mirror(self, source: Path, destination: Path, sink=None) -> MirrorResult:
        self.calls.append((source, destination))
        if sink is not None:
            sink(ProgressEvent(percentage=None, current_file=COMPARING))
        start = time.monotonic()
        shutil.copytree(source, destination, dirs_exist_ok=True)
        if sink is not None:
            sink(ProgressEvent(percentage=100.0, current_file=source.name))
        if self.after_copy is not None:
            self.after_copy(source, destination)
        return MirrorResult(
            backend="copytree",
            source=source,
            destination=destination,
            returncode=0,
            failed=False,
            events=2,
            duration=round(time.monotonic() - start, 2),
        )


@pytest.fixture
def steam(tmp_path) -> FakeSteam:
    return FakeSteam(tmp_path)


@pytest.fixture
def backup_root(tmp_path) -> Path:
    root = tmp_path / "backup"
    root.mkdir()
    return root


@pytest.fixture
def library(steam) -> LibraryRoot:
    return LibraryRoot(path=steam.root)


@pytest.fixture
def engine() -> CopyTreeEngine:
    return CopyTreeEngine()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in (
        "STEAMVAULT_BACKUP_ROOT",
        "STEAMVAULT_STEAM_ROOT",
        "STEAMVAULT_LOG_LEVEL",
        "STEAMVAULT_LOG_FORMAT",
    ):
        monkeypatch.delenv(var, raising=False)
