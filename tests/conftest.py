from pathlib import Path

import pytest

import build_qt


class FakeRunner:
    """Records commands and simulates what the real tools leave on disk."""

    def __init__(self, sentinel="configure.bat", extract_creates_sentinel=True,
                 install_creates_prefix=True):
        self.sentinel = sentinel
        self.extract_creates_sentinel = extract_creates_sentinel
        self.install_creates_prefix = install_creates_prefix
        self.commands = []

    def __call__(self, cmd, cwd=None, env=None, verbose=False):
        cmd = [str(c) for c in cmd]
        self.commands.append((cmd, cwd, env))
        tool = Path(cmd[0]).name

        if tool in ("7z", "tar") and self.extract_creates_sentinel:
            archive = Path(cmd[2])
            top = build_qt.strip_archive_extension(archive.name)
            extracted = Path(cwd) / top
            extracted.mkdir(parents=True, exist_ok=True)
            (extracted / self.sentinel).write_text("@echo off\n")
        elif cmd[-1] == "install" and self.install_creates_prefix:
            prefix = self._configured_prefix()
            prefix.mkdir(parents=True, exist_ok=True)

    def _configured_prefix(self):
        for cmd, _, _ in self.commands:
            if "-prefix" in cmd:
                return Path(cmd[cmd.index("-prefix") + 1])
        raise AssertionError("install ran before configure")

    def tools(self):
        return [Path(cmd[0]).name for cmd, _, _ in self.commands]


def fake_fetch(url, dest):
    Path(dest).write_bytes(b"PK\x03\x04 archive")


@pytest.fixture
def toolchain_dir(tmp_path: Path) -> Path:
    path = tmp_path / "Qt" / "Tools" / "mingw810_64"
    (path / "bin").mkdir(parents=True)
    (path / "bin" / "gcc.exe").write_text("")
    return path


@pytest.fixture
def config(tmp_path: Path, toolchain_dir: Path) -> build_qt.BuildConfig:
    return build_qt.BuildConfig(
        source_url="https://example.com/qt/qt-everywhere-src-5.15.1.zip",
        root_dir=tmp_path / "install",
        work_dir=tmp_path / "work",
        toolchain_dir=toolchain_dir,
        jobs=2,
        pause=False,
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def which():
    return lambda name: f"/usr/bin/{name}"
