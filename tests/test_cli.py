from pathlib import Path

import pytest

import build_qt
from build_qt import ConfigError, build_config_from_args, create_parser, load_config_file
from conftest import FakeRunner, fake_fetch


def parse(*argv):
    return create_parser().parse_args(list(argv))


def test_defaults():
    config = build_config_from_args(parse())
    assert config.source_url == build_qt.DEFAULT_SOURCE_URL
    assert config.variant == "Dynamic"
    assert config.version is None
    assert config.toolchain_dir is None
    assert config.pause is True
    assert config.dry_run is False


def test_flags():
    config = build_config_from_args(parse(
        "--variant", "Static",
        "--qt-version", "5.15.2",
        "--toolchain-dir", "/qt/Tools/mingw810_64",
        "--root-dir", "/opt/qt",
        "--configure-flag=-skip", "--configure-flag=qtwebchannel",
        "--no-pause",
        "--dry-run",
        "-j", "3",
    ))
    assert config.is_static
    assert config.version == "5.15.2"
    assert config.toolchain_dir == Path("/qt/Tools/mingw810_64")
    assert config.root_dir == Path("/opt/qt")
    assert config.configure_flags == ("-skip", "qtwebchannel")
    assert config.pause is False
    assert config.dry_run is True
    assert config.jobs == 3


def test_config_file_values_and_precedence(tmp_path):
    path = tmp_path / "qt-build.yml"
    path.write_text(
        "variant: Static\n"
        "jobs: 6\n"
        "pause: false\n"
        "configure_flags: [-skip, qtwebchannel]\n",
        encoding="utf-8",
    )

    config = build_config_from_args(parse("--config", str(path), "--variant", "Dynamic"))

    assert config.variant == "Dynamic"
    assert config.jobs == 6
    assert config.pause is False
    assert config.configure_flags == ("-skip", "qtwebchannel")


def test_empty_config_file(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_config_file(path) == {}


def test_unknown_config_keys_are_rejected(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("variant: Static\ncolour: blue\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="colour"):
        load_config_file(path)


def test_non_mapping_config_is_rejected(tmp_path):
    path = tmp_path / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config_file(path)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yml"
    path.write_text("variant: [Static\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config_file(path)


def test_scalar_configure_flags_are_rejected(tmp_path):
    path = tmp_path / "flags.yml"
    path.write_text("configure_flags: -skip\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="configure_flags.*list of strings"):
        load_config_file(path)


@pytest.mark.parametrize(
    "content, key",
    [
        ("jobs: eight\n", "jobs"),
        ("jobs: 0\n", "jobs"),
        ("jobs: true\n", "jobs"),
        ("root_dir: 42\n", "root_dir"),
        ("version: 5.15\n", "version"),
        ("pause: 'no'\n", "pause"),
        ("configure_flags: [-skip, 3]\n", "configure_flags"),
    ],
)
def test_mistyped_config_values_are_rejected(tmp_path, content, key):
    path = tmp_path / "typed.yml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError, match=key):
        load_config_file(path)


def test_null_optional_values_are_accepted(tmp_path):
    path = tmp_path / "nulls.yml"
    path.write_text("version: null\ntoolchain_dir: null\n", encoding="utf-8")
    assert load_config_file(path) == {"version": None, "toolchain_dir": None}


def test_single_string_flag_is_kept_whole():
    config = build_qt.BuildConfig(configure_flags="-no-opengl", pause=False)
    assert config.configure_flags == ("-no-opengl",)


def test_main_reports_config_error(tmp_path, capsys):
    status = build_qt.main(["--config", str(tmp_path / "missing.yml"), "--no-pause"])
    assert status == 1
    assert "Cannot read config file" in capsys.readouterr().out


@pytest.fixture
def offline(monkeypatch):
    monkeypatch.setattr("build_qt.urllib.request.urlretrieve", fake_fetch)
    monkeypatch.setattr("build_qt.shutil.which", lambda name: f"/usr/bin/{name}")


def main_args(tmp_path, toolchain_dir):
    return [
        "--source-url", "https://example.com/qt-everywhere-src-5.15.1.zip",
        "--root-dir", str(tmp_path / "install"),
        "--work-dir", str(tmp_path / "work"),
        "--toolchain-dir", str(toolchain_dir),
        "--no-pause",
    ]


def test_main_success(tmp_path, toolchain_dir, monkeypatch, offline):
    runner = FakeRunner()
    monkeypatch.setattr("build_qt.run_command", runner)

    assert build_qt.main(main_args(tmp_path, toolchain_dir)) == 0
    assert (tmp_path / "install" / "5.15.1" / "Dynamic" / "mingw810_64").is_dir()


def test_main_exits_1_when_extraction_sentinel_absent(tmp_path, toolchain_dir, monkeypatch, offline):
    runner = FakeRunner(extract_creates_sentinel=False)
    monkeypatch.setattr("build_qt.run_command", runner)

    assert build_qt.main(main_args(tmp_path, toolchain_dir)) == 1
    assert runner.tools() == ["7z"]


def test_main_pauses_unless_disabled(tmp_path, toolchain_dir, monkeypatch, offline):
    monkeypatch.setattr("build_qt.run_command", FakeRunner())
    prompts = []
    monkeypatch.setattr("builtins.input", lambda prompt="": prompts.append(prompt) or "")

    args = [a for a in main_args(tmp_path, toolchain_dir) if a != "--no-pause"]
    assert build_qt.main(args) == 0
    assert prompts == ["Press Enter to exit..."]


def test_pause_survives_closed_stdin(monkeypatch):
    def eof(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", eof)
    build_qt.pause_before_exit(True)
