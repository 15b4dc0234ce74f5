#!/usr/bin/env python3
"""
🏗️ Qt Source Builder
Downloads, extracts, configures, compiles and installs a Qt source release
with the MinGW toolchain shipped by the Qt installer. Every stage is skipped
when its output already exists, so re-running resumes after the last
completed stage.
"""

import argparse
import glob
import os
import sys
import subprocess
import shutil
import shlex
import threading
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union
from dataclasses import dataclass, field, fields
from enum import Enum
import yaml

# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_SOURCE_URL = (
    "https://download.qt.io/archive/qt/5.15/5.15.1/single/"
    "qt-everywhere-src-5.15.1.zip"
)
DEFAULT_ROOT_DIR = r"C:\Qt\Builds"
DEFAULT_WORK_DIR = Path(__file__).resolve().parent / "work"
DEFAULT_TOOLCHAINS_ROOT = r"C:\Qt"

# Multi-part archive extensions that count as a single extension
ARCHIVE_EXTENSIONS = (".tar.xz", ".tar.gz", ".tar.bz2")
TAR_EXTENSIONS = ARCHIVE_EXTENSIONS + (".tar", ".tgz", ".txz")

# Modules that take hours and are not wanted in a MinGW build
SKIPPED_MODULES = [
    "qtwebengine",
    "qt3d",
    "qtdatavis3d",
    "qtquick3d",
    "qtlocation",
    "qtwebview",
]

# ============================================================================
# ENUMS AND DATA CLASSES
# ============================================================================

class Stage(Enum):
    PREPARE_ENV = "prepare"
    EXTRACT = "extract"
    CONFIGURE = "configure"
    COMPILE = "compile"
    INSTALL = "install"
    DONE = "done"
    FAILED = "failed"

@dataclass(frozen=True)
class BuildConfig:
    """Build configuration"""
    # Source
    source_url: str = DEFAULT_SOURCE_URL
    product: str = "qt"
    version: Optional[str] = None

    # Directories
    root_dir: Path = Path(DEFAULT_ROOT_DIR)
    work_dir: Path = DEFAULT_WORK_DIR

    # Variant ("Dynamic" or "Static")
    variant: str = "Dynamic"

    # Toolchain
    toolchain_dir: Optional[Path] = None
    toolchains_root: Path = Path(DEFAULT_TOOLCHAINS_ROOT)
    toolchain_prefix: str = "mingw"
    compiler: str = "gcc.exe"

    # External tools
    extractor: str = "7z"
    make_program: str = "mingw32-make"
    sentinel: str = "configure.bat"

    # Build options
    jobs: int = field(default_factory=lambda: os.cpu_count() or 4)
    configure_flags: Tuple[str, ...] = ()

    # Run behaviour
    pause: bool = True
    dry_run: bool = False

    def __post_init__(self):
        """Coerce path-like and sequence fields"""
        object.__setattr__(self, "root_dir", Path(self.root_dir))
        object.__setattr__(self, "work_dir", Path(self.work_dir))
        object.__setattr__(self, "toolchains_root", Path(self.toolchains_root))
        if self.toolchain_dir is not None:
            object.__setattr__(self, "toolchain_dir", Path(self.toolchain_dir))
        flags = self.configure_flags
        if isinstance(flags, str):
            flags = (flags,)
        object.__setattr__(self, "configure_flags", tuple(flags))

    @property
    def is_static(self) -> bool:
        """Check if this is a static build"""
        return self.variant.lower() == "static"

@dataclass(frozen=True)
class ResolvedPaths:
    """Well-known locations derived from a BuildConfig"""
    source_file_name: str
    source_top_dir: Path
    archive_path: Path
    source_dir: Path
    build_dir: Path
    install_dir: Path

@dataclass(frozen=True)
class ToolchainRef:
    """A resolved toolchain installation directory"""
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def bin_dirs(self) -> List[Path]:
        return [self.path / "bin", self.path / "opt" / "bin"]

# ============================================================================
# ERRORS
# ============================================================================

class BuildError(RuntimeError):
    """Base class for fatal pipeline errors"""
    exit_code = 1

class ConfigError(BuildError):
    """Invalid configuration file"""

class MissingDependencyError(BuildError):
    """A required external tool is not installed"""

class DownloadError(BuildError):
    """Transport failure or missing file after download"""

class ToolchainNotFoundError(BuildError):
    """Toolchain discovery found no candidates"""

class BuildCancelledError(BuildError):
    """Cancellation was requested between stages"""

class FilesystemError(BuildError):
    """A stage could not read, write or execute a path"""

    @classmethod
    def from_os_error(cls, error: OSError) -> "FilesystemError":
        reason = error.strerror or str(error)
        if error.filename is not None:
            wrapped = cls(f"{reason}: {error.filename}")
        else:
            wrapped = cls(reason)
        wrapped.__cause__ = error
        return wrapped

class StagePostconditionError(BuildError):
    """A stage ran but its marker artifact is absent"""

    def __init__(self, stage: str, marker: Path, message: Optional[str] = None):
        self.stage = stage
        self.marker = Path(marker)
        super().__init__(message or f"{stage} finished but {self.marker} does not exist")

class ExtractionVerificationError(StagePostconditionError):
    """Sentinel file absent after extraction"""

    def __init__(self, stage: str, marker: Path, message: Optional[str] = None):
        super().__init__(stage, marker, message or f"Extraction did not produce {marker}")

# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

class Color:
    """ANSI color codes"""
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    BOLD = '\033[1m'
    RESET = '\033[0m'

def log_info(msg: str):
    print(f"{Color.BLUE}[INFO]{Color.RESET} {msg}")

def log_success(msg: str):
    print(f"{Color.GREEN}[SUCCESS]{Color.RESET} {msg}")

def log_warning(msg: str):
    print(f"{Color.YELLOW}[WARNING]{Color.RESET} {msg}")

def log_error(msg: str):
    print(f"{Color.RED}[ERROR]{Color.RESET} {msg}")

def log_step(step: str, msg: str):
    print(f"\n{Color.CYAN}[{step}]{Color.RESET} {Color.BOLD}{msg}{Color.RESET}")

def format_command(cmd: Union[str, List[Any]]) -> str:
    if isinstance(cmd, str):
        return cmd
    return ' '.join(shlex.quote(str(arg)) for arg in cmd)

def run_command(cmd: List[Any], cwd: Optional[Path] = None,
                env: Optional[Dict[str, str]] = None, check: bool = False,
                verbose: bool = False) -> subprocess.CompletedProcess:
    """
    Run an external command with the given environment.

    The environment is passed through as-is; callers hand in the full map
    built by ProcessEnvironmentBuilder. The return code is only checked
    when ``check`` is set.
    """
    args = [str(arg) for arg in cmd]

    if verbose:
        log_info(f"Running: {format_command(args)}")
        if cwd:
            log_info(f"  in: {cwd}")

    # subprocess reports a missing cwd as FileNotFoundError too
    if cwd is not None and not Path(cwd).is_dir():
        raise FilesystemError(f"Working directory does not exist: {cwd}")

    try:
        result = subprocess.run(
            args, cwd=cwd, env=env,
            text=True, encoding='utf-8', errors='replace'
        )
    except FileNotFoundError as e:
        raise MissingDependencyError(f"Command not found: {args[0]}") from e

    if check and result.returncode != 0:
        raise subprocess.CalledProcessError(result.returncode, args)

    if result.returncode != 0:
        log_warning(f"{Path(args[0]).name} exited with code {result.returncode}")

    return result

def download_file(url: str, dest: Path,
                  fetch: Optional[Callable[[str, Path], Any]] = None) -> Path:
    """
    Download ``url`` to ``dest``. A partially written file is removed
    before the error is raised.
    """
    fetch = fetch or urllib.request.urlretrieve
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)

    log_info(f"Downloading: {url}")
    try:
        fetch(url, dest)
    except Exception as e:
        discard_partial(dest)
        raise DownloadError(f"Failed to download {url}: {e}") from e

    if not dest.is_file():
        raise DownloadError(f"Download of {url} produced no file at {dest}")

    log_success(f"Downloaded: {dest}")
    return dest

def discard_partial(path: Path):
    """Remove a partially written file artifact"""
    path = Path(path)
    if path.is_file():
        log_warning(f"Removing partial file: {path}")
        path.unlink()

def is_tar_archive(name: str) -> bool:
    return name.lower().endswith(TAR_EXTENSIONS)

def extract_command(extractor: str, archive: Path, dest: Path) -> List[str]:
    """Build the extraction command line for the archive type"""
    if is_tar_archive(archive.name):
        return [extractor, "-xf", str(archive), "-C", str(dest)]
    return [extractor, "x", str(archive), f"-o{dest}", "-y"]

# ============================================================================
# PATH RESOLUTION
# ============================================================================

def source_file_name(url: str) -> str:
    """Final path segment of the source URL"""
    path = urllib.parse.urlparse(url).path or url
    return path.rstrip("/").split("/")[-1]

def strip_archive_extension(name: str) -> str:
    """Remove the outer archive extension (.tar.xz counts as one)"""
    lowered = name.lower()
    for ext in ARCHIVE_EXTENSIONS:
        if lowered.endswith(ext):
            return name[:-len(ext)]
    return os.path.splitext(name)[0]

def resolve_paths(config: BuildConfig, version: str, toolchain_name: str) -> ResolvedPaths:
    """Derive every location the pipeline touches; pure function of its inputs"""
    file_name = source_file_name(config.source_url)
    source_top = config.work_dir / "source"
    return ResolvedPaths(
        source_file_name=file_name,
        source_top_dir=source_top,
        archive_path=source_top / file_name,
        source_dir=source_top / strip_archive_extension(file_name),
        build_dir=config.work_dir / "build",
        install_dir=config.root_dir / version / config.variant / toolchain_name,
    )

# ============================================================================
# VERSION INFERENCE
# ============================================================================

@dataclass(frozen=True)
class StripRule:
    """Removes the first occurrence of ``token`` from a file name"""
    name: str
    token: str

    def apply(self, value: str) -> str:
        return value.replace(self.token, "", 1)

def version_strip_rules(product: str = "qt") -> List[StripRule]:
    """
    Ordered naming-convention rules. The product rule must run first so
    the remaining tokens end up adjacent to the string boundary.
    """
    return [
        StripRule("product", f"{product}-"),
        StripRule("everywhere", "everywhere-"),
        StripRule("opensource", "opensource-"),
        StripRule("src-prefix", "src-"),
        StripRule("src-suffix", "-src"),
    ]

def infer_version(file_name: str, product: str = "qt") -> str:
    """
    Derive a version string from a source archive name, e.g.
    ``qt-everywhere-opensource-src-5.15.1.zip`` -> ``5.15.1``.
    """
    version = strip_archive_extension(file_name)
    for rule in version_strip_rules(product):
        version = rule.apply(version)
    return version

def resolve_version(config: BuildConfig, file_name: str) -> str:
    if config.version is not None:
        return config.version
    return infer_version(file_name, config.product)

# ============================================================================
# TOOLCHAIN DISCOVERY
# ============================================================================

def toolchain_pattern(search_root: Path, prefix: str = "mingw",
                      compiler: str = "gcc.exe") -> str:
    return os.path.join(str(search_root), "*", "Tools", f"{prefix}*", "bin", compiler)

def find_toolchain(search_root: Path, prefix: str = "mingw",
                   compiler: str = "gcc.exe") -> ToolchainRef:
    """
    Locate a toolchain under ``search_root/*/Tools/<prefix>*/bin/<compiler>``.

    Selection is a heuristic: matches are sorted as strings and the last
    one wins. Directory names usually embed a version or architecture
    suffix, so this approximates "newest", but it is not a version-aware
    comparison (mingw73 would sort after mingw130).
    """
    pattern = toolchain_pattern(glob.escape(str(search_root)), prefix, compiler)
    matches = sorted(glob.glob(pattern))
    if not matches:
        raise ToolchainNotFoundError(f"No toolchain found matching {pattern}")

    # <toolchain>/bin/<compiler>
    return ToolchainRef(Path(matches[-1]).parent.parent)

def resolve_toolchain(config: BuildConfig) -> ToolchainRef:
    if config.toolchain_dir is not None:
        return ToolchainRef(config.toolchain_dir)
    return find_toolchain(config.toolchains_root, config.toolchain_prefix,
                          config.compiler)

# ============================================================================
# PROCESS ENVIRONMENT
# ============================================================================

class ProcessEnvironmentBuilder:
    """Environment map handed to every external process of a run"""

    def __init__(self, toolchain: ToolchainRef, locale: str = "en"):
        self.toolchain = toolchain
        self.locale = locale

    def build(self, base_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        env = dict(os.environ if base_env is None else base_env)

        # Toolchain binaries shadow same-named system binaries
        entries = [str(p) for p in self.toolchain.bin_dirs]
        if env.get("PATH"):
            entries.append(env["PATH"])
        env["PATH"] = os.pathsep.join(entries)

        # Tool output must not depend on the machine's language
        env["LANG"] = self.locale
        return env

# ============================================================================
# STAGE GUARDS
# ============================================================================

def marker_exists(path: Path) -> bool:
    return Path(path).exists()

def run_guarded(stage: str, marker: Path, action: Callable[[], Any], *,
                dry_run: bool = False, verify: bool = True,
                cleanup_partial: bool = False,
                error_cls: Type[StagePostconditionError] = StagePostconditionError) -> bool:
    """
    Run ``action`` unless ``marker`` already exists.

    Returns True when the action ran. With ``verify`` the marker must
    exist afterwards, otherwise ``error_cls`` is raised. With
    ``cleanup_partial`` a marker file left behind by a failing action is
    deleted before the error propagates.
    """
    if marker_exists(marker):
        log_info(f"Skipping {stage}: {marker} already exists")
        return False

    if dry_run:
        log_info(f"[dry-run] Would run {stage} (expects {marker})")
        return False

    try:
        action()
    except BaseException:
        if cleanup_partial:
            discard_partial(marker)
        raise

    if verify and not marker_exists(marker):
        raise error_cls(stage, marker)
    return True

# ============================================================================
# PIPELINE
# ============================================================================

class QtBuildPipeline:
    """Sequences the build stages and records where a run failed"""

    STAGES = (Stage.PREPARE_ENV, Stage.EXTRACT, Stage.CONFIGURE,
              Stage.COMPILE, Stage.INSTALL)

    def __init__(self, config: BuildConfig,
                 fetch: Optional[Callable[[str, Path], Any]] = None,
                 runner: Optional[Callable[..., Any]] = None,
                 which: Optional[Callable[[str], Optional[str]]] = None,
                 cancel_event: Optional[threading.Event] = None,
                 base_env: Optional[Dict[str, str]] = None):
        self.config = config
        self.fetch = fetch
        self.runner = runner or run_command
        self.which = which or shutil.which
        self.cancel_event = cancel_event
        self.base_env = base_env

        self.state = Stage.PREPARE_ENV
        self.failed_stage: Optional[Stage] = None
        self.error: Optional[BuildError] = None

        # Filled in by the prepare stage
        self.version: Optional[str] = None
        self.toolchain: Optional[ToolchainRef] = None
        self.paths: Optional[ResolvedPaths] = None
        self.env: Optional[Dict[str, str]] = None

    def run(self) -> int:
        """Run all stages; returns the process exit status"""
        handlers = {
            Stage.PREPARE_ENV: self.prepare_env,
            Stage.EXTRACT: self.extract,
            Stage.CONFIGURE: self.configure,
            Stage.COMPILE: self.compile,
            Stage.INSTALL: self.install,
        }

        for stage in self.STAGES:
            self.state = stage
            try:
                self._check_cancelled(stage)
                handlers[stage]()
            except BuildError as e:
                return self._fail(stage, e)
            except OSError as e:
                return self._fail(stage, FilesystemError.from_os_error(e))

        self.state = Stage.DONE
        if self.config.dry_run:
            log_success("Dry run finished, nothing was executed")
        else:
            log_success(f"Qt {self.version} installed to {self.paths.install_dir}")
        return 0

    def _fail(self, stage: Stage, error: BuildError) -> int:
        self.failed_stage = stage
        self.error = error
        self.state = Stage.FAILED
        log_error(f"{stage.value} failed: {error}")
        return error.exit_code

    def _check_cancelled(self, stage: Stage):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise BuildCancelledError(f"Cancelled before {stage.value}")

    def _run(self, cmd: List[Any], cwd: Path):
        self.runner(cmd, cwd=cwd, env=self.env, verbose=True)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def prepare_env(self):
        """Resolve version, toolchain and paths; fetch the source archive"""
        config = self.config
        log_step("PREPARE", "Resolving build environment")

        file_name = source_file_name(config.source_url)
        self.version = resolve_version(config, file_name)
        self.toolchain = resolve_toolchain(config)
        self.paths = resolve_paths(config, self.version, self.toolchain.name)
        self.env = ProcessEnvironmentBuilder(self.toolchain).build(self.base_env)

        log_info(f"Version:   {self.version}")
        log_info(f"Toolchain: {self.toolchain.path}")
        log_info(f"Install:   {self.paths.install_dir}")

        for directory in (self.paths.source_top_dir, self.paths.build_dir):
            if config.dry_run:
                log_info(f"[dry-run] Would create {directory}")
            else:
                directory.mkdir(parents=True, exist_ok=True)

        run_guarded(
            "download", self.paths.archive_path,
            lambda: download_file(config.source_url, self.paths.archive_path, self.fetch),
            dry_run=config.dry_run, cleanup_partial=True,
        )

    def extract(self):
        log_step("EXTRACT", f"Extracting {self.paths.source_file_name}")
        sentinel = self.paths.source_dir / self.config.sentinel
        run_guarded(
            "extract", sentinel, self._extract_archive,
            dry_run=self.config.dry_run,
            error_cls=ExtractionVerificationError,
        )

    def _extract_archive(self):
        archive = self.paths.archive_path
        extractor = "tar" if is_tar_archive(archive.name) else self.config.extractor
        if not self.which(extractor):
            raise MissingDependencyError(
                f"{extractor} is required to extract {archive.name} but was not found on PATH"
            )
        self._run(extract_command(extractor, archive, self.paths.source_top_dir),
                  cwd=self.paths.source_top_dir)

    def configure_command(self) -> List[str]:
        """Fixed Qt configure option set for this variant"""
        config = self.config
        cmd = [
            str(self.paths.source_dir / "configure.bat"),
            "-prefix", str(self.paths.install_dir),
            "-opensource",
            "-confirm-license",
            "-release",
            "-platform", "win32-g++",
            "-opengl", "desktop",
            "-nomake", "examples",
            "-nomake", "tests",
            "-no-pch",
            "-no-dbus",
            "-qt-zlib",
            "-qt-libpng",
            "-qt-libjpeg",
            "-qt-pcre",
            "-qt-freetype",
            "-qt-harfbuzz",
        ]
        for module in SKIPPED_MODULES:
            cmd += ["-skip", module]
        if config.is_static:
            cmd += ["-static", "-static-runtime"]
        else:
            cmd.append("-shared")
        cmd += list(config.configure_flags)
        return cmd

    def configure(self):
        log_step("CONFIGURE", f"Configuring {self.config.variant} build")
        run_guarded(
            "configure", self.paths.install_dir,
            lambda: self._run(self.configure_command(), cwd=self.paths.build_dir),
            dry_run=self.config.dry_run, verify=False,
        )

    def compile(self):
        # Incremental rebuilds are left to make
        log_step("COMPILE", f"Compiling with {self.config.jobs} jobs")
        run_guarded(
            "compile", self.paths.install_dir,
            lambda: self._run([self.config.make_program, f"-j{self.config.jobs}"],
                              cwd=self.paths.build_dir),
            dry_run=self.config.dry_run, verify=False,
        )

    def install(self):
        log_step("INSTALL", f"Installing to {self.paths.install_dir}")
        run_guarded(
            "install", self.paths.install_dir,
            lambda: self._run([self.config.make_program, "install"],
                              cwd=self.paths.build_dir),
            dry_run=self.config.dry_run,
        )

# ============================================================================
# CONFIGURATION FILE
# ============================================================================

CONFIG_KEYS = {f.name for f in fields(BuildConfig)}

def load_config_file(path: Path) -> Dict[str, Any]:
    """Load BuildConfig overrides from a YAML file"""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"Unknown keys in {path}: {', '.join(unknown)}")

    for key, value in data.items():
        problem = _check_config_value(key, value)
        if problem:
            raise ConfigError(f"{path}: '{key}' {problem}, got {value!r}")
    return data

OPTIONAL_KEYS = {"version", "toolchain_dir"}
BOOL_KEYS = {"pause", "dry_run"}

def _check_config_value(key: str, value: Any) -> Optional[str]:
    """Describe what is wrong with a config file value, or None if it fits"""
    if value is None and key in OPTIONAL_KEYS:
        return None
    if key in BOOL_KEYS:
        return None if isinstance(value, bool) else "must be true or false"
    if key == "jobs":
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return "must be a positive integer"
        return None
    if key == "configure_flags":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            return "must be a list of strings"
        return None
    # Versions such as 5.15 parse as floats unless quoted
    if not isinstance(value, str):
        return "must be a string (quote values like versions)"
    return None

# ============================================================================
# MAIN PROGRAM
# ============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser"""

    parser = argparse.ArgumentParser(
        description="🏗️ Qt Source Builder - Build Qt from a source release with MinGW",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build the default release as a dynamic library set
  python3 build_qt.py

  # Static build of a specific release into a custom root
  python3 build_qt.py --variant Static --root-dir D:\\Qt\\Builds \\
    --source-url https://download.qt.io/archive/qt/5.15/5.15.2/single/qt-everywhere-src-5.15.2.zip

  # Use an explicit toolchain instead of searching C:\\Qt
  python3 build_qt.py --toolchain-dir C:\\Qt\\Tools\\mingw810_64

  # Show what would run without touching anything
  python3 build_qt.py --dry-run --no-pause

  # Load options from a YAML file (command line flags still win)
  python3 build_qt.py --config qt-build.yml
"""
    )

    # Every option defaults to None so that unset flags can fall back to the
    # config file and then to BuildConfig defaults.
    source_group = parser.add_argument_group('Source')
    source_group.add_argument(
        '--source-url',
        help=f'Source archive URL (default: {DEFAULT_SOURCE_URL})'
    )
    source_group.add_argument(
        '--qt-version', dest='version',
        help='Version override (default: inferred from the archive name)'
    )
    source_group.add_argument(
        '--product',
        help='Product name prefix stripped from the archive name (default: qt)'
    )

    dir_group = parser.add_argument_group('Directories')
    dir_group.add_argument(
        '--root-dir',
        help=f'Install root (default: {DEFAULT_ROOT_DIR})'
    )
    dir_group.add_argument(
        '--work-dir',
        help=f'Download and build directory (default: {DEFAULT_WORK_DIR})'
    )

    build_group = parser.add_argument_group('Build Configuration')
    build_group.add_argument(
        '--variant',
        help='Build variant, Dynamic or Static (default: Dynamic)'
    )
    build_group.add_argument(
        '--jobs', '-j',
        type=int,
        help='Number of parallel jobs (default: CPU count)'
    )
    build_group.add_argument(
        '--configure-flag',
        action='append',
        dest='configure_flags',
        help='Additional configure flag, e.g. --configure-flag=-skip (can be used multiple times)'
    )

    tc_group = parser.add_argument_group('Toolchain')
    tc_group.add_argument(
        '--toolchain-dir',
        help='Toolchain directory (default: discovered under --toolchains-root)'
    )
    tc_group.add_argument(
        '--toolchains-root',
        help=f'Root searched for toolchains (default: {DEFAULT_TOOLCHAINS_ROOT})'
    )

    tools_group = parser.add_argument_group('External Tools')
    tools_group.add_argument(
        '--extractor',
        help='Archive extraction tool for non-tar archives (default: 7z)'
    )
    tools_group.add_argument(
        '--make',
        dest='make_program',
        help='Make program (default: mingw32-make)'
    )

    run_group = parser.add_argument_group('Run Behaviour')
    run_group.add_argument(
        '--config',
        help='YAML file with default values for the options above'
    )
    run_group.add_argument(
        '--dry-run',
        action='store_true',
        default=None,
        help='Log stage actions without executing them'
    )
    run_group.add_argument(
        '--no-pause',
        action='store_false',
        dest='pause',
        default=None,
        help='Do not wait for a key press before exiting'
    )

    return parser

def build_config_from_args(args: argparse.Namespace) -> BuildConfig:
    """Merge CLI flags over the config file over BuildConfig defaults"""
    values: Dict[str, Any] = {}
    if args.config:
        values.update(load_config_file(Path(args.config)))

    for key in CONFIG_KEYS:
        value = getattr(args, key, None)
        if value is not None:
            values[key] = value

    try:
        return BuildConfig(**values)
    except TypeError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

def pause_before_exit(enabled: bool):
    if not enabled:
        return
    try:
        input("Press Enter to exit...")
    except EOFError:
        pass

def main(argv: Optional[List[str]] = None) -> int:
    """Main program entry point"""

    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config_from_args(args)
    except ConfigError as e:
        log_error(str(e))
        pause_before_exit(args.pause is not False)
        return e.exit_code

    print(f"""
{Color.BOLD}{Color.CYAN}🏗️ Qt Source Builder{Color.RESET}
{Color.BOLD}Source:     {Color.GREEN}{config.source_url}{Color.RESET}
{Color.BOLD}Variant:    {Color.GREEN}{config.variant}{Color.RESET}
{Color.BOLD}Root:       {Color.GREEN}{config.root_dir}{Color.RESET}
{Color.BOLD}Work:       {Color.GREEN}{config.work_dir}{Color.RESET}
{Color.BOLD}Jobs:       {Color.GREEN}{config.jobs}{Color.RESET}
    """)

    try:
        status = QtBuildPipeline(config).run()
    except KeyboardInterrupt:
        log_error("Build interrupted by user")
        status = 1
    except Exception as e:
        log_error(f"Unexpected error: {e}")
        import traceback
        traceback.print_exc()
        status = 1

    pause_before_exit(config.pause)
    return status

if __name__ == "__main__":
    sys.exit(main())
