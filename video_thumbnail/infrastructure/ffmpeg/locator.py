"""
ffmpeg binary discovery.

Install locations vary a lot: distro packages, Homebrew, snap, flatpak,
hand-built binaries in /opt, ephemeral Nix store paths. A single
hardcoded default is unreliable, so BinaryLocator walks an ordered list
of detection strategies and runs every candidate before accepting it.
The first validated candidate wins.

Strategies only discover paths. Validation is the locator's job, so a
stale or broken installation found by an early strategy falls through
to the next one instead of being returned.
"""

import glob
import logging
import os
import shlex
from typing import Optional, Protocol, Sequence

from ...core.frames.models import BinaryCandidate, BinaryNotFoundError
from ...core.tracing import NullTracer, Tracer
from .runner import ProcessRunner

DEFAULT_BINARY = "ffmpeg"
DEFAULT_VALIDATION_TIMEOUT = 10.0

# Package-manager stores whose paths go stale when the store is collected
STALE_PATH_MARKERS = ("/nix/store/",)

COMMON_DIRECTORIES = (
    "/usr/bin",
    "/usr/local/bin",
    "/opt/local/bin",
    "/opt/bin",
    "/opt/*/bin",
    "/opt/homebrew/bin",
    "/usr/share/ffmpeg/bin",
    "/usr/lib/ffmpeg/bin",
    "/snap/bin",
    "/var/lib/flatpak/exports/bin",
    "~/.local/share/flatpak/exports/bin",
)


def is_executable_file(path: str) -> bool:
    return bool(path) and os.path.isfile(path) and os.access(path, os.X_OK)


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def _path_from_lookup(line: str) -> str:
    """
    Reduce shell lookup output to a path.

    POSIX "type" prints "ffmpeg is /usr/bin/ffmpeg" (bash adds "hashed
    (/usr/bin/ffmpeg)"), so the last word is taken when the line itself
    is not a path.
    """
    if os.path.isabs(line) or not line:
        return line
    return line.rsplit(None, 1)[-1].strip("()")


# ---------------------------------------------------------------------------
# Detection Strategies
# ---------------------------------------------------------------------------

class DetectionStrategy(Protocol):
    """One way of finding a binary. Returns a path or None."""

    name: str

    def attempt(self, binary_name: str) -> Optional[str]:
        ...


class ShellLookupStrategy:
    """
    Ask the shell where the binary is.

    The template receives the shell-quoted binary name; the first
    non-empty line of stdout is taken as the path.
    """

    def __init__(self, name: str, template: str, runner: ProcessRunner, timeout: float = 5.0):
        self.name = name
        self._template = template
        self._runner = runner
        self._timeout = timeout

    def attempt(self, binary_name: str) -> Optional[str]:
        command = self._template.format(binary=shlex.quote(binary_name))
        result = self._runner.run(command, self._timeout)
        if not result.ok:
            return None
        path = _path_from_lookup(_first_line(result.stdout))
        # "type" and "command -v" report builtins and aliases as bare words
        if not os.path.isabs(path):
            return None
        return path


class EnvPathStrategy:
    """Scan the PATH directories by hand."""

    name = "env-path"

    def __init__(self, environ: Optional[dict] = None):
        self._environ = environ

    def attempt(self, binary_name: str) -> Optional[str]:
        environ = self._environ if self._environ is not None else os.environ
        path_env = environ.get("PATH", "")
        for directory in path_env.split(os.pathsep):
            if not directory:
                continue
            for name in _platform_names(binary_name):
                candidate = os.path.join(directory, name)
                if is_executable_file(candidate):
                    return candidate
        return None


class CommonPathsStrategy:
    """Look in well-known installation directories."""

    name = "common-paths"

    def __init__(self, directories: Sequence[str] = COMMON_DIRECTORIES):
        self._directories = directories

    def attempt(self, binary_name: str) -> Optional[str]:
        for pattern in self._directories:
            for directory in sorted(glob.glob(os.path.expanduser(pattern))):
                for name in _platform_names(binary_name):
                    candidate = os.path.join(directory, name)
                    if is_executable_file(candidate):
                        return candidate
        return None


def _platform_names(binary_name: str) -> list[str]:
    if os.name == "nt" and not binary_name.lower().endswith(".exe"):
        return [binary_name, binary_name + ".exe"]
    return [binary_name]


def default_strategies(runner: ProcessRunner) -> list[DetectionStrategy]:
    """The detection order used when no explicit list is given."""
    return [
        ShellLookupStrategy("which", "which {binary} 2>/dev/null", runner),
        ShellLookupStrategy("type", "type {binary} 2>/dev/null", runner),
        ShellLookupStrategy("command-exists", "command -v {binary} 2>/dev/null", runner),
        EnvPathStrategy(),
        CommonPathsStrategy(),
    ]


# ---------------------------------------------------------------------------
# Locator
# ---------------------------------------------------------------------------

class BinaryLocator:
    """
    Finds a working ffmpeg executable.

    A configured path is tried first but never trusted blindly; it has
    to exist, be executable and answer -version like any discovered
    candidate. Not finding anything is reported as None.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        tracer: Optional[Tracer] = None,
        strategies: Optional[Sequence[DetectionStrategy]] = None,
        binary_name: str = DEFAULT_BINARY,
        validation_timeout: float = DEFAULT_VALIDATION_TIMEOUT,
    ):
        self._runner = runner
        self._tracer = tracer or NullTracer()
        self._strategies = list(strategies) if strategies is not None else default_strategies(runner)
        self._binary_name = binary_name
        self._validation_timeout = validation_timeout

    def locate(self, configured_path: str = "") -> Optional[BinaryCandidate]:
        """
        Resolve a validated binary path.

        Args:
            configured_path: path from configuration, may be empty

        Returns:
            Validated candidate, or None when every strategy failed.
        """
        configured_path = (configured_path or "").strip()
        if configured_path:
            candidate = self._check_configured(configured_path)
            if candidate:
                return candidate
            self._tracer.log(
                logging.INFO,
                f"Configured path {configured_path} is unusable, auto-detecting",
            )

        for strategy in self._strategies:
            self._tracer.log(logging.DEBUG, f"Trying detection strategy '{strategy.name}'")
            try:
                path = strategy.attempt(self._binary_name)
            except OSError as e:
                self._tracer.log(logging.DEBUG, f"Strategy '{strategy.name}' failed: {e}")
                continue
            if not path:
                continue

            candidate = BinaryCandidate(path=path, source=strategy.name)
            if self.validate(candidate):
                self._tracer.log(
                    logging.INFO,
                    f"Found {self._binary_name} via {strategy.name}: {candidate.path}",
                )
                return candidate
            self._tracer.log(
                logging.DEBUG,
                f"Candidate {path} from '{strategy.name}' failed validation",
            )

        self._tracer.log(
            logging.ERROR,
            f"{self._binary_name} not found by any detection strategy",
        )
        return None

    def require(self, configured_path: str = "") -> BinaryCandidate:
        """Like locate(), but a missing binary is a configuration error."""
        candidate = self.locate(configured_path)
        if candidate is None:
            raise BinaryNotFoundError(
                f"No working {self._binary_name} executable found. "
                f"Install ffmpeg or set VT_FFMPEG_PATH."
            )
        return candidate

    def locate_companion(self, main_path: str, name: str = "ffprobe") -> Optional[str]:
        """
        Find a validated companion binary (ffprobe) next to the main one.

        Keeps the main binary's extension, so ffmpeg.exe pairs with
        ffprobe.exe.
        """
        directory, filename = os.path.split(main_path)
        _, extension = os.path.splitext(filename)
        companion = os.path.join(directory, name + extension)
        candidate = BinaryCandidate(path=companion, source="companion")
        if self.validate(candidate):
            return candidate.path
        return None

    def validate(self, candidate: BinaryCandidate) -> bool:
        """
        Run the candidate and mark it validated if it behaves.

        -version must exit 0 with output; some stripped builds only
        answer -h, so that is tried as a second chance.
        """
        if not is_executable_file(candidate.path):
            return False

        for flag in ("-version", "-h"):
            result = self._runner.run([candidate.path, flag], self._validation_timeout)
            output = result.stdout.strip() or result.stderr.strip()
            if result.ok and output:
                self._tracer.log(
                    logging.DEBUG,
                    f"Validated {candidate.path} with {flag}: {_first_line(output)}",
                )
                candidate.validated = True
                return True
            self._tracer.log(
                logging.DEBUG,
                f"Validation of {candidate.path} with {flag} failed "
                f"(exit {result.exit_code}, timed out {result.timed_out})",
            )
        return False

    def _check_configured(self, path: str) -> Optional[BinaryCandidate]:
        if any(marker in path for marker in STALE_PATH_MARKERS):
            self._tracer.log(
                logging.DEBUG,
                f"Configured path {path} is in a package store and may be stale",
            )
        candidate = BinaryCandidate(path=path, source="configured")
        if self.validate(candidate):
            return candidate
        return None
