"""
Timeout-bounded subprocess runner.

ffmpeg can hang on a damaged container or a stalled pipe, so every
invocation goes through ProcessRunner.run(). It never blocks on a read:
both output pipes are non-blocking and the loop polls process liveness
and drains output every poll_interval until the process exits or the
wall-clock timeout passes, at which point the whole process group is
killed. Only the first max_output_bytes of each stream are kept, so
a runaway writer cannot exhaust memory before the timeout.

Expected failures (non-zero exit, timeout, spawn failure) come back in
the RunResult rather than as exceptions, so callers can simply move on
to their next fallback strategy.
"""

import logging
import os
import shlex
import signal
import subprocess
import time
from typing import IO, Optional, Sequence, Union

from ...core.frames.models import RunResult
from ...core.tracing import NullTracer, Tracer

Command = Union[str, Sequence[str]]

DEFAULT_POLL_INTERVAL = 0.05
_READ_CHUNK = 65536
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024


def describe_command(command: Command) -> str:
    """Render a command for log messages."""
    if isinstance(command, str):
        return command
    return shlex.join(str(part) for part in command)


class ProcessRunner:
    """
    Runs external commands with a hard timeout.

    Argument lists run without a shell. A plain string runs through
    /bin/sh and must already be fully escaped (see shlex.quote); only
    the binary locator's shell-idiom strategies use that form.
    """

    def __init__(
        self,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        tracer: Optional[Tracer] = None,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if max_output_bytes < 1:
            raise ValueError("max_output_bytes must be positive")
        self._max_output_bytes = max_output_bytes
        self._poll_interval = poll_interval
        self._tracer = tracer or NullTracer()

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def run(self, command: Command, timeout: float) -> RunResult:
        """
        Run a command and capture its output.

        Args:
            command: argv list, or an escaped shell command line
            timeout: wall-clock seconds before the process is killed

        Returns:
            RunResult. exit_code is None if the process never started.
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        shell = isinstance(command, str)
        argv = command if shell else [str(part) for part in command]
        self._tracer.log(
            logging.DEBUG, f"Running (timeout {timeout:g}s): {describe_command(command)}"
        )

        try:
            process = subprocess.Popen(
                argv,
                shell=shell,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=(os.name == "posix"),
            )
        except (OSError, ValueError) as e:
            self._tracer.log(logging.WARNING, f"Could not start {describe_command(command)}: {e}")
            return RunResult(stdout="", stderr="", exit_code=None, error=str(e))

        stdout_buf = bytearray()
        stderr_buf = bytearray()
        timed_out = False

        try:
            streams = [(process.stdout, stdout_buf), (process.stderr, stderr_buf)]
            for stream, _ in streams:
                os.set_blocking(stream.fileno(), False)

            deadline = time.monotonic() + timeout
            while True:
                self._drain(streams, self._max_output_bytes)
                if process.poll() is not None:
                    break
                if time.monotonic() >= deadline:
                    timed_out = True
                    self._tracer.log(
                        logging.WARNING,
                        f"Timed out after {timeout:g}s, killing: {describe_command(command)}",
                    )
                    self._kill(process)
                    break
                time.sleep(self._poll_interval)

            process.wait()
            self._drain(streams, self._max_output_bytes)
        finally:
            if process.poll() is None:
                self._kill(process)
                process.wait()
            process.stdout.close()
            process.stderr.close()

        result = RunResult(
            stdout=stdout_buf.decode("utf-8", errors="replace"),
            stderr=stderr_buf.decode("utf-8", errors="replace"),
            exit_code=None if timed_out else process.returncode,
            timed_out=timed_out,
        )
        self._tracer.log(
            logging.DEBUG,
            f"Finished with exit code {result.exit_code} "
            f"(timed out: {result.timed_out}): {describe_command(command)}",
        )
        return result

    @staticmethod
    def _drain(streams: list[tuple[IO[bytes], bytearray]], limit: int) -> None:
        """
        Read whatever is available on each pipe without blocking.

        Only the first limit bytes of each stream are kept; the rest is
        read and dropped so the child never stalls on a full pipe.
        """
        for stream, buf in streams:
            fd = stream.fileno()
            while True:
                try:
                    chunk = os.read(fd, _READ_CHUNK)
                except OSError:
                    # BlockingIOError: nothing buffered right now
                    break
                if not chunk:
                    break
                room = limit - len(buf)
                if room > 0:
                    buf.extend(chunk[:room])

    @staticmethod
    def _kill(process: subprocess.Popen) -> None:
        """SIGKILL the process and, on POSIX, everything it spawned."""
        if os.name == "posix":
            try:
                os.killpg(process.pid, signal.SIGKILL)
                return
            except (ProcessLookupError, PermissionError):
                pass
        try:
            process.kill()
        except ProcessLookupError:
            pass
