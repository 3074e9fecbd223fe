"""
Shared fixtures.

Most engine tests run against small fake ffmpeg/ffprobe executables
written into tmp_path. They are Python scripts with a shebang pointing
at the running interpreter, so they behave like real binaries to the
subprocess layer (exit codes, stdout/stderr, output files) while
letting each test decide exactly how "ffmpeg" misbehaves.
"""

import json
import stat
import sys
from pathlib import Path
from typing import Callable

import pytest

FAKE_JPEG = b"\xff\xd8\xff\xe0" + b"\x00\x10JFIF" + bytes(range(256)) + b"\xff\xd9"


_FAKE_FFMPEG = r'''
import json, sys, time
from pathlib import Path

config = json.loads(Path(__file__).with_name(Path(__file__).name + ".json").read_text())
args = sys.argv[1:]

with open(config["calls_log"], "a") as log:
    log.write(json.dumps(args) + "\n")

if config.get("broken"):
    sys.exit(127)
if args[:1] == ["-version"]:
    if not config.get("version_ok", True):
        sys.exit(1)
    print("ffmpeg version 6.1-fake Copyright (c) the FFmpeg developers")
    sys.exit(0)
if args[:1] == ["-h"]:
    if not config.get("help_ok", True):
        sys.exit(1)
    print("usage: ffmpeg [options] [[infile options] -i infile]...")
    sys.exit(0)
if config.get("hang"):
    time.sleep(60)

duration = config.get("duration", 10.0)
if "-show_entries" in args:
    if config.get("show_entries") is None:
        sys.stderr.write("Unrecognized option 'show_entries'\n")
        sys.exit(1)
    print(config["show_entries"])
    sys.exit(0)

i_index = args.index("-i")
video = args[i_index + 1]
if not config.get("is_video", True):
    sys.stderr.write(video + ": Invalid data found when processing input\n")
    sys.exit(1)

if i_index + 2 >= len(args):
    # ffmpeg -i VIDEO: print the banner and complain about the missing output
    h, rem = divmod(duration, 3600)
    m, s = divmod(rem, 60)
    sys.stderr.write("Input #0, mov,mp4,m4a,3gp,3g2,mj2, from '%s':\n" % video)
    sys.stderr.write("  Duration: %02d:%02d:%05.2f, start: 0.000000, bitrate: 120 kb/s\n" % (h, m, s))
    sys.stderr.write("At least one output file must be specified\n")
    sys.exit(1)

ss_index = args.index("-ss")
value = args[ss_index + 1]
if ss_index < i_index:
    mode = "input-seek-timestamp" if ":" in value else "input-seek-seconds"
else:
    mode = "output-seek"

if ":" in value:
    h, m, s = value.split(":")
    position = int(h) * 3600 + int(m) * 60 + float(s)
else:
    position = float(value)

output = Path(args[-1])
if mode in config.get("fail_modes", []):
    output.write_bytes(bytes.fromhex(config.get("failure_hex", "")))
    sys.exit(config.get("failure_exit", 1))
if position >= duration:
    # real ffmpeg exits 0 here and leaves an empty file behind
    output.write_bytes(b"")
    sys.exit(0)
output.write_bytes(bytes.fromhex(config["jpeg_hex"]))
sys.exit(0)
'''

_FAKE_FFPROBE = r'''
import json, sys
from pathlib import Path

config = json.loads(Path(__file__).with_name(Path(__file__).name + ".json").read_text())
args = sys.argv[1:]
with open(config["calls_log"], "a") as log:
    log.write(json.dumps(["ffprobe"] + args) + "\n")
if args[:1] == ["-version"]:
    print("ffprobe version 6.1-fake")
    sys.exit(0)
print(config.get("output", "N/A"))
sys.exit(config.get("exit_code", 0))
'''


class FakeBinary:
    """Handle on a fake executable: its path and the calls it received."""

    def __init__(self, path: Path, calls_log: Path):
        self.path = path
        self.calls_log = calls_log

    def __str__(self) -> str:
        return str(self.path)

    @property
    def calls(self) -> list[list[str]]:
        if not self.calls_log.exists():
            return []
        return [json.loads(line) for line in self.calls_log.read_text().splitlines()]

    def extraction_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c and c[0] != "ffprobe" and "-ss" in c]


def write_executable(path: Path, body: str) -> Path:
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def make_fake_ffmpeg(tmp_path: Path) -> Callable[..., FakeBinary]:
    """
    Factory for fake ffmpeg binaries.

    Keyword options: duration, show_entries (None = unsupported),
    fail_modes (seek strategy names that fail), failure_hex,
    failure_exit, version_ok, help_ok, broken, hang, is_video,
    directory, name.
    """
    def factory(directory: Path = None, name: str = "ffmpeg", **config) -> FakeBinary:
        directory = directory or (tmp_path / "bin")
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        calls_log = directory / f"{name}.calls"
        config.setdefault("show_entries", None)
        config["calls_log"] = str(calls_log)
        config["jpeg_hex"] = FAKE_JPEG.hex()
        path.with_name(name + ".json").write_text(json.dumps(config))
        write_executable(path, _FAKE_FFMPEG)
        return FakeBinary(path, calls_log)

    return factory


@pytest.fixture
def make_fake_ffprobe(tmp_path: Path) -> Callable[..., FakeBinary]:
    def factory(directory: Path = None, output: str = "10.000000", exit_code: int = 0) -> FakeBinary:
        directory = directory or (tmp_path / "bin")
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "ffprobe"
        calls_log = directory / "ffprobe.calls"
        config = {"output": output, "exit_code": exit_code, "calls_log": str(calls_log)}
        path.with_name("ffprobe.json").write_text(json.dumps(config))
        write_executable(path, _FAKE_FFPROBE)
        return FakeBinary(path, calls_log)

    return factory


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    """A file standing in for a video. Fake binaries never read it."""
    path = tmp_path / "media" / "clip.mp4"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
    return path


@pytest.fixture
def frames_dir(tmp_path: Path) -> Path:
    """Private temp dir for extracted frames so orphans are easy to spot."""
    path = tmp_path / "frames"
    path.mkdir()
    return path
