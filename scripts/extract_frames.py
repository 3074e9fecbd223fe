#!/usr/bin/env python3
"""
Extract evenly spaced thumbnail frames from a local video.

Locates ffmpeg the same way the API does, samples the video and copies
each frame into the output directory as frame_NN_<HH-MM-SS.mmm>.jpg.

Usage:
    python scripts/extract_frames.py VIDEO [--count 5] [--out frames/]
    python scripts/extract_frames.py VIDEO --duration-only

Requires:
    - ffmpeg installed, or VT_FFMPEG_PATH pointing at it
"""

import argparse
import logging
import shutil
import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from video_thumbnail.config.settings import get_settings
from video_thumbnail.core.frames.models import BinaryNotFoundError, format_timestamp
from video_thumbnail.infrastructure.ffmpeg.engine import create_frame_engine


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("video", type=Path, help="Local video file")
    parser.add_argument("--count", type=int, default=None, help="Frames to extract (1-20)")
    parser.add_argument("--out", type=Path, default=Path("frames"), help="Output directory")
    parser.add_argument("--duration-only", action="store_true", help="Print the duration and exit")
    parser.add_argument("--debug", action="store_true", help="Verbose engine tracing")
    return parser.parse_args(argv)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    settings = get_settings()
    if args.debug:
        settings = settings.model_copy(update={"debug_mode": True, "log_level": "DEBUG"})

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level,
    )

    try:
        engine = create_frame_engine(settings)
    except BinaryNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Using ffmpeg: {engine.ffmpeg_path}")
    if engine.ffprobe_path:
        print(f"Using ffprobe: {engine.ffprobe_path}")

    duration = engine.probe.duration(str(args.video))
    if duration <= 0:
        print(f"Error: could not determine duration of {args.video}", file=sys.stderr)
        return 1
    print(f"Duration: {format_timestamp(duration)} ({duration:.3f}s)")
    if args.duration_only:
        return 0

    frames = engine.thumbnails.candidate_frames(str(args.video), args.count)
    args.out.mkdir(parents=True, exist_ok=True)

    for i, frame in enumerate(frames, 1):
        target = args.out / f"frame_{i:02d}_{frame.time_formatted.replace(':', '-')}.jpg"
        shutil.copyfile(frame.path, target)
        frame.discard()
        print(f"  {target}  ({frame.percent:5.1f}%)")

    print(f"\nExtracted {len(frames)} frames to {args.out}")
    return 0 if frames else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
