#!/usr/bin/env python3
"""
Log trail demo.

This example demonstrates:
1. Following a file that exists before the trail starts (read from its end)
2. Following a file created afterwards (read from its start)
3. Dropping a file's follower when the file is removed

Usage:
    python examples/follow_demo.py
    python examples/follow_demo.py --poll

The demo will:
- Create a temporary log directory with one file
- Start a trail and print every line it delivers
- Append to the existing file, create a rotated one, remove the first
- Clean up
"""

import argparse
import logging
import sys
import tempfile
import time
from pathlib import Path

# Add the repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.trail import DirectoryWatcher, Line, Trail, TrailOptions


def print_line(line: Line) -> None:
    print(f"[LINE] {line.path.name}: {line.text}")


def append(path: Path, text: str) -> None:
    with open(path, "a") as f:
        f.write(text + "\n")
    print(f"[WRITER] {path.name} <- {text!r}")


def run_demo(poll: bool) -> None:
    with tempfile.TemporaryDirectory() as tmp:
        log_dir = Path(tmp)
        current = log_dir / "current.log"
        current.write_text("written before the trail started\n")

        options = TrailOptions(poll_changes=poll, logger=logging.getLogger("demo"))
        watcher = DirectoryWatcher(log_dir, poll=poll)

        with Trail(watcher, options) as trail:
            trail.follow(print_line)
            print(f"[TRAIL] Following: {[p.name for p in trail.followed_paths()]}")

            append(current, "hello")
            time.sleep(1.5)

            rotated = log_dir / "rotated.log"
            append(rotated, "world")
            time.sleep(1.5)
            print(f"[TRAIL] Following: {[p.name for p in trail.followed_paths()]}")

            current.unlink()
            print("[WRITER] removed current.log")
            time.sleep(1.5)
            print(f"[TRAIL] Following: {[p.name for p in trail.followed_paths()]}")

        print("[TRAIL] Ended")


def main():
    parser = argparse.ArgumentParser(description="Log trail demo")
    parser.add_argument("--poll", action="store_true", help="Poll instead of using native notifications")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show trail debug logs")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    run_demo(args.poll)


if __name__ == "__main__":
    main()
