"""
Command-line runner: solve a YAML Sankey file, optionally re-solving every
time the file changes.

    sankey-watch network.yaml            # solve, then watch for changes
    sankey-watch network.yaml --once     # solve once; exit 0 only if solved
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import yaml
from loguru import logger
from pydantic import ValidationError

from .flow_solver import solve
from .formatter import format_result
from .loader import load_config

RULE = "=" * 80


def run_solver(path: Path) -> bool:
    """Solve ``path`` once and print the report. Returns True when solved."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"\n[{timestamp}] Running solver on {path}...")
    print(RULE)

    try:
        config = load_config(path)
    except (OSError, yaml.YAMLError, ValidationError, ValueError) as exc:
        logger.error("Could not load {}: {}", path, exc)
        print(f"✗ Error: {exc}")
        return False

    result = solve(config)
    print(format_result(result))
    print(RULE)
    print("✓ Solved successfully" if result.success else "✗ Failed to solve")
    return result.success


def watch(path: Path, debounce_s: float, poll_s: float) -> None:
    """Re-run the solver whenever the file's mtime changes, until interrupted."""
    last_mtime = path.stat().st_mtime
    print(f"\nWatching for changes to {path}... (Press Ctrl+C to stop)")

    while True:
        time.sleep(poll_s)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            # Editors that save by rename briefly remove the file
            continue
        if mtime == last_mtime:
            continue

        # Debounce rapid successive writes
        time.sleep(debounce_s)
        try:
            last_mtime = path.stat().st_mtime
        except FileNotFoundError:
            continue
        logger.debug("Change detected in {}", path)
        run_solver(path)
        print(f"\nWatching for changes to {path}... (Press Ctrl+C to stop)")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sankey-watch",
        description="Solve the flows of a YAML Sankey network and watch it for changes.",
    )
    parser.add_argument("file", help="YAML file with parameters, nodes, flows and constraints")
    parser.add_argument("--once", action="store_true", help="solve once and exit")
    parser.add_argument(
        "--log-level",
        default=os.getenv("SANKEY_LOG_LEVEL", "INFO"),
        help="loguru level for diagnostics on stderr (env: SANKEY_LOG_LEVEL)",
    )
    parser.add_argument(
        "--debounce-ms",
        type=float,
        default=float(os.getenv("SANKEY_WATCH_DEBOUNCE_MS", "100")),
        help="delay after a change before re-solving (env: SANKEY_WATCH_DEBOUNCE_MS)",
    )
    parser.add_argument(
        "--poll-ms",
        type=float,
        default=float(os.getenv("SANKEY_WATCH_POLL_MS", "250")),
        help="interval between modification-time checks (env: SANKEY_WATCH_POLL_MS)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    path = Path(args.file)
    if not path.exists():
        print(f"Error: File '{path}' not found", file=sys.stderr)
        return 1

    if args.once:
        return 0 if run_solver(path) else 1

    debounce_s = args.debounce_ms / 1000.0
    poll_s = args.poll_ms / 1000.0

    print(f"Starting watch mode for {path}...")
    run_solver(path)
    try:
        watch(path, debounce_s, poll_s)
    except KeyboardInterrupt:
        print("\nStopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
