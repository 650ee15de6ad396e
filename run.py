#!/usr/bin/env python3
"""
Squat form check: live (webcam) or synthetic demo.
Usage:
  Live: python run.py --live [--camera 0] [--record] [--profile strict]
  Demo: python run.py --demo [--reps 3] [--bad-form]
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Run from project root so formcheck is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# FORMCHECK_* overrides may live in a .env next to this file
load_dotenv()
load_dotenv(Path(__file__).resolve().parent / ".env")

from formcheck.config import EngineConfig, load_config
from formcheck.engine import SquatEngine
from formcheck.synthetic import SquatCycleGenerator


def run_demo(
    reps: int = 3,
    good_form: bool = True,
    config: EngineConfig | None = None,
    output_dir: str = "outputs",
) -> dict:
    """Feed synthetic squat cycles through the engine and print each rep."""
    os.makedirs(output_dir, exist_ok=True)
    engine = SquatEngine(config)
    generator = SquatCycleGenerator(good_form=good_form, jitter_px=1.0, seed=7)
    # One extra standing quarter so the last rep closes
    total = reps * generator.cycle_frames + generator.cycle_frames // 4
    for obs in generator.frames(total):
        result = engine.process(obs)
        rep = result.completed_rep
        if rep is not None:
            kind = "full" if rep.full else "partial"
            cues = ", ".join(rep.cues) or "-"
            print(f"rep {rep.number} ({kind}): quality={rep.quality} cues={cues}")
    session = engine.snapshot()
    summary = session["summary"]
    print(
        f"Demo done. Reps: {summary['total_reps']} (partial {summary['partial_reps']}), "
        f"avg={summary['average_score']} baseline={session['baseline']}"
    )
    session_path = os.path.join(output_dir, "demo_session.json")
    with open(session_path, "w") as f:
        json.dump(session, f, indent=2)
    return session


def main() -> None:
    ap = argparse.ArgumentParser(description="Squat form check: live webcam or synthetic demo")
    ap.add_argument("--live", action="store_true", help="Use live webcam")
    ap.add_argument("--demo", action="store_true", help="Run synthetic squat cycles (no camera)")
    ap.add_argument("--camera", type=int, default=0, help="Camera device id (default 0)")
    ap.add_argument("--record", action="store_true", help="Save live_recording.mp4 in live mode")
    ap.add_argument("--reps", type=int, default=3, help="Synthetic reps in demo mode")
    ap.add_argument("--bad-form", action="store_true", help="Demo with knees travelling past the toes")
    ap.add_argument("--profile", type=str, default=None, help="Config profile (standard, strict)")
    ap.add_argument("--output-dir", type=str, default="outputs", help="Output directory")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log phase transitions and reps")
    args = ap.parse_args()

    if args.live == args.demo:
        print("Error: provide exactly one of --live or --demo", file=sys.stderr)
        sys.exit(1)
    if args.reps < 1:
        print("Error: --reps must be at least 1", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(args.profile)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.live:
        from formcheck.live import run_live_pipeline

        run_live_pipeline(
            camera_id=args.camera,
            target_fps=config.target_fps,
            record=args.record,
            output_dir=args.output_dir,
            config=config,
        )
    else:
        run_demo(args.reps, good_form=not args.bad_form, config=config, output_dir=args.output_dir)


if __name__ == "__main__":
    main()
