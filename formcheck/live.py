"""
Live webcam pipeline: capture, pose, squat engine, overlay window.
Saves the session (reps, aggregate, summary) on exit (q).
"""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Optional

import cv2

from .config import EngineConfig
from .engine import FormAnalysisResult, SquatEngine
from .io_stream import webcam_frames
from .joints import JointObservation
from .overlay import draw_realtime_overlay
from .pose import create_pose_detector, process_frame

logger = logging.getLogger(__name__)

# Target resize width for faster inference
LIVE_RESIZE_WIDTH = 960
# No-pose warning after this many seconds
NO_POSE_WARN_SEC = 2.0
SESSION_FILENAME = "live_session.json"
RECORDING_FILENAME = "live_recording.mp4"


def run_live_pipeline(
    camera_id: int = 0,
    target_fps: float = 15,
    record: bool = False,
    output_dir: str = "outputs",
    config: Optional[EngineConfig] = None,
) -> dict:
    """
    Run live capture loop. q=quit, r=reset, s=snapshot.
    If record: write annotated frames to output_dir/live_recording.mp4.
    On quit: write the session snapshot to output_dir and return it.
    """
    os.makedirs(output_dir, exist_ok=True)
    writer: Optional[cv2.VideoWriter] = None
    pose = create_pose_detector()
    engine = SquatEngine(config)

    last_pose_time = time.perf_counter()
    message: Optional[str] = None
    observation: Optional[JointObservation] = None
    result: Optional[FormAnalysisResult] = None
    win_name = "Squat Form Check (q=quit, r=reset, s=snapshot)"

    cv2.namedWindow(win_name, cv2.WINDOW_NORMAL)

    try:
        for frame_bgr, frame_idx, _fps, elapsed in webcam_frames(camera_id, target_fps=target_fps):
            # Resize for inference
            h, w = frame_bgr.shape[:2]
            scale = LIVE_RESIZE_WIDTH / w if w > LIVE_RESIZE_WIDTH else 1.0
            if scale != 1.0:
                small = cv2.resize(frame_bgr, (LIVE_RESIZE_WIDTH, int(round(h * scale))))
            else:
                small = frame_bgr

            obs_small = process_frame(small, pose)
            if obs_small is not None:
                last_pose_time = time.perf_counter()
                observation = JointObservation(
                    positions={j: (p.x / scale, p.y / scale) for j, p in obs_small.positions.items()},
                    confidences=obs_small.confidences,
                ).sanitized()
                result = engine.process(observation, elapsed=elapsed)
                if result.completed_rep is not None:
                    rep = result.completed_rep
                    logger.info(
                        "live: rep %s %s quality=%s cues=%s",
                        rep.number, "full" if rep.full else "partial", rep.quality, list(rep.cues),
                    )

            if time.perf_counter() - last_pose_time > NO_POSE_WARN_SEC:
                message = "Move into frame"
            elif result is not None and not result.side_usable:
                message = "Turn side-on to the camera"
            else:
                message = None

            out_frame = frame_bgr.copy()
            draw_realtime_overlay(out_frame, observation, result, engine.get_current_aggregate(), message)

            if record:
                if writer is None:
                    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                    writer = cv2.VideoWriter(
                        os.path.join(output_dir, RECORDING_FILENAME), fourcc, target_fps, (w, h)
                    )
                writer.write(out_frame)

            cv2.imshow(win_name, out_frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r"):
                engine.reset()
                result = None
                message = None
            if key == ord("s"):
                snap_path = os.path.join(output_dir, f"snapshot_{frame_idx}.jpg")
                cv2.imwrite(snap_path, out_frame)
                message = "Saved snapshot"
    finally:
        if writer is not None:
            writer.release()
        cv2.destroyAllWindows()

    session = engine.snapshot()
    session_path = os.path.join(output_dir, SESSION_FILENAME)
    with open(session_path, "w") as f:
        json.dump(session, f, indent=2)
    logger.info("live: session saved to %s", session_path)
    return session
