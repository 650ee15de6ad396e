"""
Webcam frame generator with graceful shutdown.
Yields (frame_bgr, frame_idx, fps_est, elapsed_sec).
"""
from __future__ import annotations

import time
from typing import Generator, Optional

import cv2
import numpy as np


def webcam_frames(
    camera_id: int = 0,
    target_fps: float = 15,
) -> Generator[tuple[np.ndarray, int, float, Optional[float]], None, None]:
    """
    Yield frames from webcam.
    fps_est is an EMA of actual frame timings; elapsed_sec is the time since
    the previous frame (None for the first one).
    """
    cap = cv2.VideoCapture(camera_id)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open camera {camera_id}. Check permissions and that no other app is using it.")
    try:
        # Prefer a reasonable resolution for speed
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, 1280)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 720)
        cap.set(cv2.CAP_PROP_FPS, target_fps)
        idx = 0
        t_prev: Optional[float] = None
        fps_est = float(target_fps)
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            t_now = time.perf_counter()
            elapsed = None if t_prev is None else t_now - t_prev
            if elapsed is not None and elapsed > 0:
                fps_est = 0.9 * fps_est + 0.1 * (1.0 / elapsed)
            t_prev = t_now
            yield (frame, idx, fps_est, elapsed)
            idx += 1
    finally:
        cap.release()
