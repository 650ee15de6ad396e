"""
MediaPipe Pose -> JointObservation. Positions in image pixels, landmark
visibility used as the joint confidence.
Uses Pose Landmarker task (MediaPipe 0.10+). CPU-only.
"""
from __future__ import annotations

import os
import urllib.request
from typing import Optional

import cv2
import numpy as np

from .joints import JointId, JointObservation, Point


# MediaPipe Pose landmark indices (same as PoseLandmark)
class LandmarkIdx:
    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


LANDMARK_TO_JOINT: dict[int, JointId] = {
    LandmarkIdx.NOSE: JointId.NOSE,
    LandmarkIdx.LEFT_SHOULDER: JointId.LEFT_SHOULDER,
    LandmarkIdx.RIGHT_SHOULDER: JointId.RIGHT_SHOULDER,
    LandmarkIdx.LEFT_ELBOW: JointId.LEFT_ELBOW,
    LandmarkIdx.RIGHT_ELBOW: JointId.RIGHT_ELBOW,
    LandmarkIdx.LEFT_WRIST: JointId.LEFT_WRIST,
    LandmarkIdx.RIGHT_WRIST: JointId.RIGHT_WRIST,
    LandmarkIdx.LEFT_HIP: JointId.LEFT_HIP,
    LandmarkIdx.RIGHT_HIP: JointId.RIGHT_HIP,
    LandmarkIdx.LEFT_KNEE: JointId.LEFT_KNEE,
    LandmarkIdx.RIGHT_KNEE: JointId.RIGHT_KNEE,
    LandmarkIdx.LEFT_ANKLE: JointId.LEFT_ANKLE,
    LandmarkIdx.RIGHT_ANKLE: JointId.RIGHT_ANKLE,
}

# Pose Landmarker model URL (lite = faster, CPU-friendly)
_POSE_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
_POSE_MODEL_FILENAME = "pose_landmarker_lite.task"


def _get_model_path(cache_dir: Optional[str] = None) -> str:
    """Return path to pose landmarker model, downloading if needed."""
    if cache_dir is None:
        cache_dir = os.path.join(os.path.dirname(__file__), "..", "outputs")
    os.makedirs(cache_dir, exist_ok=True)
    path = os.path.join(cache_dir, _POSE_MODEL_FILENAME)
    if not os.path.isfile(path):
        urllib.request.urlretrieve(_POSE_MODEL_URL, path)
    return path


def _create_landmarker(cache_dir: Optional[str] = None):
    """Create PoseLandmarker instance (MediaPipe 0.10+ tasks API)."""
    from mediapipe.tasks.python.core import base_options
    from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions
    from mediapipe.tasks.python.vision.core import vision_task_running_mode

    model_path = _get_model_path(cache_dir)
    base = base_options.BaseOptions(model_asset_path=model_path)
    options = PoseLandmarkerOptions(
        base_options=base,
        running_mode=vision_task_running_mode.VisionTaskRunningMode.IMAGE,
        num_poses=1,
        min_pose_detection_confidence=0.5,
        min_pose_presence_confidence=0.5,
        min_tracking_confidence=0.5,
    )
    return PoseLandmarker.create_from_options(options)


def observation_from_landmarks(landmarks, width: int, height: int) -> JointObservation:
    """
    Convert normalized landmarks (x, y in [0, 1], .visibility) to a pixel-space
    observation. Landmarks outside the frame are kept; their low visibility
    already keeps them out of side selection.
    """
    positions: dict[JointId, Point] = {}
    confidences: dict[JointId, float] = {}
    for idx, joint in LANDMARK_TO_JOINT.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        positions[joint] = Point(lm.x * width, lm.y * height)
        visibility = getattr(lm, "visibility", None)
        confidences[joint] = float(visibility) if visibility is not None else 1.0
    return JointObservation(positions=positions, confidences=confidences)


def process_frame(
    frame_bgr: np.ndarray,
    pose,  # PoseLandmarker or legacy mp.solutions.pose.Pose
) -> Optional[JointObservation]:
    """
    Run pose estimation on one BGR frame.
    Returns the joint observation in pixel coords, or None if no pose.
    """
    h, w = frame_bgr.shape[:2]
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

    # MediaPipe 0.10+ PoseLandmarker
    if hasattr(pose, "detect"):
        from mediapipe.tasks.python.vision.core import image as mp_image
        mp_img = mp_image.Image(image_format=mp_image.ImageFormat.SRGB, data=rgb)
        result = pose.detect(mp_img)
        if not result.pose_landmarks or len(result.pose_landmarks) == 0:
            return None
        return observation_from_landmarks(result.pose_landmarks[0], w, h)
    # Legacy mp.solutions.pose.Pose (MediaPipe < 0.10)
    results = pose.process(rgb)
    if not results.pose_landmarks:
        return None
    return observation_from_landmarks(results.pose_landmarks.landmark, w, h)


def create_pose_detector(
    min_detection_confidence: float = 0.5,
    min_tracking_confidence: float = 0.5,
    model_complexity: int = 1,
    cache_dir: Optional[str] = None,
):
    """
    Create pose detector. Uses MediaPipe 0.10+ PoseLandmarker (CPU-friendly).
    Legacy model_complexity is ignored with the new API (we use lite model).
    """
    try:
        return _create_landmarker(cache_dir)
    except Exception:
        # Fallback: legacy API (MediaPipe < 0.10)
        import mediapipe as mp
        return mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=min(model_complexity, 2),
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
