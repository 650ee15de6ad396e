"""
FastAPI host for the squat engine.

/ws/live takes either joint observations from a client-side pose model
({"type": "observation", "joints": {...}, "elapsed": 0.066}) or raw camera
frames ({"image": "<base64 jpeg>"}) and answers each with the per-frame
result plus the running aggregate. {"type": "reset"} restarts the session;
{"type": "stop"} returns the session summary and closes.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import concurrent.futures
import dataclasses
import json
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi import WebSocket, WebSocketDisconnect

import cv2
import numpy as np

from formcheck.config import PROFILES, load_config
from formcheck.engine import FormAnalysisResult, SquatEngine
from formcheck.joints import JointObservation
from formcheck.pose import create_pose_detector, process_frame

# Ensure phase and rep logging is visible when running under uvicorn
logging.getLogger("formcheck.phase").setLevel(logging.INFO)
logging.getLogger("formcheck.reps").setLevel(logging.INFO)

app = FastAPI(title="Squat Form Check")

# Thread pool for pose inference so the event loop can respond to pings (avoids keepalive timeout)
_LIVE_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="live_pose")
# Progress line every N frames
LOG_EVERY_FRAMES = 60


def _decode_image(image_data: str) -> Optional[np.ndarray]:
    if image_data.startswith("data:"):
        image_data = image_data.split(",", 1)[1]
    try:
        img_bytes = base64.b64decode(image_data)
    except (binascii.Error, ValueError):
        return None
    np_arr = np.frombuffer(img_bytes, np.uint8)
    if np_arr.size == 0:
        return None
    return cv2.imdecode(np_arr, cv2.IMREAD_COLOR)


def _frame_message(
    result: FormAnalysisResult,
    engine: SquatEngine,
    keypoints: Optional[dict[str, Any]] = None,
) -> str:
    payload = result.to_dict()
    payload["type"] = "frame"
    payload["aggregate"] = engine.get_current_aggregate().to_dict()
    if keypoints is not None:
        payload["keypoints"] = keypoints
    return json.dumps(payload)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/config")
def config(profile: Optional[str] = None) -> dict[str, Any]:
    try:
        cfg = load_config(profile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"profiles": sorted(PROFILES), "config": dataclasses.asdict(cfg)}


@app.websocket("/ws/live")
async def live_socket(websocket: WebSocket, profile: Optional[str] = None) -> None:
    await websocket.accept()
    try:
        engine = SquatEngine(load_config(profile))
    except ValueError as e:
        await websocket.send_text(json.dumps({"type": "error", "detail": str(e)}))
        await websocket.close(code=1008)
        return
    print(f"live: session started (profile={profile or 'default'})", flush=True)
    pose = None
    frame_idx = 0
    try:
        while True:
            msg = await websocket.receive_text()
            try:
                payload = json.loads(msg)
            except json.JSONDecodeError:
                continue
            if not isinstance(payload, dict):
                continue
            kind = payload.get("type")

            if kind == "stop":
                summary = engine.session_summary()
                print(
                    f"live: stop received, reps={summary.total_reps} partial={summary.partial_reps} "
                    f"avg={summary.average_score}",
                    flush=True,
                )
                await websocket.send_text(json.dumps({"type": "summary", **engine.snapshot()}))
                await websocket.close()
                return
            if kind == "reset":
                engine.reset()
                frame_idx = 0
                await websocket.send_text(json.dumps({"type": "reset"}))
                continue

            elapsed = payload.get("elapsed")
            if not isinstance(elapsed, (int, float)) or isinstance(elapsed, bool):
                elapsed = None

            if kind == "observation":
                joints = payload.get("joints")
                if not isinstance(joints, dict):
                    continue
                observation = JointObservation.from_dict(joints)
                result = engine.process(observation, elapsed=elapsed)
                await websocket.send_text(_frame_message(result, engine))
            else:
                image_data = payload.get("image")
                if not isinstance(image_data, str) or not image_data:
                    continue
                frame_bgr = _decode_image(image_data)
                if frame_bgr is None:
                    continue
                if pose is None:
                    print("live: first image frame, loading pose model", flush=True)
                    pose = await asyncio.get_event_loop().run_in_executor(
                        _LIVE_EXECUTOR, create_pose_detector
                    )

                def _process_frame_sync() -> Optional[JointObservation]:
                    return process_frame(frame_bgr, pose)

                observation = await asyncio.get_event_loop().run_in_executor(
                    _LIVE_EXECUTOR, _process_frame_sync
                )
                if observation is None:
                    await websocket.send_text(json.dumps({"type": "no_pose"}))
                    continue
                result = engine.process(observation, elapsed=elapsed)
                h, w = frame_bgr.shape[:2]
                keypoints = {
                    j.value: [p.x / w, p.y / h] for j, p in observation.positions.items()
                }
                await websocket.send_text(_frame_message(result, engine, keypoints))

            frame_idx += 1
            if frame_idx % LOG_EVERY_FRAMES == 0:
                agg = engine.get_current_aggregate()
                print(
                    f"live: frame {frame_idx} (phase={engine.phase.value}, reps={agg.total_reps})",
                    flush=True,
                )
    except WebSocketDisconnect:
        agg = engine.get_current_aggregate()
        print(f"live: client disconnected (frames={frame_idx}, reps={agg.total_reps})", flush=True)
        return


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
