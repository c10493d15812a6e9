"""
MediaPipe Camera Collector
Detects up to two bodies per frame with the PoseLandmarker task in
LIVE_STREAM mode. Results arrive asynchronously through a callback.
"""

import logging
from pathlib import Path

import cv2
import mediapipe as mp

from posemirror.pose_buffer import PoseBatch
from posemirror.pose_types import joint_set_from_landmarks


logger = logging.getLogger(__name__)


POSE_CONNECTIONS = [
    (11, 12), (11, 13), (13, 15), (15, 17), (15, 19), (15, 21), (17, 19),
    (12, 14), (14, 16), (16, 18), (16, 20), (16, 22), (18, 20),
    (11, 23), (12, 24), (23, 24),
    (23, 25), (25, 27), (27, 29), (27, 31), (29, 31),
    (24, 26), (26, 28), (28, 30), (28, 32), (30, 32),
]


def batch_from_result(result, timestamp_ms) -> PoseBatch:
    """Convert a PoseLandmarkerResult into an immutable PoseBatch"""
    landmarks = getattr(result, 'pose_landmarks', None) or []
    return PoseBatch(
        joint_sets=tuple(joint_set_from_landmarks(lm) for lm in landmarks),
        timestamp_ms=int(timestamp_ms),
    )


class PoseSensor:
    """PoseLandmarker wrapper producing PoseBatch callbacks"""

    def __init__(self, model_path, num_poses=2, min_detection_confidence=0.5,
                 min_tracking_confidence=0.5):
        self.model_path = Path(model_path)
        self.num_poses = num_poses
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.landmarker = None
        self.on_result = None
        self._last_timestamp_ms = -1

    def start(self, on_result):
        """Create the landmarker. on_result(batch) runs on MediaPipe's thread."""
        if not self.model_path.exists():
            raise FileNotFoundError(f"Pose landmarker model not found: {self.model_path}")

        self.on_result = on_result

        BaseOptions = mp.tasks.BaseOptions
        PoseLandmarker = mp.tasks.vision.PoseLandmarker
        PoseLandmarkerOptions = mp.tasks.vision.PoseLandmarkerOptions
        VisionRunningMode = mp.tasks.vision.RunningMode

        options = PoseLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=VisionRunningMode.LIVE_STREAM,
            num_poses=self.num_poses,
            min_pose_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
            result_callback=self._handle_result,
        )
        self.landmarker = PoseLandmarker.create_from_options(options)
        logger.info("PoseLandmarker ready (%s, up to %d bodies)", self.model_path.name, self.num_poses)

    def _handle_result(self, result, output_image, timestamp_ms):
        if self.on_result is not None:
            self.on_result(batch_from_result(result, timestamp_ms))

    def detect(self, frame_bgr, timestamp_ms):
        """Queue one frame for detection; never blocks on the result"""
        if self.landmarker is None:
            raise RuntimeError("PoseSensor.start() must be called first")

        # LIVE_STREAM timestamps must strictly increase
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        rgb_frame = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
        self.landmarker.detect_async(mp_image, timestamp_ms)

    def close(self):
        if self.landmarker is not None:
            self.landmarker.close()
            self.landmarker = None


def draw_landmarks(frame, batch: PoseBatch):
    """Draw joints and connections of every detected body onto a BGR frame"""
    h, w = frame.shape[:2]
    for joint_set in batch.joint_sets:
        points = [(int(lm.x * w), int(lm.y * h)) for lm in joint_set]
        for a, b in POSE_CONNECTIONS:
            cv2.line(frame, points[a], points[b], (255, 255, 255), 2)
        for point in points:
            cv2.circle(frame, point, 3, (0, 0, 255), -1)
    return frame
