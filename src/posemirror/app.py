"""
Pose Mirror - Installation Runtime
Camera -> MediaPipe -> session (capture / train / predict) -> metaball preview

Keys:
  r  record (or retrain)     x  reset        d  dance
  +/- ball strength          ]/[ articulation
  v  toggle camera preview   q  quit
"""

import argparse
import asyncio
import logging
import signal
import time
from dataclasses import replace

import cv2

from posemirror.camera_collector import PoseSensor, draw_landmarks
from posemirror.config import load_config
from posemirror.errors import NoModelError
from posemirror.mirrored_trainer import MirroredTrainer
from posemirror.renderer import RenderLoop
from posemirror.scheduling import AsyncioScheduler
from posemirror.session import Session, TriggerSource
from posemirror.ui import ConsoleUI


logger = logging.getLogger(__name__)

STRENGTH_STEP = 0.001
NOTIFICATION_SECONDS = 4.0


class MirrorApp:
    """Runs capture, detection and rendering on one asyncio loop"""

    def __init__(self, config, ui=None):
        self.config = config
        self.ui = ui or ConsoleUI()
        self.show_video = config.show_video
        self.shutdown_requested = False

        self.session = None
        self.render_loop = None
        self.sensor = None
        self.scheduler = None
        self._frame = None
        self._notification_seen = 0
        self._notification_until = 0.0

    def build(self, loop):
        """Wire the session, trainer and render loop onto an event loop"""
        self.scheduler = AsyncioScheduler(loop)
        trainer = MirroredTrainer(self.config.training)
        self.session = Session(trainer, self.scheduler, self.config.session, self.ui)
        self.render_loop = RenderLoop(self.session, config=self.config.render)
        return self.session

    def handle_key(self, key):
        """Apply one keyboard command. Returns False for unknown keys."""
        if key == ord('q'):
            self.shutdown_requested = True
        elif key == ord('r'):
            self.session.trigger(TriggerSource.BUTTON)
        elif key == ord('x'):
            self.session.reset()
        elif key == ord('d'):
            try:
                self.session.dance()
            except NoModelError as e:
                self.ui.notify(str(e))
        elif key == ord('v'):
            self.show_video = not self.show_video
            if not self.show_video:
                cv2.destroyWindow('Camera')
        elif key in (ord('+'), ord('=')):
            self.render_loop.set_strength(self.render_loop.strength + STRENGTH_STEP)
            print(f"Strength: {self.render_loop.strength * 1000:.0f}")
        elif key == ord('-'):
            self.render_loop.set_strength(self.render_loop.strength - STRENGTH_STEP)
            print(f"Strength: {self.render_loop.strength * 1000:.0f}")
        elif key == ord(']'):
            self.render_loop.set_subdivisions(self.render_loop.subdivisions + 1)
            print(f"Articulation: {self.render_loop.subdivisions}")
        elif key == ord('['):
            self.render_loop.set_subdivisions(self.render_loop.subdivisions - 1)
            print(f"Articulation: {self.render_loop.subdivisions}")
        else:
            return False
        return True

    async def run(self):
        loop = asyncio.get_running_loop()
        self.build(loop)

        self.sensor = PoseSensor(self.config.model_path, num_poses=self.config.session.max_bodies)
        self.sensor.start(lambda batch: loop.call_soon_threadsafe(self.session.on_detection, batch))

        cap = cv2.VideoCapture(self.config.camera_index)
        if not cap.isOpened():
            self.sensor.close()
            raise RuntimeError(f"Cannot open camera {self.config.camera_index}")

        print("\n🚀 RUNNING")
        print("Raise your right hand above your eyes for ~5s, or press 'r', to record")
        print("Press 'q' to quit\n")

        try:
            await asyncio.gather(self._capture_loop(cap), self._display_loop())
        finally:
            await self._shutdown(cap)

    async def _shutdown(self, cap):
        """Release the camera and windows, then join any training still running"""
        cap.release()
        if self.sensor is not None:
            self.sensor.close()
        cv2.destroyAllWindows()
        await self.scheduler.drain()

    async def _capture_loop(self, cap):
        while not self.shutdown_requested:
            ret, frame = await asyncio.to_thread(cap.read)
            if not ret:
                logger.error("Frame grab failed, stopping")
                self.shutdown_requested = True
                break
            if self.config.mirror:
                frame = cv2.flip(frame, 1)
            self.sensor.detect(frame, int(time.monotonic() * 1000))
            self._frame = frame

    async def _display_loop(self):
        interval = 1.0 / self.config.render.fps
        size = self.config.render.window_size
        while not self.shutdown_requested:
            self.render_loop.tick()

            cv2.imshow('Pose Mirror', self._overlay(self.render_loop.field.to_image(size)))
            if self.show_video and self._frame is not None:
                cv2.imshow('Camera', draw_landmarks(self._frame.copy(), self.session.latest.latest()))

            key = cv2.waitKey(1) & 0xFF
            if key != 0xFF:
                self.handle_key(key)

            await asyncio.sleep(interval)

    def _overlay(self, image):
        """Draw label, countdown, gesture progress and notifications"""
        h, w = image.shape[:2]
        cv2.putText(image, self.ui.label, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)

        if self.ui.countdown is not None:
            color = (255, 255, 255) if self.ui.countdown_recording else (119, 119, 119)
            cv2.putText(image, str(self.ui.countdown), (w // 2 - 20, h // 2),
                        cv2.FONT_HERSHEY_SIMPLEX, 2.5, color, 4)

        if self.ui.progress > 0:
            cv2.rectangle(image, (10, 45), (10 + int((w - 20) * self.ui.progress / 100), 55),
                          (0, 255, 0), -1)

        now = time.monotonic()
        if len(self.ui.notifications) > self._notification_seen:
            self._notification_seen = len(self.ui.notifications)
            self._notification_until = now + NOTIFICATION_SECONDS
        if self.ui.notifications and now < self._notification_until:
            cv2.putText(image, self.ui.notifications[-1][:60], (10, h - 20),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 255), 1)
        return image


def build_config(args):
    config = load_config(args.config)

    training = config.training
    if args.epochs is not None:
        training = replace(training, epochs=args.epochs)
    if args.history_dir is not None:
        training = replace(training, history_dir=args.history_dir)

    session = config.session
    if args.seconds is not None:
        session = replace(session, recording_seconds=args.seconds)

    render = config.render
    if args.strength is not None:
        render = replace(render, strength=args.strength)
    if args.subdivisions is not None:
        render = replace(render, subdivisions=args.subdivisions)

    updates = {'training': training, 'session': session, 'render': render}
    if args.camera is not None:
        updates['camera_index'] = args.camera
    if args.model is not None:
        updates['model_path'] = args.model
    if args.no_video:
        updates['show_video'] = False
    if args.mirror:
        updates['mirror'] = True
    return replace(config, **updates)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Pose Mirror installation")
    parser.add_argument('--config', help="JSON config file")
    parser.add_argument('--camera', type=int, help="Camera index")
    parser.add_argument('--model', help="PoseLandmarker .task file")
    parser.add_argument('--seconds', type=float, help="Recording duration per phase")
    parser.add_argument('--epochs', type=int, help="Training epochs per model")
    parser.add_argument('--strength', type=float, help="Metaball strength (e.g. 0.033)")
    parser.add_argument('--subdivisions', type=int, help="Balls between joints")
    parser.add_argument('--history-dir', help="Save training loss plots here")
    parser.add_argument('--mirror', action='store_true', help="Flip the camera image")
    parser.add_argument('--no-video', action='store_true', help="Hide the camera preview")
    parser.add_argument('--log-level', default='INFO', help="Logging level")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    config = build_config(args)
    app = MirrorApp(config)

    def signal_handler(signum, frame):
        print("\n\n⚠️  Interrupt signal received, shutting down gracefully...")
        app.shutdown_requested = True

    signal.signal(signal.SIGINT, signal_handler)

    print(f"\n{'='*60}")
    print("POSE MIRROR")
    print(f"{'='*60}")
    print(f"Camera: {config.camera_index}")
    print(f"Landmarker model: {config.model_path}")
    print(f"Recording: {config.session.recording_seconds:.0f}s per phase")
    print(f"Training: {config.training.epochs} epochs, batch {config.training.batch_size}")

    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        pass
    except (FileNotFoundError, RuntimeError) as e:
        print(f"\n✗ {e}")
        return 1

    print("\n✓ Graceful shutdown complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
