"""
Capture / Training Session
State machine that sequences recording, mirrored training and prediction.

    Idle --trigger--> RecordingBoth                (two bodies detected)
    Idle --trigger--> RecordingSingle(Person1)     (one or no body)
    RecordingSingle(Person1) --timer, pre-roll--> RecordingSingle(Person2)
    RecordingSingle(Person2) / RecordingBoth --timer--> Training
    Training --done--> Predicting | Idle (on failure)
    Predicting --trigger--> (clear, then as Idle)
"""

import logging
import math
import time
from enum import Enum

from posemirror.config import SessionConfig
from posemirror.errors import InsufficientDataError, NoModelError, TrainingFailure
from posemirror.gesture import GestureCounter, hands_raised
from posemirror.pose_buffer import CaptureBuffers, LatestPoses, PoseBatch
from posemirror.pose_types import flatten_pose, unflatten_pose
from posemirror.realtime_inference import Predictor
from posemirror.ui import Countdown, SessionUI


logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = 'Idle'
    RECORDING_PERSON1 = 'RecordingSingle(Person1)'
    RECORDING_PERSON2 = 'RecordingSingle(Person2)'
    RECORDING_BOTH = 'RecordingBoth'
    TRAINING = 'Training'
    PREDICTING = 'Predicting'

    @property
    def is_recording(self):
        return self in (
            SessionState.RECORDING_PERSON1,
            SessionState.RECORDING_PERSON2,
            SessionState.RECORDING_BOTH,
        )


class TriggerSource(Enum):
    BUTTON = 'button'
    GESTURE = 'gesture'
    AUTO = 'auto'


LABELS = {
    SessionState.RECORDING_PERSON1: 'RECORDING PERSON 1...',
    SessionState.RECORDING_PERSON2: 'RECORDING PERSON 2...',
    SessionState.RECORDING_BOTH: 'RECORDING BOTH...',
    SessionState.TRAINING: 'TRAINING MODEL...',
    SessionState.PREDICTING: 'RETRAIN AI',
}


class Session:
    """Owns the session state, capture buffers, models and predictor.

    All methods run on the same cooperative loop as the detection callback
    and the render loop, so no locking is needed. Timers come from the
    scheduler and are only cancelled by reset().
    """

    def __init__(self, trainer, scheduler, config: SessionConfig = None,
                 ui: SessionUI = None, clock=time.monotonic):
        self.trainer = trainer
        self.scheduler = scheduler
        self.config = config or SessionConfig()
        self.ui = ui or SessionUI()
        self.clock = clock

        self.state = SessionState.IDLE
        self.buffers = CaptureBuffers()
        self.models = None
        self.predictor = Predictor()
        self.gesture = GestureCounter(self.config.gesture_threshold)
        self.latest = LatestPoses()
        self.number_of_players = 0

        self.pending_trigger = False
        self.replay_start = None
        self._timers = set()
        self._countdown = None
        self._generation = 0

        self._update_label()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def trigger(self, source=TriggerSource.BUTTON):
        """Record trigger from the button, the gesture or the auto chain.

        Returns False when the trigger was ignored (recording, training or a
        pre-roll already running).
        """
        if self.state.is_recording or self.state is SessionState.TRAINING or self.pending_trigger:
            logger.info("Ignoring %s trigger while %s", source.value, self.state.value)
            return False

        if source is TriggerSource.BUTTON and self.state is not SessionState.PREDICTING:
            self._start_pre_roll()
            return True

        self.record()
        return True

    def _start_pre_roll(self, next_state=None):
        """Idle countdown before capture; next_state skips the record() decision"""
        self.pending_trigger = True
        self._start_countdown(self.config.pre_roll_seconds, recording=False)
        self._later(self.config.pre_roll_seconds, self._pre_roll_done, next_state)

    def _pre_roll_done(self, next_state=None):
        self.pending_trigger = False
        if next_state is None:
            self.record()
        else:
            self._begin_recording(next_state)

    def record(self):
        """Decide which recording phase to enter"""
        if self.state.is_recording or self.state is SessionState.TRAINING:
            return

        if self.state is SessionState.PREDICTING:
            logger.info("Retraining: clearing previous capture and models")
            self.reset()
        elif self.buffers.both_populated:
            logger.info("Both buffers already recorded, resetting")
            self.reset()
            return

        if self.buffers.person1 and not self.buffers.person2:
            self._begin_recording(SessionState.RECORDING_PERSON2)
        elif self.number_of_players == 2:
            self._begin_recording(SessionState.RECORDING_BOTH)
        else:
            self._begin_recording(SessionState.RECORDING_PERSON1)

    def reset(self):
        """Cancel timers, drop buffers and models, return to Idle"""
        for handle in list(self._timers):
            handle.cancel()
        self._timers.clear()
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

        self.pending_trigger = False
        self.buffers.clear()
        self.models = None
        self.predictor.reset()
        self.gesture.reset()
        self.replay_start = None
        self._generation += 1

        self._set_state(SessionState.IDLE)
        self.ui.set_progress(0)

    def dance(self):
        """Start live prediction with the trained models"""
        if self.models is None:
            raise NoModelError()
        self.predictor.reset()
        self._set_state(SessionState.PREDICTING)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def _begin_recording(self, state):
        if state is SessionState.RECORDING_BOTH:
            self.buffers.clear()
        elif state is SessionState.RECORDING_PERSON1:
            self.buffers.clear(1)
        else:
            self.buffers.clear(2)

        self.replay_start = self.clock() if state is SessionState.RECORDING_PERSON2 else None
        self.gesture.reset()
        self.ui.set_progress(0)

        self._set_state(state)
        self._start_countdown(self.config.recording_seconds, recording=True)
        self._later(self.config.recording_seconds, self._recording_finished, state)

    def _recording_finished(self, state):
        if self.state is not state:
            return

        if state in (SessionState.RECORDING_PERSON1, SessionState.RECORDING_BOTH):
            logger.info("Person 1: Collected %d poses", len(self.buffers.person1))
        if state in (SessionState.RECORDING_PERSON2, SessionState.RECORDING_BOTH):
            logger.info("Person 2: Collected %d poses", len(self.buffers.person2))

        if state is SessionState.RECORDING_PERSON1:
            # Pre-roll while person 1 steps out and person 2 steps in
            self._set_state(SessionState.IDLE)
            self._start_pre_roll(SessionState.RECORDING_PERSON2)
        else:
            self.replay_start = None
            self._set_state(SessionState.TRAINING)
            person1, person2 = self.buffers.snapshot()
            self.scheduler.spawn(self._train(person1, person2, self._generation))

    def _capture(self, batch: PoseBatch):
        body0 = batch.body(0)
        if self.state is SessionState.RECORDING_BOTH:
            body1 = batch.body(1)
            # Only whole pairs keep the buffers index-aligned
            if body0 is not None and body1 is not None:
                self.buffers.append(1, flatten_pose(body0))
                self.buffers.append(2, flatten_pose(body1))
        elif body0 is not None:
            person = 1 if self.state is SessionState.RECORDING_PERSON1 else 2
            self.buffers.append(person, flatten_pose(body0))

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    async def train(self):
        """Run the mirrored trainer on the captured buffers"""
        person1, person2 = self.buffers.snapshot()
        return await self._train(person1, person2, self._generation)

    async def _train(self, person1, person2, generation):
        try:
            models = await self.trainer.train(person1, person2)
        except InsufficientDataError as e:
            logger.warning("%s", e)
            if generation == self._generation:
                self._set_state(SessionState.IDLE)
                self.ui.notify(f"{e}. Please try again.")
            return None
        except TrainingFailure as e:
            logger.error("%s", e)
            if generation == self._generation:
                self.models = None
                self._set_state(SessionState.IDLE)
                self.ui.notify(f"Training failed: {e}")
            return None

        if generation != self._generation:
            logger.info("Session was reset during training, discarding models")
            return None

        self.models = models
        self.dance()
        return models

    # ------------------------------------------------------------------
    # Sensor callback
    # ------------------------------------------------------------------

    def on_detection(self, batch: PoseBatch):
        """Called once per decoded video frame with every detected body"""
        if len(batch) > self.config.max_bodies:
            batch = PoseBatch(batch.joint_sets[:self.config.max_bodies], batch.timestamp_ms)

        if self.state.is_recording:
            self._capture(batch)
        elif self.state is SessionState.PREDICTING:
            self.predictor.update(batch, self.models, self.number_of_players)

        if not self.state.is_recording and self.state is not SessionState.TRAINING:
            if len(batch) != self.number_of_players:
                self.number_of_players = len(batch)
                self._update_label()

        if self.state in (SessionState.IDLE, SessionState.PREDICTING) and not self.pending_trigger:
            self._track_gesture(batch)

        self.latest.publish(batch)

    def _track_gesture(self, batch: PoseBatch):
        fired = self.gesture.update(hands_raised(batch, self.number_of_players))
        self.ui.set_progress(self.gesture.progress)
        if fired:
            logger.info("Raised hands held, firing record trigger")
            self.ui.set_progress(0)
            self.trigger(TriggerSource.GESTURE)

    # ------------------------------------------------------------------
    # Render support
    # ------------------------------------------------------------------

    def ai_poses(self, now=None):
        """Replay of person 1 while person 2 records, else predicted poses"""
        now = self.clock() if now is None else now

        if self.state is SessionState.RECORDING_PERSON2 and self.buffers.person1:
            if self.replay_start is None:
                self.replay_start = now
            progress = (now - self.replay_start) / self.config.recording_seconds
            frame_index = math.floor(progress * len(self.buffers.person1))
            if 0 <= frame_index < len(self.buffers.person1):
                return [unflatten_pose(self.buffers.person1[frame_index])]
            return []

        if self.state is SessionState.PREDICTING:
            return [unflatten_pose(pose) for pose in self.predictor.predictions()]

        return []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _later(self, delay, callback, *args):
        handle = None

        def fire():
            self._timers.discard(handle)
            callback(*args)

        handle = self.scheduler.call_later(delay, fire)
        self._timers.add(handle)
        return handle

    def _start_countdown(self, seconds, recording):
        if self._countdown is not None:
            self._countdown.cancel()
        self._countdown = Countdown(self.scheduler, self.ui, seconds, recording).start()

    def _set_state(self, state):
        if state is not self.state:
            logger.info("Session: %s -> %s", self.state.value, state.value)
        self.state = state
        self._update_label()

    def _update_label(self):
        if self.state is SessionState.IDLE:
            label = 'RECORD 2 PEOPLE' if self.number_of_players == 2 else 'RECORD 1 PERSON'
        else:
            label = LABELS[self.state]
        self.ui.set_label(label)
