"""
Error types shared by the session, trainer and runtime.
All of them are recoverable: the session always falls back to Idle.
"""


class PoseMirrorError(Exception):
    """Base class for all pose mirror errors"""


class InsufficientDataError(PoseMirrorError):
    """A capture buffer does not hold enough poses to train on"""

    def __init__(self, person1_count, person2_count, min_samples):
        self.person1_count = person1_count
        self.person2_count = person2_count
        self.min_samples = min_samples
        super().__init__(
            f"Not enough training data collected "
            f"(person 1: {person1_count}, person 2: {person2_count}, "
            f"need more than {min_samples} each)"
        )


class NoModelError(PoseMirrorError):
    """Prediction was requested before any model was trained"""

    def __init__(self, message="Please train the model first!"):
        super().__init__(message)


class TrainingFailure(PoseMirrorError):
    """One of the mirrored training runs failed"""
