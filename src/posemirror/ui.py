"""
UI sinks
One-directional outputs the session writes to: button label, gesture
progress bar, countdown and user notifications.
"""


class SessionUI:
    """Keeps the latest value of every sink. Subclasses add presentation."""

    def __init__(self):
        self.label = ''
        self.progress = 0.0
        self.countdown = None  # seconds remaining, None when hidden
        self.countdown_recording = False
        self.notifications = []

    def set_label(self, text):
        self.label = text

    def set_progress(self, percent):
        self.progress = max(0.0, min(100.0, float(percent)))

    def show_countdown(self, remaining, recording):
        self.countdown = remaining
        self.countdown_recording = recording

    def clear_countdown(self):
        self.countdown = None

    def notify(self, message):
        self.notifications.append(message)


class ConsoleUI(SessionUI):
    """Prints label changes, countdown ticks and notifications"""

    def set_label(self, text):
        if text != self.label:
            print(f"[{text}]")
        super().set_label(text)

    def show_countdown(self, remaining, recording):
        super().show_countdown(remaining, recording)
        marker = '🔴' if recording else '⏳'
        print(f"  {marker} {remaining}...")

    def notify(self, message):
        super().notify(message)
        print(f"\n⚠  {message}\n")


class Countdown:
    """Counts whole seconds down on a UI sink.

    Shows the start value immediately, ticks once per second and clears the
    display one second after reaching zero.
    """

    def __init__(self, scheduler, ui: SessionUI, seconds, recording):
        self.scheduler = scheduler
        self.ui = ui
        self.remaining = int(seconds)
        self.recording = recording
        self.handles = []

    def start(self):
        self.ui.show_countdown(self.remaining, self.recording)
        self._schedule(1.0, self._tick)
        return self

    def _schedule(self, delay, callback):
        self.handles.append(self.scheduler.call_later(delay, callback))

    def _tick(self):
        self.remaining -= 1
        self.ui.show_countdown(max(self.remaining, 0), self.recording)
        if self.remaining <= 0:
            self._schedule(1.0, self.ui.clear_countdown)
        else:
            self._schedule(1.0, self._tick)

    def cancel(self):
        for handle in self.handles:
            handle.cancel()
        self.handles = []
        self.ui.clear_countdown()
