"""
Progress reporting and cooperative cancellation.

The engine calls the controller synchronously with a ProgressEvent after each phase and each version. The controller
answers whether the run should stop; the engine only acts on that answer between versions and between branches.
"""
import datetime
import os
import signal
import time

from .models import Phase

PHASE_DESCRIPTIONS = {
    Phase.INIT: "init",
    Phase.GC: "gc",
    Phase.FINALIZE: "finalization",
    Phase.TAG_CREATION: "tags creation",
}


class Stopwatch:
    def __init__(self):
        self.started = time.monotonic()

    def elapsed_ms(self):
        return int((time.monotonic() - self.started) * 1000)

    def restart(self):
        elapsed = self.elapsed_ms()
        self.started = time.monotonic()
        return elapsed


class CapsLockCancelSignal:
    """
    Windows only: the run stops at the next safe point while Caps Lock is on.
    """

    VK_CAPITAL = 0x14

    def __init__(self):
        import ctypes

        self._user32 = ctypes.windll.user32

    def __call__(self):
        return bool(self._user32.GetKeyState(self.VK_CAPITAL) & 1)

    def install(self):
        return self

    def restore(self):
        pass


class InterruptCancelSignal:
    """
    The first Ctrl+C requests a stop at the next safe point instead of killing the process mid-commit.
    """

    def __init__(self):
        self.requested = False
        self._previous_handler = None

    def _handle(self, signum, frame):
        self.requested = True

    def __call__(self):
        return self.requested

    def install(self):
        self._previous_handler = signal.signal(signal.SIGINT, self._handle)
        return self

    def restore(self):
        if self._previous_handler is not None:
            signal.signal(signal.SIGINT, self._previous_handler)
            self._previous_handler = None


def create_cancel_signal(enabled):
    """
    This function returns the user-triggerable cancel signal of the platform, or None when cancellation is disabled.
    """
    if not enabled:
        return None
    if os.name == "nt":
        return CapsLockCancelSignal()
    return InterruptCancelSignal()


class ProgressController:
    def __init__(self, console, cancel_signal=None):
        self.console = console
        self.cancel_signal = cancel_signal

    def __call__(self, event):
        took = datetime.timedelta(milliseconds=event.elapsed_ms)

        if event.phase is Phase.VERSION:
            self.console.progress(f"processing version {event.version} of '{event.branch}' took {took}")
        else:
            subject = f" of '{event.branch}'" if event.branch else ""
            self.console.progress(f"{PHASE_DESCRIPTIONS[event.phase]}{subject} took {took}")

        return self.cancel_requested()

    def cancel_requested(self):
        return bool(self.cancel_signal and self.cancel_signal())
