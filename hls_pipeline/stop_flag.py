"""Stop flag for cancelling in-flight conversions."""

import logging
import signal
import threading
from typing import Optional


class StopFlag:
    """Thread-safe stop flag shared between a caller and running jobs."""

    _instance: Optional['StopFlag'] = None

    def __init__(self, parent: Optional['StopFlag'] = None):
        """
        Initialize the stop flag.

        Args:
            parent: Optional flag whose stop request also stops this one
        """
        self._event = threading.Event()
        self._parent = parent
        self._reason: Optional[str] = None
        self._signal_handlers_registered = False

    @classmethod
    def get_instance(cls) -> 'StopFlag':
        """Get the process-wide StopFlag used by signal handlers."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def child(self) -> 'StopFlag':
        """Create a flag that stops on its own or when this one stops."""
        return StopFlag(parent=self)

    def request_stop(self, reason: str = "stop requested"):
        """Request that running work stops as soon as possible."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()
            logging.warning(f"[STOP] {reason}")

    def is_stop_requested(self) -> bool:
        """Check if stop has been requested here or on the parent."""
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.is_stop_requested()

    @property
    def reason(self) -> Optional[str]:
        if self._event.is_set():
            return self._reason
        if self._parent is not None:
            return self._parent.reason
        return None

    def reset(self):
        """Reset the stop flag."""
        self._event.clear()
        self._reason = None

    def register_signal_handlers(self):
        """Register signal handlers for Ctrl+C and termination signals."""
        if self._signal_handlers_registered:
            return

        def signal_handler(signum, frame):
            self.request_stop(f"received signal {signum}")

        try:
            signal.signal(signal.SIGINT, signal_handler)
            signal.signal(signal.SIGTERM, signal_handler)
            self._signal_handlers_registered = True
        except (ValueError, OSError, AttributeError) as e:
            # not on the main thread, or signal unsupported on this platform
            logging.debug(f"Could not register signal handlers: {e}")
