import threading
from typing import Any, Optional


class OneShot:
    """Single-fire completion signal carrying a value.

    ``fire`` returns True only for the call that actually completed the
    signal; later calls leave the stored value alone and return False.
    Waiters unblock once it has fired, and a signal that never fires simply
    times out.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._value: Any = None

    def fire(self, value: Any = None) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self._value = value
            self._event.set()
            return True

    def is_fired(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    @property
    def value(self) -> Any:
        return self._value
