# sql_to_mysql/utilities/progress.py
from __future__ import annotations

import sys
import threading
from typing import IO, Optional

FRAMES = "-\\|/"


class Spinner:
    """
    Rotating console glyph tied to the lifetime of a `with` block.

        with Spinner():
            long_running_call()

    The drawing thread is stopped and joined on every exit path.
    """

    def __init__(self, stream: Optional[IO[str]] = None, interval: float = 0.1, *, enabled: Optional[bool] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.interval = interval
        # None: draw only on a terminal
        if enabled is None:
            enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        self.enabled = enabled
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.frames_drawn = 0

    def _run(self) -> None:
        i = 0
        while not self._stop.is_set():
            i = (i + 1) % len(FRAMES)
            self.stream.write(f"\r{FRAMES[i]}")
            self.stream.flush()
            self.frames_drawn += 1
            self._stop.wait(self.interval)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "Spinner":
        if not self.enabled or self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="spinner", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        self.stream.write("\r \r")
        self.stream.flush()

    def __enter__(self) -> "Spinner":
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()
