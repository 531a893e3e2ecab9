import sys
import threading
from typing import Optional, TextIO


class TransferProgress:
    """Thread-safe byte counter that renders a single updating line.

    Writes to stderr by default so results printed on stdout stay clean.
    boto3's transfer manager may read the source stream from worker threads,
    hence the lock.
    """

    def __init__(self, total: Optional[int], stream: Optional[TextIO] = None) -> None:
        self.total = None if total is None else max(0, int(total))
        self.transferred = 0
        self._stream = stream if stream is not None else sys.stderr
        self._lock = threading.Lock()
        self._rendered = False

    @property
    def percentage(self) -> Optional[float]:
        if self.total is None:
            return None
        if self.total == 0:
            return 100.0
        return self.transferred / self.total * 100

    def add(self, n: int) -> None:
        if n <= 0:
            return
        with self._lock:
            self.transferred += n
            self._render()

    def render_line(self) -> str:
        pct = self.percentage
        if pct is None:
            return f"\r{self.transferred} / ?"
        return f"\r{self.transferred} / {self.total} ({pct:.2f}%)"

    def _render(self) -> None:
        self._stream.write(self.render_line())
        self._stream.flush()
        self._rendered = True

    def finish(self) -> None:
        """Terminate the progress line, if one was drawn."""
        with self._lock:
            if not self._rendered:
                return
            self._stream.write("\n")
            self._stream.flush()
            self._rendered = False


class _ProgressStream:
    def __init__(self, inner, progress: TransferProgress) -> None:
        self._inner = inner
        self.progress = progress

    def __getattr__(self, name):
        # seek, tell, seekable, close, fileno, ... go straight to the inner stream
        return getattr(self._inner, name)

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self._inner.close()


class ProgressReader(_ProgressStream):
    """Counts bytes as they are read from the wrapped stream.

    boto3's uploader rewinds and re-reads the body (checksum first, then the
    send, then any retry), so only bytes past the furthest position reached
    so far are counted.
    """

    def __init__(self, inner, progress: TransferProgress) -> None:
        super().__init__(inner, progress)
        self._read_lock = threading.Lock()
        self._high_water = self._position() or 0

    def _position(self) -> Optional[int]:
        try:
            return self._inner.tell()
        except (AttributeError, OSError):
            return None

    def read(self, size: int = -1) -> bytes:
        with self._read_lock:
            data = self._inner.read(size)
            pos = self._position()
            if pos is None:
                new = len(data)
            else:
                new = max(0, pos - self._high_water)
                self._high_water = max(self._high_water, pos)
        self.progress.add(new)
        return data


class ProgressWriter(_ProgressStream):
    """Counts bytes as they are written to the wrapped stream."""

    def write(self, data: bytes) -> int:
        n = self._inner.write(data)
        if n is None:
            n = len(data)
        self.progress.add(n)
        return n
