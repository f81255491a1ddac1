"""
Recognition Engine Pool.

A bounded pool of reusable recognition backends. Each recognition call
checks out one backend, configures it for the requested layout variant,
runs and returns it to the pool on every exit path.

Backends are created lazily, up to the pool size. When all of them are
busy a caller waits up to the acquire timeout.

The pool is an explicit object handed to the acquisition layer; nothing
is kept at module level.

Author: ML Engineering Team
"""

import queue
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from config import get_config
from field_extraction.utils.exceptions import RecognitionPoolTimeoutError
from field_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


def _default_factory() -> Any:
    from .tesseract_backend import TesseractBackend
    return TesseractBackend()


class RecognitionPool:
    """
    Bounded pool of recognition backends.

    A backend exposes ``configure(variant)`` and ``recognize(image)``.

    Attributes:
        size: Maximum number of backends.
        timeout: Seconds to wait for a free backend.

    Example:
        >>> pool = RecognitionPool(size=2)
        >>> with pool.acquire("sparse_text") as backend:
        ...     text = backend.recognize(image)
    """

    def __init__(
        self,
        size: Optional[int] = None,
        factory: Optional[Callable[[], Any]] = None,
        timeout: Optional[float] = None
    ) -> None:
        self.size = max(1, size if size is not None else get_config("ocr.pool.size", 2))
        self.timeout = timeout if timeout is not None else get_config("ocr.pool.acquire_timeout", 30.0)
        self._factory = factory or _default_factory
        self._idle: "queue.Queue[Any]" = queue.Queue()
        self._created = 0
        self._lock = threading.Lock()

        logger.debug(f"RecognitionPool initialized (size={self.size}, timeout={self.timeout}s)")

    @property
    def created(self) -> int:
        return self._created

    @property
    def available(self) -> int:
        """Backends that can be checked out without waiting."""
        return self._idle.qsize() + (self.size - self._created)

    @contextmanager
    def acquire(self, variant: str) -> Iterator[Any]:
        """
        Check out a backend configured for a layout variant.

        Args:
            variant: Layout-assumption variant name.

        Yields:
            A configured backend, released when the block exits.

        Raises:
            RecognitionPoolTimeoutError: If no backend frees up in time.
        """
        backend = self._checkout()
        try:
            backend.configure(variant)
            yield backend
        finally:
            self._idle.put(backend)

    def _checkout(self) -> Any:
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass

        with self._lock:
            can_create = self._created < self.size
            if can_create:
                self._created += 1

        if can_create:
            try:
                backend = self._factory()
            except Exception:
                with self._lock:
                    self._created -= 1
                raise
            logger.debug(f"Created recognition backend {self._created}/{self.size}")
            return backend

        try:
            return self._idle.get(timeout=self.timeout)
        except queue.Empty:
            raise RecognitionPoolTimeoutError(self.timeout, self.size)
