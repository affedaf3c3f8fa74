"""Single-owner holder for the live camera handle."""
from __future__ import annotations

import logging
from typing import Optional

from .sensors.camera import MediaHandle

logger = logging.getLogger(__name__)


class MediaSlot:
    """Holds at most one media handle; every exit path goes through ``release()``."""

    def __init__(self) -> None:
        self._handle: Optional[MediaHandle] = None

    @property
    def handle(self) -> Optional[MediaHandle]:
        return self._handle

    @property
    def held(self) -> bool:
        return self._handle is not None and self._handle.active

    def adopt(self, handle: MediaHandle) -> None:
        """Take ownership of ``handle``, releasing whatever was held before."""
        self.release()
        self._handle = handle

    def release(self) -> bool:
        """Stop the held handle. Returns True if something was released."""
        handle, self._handle = self._handle, None
        if handle is None:
            return False
        discard(handle)
        return True


def discard(handle: MediaHandle) -> None:
    """Stop a handle nobody owns; failures are logged and the reference dropped."""
    try:
        handle.stop()
    except Exception as exc:
        logger.warning("Error releasing camera stream: %s", exc)


__all__ = ["MediaSlot", "discard"]
