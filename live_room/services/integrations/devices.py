"""Local capture devices: permission checks and the camera preview."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from loguru import logger


class DeviceKind(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"


@runtime_checkable
class DeviceAccess(Protocol):
    @property
    def camera_track(self) -> Any: ...

    async def ensure_access(self, kinds: Iterable[DeviceKind]) -> bool:
        """Return True when every requested device kind may be used."""
        ...

    async def start_preview(self) -> None: ...

    async def stop_preview(self) -> None: ...


class StaticDeviceAccess:
    """Device access with a fixed set of granted kinds.

    Suitable for headless clients where permissions are decided up front.
    """

    def __init__(
        self,
        camera_track: Any = None,
        granted: Iterable[DeviceKind] = (DeviceKind.VIDEO, DeviceKind.AUDIO),
    ) -> None:
        self._camera_track = camera_track
        self._granted = set(granted)
        self.preview_active = False

    @property
    def camera_track(self) -> Any:
        return self._camera_track

    async def ensure_access(self, kinds: Iterable[DeviceKind]) -> bool:
        missing = set(kinds) - self._granted
        if missing:
            logger.warning(f"Device access not granted for: {sorted(k.value for k in missing)}")
            return False
        return True

    async def start_preview(self) -> None:
        self.preview_active = True
        logger.debug("Camera preview started")

    async def stop_preview(self) -> None:
        self.preview_active = False
        logger.debug("Camera preview stopped")
