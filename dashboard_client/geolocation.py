from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Optional

DEFAULT_TIMEOUT = 10.0


class GeolocationError(Exception):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"

    MESSAGES = {
        PERMISSION_DENIED: "Location access denied by user",
        POSITION_UNAVAILABLE: "Location information is unavailable",
        TIMEOUT: "Location request timed out",
    }

    def __init__(self, reason: str, message: Optional[str] = None) -> None:
        super().__init__(message or self.MESSAGES.get(reason, "Failed to get current location"))
        self.reason = reason


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None


Locator = Callable[[], Position]


def locate_device(locator: Optional[Locator], timeout: float = DEFAULT_TIMEOUT) -> Position:
    """Ask the device for its position, giving up after `timeout` seconds.

    `locator` returns a Position or raises GeolocationError; None means the
    device has no geolocation support. Any failure comes out as GeolocationError.
    """
    if locator is None:
        raise GeolocationError(
            GeolocationError.POSITION_UNAVAILABLE, "Geolocation is not supported on this device"
        )

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="geolocation")
    future = executor.submit(locator)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        raise GeolocationError(GeolocationError.TIMEOUT) from None
    except GeolocationError:
        raise
    except Exception as exc:
        raise GeolocationError(GeolocationError.POSITION_UNAVAILABLE, str(exc)) from exc
    finally:
        # a locator that overran the timeout is left to finish on its own
        executor.shutdown(wait=False)


__all__ = ["DEFAULT_TIMEOUT", "GeolocationError", "Locator", "Position", "locate_device"]
