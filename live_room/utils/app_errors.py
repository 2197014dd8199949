"""Error taxonomy for the live room client.

All errors raised by this package derive from AppError so callers can catch a
single type and still branch on `errcode`.
"""

import inspect
from enum import Enum
from uuid import uuid4


class AppErrorCode(str, Enum):
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_STEP_TRANSITION = "E_INVALID_STEP_TRANSITION"
    E_PERMISSION_DENIED = "E_PERMISSION_DENIED"
    E_REMOTE_SESSION = "E_REMOTE_SESSION"
    E_NO_ACTIVE_SESSION = "E_NO_ACTIVE_SESSION"
    E_TRANSPORT_CONNECT = "E_TRANSPORT_CONNECT"
    E_MALFORMED_PAYLOAD = "E_MALFORMED_PAYLOAD"
    E_PUBLISH = "E_PUBLISH"
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Base error carrying an error code, a message and a short correlation id.

    The caller location is captured at construction time so log lines point at
    the raise site rather than at the action boundary that logs it.
    """

    default_errcode: AppErrorCode = AppErrorCode.E_INTERNAL_ERROR

    def __init__(
        self,
        errcode: AppErrorCode | str | None = None,
        errmesg: str | None = None,
    ) -> None:
        self.errcode = str(errcode or self.default_errcode)
        self.errmesg = errmesg or "We are sorry, an error occurred."
        self.erresid = uuid4().hex[:10]

        caller_frame = inspect.stack()[1]
        module = inspect.getmodule(caller_frame.frame)
        module_name = (
            module.__name__ if module and getattr(module, "__name__", None) else caller_frame.filename
        )
        self.caller_info = f"{module_name}:{caller_frame.function}:{caller_frame.lineno}"

        super().__init__(f"{self.errcode}: {self.errmesg}")


class InvalidInput(AppError):
    default_errcode = AppErrorCode.E_INVALID_REQUEST


class PermissionDenied(AppError):
    """Required device access (camera/microphone) was not granted."""

    default_errcode = AppErrorCode.E_PERMISSION_DENIED


class RemoteSessionError(AppError):
    """A session-control API call failed."""

    default_errcode = AppErrorCode.E_REMOTE_SESSION


class TransportConnectError(AppError):
    """The real-time connection could not be established."""

    default_errcode = AppErrorCode.E_TRANSPORT_CONNECT


class MalformedPayload(AppError):
    """A data channel message could not be decoded."""

    default_errcode = AppErrorCode.E_MALFORMED_PAYLOAD


class PublishError(AppError):
    """Publishing or unpublishing local media or data failed."""

    default_errcode = AppErrorCode.E_PUBLISH
