"""Error codes and exception types shared across the verification pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    # Camera & session
    CAMERA_NOT_AUTHORIZED = "CAMERA_NOT_AUTHORIZED"
    CAMERA_UNAVAILABLE = "CAMERA_UNAVAILABLE"
    CAMERA_START_FAILED = "CAMERA_START_FAILED"

    # Model
    PIXEL_BUFFER_MISSING = "PIXEL_BUFFER_MISSING"
    MODEL_OUTPUT_MISSING = "MODEL_OUTPUT_MISSING"
    MODEL_LOAD_FAILURE = "MODEL_LOAD_FAILURE"

    # Face
    FACE_VALIDATION_FAILED = "FACE_VALIDATION_FAILED"

    # Preprocessing
    FACE_PREPROCESSING_RESIZE_FAILED = "FACE_PREPROCESSING_RESIZE_FAILED"
    FACE_PREPROCESSING_RENDER_FAILED = "FACE_PREPROCESSING_RENDER_FAILED"

    # Backend
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    FACE_CONFIDENCE_TOO_LOW = "FACE_CONFIDENCE_TOO_LOW"
    NO_EMPLOYEES_FOUND = "NO_EMPLOYEES_FOUND"
    DB_ERROR = "DB_ERROR"

    # Network / transport
    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    REQUEST_TIMED_OUT = "REQUEST_TIMED_OUT"
    BAD_URL = "BAD_URL"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    DECODING_FAILED = "DECODING_FAILED"

    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_backend(cls, code: Optional[str]) -> "ErrorCode":
        """Map a backend error string onto a known code, defaulting to UNKNOWN."""
        if not code:
            return cls.UNKNOWN
        try:
            return cls(str(code).strip().upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_transport(self) -> bool:
        return self in _TRANSPORT_CODES


_TRANSPORT_CODES = frozenset(
    {
        ErrorCode.NETWORK_UNAVAILABLE,
        ErrorCode.REQUEST_TIMED_OUT,
        ErrorCode.BAD_URL,
        ErrorCode.INVALID_RESPONSE,
        ErrorCode.DECODING_FAILED,
    }
)

_MODEL_MESSAGE = "The face recognition system had a problem starting. Please restart the app or try again."
_PREPROCESS_MESSAGE = "There was a problem processing the face image. Try using a clearer photo."

USER_MESSAGES = {
    ErrorCode.CAMERA_NOT_AUTHORIZED: "Camera access is not allowed. Enable it in your system privacy settings.",
    ErrorCode.CAMERA_UNAVAILABLE: "The camera isn't available on this device.",
    ErrorCode.CAMERA_START_FAILED: "Failed to start the camera. Please try again.",
    ErrorCode.PIXEL_BUFFER_MISSING: _MODEL_MESSAGE,
    ErrorCode.MODEL_OUTPUT_MISSING: _MODEL_MESSAGE,
    ErrorCode.MODEL_LOAD_FAILURE: _MODEL_MESSAGE,
    ErrorCode.FACE_VALIDATION_FAILED: "Face was not recognized. Try again.",
    ErrorCode.FACE_PREPROCESSING_RESIZE_FAILED: _PREPROCESS_MESSAGE,
    ErrorCode.FACE_PREPROCESSING_RENDER_FAILED: _PREPROCESS_MESSAGE,
    ErrorCode.EMPLOYEE_NOT_FOUND: "Employee not found. Please check the details.",
    ErrorCode.FACE_CONFIDENCE_TOO_LOW: "Face not recognized. Try again with better lighting and angle.",
    ErrorCode.NO_EMPLOYEES_FOUND: "No employees are registered in the system.",
    ErrorCode.DB_ERROR: "Server error. Please try again later.",
    ErrorCode.NETWORK_UNAVAILABLE: "No internet connection. Please check your network settings and try again.",
    ErrorCode.REQUEST_TIMED_OUT: "The request took too long. Please try again.",
    ErrorCode.BAD_URL: "There was an internal app error (invalid request URL). Please contact support.",
    ErrorCode.INVALID_RESPONSE: "Received an invalid response from the server. Please try again later.",
    ErrorCode.DECODING_FAILED: "The server returned unexpected data. Please try again later.",
    ErrorCode.UNKNOWN: "Something went wrong. Please try again.",
}


def user_message(code: ErrorCode) -> str:
    return USER_MESSAGES.get(code, USER_MESSAGES[ErrorCode.UNKNOWN])


class VerificationError(Exception):
    """Base exception for the verification pipeline.

    Carries a stable ``code`` for the UI, an optional developer-facing
    ``debug_message`` and the underlying ``cause`` when one exists.
    """

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        code: Optional[ErrorCode] = None,
        debug_message: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.code = code or self.default_code
        self.debug_message = debug_message
        self.cause = cause
        detail = debug_message or (str(cause) if cause is not None else None)
        text = self.code.value if not detail else f"{self.code.value}: {detail}"
        super().__init__(text)

    @property
    def user_message(self) -> str:
        return user_message(self.code)


class CameraError(VerificationError):
    """Raised when the capture device cannot be opened or read."""

    default_code = ErrorCode.CAMERA_UNAVAILABLE


class PreprocessingError(VerificationError):
    """Raised when a face crop cannot be resized or rendered for the model."""

    default_code = ErrorCode.FACE_PREPROCESSING_RESIZE_FAILED


class ModelOutputError(VerificationError):
    """Raised when the embedding model produced no usable vector."""

    default_code = ErrorCode.MODEL_OUTPUT_MISSING


class ModelLoadError(VerificationError):
    """Raised when the embedding model cannot be initialized."""

    default_code = ErrorCode.MODEL_LOAD_FAILURE


class BackendError(VerificationError):
    """Raised when the backend answered with ``success: false``."""


class TransportError(VerificationError):
    """Raised when the request never produced a usable backend answer."""

    default_code = ErrorCode.NETWORK_UNAVAILABLE


def as_verification_error(exc: BaseException) -> VerificationError:
    """Wrap arbitrary exceptions so callers only deal with coded errors."""
    if isinstance(exc, VerificationError):
        return exc
    return VerificationError(ErrorCode.UNKNOWN, cause=exc)
