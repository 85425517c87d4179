from facegate.errors import (
    USER_MESSAGES,
    BackendError,
    ErrorCode,
    ModelOutputError,
    VerificationError,
    as_verification_error,
    user_message,
)


def test_every_code_has_a_user_message() -> None:
    assert set(USER_MESSAGES) == set(ErrorCode)


def test_backend_codes_are_case_insensitive() -> None:
    assert ErrorCode.from_backend("employee_not_found") is ErrorCode.EMPLOYEE_NOT_FOUND
    assert ErrorCode.from_backend("") is ErrorCode.UNKNOWN
    assert ErrorCode.from_backend("WHATEVER") is ErrorCode.UNKNOWN


def test_error_carries_code_and_messages() -> None:
    err = BackendError(ErrorCode.FACE_CONFIDENCE_TOO_LOW, debug_message="score=0.41")
    assert str(err) == "FACE_CONFIDENCE_TOO_LOW: score=0.41"
    assert err.user_message == user_message(ErrorCode.FACE_CONFIDENCE_TOO_LOW)
    assert not err.code.is_transport


def test_subclass_default_codes() -> None:
    assert ModelOutputError().code is ErrorCode.MODEL_OUTPUT_MISSING
    assert VerificationError().code is ErrorCode.UNKNOWN


def test_foreign_exceptions_are_wrapped() -> None:
    cause = KeyError("x")
    wrapped = as_verification_error(cause)
    assert wrapped.code is ErrorCode.UNKNOWN
    assert wrapped.cause is cause
    already = ModelOutputError()
    assert as_verification_error(already) is already
