"""
Error taxonomy shared by every network-backed operation.

Any failure (an exception raised by a client library, an error body decoded
from an HTTP response, a bare string) is turned into a ``NormalizedError`` by
``normalize``. The normalized value carries one of a closed set of kinds and a
``retryable`` flag, and is the only place retry eligibility is decided.

normalize() is total: it never raises, whatever it is handed.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional

FALLBACK_MESSAGE = "Unexpected application error"

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class ErrorKind(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER = "SERVER_ERROR"
    MISSING_CONTEXT = "MISSING_CONTEXT"
    UNKNOWN = "UNKNOWN_ERROR"

    @classmethod
    def lookup(cls, value: str) -> Optional["ErrorKind"]:
        """Find a kind by wire value or member name, e.g. ``SERVER_ERROR`` or ``SERVER``."""
        for kind in cls:
            if value == kind.value or value == kind.name:
                return kind
        return None


class NormalizedError(Exception):
    """A failure classified into the error taxonomy."""

    def __init__(
        self,
        code: ErrorKind,
        message: str = FALLBACK_MESSAGE,
        status: Optional[int] = None,
        retryable: bool = False,
        cause: Any = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.retryable = bool(retryable)
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"NormalizedError(code={self.code.name}, message={self.message!r}, "
            f"status={self.status}, retryable={self.retryable})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NormalizedError):
            return NotImplemented
        return (
            self.code == other.code
            and self.message == other.message
            and self.status == other.status
            and self.retryable == other.retryable
            and (self.cause is other.cause or self.cause == other.cause)
        )

    def __hash__(self) -> int:
        return hash((self.code, self.message, self.status, self.retryable))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "status": self.status,
            "retryable": self.retryable,
        }


def missing_context(message: str) -> NormalizedError:
    return NormalizedError(ErrorKind.MISSING_CONTEXT, message, retryable=False)


_HTTP_STATUS = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 422,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.SERVER: 502,
    ErrorKind.MISSING_CONTEXT: 409,
    ErrorKind.UNKNOWN: 500,
}


def http_status(error: NormalizedError) -> int:
    """Status code to answer with; the originating status wins when it is an HTTP error."""
    if error.status is not None and 400 <= error.status <= 599:
        return error.status
    return _HTTP_STATUS[error.code]


# ── Key-value view of a failure ───────────────────────────────────────────────

_FIELDS = (
    "status",
    "status_code",
    "code",
    "message",
    "detail",
    "retryable",
    "is_retryable",
    "isRetryable",
)


def _record(failure: Any) -> Dict[str, Any]:
    """Read the fields the extractor rules look at. Unreadable fields are absent."""
    if isinstance(failure, Mapping):
        record = {}
        for field in _FIELDS:
            try:
                if field in failure:
                    record[field] = failure[field]
            except Exception:
                continue
        return record

    record = {}
    for field in _FIELDS:
        try:
            value = getattr(failure, field)
        except Exception:
            continue
        if not callable(value):
            record[field] = value
    return record


def _exception_text(failure: Any) -> Optional[str]:
    if not isinstance(failure, BaseException):
        return None
    try:
        text = str(failure)
    except Exception:
        return None
    return text if text.strip() else None


# ── Extractor rules ───────────────────────────────────────────────────────────

def _as_status(value: Any) -> Optional[int]:
    """Integral numbers only; ``503.0`` reads as 503, booleans and ``503.5`` do not."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    return int(value)


def extract_status(record: Dict[str, Any]) -> Optional[int]:
    for field in ("status", "status_code", "code"):
        status = _as_status(record.get(field))
        if status is not None:
            return status
    return None


def kind_for_status(status: Optional[int]) -> ErrorKind:
    if status == 401:
        return ErrorKind.UNAUTHORIZED
    if status == 403:
        return ErrorKind.FORBIDDEN
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status in (400, 422):
        return ErrorKind.VALIDATION
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status is not None and status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def extract_kind(record: Dict[str, Any], status: Optional[int]) -> ErrorKind:
    explicit = record.get("code")
    if isinstance(explicit, str):
        kind = ErrorKind.lookup(explicit)
        if kind is not None:
            return kind
    return kind_for_status(status)


def extract_retryable(record: Dict[str, Any], status: Optional[int]) -> bool:
    for field in ("retryable", "is_retryable", "isRetryable"):
        if isinstance(record.get(field), bool):
            return record[field]
    return status in RETRYABLE_STATUSES


def extract_message(record: Dict[str, Any], failure: Any) -> str:
    for field in ("message", "detail"):
        value = record.get(field)
        if isinstance(value, str) and value.strip():
            return value
    return _exception_text(failure) or FALLBACK_MESSAGE


_PRIMITIVES = (type(None), bool, int, float, complex, str, bytes, bytearray)


def normalize(failure: Any) -> NormalizedError:
    if isinstance(failure, NormalizedError):
        return failure

    if isinstance(failure, _PRIMITIVES):
        return NormalizedError(ErrorKind.UNKNOWN, FALLBACK_MESSAGE, retryable=False, cause=failure)

    record = _record(failure)
    status = extract_status(record)
    return NormalizedError(
        code=extract_kind(record, status),
        message=extract_message(record, failure),
        status=status,
        retryable=extract_retryable(record, status),
        cause=failure,
    )
