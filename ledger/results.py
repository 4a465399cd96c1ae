"""Tagged results returned by every ledger operation.

Callers branch on ``isinstance(result, Ok)`` or ``result.ok`` and read
``result.value`` / ``result.kind`` instead of catching exceptions.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    UNAUTHENTICATED = 'unauthenticated'
    VALIDATION = 'validation'
    NOT_FOUND = 'not_found'
    OWNERSHIP_MISMATCH = 'ownership_mismatch'
    STORE_FAILURE = 'store_failure'


@dataclass(frozen=True)
class Ok:
    value: Any = None
    ok = True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    ok = False


class LedgerError(Exception):
    kind = ErrorKind.STORE_FAILURE

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_result(self):
        return Err(self.kind, self.message)


class Unauthenticated(LedgerError):
    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self, message='User is not authenticated.'):
        super().__init__(message)


class ValidationError(LedgerError):
    kind = ErrorKind.VALIDATION


class NotFound(LedgerError):
    kind = ErrorKind.NOT_FOUND


class OwnershipMismatch(LedgerError):
    kind = ErrorKind.OWNERSHIP_MISMATCH
