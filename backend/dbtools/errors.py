"""
Error Classification
Maps PostgREST / Postgres error codes to a small typed taxonomy
"""

from enum import Enum
from typing import Optional

from postgrest.exceptions import APIError


class DBToolsError(Exception):
    """Base class for errors raised by dbtools itself"""


class ConfigError(DBToolsError, ValueError):
    """Missing or invalid connection settings"""


class BackupError(DBToolsError):
    """Malformed or inconsistent backup file"""


class ErrorKind(str, Enum):
    """What a failed request tells us about the remote schema"""

    MISSING_RELATION = "missing_relation"
    MISSING_COLUMN = "missing_column"
    PERMISSION = "permission"
    MISSING_FUNCTION = "missing_function"
    REQUEST = "request"


# Postgres SQLSTATE codes and PostgREST PGRST codes
MISSING_RELATION_CODES = {"42P01", "PGRST205"}
MISSING_COLUMN_CODES = {"42703", "PGRST204"}
PERMISSION_CODES = {"42501"}
MISSING_FUNCTION_CODES = {"42883", "PGRST202"}


def error_code(error: BaseException) -> Optional[str]:
    """Return the server error code carried by an exception, if any"""
    if isinstance(error, APIError):
        return error.code or None
    return None


def error_message(error: BaseException) -> str:
    """Return the human-readable message of an exception"""
    if isinstance(error, APIError) and error.message:
        return str(error.message)
    return str(error)


def classify_error(error: BaseException) -> ErrorKind:
    """
    Classify a request failure

    Codes win over message matching; message matching only covers servers
    that return an error without a code.

    Args:
        error: Exception raised by a postgrest/supabase call

    Returns:
        ErrorKind for the failure
    """
    code = error_code(error)
    if code in MISSING_RELATION_CODES:
        return ErrorKind.MISSING_RELATION
    if code in MISSING_COLUMN_CODES:
        return ErrorKind.MISSING_COLUMN
    if code in PERMISSION_CODES:
        return ErrorKind.PERMISSION
    if code in MISSING_FUNCTION_CODES:
        return ErrorKind.MISSING_FUNCTION
    if code:
        return ErrorKind.REQUEST

    message = error_message(error).lower()
    if "could not find the function" in message:
        return ErrorKind.MISSING_FUNCTION
    if "column" in message and ("does not exist" in message or "could not find" in message):
        return ErrorKind.MISSING_COLUMN
    if "could not find the table" in message or (
        "relation" in message and "does not exist" in message
    ):
        return ErrorKind.MISSING_RELATION
    if "permission denied" in message:
        return ErrorKind.PERMISSION
    return ErrorKind.REQUEST
