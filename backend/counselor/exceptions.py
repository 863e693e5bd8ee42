"""
Merit Badge Counselor Backend — Custom Exception Hierarchy
===========================================================

What:  Application-specific exceptions for the different failure scenarios.
Why:   Services raise typed errors; global handlers registered in main.py turn
       them into the `{success: false, ...}` envelope with the right status.
How:   Each exception carries a user-facing message and an optional context
       dict (logged server-side).

Exception Hierarchy:
    CounselorAppError (base)
    ├── FormValidationError      → 400 Bad Request (field-level errors list)
    ├── UploadRejectedError      → 400 Bad Request (count/extension/size policy)
    ├── NotFoundError            → 404 Not Found
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional


class CounselorAppError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (returned in the envelope)
        context:  Additional debug info (logged, not returned)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class FormValidationError(CounselorAppError):
    """
    Raised when submitted form fields fail validation.

    Carries the full list of field-level errors so the client can show
    every problem at once:

        {
            "success": false,
            "message": "Validation failed",
            "errors": [
                {"msg": "Age must be at least 18", "param": "age",
                 "location": "body", "value": "17"}
            ]
        }
    """

    def __init__(
        self,
        errors: List[Dict[str, Any]],
        message: str = "Validation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.errors = errors


class UploadRejectedError(CounselorAppError):
    """
    Raised by the upload gate when a batch violates the upload policy.

    When:   Too many files, a denylisted extension, or the summed size is
            above the configured ceiling.
    Effect: The whole batch is rejected; nothing stays on disk.
    """

    def __init__(
        self,
        message: str = "Uploaded files were rejected",
        field: str = "certifications",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field

    @property
    def errors(self) -> List[Dict[str, Any]]:
        return [{"msg": self.message, "param": self.field, "location": "body"}]


class NotFoundError(CounselorAppError):
    """
    Raised when a requested resource does not exist.

    Services return None for missing records; the route converts that None
    into this exception so the handler can answer 404.
    """

    def __init__(
        self,
        message: str = "Resource not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(CounselorAppError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(CounselorAppError):
    """
    Raised when the write transaction fails and has been rolled back.

    The message is the underlying driver/ORM message; the caller is
    responsible for discarding any staged upload files.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
