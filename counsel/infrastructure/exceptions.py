"""
Custom exception classes for the counseling assessment engine.

Provides structured error handling with user-friendly messages and proper
error categorization for definition, access and storage failures.
"""

from __future__ import annotations

from typing import Any


class CounselError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        """Provide a user-friendly version of the error message."""
        return "An unexpected error occurred. Please try again."

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(CounselError):
    """Raised when field-level input validation fails."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )


class MultipleValidationError(CounselError):
    """Raised when several field-level validation errors occur at once."""

    def __init__(self, errors: list[ValidationError]):
        self.validation_errors = errors
        messages = [f"{e.field}: {e.message}" for e in errors]
        super().__init__(
            message=f"Multiple validation errors: {'; '.join(messages)}",
            details={
                "errors": [
                    {"field": e.field, "message": e.message, "value": e.value} for e in errors
                ]
            },
            user_message="Please correct the following errors and try again.",
        )


# ---------- Assessment definition errors ----------


class AssessmentDefinitionError(CounselError):
    """Raised when a custom assessment definition is structurally invalid."""

    def _get_default_user_message(self) -> str:
        return "The assessment definition is invalid. Please review it and try again."


class MissingQuestionsError(AssessmentDefinitionError):
    """Raised when an assessment is submitted without any questions."""

    def __init__(self) -> None:
        super().__init__(
            message="Assessment must have at least one question",
            details={"rule": "questions_required"},
            user_message="Assessment must have at least one question.",
        )


class InvalidQuestionError(AssessmentDefinitionError):
    """Raised when a single question is malformed (options, scale, labels)."""

    def __init__(self, question_text: str, reason: str):
        self.question_text = question_text
        self.reason = reason
        super().__init__(
            message=f'Question "{question_text}" {reason}',
            details={"question": question_text, "reason": reason},
            user_message=f'Question "{question_text}" {reason}.',
        )


class MissingScoringCategoriesError(AssessmentDefinitionError):
    """Raised when a scored assessment has no category scoring rules."""

    def __init__(self) -> None:
        super().__init__(
            message="Custom assessments must have scoring rules with at least one category",
            details={"rule": "scoring_categories_required"},
            user_message="Custom assessments must have scoring rules with at least one category.",
        )


class UnscoredCategoryError(AssessmentDefinitionError):
    """Raised when a question category has no matching scoring category."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(
            message=f'Category "{category}" is missing scoring interpretations',
            details={"category": category},
            user_message=f'Category "{category}" is missing scoring interpretations.',
        )


class InvalidRangeCoverageError(AssessmentDefinitionError):
    """Raised when interpretation ranges do not partition 0..100 percent."""

    def __init__(self, subject: str, detail: str):
        self.subject = subject
        self.detail = detail
        super().__init__(
            message=f'Category "{subject}": {detail}',
            details={"subject": subject, "detail": detail},
            user_message=f'Scoring ranges for "{subject}" are invalid: {detail}.',
        )


# ---------- Access and lookup errors ----------


class ForbiddenError(CounselError):
    """Raised when the caller may not perform an operation."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.operation = operation
        super().__init__(
            message=message,
            details=details or {"operation": operation},
            user_message=message,
        )


class NotFoundError(CounselError):
    """Raised when a requested record does not exist or is hidden from the caller."""

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        resource_id: Any = None,
    ):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            message=message,
            details={"resource": resource, "resource_id": resource_id},
            user_message=message,
        )


class BusinessLogicError(CounselError):
    """Raised when business logic constraints are violated."""

    def __init__(
        self, message: str, rule: str | None = None, details: dict[str, Any] | None = None
    ):
        self.rule = rule
        super().__init__(
            message=message,
            details=details or {"rule": rule},
            user_message=message,
        )


# ---------- Storage errors ----------


class DatabaseError(CounselError):
    """Raised when database operations fail."""

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
            user_message="A database error occurred. Please try again in a moment.",
        )


class IntegrityError(DatabaseError):
    """Raised when database integrity constraints are violated."""

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.constraint = constraint
        super().__init__(
            message=message,
            operation="integrity_check",
            details=details or {"constraint": constraint},
        )
        self.user_message = self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        if self.constraint:
            if "unique" in self.constraint.lower():
                return "This item already exists. Please use a different name."
            elif "foreign" in self.constraint.lower():
                return "Referenced item no longer exists. Please refresh and try again."
        return "Data integrity error. Please check your input and try again."


def handle_database_error(e: Exception, operation: str = "database operation") -> DatabaseError:
    """
    Convert generic database exceptions to appropriate custom exceptions.

    Args:
        e: The original exception
        operation: Description of the operation that failed

    Returns:
        Appropriate DatabaseError subclass

    Example:
        >>> try:
        ...     session.flush()
        >>> except SQLAlchemyError as e:
        ...     raise handle_database_error(e, "assessment.create")
    """
    error_msg = str(e).lower()

    if "unique constraint" in error_msg or "duplicate" in error_msg:
        return IntegrityError(str(e), constraint="unique")
    elif "foreign key" in error_msg or "foreign_key" in error_msg:
        return IntegrityError(str(e), constraint="foreign_key")
    elif "check constraint" in error_msg:
        return IntegrityError(str(e), constraint="check")
    else:
        return DatabaseError(str(e), operation)


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Create a user-friendly error message from any exception.

    Example:
        >>> error = UnscoredCategoryError("mood")
        >>> create_user_friendly_error_message(error)
        'Category "mood" is missing scoring interpretations.'
    """
    if isinstance(error, CounselError):
        return error.user_message

    error_type = type(error).__name__
    messages = {
        "ValueError": "Invalid input provided. Please check your data and try again.",
        "KeyError": "Required information is missing. Please check your input.",
        "TypeError": "Incorrect data type provided. Please check your input format.",
    }
    return messages.get(
        error_type, "An unexpected error occurred. Please try again or contact support."
    )


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create structured error details for logging.

    Args:
        error: The exception to log
        context: Additional context information

    Returns:
        Dictionary with structured error details
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }

    if isinstance(error, CounselError):
        details.update({"user_message": error.user_message, "error_details": error.details})

    return details
