"""
Application API layer for custom assessments and progress analytics.

High-level functions taking a SQLAlchemy session and plain request data,
wiring the domain services to the SQL repositories with validation, logging
and user-facing error translation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pandas as pd
from sqlalchemy.orm import Session

from ..domain.models import (
    AssessmentTrend,
    AssessmentType,
    DateRange,
    ProgressOverview,
    SessionActivity,
    StoredAssessment,
)
from ..domain.schemas import (
    CustomAssessmentCreateInput,
    CustomAssessmentUpdateInput,
    validate_input,
)
from ..domain.services import AssessmentDefinitionService, ProgressService
from ..infrastructure.access import SqlPermissionChecker
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import (
    CounselError,
    MultipleValidationError,
    ValidationError,
    log_error_details,
)
from ..infrastructure.logging import get_logger, log_operation, set_context
from ..infrastructure.repositories_activity import ActivityRepo
from ..infrastructure.repositories_assessment import AssessmentRepo

logger = get_logger(__name__)

LIBRARY_COLUMNS = ["ID", "Name", "Type", "Category", "Questions", "Active", "CreatedBy", "CreatedAt"]


def definition_service(session: Session) -> AssessmentDefinitionService:
    return AssessmentDefinitionService(AssessmentRepo(session), SqlPermissionChecker(session))


def progress_service(session: Session) -> ProgressService:
    return ProgressService(ActivityRepo(session), SqlPermissionChecker(session))


def _validated(schema_class: type, data: dict[str, Any]):
    result = validate_input(schema_class, data)
    if not result.success:
        errors = [ValidationError(e.field, e.message, e.value) for e in result.errors]
        logger.warning(
            "Assessment payload validation failed: %s",
            "; ".join(f"{e.field}: {e.message}" for e in result.errors),
        )
        if len(errors) == 1:
            raise errors[0]
        raise MultipleValidationError(errors)
    return result.data


def _unexpected(e: Exception, operation: str, context: dict[str, Any]) -> CounselError:
    error_details = log_error_details(e, {"operation": operation, **context})
    logger.error(f"Unexpected failure in {operation}", extra=error_details)
    return CounselError(
        f"Failed to {operation.replace('_', ' ')}",
        details=error_details,
        user_message="Something went wrong. Please try again.",
    )


# ---------- Assessment library ----------


@log_operation("create_custom_assessment")
def create_custom_assessment(
    session: Session, caller_id: str, data: dict[str, Any]
) -> StoredAssessment:
    """
    Validate and store a new custom assessment or questionnaire.

    Raises:
        ValidationError / MultipleValidationError: Field-level schema failures
        AssessmentDefinitionError: Structural or scoring-rule defects
        ForbiddenError: Caller is not a counselor in an organization

    Example:
        >>> stored = create_custom_assessment(session, counselor_id, {
        ...     "name": "Sleep check-in",
        ...     "type": "custom_questionnaire",
        ...     "questions": [...],
        ... })
    """
    set_context(caller_id=caller_id)
    service = definition_service(session)
    # Authorize before the payload is even parsed.
    service.permissions.organization_for_counselor(caller_id)
    payload = _validated(CustomAssessmentCreateInput, data)
    try:
        return service.create(caller_id, payload.to_domain())
    except CounselError:
        raise
    except Exception as e:
        raise _unexpected(e, "create_custom_assessment", {"caller_id": caller_id}) from e


@log_operation("update_custom_assessment")
def update_custom_assessment(
    session: Session, caller_id: str, assessment_id: str, data: dict[str, Any]
) -> StoredAssessment:
    set_context(caller_id=caller_id, assessment_id=assessment_id)
    service = definition_service(session)
    # Authorize before the payload is even parsed.
    service.get_owned(caller_id, assessment_id, action="update")
    payload = _validated(CustomAssessmentUpdateInput, data)
    try:
        return service.update(caller_id, assessment_id, payload.to_domain())
    except CounselError:
        raise
    except Exception as e:
        raise _unexpected(e, "update_custom_assessment", {"assessment_id": assessment_id}) from e


@log_operation("delete_custom_assessment")
def delete_custom_assessment(session: Session, caller_id: str, assessment_id: str) -> None:
    set_context(caller_id=caller_id, assessment_id=assessment_id)
    definition_service(session).delete(caller_id, assessment_id)


def get_custom_assessment(session: Session, caller_id: str, assessment_id: str) -> StoredAssessment:
    return definition_service(session).get(caller_id, assessment_id)


@log_operation("list_assessment_library")
def list_assessment_library(
    session: Session, caller_id: str, assessment_type: str | None = None
) -> pd.DataFrame:
    """
    Library of the caller's organization, newest first.

    Returns:
        DataFrame with columns: ID, Name, Type, Category, Questions, Active,
        CreatedBy, CreatedAt
    """
    kind = AssessmentType(assessment_type) if assessment_type else None
    records = definition_service(session).list_definitions(caller_id, kind)

    df = pd.DataFrame(
        [
            (
                r.id,
                r.definition.name,
                r.definition.type.value,
                r.definition.category,
                len(r.definition.questions),
                r.is_active,
                r.created_by,
                r.created_at,
            )
            for r in records
        ],
        columns=LIBRARY_COLUMNS,
    )
    logger.info(f"Retrieved {len(df)} assessments for caller {caller_id}")
    return df


# ---------- Progress analytics ----------


def get_assessment_trend(
    session: Session,
    counselor_id: str,
    member_id: str,
    assessment_key: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> AssessmentTrend:
    set_context(caller_id=counselor_id, member_id=member_id)
    label = get_settings().app.tracked_assessments.get(assessment_key, assessment_key.upper())
    return progress_service(session).assessment_trend(
        counselor_id, member_id, assessment_key, label, DateRange(start=start, end=end)
    )


def get_session_activity(
    session: Session,
    counselor_id: str,
    member_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[SessionActivity]:
    set_context(caller_id=counselor_id, member_id=member_id)
    return progress_service(session).session_activity(
        counselor_id, member_id, DateRange(start=start, end=end)
    )


@log_operation("get_progress_overview")
def get_progress_overview(
    session: Session,
    counselor_id: str,
    member_id: str,
    now: datetime | None = None,
) -> ProgressOverview:
    """Tracked-assessment trends over the configured trailing window plus activity totals."""
    set_context(caller_id=counselor_id, member_id=member_id)
    settings = get_settings().app
    # Stored timestamps are naive UTC.
    reference = now or datetime.now(UTC).replace(tzinfo=None)
    return progress_service(session).progress_overview(
        counselor_id,
        member_id,
        now=reference,
        window_days=settings.progress_window_days,
        tracked_assessments=settings.tracked_assessments,
    )
