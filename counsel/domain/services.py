from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Protocol

from ..infrastructure.exceptions import (
    AssessmentDefinitionError,
    BusinessLogicError,
    ForbiddenError,
    MissingScoringCategoriesError,
)
from .aggregation import merge_by_day, trailing_window
from .models import (
    AssessmentTrend,
    AssessmentType,
    CustomAssessmentDefinition,
    DateRange,
    DefinitionPatch,
    ProgressOverview,
    Question,
    SessionActivity,
    StoredAssessment,
    TimedScore,
)
from .questions import validate_questions
from .scoring_rules import validate_scoring_rules
from .trends import build_assessment_trend

# ---------- Collaborators ----------


class AssessmentStore(Protocol):
    """Persistence for custom assessment definitions."""

    def get_assessment(self, assessment_id: str) -> StoredAssessment:
        """Return the stored assessment or raise NotFoundError."""
        ...

    def fetch_questions_for_assessment(self, assessment_id: str) -> list[Question]:
        ...

    def list_for_organization(
        self, organization_id: str, assessment_type: AssessmentType | None = None
    ) -> list[StoredAssessment]:
        ...

    def save_definition(
        self, definition: CustomAssessmentDefinition, organization_id: str, created_by: str
    ) -> StoredAssessment:
        ...

    def update_definition(
        self,
        assessment_id: str,
        definition: CustomAssessmentDefinition,
        is_active: bool | None = None,
    ) -> StoredAssessment:
        ...

    def count_assignments(self, assessment_id: str) -> int:
        ...

    def delete_assessment(self, assessment_id: str) -> None:
        ...


class PermissionChecker(Protocol):
    """Role and ownership checks resolved outside this package."""

    def organization_for_counselor(self, caller_id: str) -> str:
        """Return the caller's organization id or raise ForbiddenError."""
        ...

    def assert_caller_may_manage(self, owner_organization_id: str, caller_id: str) -> None:
        """Raise ForbiddenError unless the caller may manage the organization's definitions."""
        ...

    def verify_counselor_access(self, counselor_id: str, member_id: str) -> None:
        """Raise NotFoundError unless the counselor has an active assignment to the member."""
        ...


class ProgressDataSource(Protocol):
    """Dated records feeding the progress charts."""

    def fetch_dated_scores(
        self, subject_id: str, category: str | None, date_range: DateRange
    ) -> list[TimedScore]:
        ...

    def fetch_session_starts(self, member_id: str, date_range: DateRange) -> list[TimedScore]:
        ...

    def fetch_task_completions(self, member_id: str, date_range: DateRange) -> list[TimedScore]:
        ...

    def count_sessions(self, member_id: str) -> int:
        ...

    def count_completed_tasks(self, member_id: str) -> int:
        ...


# ---------- Pure definition checks ----------


def validate_definition(definition: CustomAssessmentDefinition) -> CustomAssessmentDefinition:
    """
    Run every structural check on a complete definition.

    Returns the definition to hand to storage: questionnaires lose any scoring
    rules they were submitted with, scored assessments must carry valid rules.
    """
    validate_questions(definition.questions)

    if not definition.is_scored:
        return definition.with_changes(scoring_rules=None)

    if definition.scoring_rules is None:
        # Same outcome as an empty category list.
        raise MissingScoringCategoriesError()

    validate_scoring_rules(definition.questions, definition.scoring_rules)
    return definition


class AssessmentDefinitionService:
    """
    Create, update and remove custom assessment definitions.

    Authorization runs before any validation so unauthorized callers learn
    nothing about the structure of a definition. Validation runs completely
    before the store is called, so a failed mutation writes nothing.
    """

    def __init__(
        self,
        store: AssessmentStore,
        permissions: PermissionChecker,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.permissions = permissions
        self.logger = logger or logging.getLogger(__name__)

    def get(self, caller_id: str, assessment_id: str) -> StoredAssessment:
        stored = self.store.get_assessment(assessment_id)
        self.permissions.assert_caller_may_manage(stored.organization_id, caller_id)
        return stored

    def list_definitions(
        self, caller_id: str, assessment_type: AssessmentType | None = None
    ) -> list[StoredAssessment]:
        organization_id = self.permissions.organization_for_counselor(caller_id)
        return self.store.list_for_organization(organization_id, assessment_type)

    def create(self, caller_id: str, definition: CustomAssessmentDefinition) -> StoredAssessment:
        organization_id = self.permissions.organization_for_counselor(caller_id)
        self.permissions.assert_caller_may_manage(organization_id, caller_id)

        try:
            validated = validate_definition(definition)
        except AssessmentDefinitionError as exc:
            self.logger.warning("Rejected assessment '%s': %s", definition.name, exc.message)
            raise

        stored = self.store.save_definition(validated, organization_id, caller_id)
        self.logger.info(
            "Created %s '%s' with %d questions (id=%s)",
            validated.type.value,
            validated.name,
            len(validated.questions),
            stored.id,
        )
        return stored

    def update(self, caller_id: str, assessment_id: str, patch: DefinitionPatch) -> StoredAssessment:
        existing = self.get_owned(caller_id, assessment_id, action="update")

        try:
            updated = self._apply_patch(existing, patch)
        except AssessmentDefinitionError as exc:
            self.logger.warning("Rejected update of assessment %s: %s", assessment_id, exc.message)
            raise

        stored = self.store.update_definition(assessment_id, updated, is_active=patch.is_active)
        self.logger.info("Updated assessment %s", assessment_id)
        return stored

    def delete(self, caller_id: str, assessment_id: str) -> None:
        self.get_owned(caller_id, assessment_id, action="delete")

        if self.store.count_assignments(assessment_id) > 0:
            raise BusinessLogicError(
                "Cannot delete assessment with existing assignments", rule="no_assignments"
            )

        self.store.delete_assessment(assessment_id)
        self.logger.info("Deleted assessment %s", assessment_id)

    def get_owned(self, caller_id: str, assessment_id: str, action: str) -> StoredAssessment:
        """Fetch a definition the caller created; anyone else is refused."""
        existing = self.get(caller_id, assessment_id)
        if existing.created_by != caller_id:
            raise ForbiddenError(f"Only the creator can {action} this assessment", operation=action)
        return existing

    # ---------- internals ----------

    def _apply_patch(
        self, existing: StoredAssessment, patch: DefinitionPatch
    ) -> CustomAssessmentDefinition:
        current = existing.definition
        changes: dict[str, object] = {}
        if patch.name is not None:
            changes["name"] = patch.name
        if patch.category is not None:
            changes["category"] = patch.category or None

        if not patch.touches_definition:
            return current.with_changes(**changes)

        if patch.questions is not None:
            validate_questions(patch.questions)
            questions: Sequence[Question] = patch.questions
            changes["questions"] = patch.questions
        else:
            questions = self.store.fetch_questions_for_assessment(existing.id)

        if not current.is_scored:
            changes["scoring_rules"] = None
            return current.with_changes(**changes)

        rules = patch.scoring_rules if patch.scoring_rules is not None else current.scoring_rules
        if rules is None:
            raise MissingScoringCategoriesError()

        validate_scoring_rules(questions, rules)
        changes["scoring_rules"] = rules
        return current.with_changes(**changes)


class ProgressService:
    """
    Counselor-facing progress charts for a member.

    Every call verifies the counselor's assignment to the member first. The
    service never reads the clock: windows are derived from the ``now`` the
    caller passes in.
    """

    def __init__(
        self,
        source: ProgressDataSource,
        permissions: PermissionChecker,
        logger: logging.Logger | None = None,
    ):
        self.source = source
        self.permissions = permissions
        self.logger = logger or logging.getLogger(__name__)

    def assessment_trend(
        self,
        counselor_id: str,
        member_id: str,
        assessment_key: str,
        label: str,
        date_range: DateRange | None = None,
    ) -> AssessmentTrend:
        self.permissions.verify_counselor_access(counselor_id, member_id)
        return self._trend(member_id, assessment_key, label, date_range or DateRange())

    def session_activity(
        self, counselor_id: str, member_id: str, date_range: DateRange | None = None
    ) -> list[SessionActivity]:
        self.permissions.verify_counselor_access(counselor_id, member_id)
        window = date_range or DateRange()

        merged = merge_by_day(
            self.source.fetch_session_starts(member_id, window),
            self.source.fetch_task_completions(member_id, window),
        )
        self.logger.debug("Session activity for member %s: %d days", member_id, len(merged))
        return [
            SessionActivity(
                date=row.date, session_count=int(row.count_a), tasks_completed=int(row.count_b)
            )
            for row in merged
        ]

    def progress_overview(
        self,
        counselor_id: str,
        member_id: str,
        now: datetime,
        window_days: int,
        tracked_assessments: Mapping[str, str],
    ) -> ProgressOverview:
        self.permissions.verify_counselor_access(counselor_id, member_id)
        window = trailing_window(now, window_days)

        overview = ProgressOverview(
            trends={
                key: self._trend(member_id, key, label, window)
                for key, label in tracked_assessments.items()
            },
            sessions=self.source.count_sessions(member_id),
            tasks_completed=self.source.count_completed_tasks(member_id),
        )
        self.logger.info(
            "Progress overview for member %s: %s",
            member_id,
            ", ".join(f"{t.assessment_type}={t.trend.value}" for t in overview.trends.values()),
        )
        return overview

    def _trend(
        self, member_id: str, assessment_key: str, label: str, date_range: DateRange
    ) -> AssessmentTrend:
        points = self.source.fetch_dated_scores(member_id, assessment_key, date_range)
        trend = build_assessment_trend(label, points)
        self.logger.debug(
            "%s trend for member %s: %d points, %s",
            label,
            member_id,
            len(trend.data),
            trend.trend.value,
        )
        return trend
