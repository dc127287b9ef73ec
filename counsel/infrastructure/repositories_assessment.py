# counsel/infrastructure/repositories_assessment.py
from __future__ import annotations

import builtins

from sqlalchemy.orm import Session

from ..domain.models import (
    AssessmentType,
    CustomAssessmentDefinition,
    Question,
    StoredAssessment,
)
from ..domain.schemas import (
    questions_from_payload,
    questions_to_payload,
    scoring_rules_from_payload,
    scoring_rules_to_payload,
)
from .exceptions import NotFoundError
from .logging import log_database_operation as log_op
from .models import AssessmentORM, AssignedAssessmentORM
from .repositories_base import BaseRepository

CUSTOM_TYPES = (AssessmentType.CUSTOM_ASSESSMENT.value, AssessmentType.CUSTOM_QUESTIONNAIRE.value)


def to_stored(row: AssessmentORM) -> StoredAssessment:
    """Map an ORM row onto the domain record, re-reading the JSON payloads."""
    return StoredAssessment(
        id=row.id,
        organization_id=row.organization_id or "",
        created_by=row.created_by or "",
        definition=CustomAssessmentDefinition(
            name=row.name,
            type=AssessmentType(row.type),
            category=row.category,
            questions=questions_from_payload(row.questions),
            scoring_rules=scoring_rules_from_payload(row.scoring_rules),
        ),
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class AssessmentRepo(BaseRepository[AssessmentORM]):
    """SQL-backed store for custom assessment definitions."""

    model = AssessmentORM
    resource_name = "Assessment"

    def __init__(self, session: Session):
        super().__init__(session)

    # -------- Read --------

    def _get_custom(self, assessment_id: str) -> AssessmentORM:
        row = self.get_by_id_required(assessment_id)
        if row.type not in CUSTOM_TYPES:
            # Built-in clinical instruments are not editable definitions.
            raise NotFoundError(
                "Assessment not found", resource=self.model.__name__, resource_id=assessment_id
            )
        return row

    @log_op("assessment.get")
    def get_assessment(self, assessment_id: str) -> StoredAssessment:
        return to_stored(self._get_custom(assessment_id))

    @log_op("assessment.questions")
    def fetch_questions_for_assessment(self, assessment_id: str) -> builtins.list[Question]:
        return list(questions_from_payload(self._get_custom(assessment_id).questions))

    @log_op("assessment.list_for_organization")
    def list_for_organization(
        self, organization_id: str, assessment_type: AssessmentType | None = None
    ) -> builtins.list[StoredAssessment]:
        filters = [AssessmentORM.organization_id == organization_id]
        if assessment_type is not None:
            filters.append(AssessmentORM.type == AssessmentType(assessment_type).value)
        else:
            filters.append(AssessmentORM.type.in_(CUSTOM_TYPES))
        rows = self.list(*filters, order_by=[AssessmentORM.created_at.desc()])
        return [to_stored(row) for row in rows]

    @log_op("assessment.count_assignments")
    def count_assignments(self, assessment_id: str) -> int:
        return int(
            self.s.query(AssignedAssessmentORM)
            .filter(AssignedAssessmentORM.assessment_id == assessment_id)
            .count()
        )

    # -------- Write --------

    @log_op("assessment.create")
    def save_definition(
        self, definition: CustomAssessmentDefinition, organization_id: str, created_by: str
    ) -> StoredAssessment:
        row = self.create(
            name=definition.name,
            type=definition.type.value,
            category=definition.category,
            questions=questions_to_payload(definition.questions),
            scoring_rules=scoring_rules_to_payload(definition.scoring_rules),
            organization_id=organization_id,
            created_by=created_by,
        )
        return to_stored(row)

    @log_op("assessment.update")
    def update_definition(
        self,
        assessment_id: str,
        definition: CustomAssessmentDefinition,
        is_active: bool | None = None,
    ) -> StoredAssessment:
        row = self._get_custom(assessment_id)
        fields: dict[str, object] = {
            "name": definition.name,
            "category": definition.category,
            "questions": questions_to_payload(definition.questions),
            "scoring_rules": scoring_rules_to_payload(definition.scoring_rules),
        }
        if is_active is not None:
            fields["is_active"] = is_active
        return to_stored(self.update(row, **fields))

    @log_op("assessment.delete")
    def delete_assessment(self, assessment_id: str) -> None:
        super().delete(self._get_custom(assessment_id))
