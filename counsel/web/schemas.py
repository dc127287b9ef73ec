from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from counsel.domain.models import AssessmentTrend, ProgressOverview, StoredAssessment
from counsel.domain.schemas import questions_to_payload, scoring_rules_to_payload


class RatingScale(BaseModel):
    min: int
    max: int
    labels: Optional[dict[int, str]] = None


class Question(BaseModel):
    id: str
    text: str
    type: str
    required: bool
    weight: float
    category: str
    options: Optional[list[str]] = None
    scale: Optional[RatingScale] = None


class InterpretationRange(BaseModel):
    max_percent: float
    label: str
    description: str


class CategoryScoring(BaseModel):
    name: str
    interpretations: list[InterpretationRange]


class ScoringRules(BaseModel):
    categories: list[CategoryScoring]
    overall_interpretations: list[InterpretationRange]


class AssessmentListItem(BaseModel):
    id: str
    name: str
    type: str
    category: Optional[str] = None
    question_count: int
    is_active: bool
    created_by: str
    created_at: Optional[datetime] = None


class AssessmentDetail(BaseModel):
    id: str
    organization_id: str
    created_by: str
    name: str
    type: str
    category: Optional[str] = None
    questions: list[Question]
    scoring_rules: Optional[ScoringRules] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_stored(cls, stored: StoredAssessment) -> AssessmentDetail:
        definition = stored.definition
        return cls(
            id=stored.id,
            organization_id=stored.organization_id,
            created_by=stored.created_by,
            name=definition.name,
            type=definition.type.value,
            category=definition.category,
            questions=questions_to_payload(definition.questions),
            scoring_rules=scoring_rules_to_payload(definition.scoring_rules),
            is_active=stored.is_active,
            created_at=stored.created_at,
            updated_at=stored.updated_at,
        )


class ChartPoint(BaseModel):
    date: str
    value: float


class AssessmentTrendResponse(BaseModel):
    assessment_type: str
    data: list[ChartPoint]
    current_score: Optional[float] = None
    trend: str

    @classmethod
    def from_domain(cls, trend: AssessmentTrend) -> AssessmentTrendResponse:
        return cls(
            assessment_type=trend.assessment_type,
            data=[ChartPoint(date=p.date, value=p.value) for p in trend.data],
            current_score=trend.current_score,
            trend=trend.trend.value,
        )


class SessionActivityItem(BaseModel):
    date: str
    session_count: int
    tasks_completed: int


class ProgressOverviewResponse(BaseModel):
    trends: dict[str, AssessmentTrendResponse] = Field(default_factory=dict)
    sessions: int
    tasks_completed: int

    @classmethod
    def from_domain(cls, overview: ProgressOverview) -> ProgressOverviewResponse:
        return cls(
            trends={
                key: AssessmentTrendResponse.from_domain(trend)
                for key, trend in overview.trends.items()
            },
            sessions=overview.sessions,
            tasks_completed=overview.tasks_completed,
        )


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
