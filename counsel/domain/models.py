from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum


class QuestionType(str, Enum):
    MULTIPLE_CHOICE_SINGLE = "multiple_choice_single"
    MULTIPLE_CHOICE_MULTI = "multiple_choice_multi"
    TEXT_SHORT = "text_short"
    TEXT_LONG = "text_long"
    RATING_SCALE = "rating_scale"
    YES_NO = "yes_no"


CHOICE_QUESTION_TYPES = frozenset(
    {QuestionType.MULTIPLE_CHOICE_SINGLE, QuestionType.MULTIPLE_CHOICE_MULTI}
)


class AssessmentType(str, Enum):
    CUSTOM_ASSESSMENT = "custom_assessment"  # scored
    CUSTOM_QUESTIONNAIRE = "custom_questionnaire"  # unscored


class Trend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    INSUFFICIENT_DATA = "insufficient_data"


# ---------- Assessment definitions ----------


@dataclass(frozen=True, slots=True)
class RatingScale:
    min: int
    max: int
    labels: dict[int, str] | None = None


@dataclass(frozen=True, slots=True)
class Question:
    id: str
    text: str
    type: QuestionType
    required: bool
    category: str
    weight: float = 1.0
    options: tuple[str, ...] | None = None
    scale: RatingScale | None = None


@dataclass(frozen=True, slots=True)
class InterpretationRange:
    max_percent: float
    label: str
    description: str


@dataclass(frozen=True, slots=True)
class InterpretationBand:
    """An interpretation range with its lower bound made explicit."""

    min_percent: float
    max_percent: float
    label: str
    description: str
    includes_min: bool  # only the first band is closed at its lower end

    def contains(self, percent: float) -> bool:
        above_min = percent >= self.min_percent if self.includes_min else percent > self.min_percent
        return above_min and percent <= self.max_percent


@dataclass(frozen=True, slots=True)
class CategoryScoring:
    name: str
    interpretations: tuple[InterpretationRange, ...]


@dataclass(frozen=True, slots=True)
class ScoringRules:
    categories: tuple[CategoryScoring, ...]
    overall_interpretations: tuple[InterpretationRange, ...]


@dataclass(frozen=True, slots=True)
class CustomAssessmentDefinition:
    name: str
    type: AssessmentType
    questions: tuple[Question, ...]
    category: str | None = None
    scoring_rules: ScoringRules | None = None

    @property
    def is_scored(self) -> bool:
        return self.type == AssessmentType.CUSTOM_ASSESSMENT

    def with_changes(self, **changes) -> CustomAssessmentDefinition:
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class DefinitionPatch:
    """Fields supplied by an update; ``None`` means "keep the stored value"."""

    name: str | None = None
    category: str | None = None
    questions: tuple[Question, ...] | None = None
    scoring_rules: ScoringRules | None = None
    is_active: bool | None = None

    @property
    def touches_definition(self) -> bool:
        return self.questions is not None or self.scoring_rules is not None


@dataclass(slots=True)
class StoredAssessment:
    id: str
    organization_id: str
    created_by: str
    definition: CustomAssessmentDefinition
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------- Progress analytics ----------


@dataclass(frozen=True, slots=True)
class TimedScore:
    timestamp: datetime | date
    value: float


@dataclass(frozen=True, slots=True)
class DateRange:
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True, slots=True)
class DailyValue:
    date: str  # YYYY-MM-DD (UTC)
    value: float


@dataclass(frozen=True, slots=True)
class DailyActivity:
    date: str
    count_a: float
    count_b: float


@dataclass(frozen=True, slots=True)
class ChartPoint:
    date: str
    value: float


@dataclass(frozen=True, slots=True)
class AssessmentTrend:
    assessment_type: str
    data: tuple[ChartPoint, ...]
    current_score: float | None
    trend: Trend


@dataclass(frozen=True, slots=True)
class SessionActivity:
    date: str
    session_count: int
    tasks_completed: int


@dataclass(slots=True)
class ProgressOverview:
    trends: dict[str, AssessmentTrend] = field(default_factory=dict)
    sessions: int = 0
    tasks_completed: int = 0
