"""
Pydantic schemas for input validation of custom assessment definitions.

These schemas enforce field-level constraints (types, lengths, bounds) and
sanitize free text. Cross-field rules (option counts, rating scale bounds,
scoring coverage) are checked by the domain validators so that callers get
the specific definition errors rather than generic schema messages.
"""

from __future__ import annotations

import re
from html import unescape
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import (
    AssessmentType,
    CategoryScoring,
    CustomAssessmentDefinition,
    DefinitionPatch,
    InterpretationRange,
    Question,
    QuestionType,
    RatingScale,
    ScoringRules,
)


class BaseValidationSchema(BaseModel):
    """Base schema with common validation utilities."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=True,
    )

    @field_validator("*", mode="before")
    def sanitize_strings(cls, v):
        """Sanitize string inputs to prevent XSS and injection attacks."""
        if isinstance(v, str):
            cleaned = unescape(v.strip())
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"<[^>]+>", "", cleaned)
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


class RatingScaleInput(BaseValidationSchema):
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=1)
    labels: dict[int, str] | None = None

    def to_domain(self) -> RatingScale:
        return RatingScale(min=self.min, max=self.max, labels=dict(self.labels) if self.labels else None)


class QuestionInput(BaseValidationSchema):
    """A single assessment item."""

    id: str = Field(..., min_length=1, max_length=100)
    text: str = Field(..., min_length=1, max_length=500)
    type: QuestionType
    required: bool
    options: list[str] | None = Field(None, max_length=20)
    scale: RatingScaleInput | None = None
    weight: float = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=50)

    @field_validator("options")
    def validate_option_length(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        for option in value:
            if len(option) > 200:
                raise ValueError("Options must be at most 200 characters")
        return value

    def to_domain(self) -> Question:
        return Question(
            id=self.id,
            text=self.text,
            type=QuestionType(self.type),
            required=self.required,
            category=self.category,
            weight=self.weight,
            options=tuple(self.options) if self.options is not None else None,
            scale=self.scale.to_domain() if self.scale is not None else None,
        )


class InterpretationRangeInput(BaseValidationSchema):
    max_percent: float = Field(..., ge=0, le=100)
    label: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=500)

    def to_domain(self) -> InterpretationRange:
        return InterpretationRange(
            max_percent=self.max_percent, label=self.label, description=self.description
        )


class CategoryScoringInput(BaseValidationSchema):
    name: str = Field(..., min_length=1, max_length=50)
    interpretations: list[InterpretationRangeInput] = Field(..., max_length=10)

    def to_domain(self) -> CategoryScoring:
        return CategoryScoring(
            name=self.name,
            interpretations=tuple(r.to_domain() for r in self.interpretations),
        )


class ScoringRulesInput(BaseValidationSchema):
    categories: list[CategoryScoringInput] = Field(default_factory=list, max_length=10)
    overall_interpretations: list[InterpretationRangeInput] = Field(
        default_factory=list, max_length=10
    )

    def to_domain(self) -> ScoringRules:
        return ScoringRules(
            categories=tuple(c.to_domain() for c in self.categories),
            overall_interpretations=tuple(r.to_domain() for r in self.overall_interpretations),
        )


class CustomAssessmentCreateInput(BaseValidationSchema):
    """Validation schema for creating a custom assessment or questionnaire."""

    name: str = Field(..., min_length=3, max_length=100)
    type: AssessmentType
    category: str | None = Field(None, max_length=50)
    questions: list[QuestionInput] = Field(..., max_length=100)
    scoring_rules: ScoringRulesInput | None = None

    def to_domain(self) -> CustomAssessmentDefinition:
        return CustomAssessmentDefinition(
            name=self.name,
            type=AssessmentType(self.type),
            category=self.category or None,
            questions=tuple(q.to_domain() for q in self.questions),
            scoring_rules=self.scoring_rules.to_domain() if self.scoring_rules else None,
        )


class CustomAssessmentUpdateInput(BaseValidationSchema):
    """Partial update; omitted fields keep their stored values."""

    name: str | None = Field(None, min_length=3, max_length=100)
    category: str | None = Field(None, max_length=50)
    questions: list[QuestionInput] | None = Field(None, max_length=100)
    scoring_rules: ScoringRulesInput | None = None
    is_active: bool | None = None

    def to_domain(self) -> DefinitionPatch:
        return DefinitionPatch(
            name=self.name,
            category=self.category,
            questions=(
                tuple(q.to_domain() for q in self.questions) if self.questions is not None else None
            ),
            scoring_rules=self.scoring_rules.to_domain() if self.scoring_rules else None,
            is_active=self.is_active,
        )


# ---------- Serialization of validated definitions ----------


def questions_to_payload(questions: tuple[Question, ...]) -> list[dict[str, Any]]:
    payload: list[dict[str, Any]] = []
    for q in questions:
        item: dict[str, Any] = {
            "id": q.id,
            "text": q.text,
            "type": q.type.value,
            "required": q.required,
            "weight": q.weight,
            "category": q.category,
        }
        if q.options is not None:
            item["options"] = list(q.options)
        if q.scale is not None:
            item["scale"] = {"min": q.scale.min, "max": q.scale.max, "labels": q.scale.labels}
        payload.append(item)
    return payload


def scoring_rules_to_payload(rules: ScoringRules | None) -> dict[str, Any] | None:
    if rules is None:
        return None

    def ranges(items: tuple[InterpretationRange, ...]) -> list[dict[str, Any]]:
        return [
            {"max_percent": r.max_percent, "label": r.label, "description": r.description}
            for r in items
        ]

    return {
        "categories": [
            {"name": c.name, "interpretations": ranges(c.interpretations)}
            for c in rules.categories
        ],
        "overall_interpretations": ranges(rules.overall_interpretations),
    }


def questions_from_payload(payload: list[dict[str, Any]]) -> tuple[Question, ...]:
    return tuple(QuestionInput.model_validate(item).to_domain() for item in payload or [])


def scoring_rules_from_payload(payload: dict[str, Any] | None) -> ScoringRules | None:
    if not payload:
        return None
    return ScoringRulesInput.model_validate(payload).to_domain()


# ---------- Generic validation helpers ----------


class ValidationErrorDetail(BaseModel):
    """Schema for validation error details."""

    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    """Schema for validation responses."""

    success: bool
    errors: list[ValidationErrorDetail] = []
    data: BaseModel | None = None


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Centralized validation function that returns structured validation results.

    Example:
        >>> result = validate_input(CustomAssessmentCreateInput, payload)
        >>> if result.success:
        ...     definition = result.data.to_domain()
        >>> else:
        ...     for error in result.errors:
        ...         print(f"Error in {error.field}: {error.message}")
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated)
    except Exception as e:
        errors = []
        if hasattr(e, "errors"):  # Pydantic validation errors
            for error in e.errors():
                errors.append(
                    ValidationErrorDetail(
                        field=".".join(str(x) for x in error["loc"]) or "general",
                        message=error["msg"],
                        value=error.get("input"),
                    )
                )
        else:
            errors.append(ValidationErrorDetail(field="general", message=str(e)))

        return ValidationResponse(success=False, errors=errors)
