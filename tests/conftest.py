"""
Shared fixtures: in-memory stores for service tests, an in-memory SQLite
database for repository and API tests, and definition builders.
"""

import os

os.environ.setdefault("APP_ENVIRONMENT", "testing")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from counsel.domain.models import (  # noqa: E402
    AssessmentType,
    CategoryScoring,
    CustomAssessmentDefinition,
    InterpretationRange,
    Question,
    QuestionType,
    RatingScale,
    ScoringRules,
    StoredAssessment,
)
from counsel.infrastructure.exceptions import ForbiddenError, NotFoundError  # noqa: E402
from counsel.infrastructure.models import (  # noqa: E402
    Base,
    CounselorAssignmentORM,
    UserORM,
)

# ---------- Definition builders ----------

THREE_BANDS = (
    InterpretationRange(33, "Low", "Few symptoms"),
    InterpretationRange(66, "Moderate", "Some symptoms"),
    InterpretationRange(100, "High", "Many symptoms"),
)


def rating_question(qid="q1", category="mood", text=None, scale=None):
    return Question(
        id=qid,
        text=text or f"Question {qid}",
        type=QuestionType.RATING_SCALE,
        required=True,
        category=category,
        scale=scale or RatingScale(min=0, max=4),
    )


def scored_definition(categories=("mood", "sleep"), name="Wellbeing check"):
    questions = tuple(
        rating_question(qid=f"q{i}", category=category) for i, category in enumerate(categories, 1)
    )
    rules = ScoringRules(
        categories=tuple(CategoryScoring(c, THREE_BANDS) for c in sorted(set(categories))),
        overall_interpretations=THREE_BANDS,
    )
    return CustomAssessmentDefinition(
        name=name,
        type=AssessmentType.CUSTOM_ASSESSMENT,
        questions=questions,
        scoring_rules=rules,
    )


def ranges_payload():
    return [
        {"max_percent": 33, "label": "Low", "description": "Few symptoms"},
        {"max_percent": 66, "label": "Moderate", "description": "Some symptoms"},
        {"max_percent": 100, "label": "High", "description": "Many symptoms"},
    ]


def scored_payload(name="Wellbeing check"):
    return {
        "name": name,
        "type": "custom_assessment",
        "category": "wellbeing",
        "questions": [
            {
                "id": "q1",
                "text": "How has your mood been?",
                "type": "rating_scale",
                "required": True,
                "scale": {"min": 0, "max": 4, "labels": {"0": "Never", "4": "Always"}},
                "weight": 1,
                "category": "mood",
            },
            {
                "id": "q2",
                "text": "Which describes your sleep?",
                "type": "multiple_choice_single",
                "required": False,
                "options": ["Restful", "Broken"],
                "weight": 2,
                "category": "sleep",
            },
        ],
        "scoring_rules": {
            "categories": [
                {"name": "mood", "interpretations": ranges_payload()},
                {"name": "sleep", "interpretations": ranges_payload()},
            ],
            "overall_interpretations": ranges_payload(),
        },
    }


def questionnaire_payload(name="Intake form"):
    return {
        "name": name,
        "type": "custom_questionnaire",
        "questions": [
            {
                "id": "q1",
                "text": "What brings you here?",
                "type": "text_long",
                "required": True,
                "weight": 0,
                "category": "intake",
            }
        ],
    }


@pytest.fixture
def scored_assessment_payload():
    return scored_payload()


@pytest.fixture
def questionnaire_assessment_payload():
    return questionnaire_payload()


# ---------- In-memory collaborators ----------


class InMemoryStore:
    """Dict-backed assessment store recording every write."""

    def __init__(self):
        self.records: dict[str, StoredAssessment] = {}
        self.assignments: dict[str, int] = {}
        self.writes: list[str] = []
        self._next = 0

    def add(self, definition, organization_id="org-1", created_by="counselor-1"):
        return self.save_definition(definition, organization_id, created_by)

    def get_assessment(self, assessment_id):
        if assessment_id not in self.records:
            raise NotFoundError("Assessment not found", resource="Assessment", resource_id=assessment_id)
        return self.records[assessment_id]

    def fetch_questions_for_assessment(self, assessment_id):
        return list(self.get_assessment(assessment_id).definition.questions)

    def list_for_organization(self, organization_id, assessment_type=None):
        return [
            r
            for r in self.records.values()
            if r.organization_id == organization_id
            and (assessment_type is None or r.definition.type == assessment_type)
        ]

    def save_definition(self, definition, organization_id, created_by):
        self._next += 1
        stored = StoredAssessment(
            id=f"a{self._next}",
            organization_id=organization_id,
            created_by=created_by,
            definition=definition,
            created_at=datetime(2024, 1, 1),
        )
        self.records[stored.id] = stored
        self.writes.append("save")
        return stored

    def update_definition(self, assessment_id, definition, is_active=None):
        stored = self.get_assessment(assessment_id)
        stored.definition = definition
        if is_active is not None:
            stored.is_active = is_active
        self.writes.append("update")
        return stored

    def count_assignments(self, assessment_id):
        return self.assignments.get(assessment_id, 0)

    def delete_assessment(self, assessment_id):
        del self.records[assessment_id]
        self.writes.append("delete")


class StaticPermissions:
    """Counselors mapped to organizations; members mapped to their counselors."""

    def __init__(self, organizations=None, caseloads=None):
        self.organizations = organizations or {"counselor-1": "org-1", "counselor-2": "org-1"}
        self.caseloads = caseloads or {"counselor-1": {"member-1"}}
        self.checks: list[str] = []

    def organization_for_counselor(self, caller_id):
        self.checks.append("organization")
        if caller_id not in self.organizations:
            raise ForbiddenError("Only counselors can manage assessments", operation="manage")
        return self.organizations[caller_id]

    def assert_caller_may_manage(self, owner_organization_id, caller_id):
        self.checks.append("manage")
        if self.organizations.get(caller_id) != owner_organization_id:
            raise ForbiddenError(
                "Cannot access assessments from other organizations", operation="manage"
            )

    def verify_counselor_access(self, counselor_id, member_id):
        self.checks.append("member")
        if member_id not in self.caseloads.get(counselor_id, set()):
            raise NotFoundError(
                "Member not found or access denied", resource="member", resource_id=member_id
            )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def permissions():
    return StaticPermissions()


# ---------- SQLite ----------


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads (TestClient runs in a worker thread)."""
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded_people(session_factory):
    """
    Two counselors in org-1, one in org-2, one counselor without an
    organization and one member assigned to counselor-1.
    """
    with session_factory() as session:
        session.add_all(
            [
                UserORM(id="counselor-1", email="c1@example.org", organization_id="org-1", is_counselor=True),
                UserORM(id="counselor-2", email="c2@example.org", organization_id="org-1", is_counselor=True),
                UserORM(id="counselor-3", email="c3@example.org", organization_id="org-2", is_counselor=True),
                UserORM(id="counselor-4", email="c4@example.org", organization_id=None, is_counselor=True),
                UserORM(id="member-1", email="m1@example.org", organization_id="org-1", is_counselor=False),
                CounselorAssignmentORM(counselor_id="counselor-1", member_id="member-1"),
                CounselorAssignmentORM(
                    counselor_id="counselor-2", member_id="member-1", status="inactive"
                ),
            ]
        )
        session.commit()
    return session_factory
