# counsel/infrastructure/repositories_activity.py
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..domain.models import DateRange, TimedScore
from .logging import log_database_operation as log_op
from .models import AssignedAssessmentORM, CounselingSessionORM, MemberTaskORM

COMPLETED = "completed"


def _within(column: Any, date_range: DateRange) -> list[Any]:
    filters = []
    if date_range.start is not None:
        filters.append(column >= date_range.start)
    if date_range.end is not None:
        filters.append(column <= date_range.end)
    return filters


class ActivityRepo:
    """Read-only access to the dated records behind the progress charts."""

    def __init__(self, session: Session):
        self.s = session

    @log_op("activity.dated_scores")
    def fetch_dated_scores(
        self, subject_id: str, category: str | None, date_range: DateRange
    ) -> list[TimedScore]:
        """Scores of completed assessments for a member, oldest first."""
        q = self.s.query(AssignedAssessmentORM.completed_at, AssignedAssessmentORM.score).filter(
            AssignedAssessmentORM.member_id == subject_id,
            AssignedAssessmentORM.status == COMPLETED,
            AssignedAssessmentORM.score.isnot(None),
            AssignedAssessmentORM.completed_at.isnot(None),
            *_within(AssignedAssessmentORM.completed_at, date_range),
        )
        if category is not None:
            q = q.filter(AssignedAssessmentORM.assessment_id == category)

        rows = q.order_by(AssignedAssessmentORM.completed_at.asc()).all()
        return [TimedScore(timestamp=completed_at, value=float(score)) for completed_at, score in rows]

    @log_op("activity.session_starts")
    def fetch_session_starts(self, member_id: str, date_range: DateRange) -> list[TimedScore]:
        rows = (
            self.s.query(CounselingSessionORM.created_at)
            .filter(
                CounselingSessionORM.user_id == member_id,
                *_within(CounselingSessionORM.created_at, date_range),
            )
            .order_by(CounselingSessionORM.created_at.asc())
            .all()
        )
        return [TimedScore(timestamp=created_at, value=1) for (created_at,) in rows]

    @log_op("activity.task_completions")
    def fetch_task_completions(self, member_id: str, date_range: DateRange) -> list[TimedScore]:
        rows = (
            self.s.query(MemberTaskORM.completed_at)
            .filter(
                MemberTaskORM.member_id == member_id,
                MemberTaskORM.completed_at.isnot(None),
                *_within(MemberTaskORM.completed_at, date_range),
            )
            .all()
        )
        return [TimedScore(timestamp=completed_at, value=1) for (completed_at,) in rows]

    @log_op("activity.count_sessions")
    def count_sessions(self, member_id: str) -> int:
        return int(
            self.s.query(CounselingSessionORM)
            .filter(CounselingSessionORM.user_id == member_id)
            .count()
        )

    @log_op("activity.count_completed_tasks")
    def count_completed_tasks(self, member_id: str) -> int:
        return int(
            self.s.query(MemberTaskORM)
            .filter(MemberTaskORM.member_id == member_id, MemberTaskORM.completed_at.isnot(None))
            .count()
        )
