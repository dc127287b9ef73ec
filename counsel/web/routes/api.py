from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from counsel.application import api as app_api
from counsel.infrastructure.config import get_settings
from counsel.infrastructure.exceptions import (
    AssessmentDefinitionError,
    BusinessLogicError,
    CounselError,
    DatabaseError,
    ForbiddenError,
    MultipleValidationError,
    NotFoundError,
    ValidationError,
)
from counsel.infrastructure.logging import clear_context
from counsel.web.dependencies import get_caller_id, get_db_session
from counsel.web.schemas import (
    AssessmentDetail,
    AssessmentListItem,
    AssessmentTrendResponse,
    ErrorResponse,
    ProgressOverviewResponse,
    SessionActivityItem,
)

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)

STATUS_BY_ERROR: list[tuple[type[CounselError], int]] = [
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, 422),
    (MultipleValidationError, 422),
    (AssessmentDefinitionError, status.HTTP_400_BAD_REQUEST),
    (BusinessLogicError, status.HTTP_409_CONFLICT),
    (DatabaseError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def _http_error(exc: CounselError) -> HTTPException:
    status_code = next(
        (code for error_type, code in STATUS_BY_ERROR if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    detail = ErrorResponse(
        error=type(exc).__name__,
        message=exc.user_message,
        details={k: v for k, v in exc.details.items() if k != "traceback"},
    )
    return HTTPException(status_code=status_code, detail=detail.model_dump(mode="json"))


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


# ---------- Assessment library ----------


@router.get("/assessments", response_model=list[AssessmentListItem])
def list_assessments(
    assessment_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db_session),
    caller_id: str = Depends(get_caller_id),
) -> list[AssessmentListItem]:
    try:
        df = app_api.list_assessment_library(db, caller_id, assessment_type=assessment_type)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except CounselError as exc:
        raise _http_error(exc) from exc
    finally:
        clear_context()

    return [
        AssessmentListItem(
            id=row["ID"],
            name=row["Name"],
            type=row["Type"],
            category=row["Category"],
            question_count=int(row["Questions"]),
            is_active=bool(row["Active"]),
            created_by=row["CreatedBy"],
            created_at=row["CreatedAt"],
        )
        for row in df.to_dict(orient="records")
    ]


@router.post("/assessments", response_model=AssessmentDetail, status_code=status.HTTP_201_CREATED)
def create_assessment(
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db_session),
    caller_id: str = Depends(get_caller_id),
) -> AssessmentDetail:
    try:
        stored = app_api.create_custom_assessment(db, caller_id, payload)
        db.commit()
    except CounselError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        clear_context()

    return AssessmentDetail.from_stored(stored)


@router.get("/assessments/{assessment_id}", response_model=AssessmentDetail)
def get_assessment(
    assessment_id: str,
    db: Session = Depends(get_db_session),
    caller_id: str = Depends(get_caller_id),
) -> AssessmentDetail:
    try:
        stored = app_api.get_custom_assessment(db, caller_id, assessment_id)
    except CounselError as exc:
        raise _http_error(exc) from exc
    return AssessmentDetail.from_stored(stored)


@router.patch("/assessments/{assessment_id}", response_model=AssessmentDetail)
def update_assessment(
    assessment_id: str,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db_session),
    caller_id: str = Depends(get_caller_id),
) -> AssessmentDetail:
    try:
        stored = app_api.update_custom_assessment(db, caller_id, assessment_id, payload)
        db.commit()
    except CounselError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        clear_context()

    return AssessmentDetail.from_stored(stored)


@router.delete("/assessments/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assessment(
    assessment_id: str,
    db: Session = Depends(get_db_session),
    caller_id: str = Depends(get_caller_id),
) -> Response:
    try:
        app_api.delete_custom_assessment(db, caller_id, assessment_id)
        db.commit()
    except CounselError as exc:
        db.rollback()
        raise _http_error(exc) from exc
    except Exception:
        db.rollback()
        raise
    finally:
        clear_context()

    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Member progress ----------


@router.get(
    "/members/{member_id}/progress/trends/{assessment_key}",
    response_model=AssessmentTrendResponse,
)
def get_assessment_trend(
    member_id: str,
    assessment_key: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db_session),
    caller_id: str = Depends(get_caller_id),
) -> AssessmentTrendResponse:
    try:
        trend = app_api.get_assessment_trend(db, caller_id, member_id, assessment_key, start, end)
    except CounselError as exc:
        raise _http_error(exc) from exc
    finally:
        clear_context()
    return AssessmentTrendResponse.from_domain(trend)


@router.get("/members/{member_id}/progress/activity", response_model=list[SessionActivityItem])
def get_session_activity(
    member_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db_session),
    caller_id: str = Depends(get_caller_id),
) -> list[SessionActivityItem]:
    try:
        activity = app_api.get_session_activity(db, caller_id, member_id, start, end)
    except CounselError as exc:
        raise _http_error(exc) from exc
    finally:
        clear_context()
    return [
        SessionActivityItem(
            date=row.date, session_count=row.session_count, tasks_completed=row.tasks_completed
        )
        for row in activity
    ]


@router.get("/members/{member_id}/progress/overview", response_model=ProgressOverviewResponse)
def get_progress_overview(
    member_id: str,
    db: Session = Depends(get_db_session),
    caller_id: str = Depends(get_caller_id),
) -> ProgressOverviewResponse:
    try:
        overview = app_api.get_progress_overview(db, caller_id, member_id)
    except CounselError as exc:
        raise _http_error(exc) from exc
    finally:
        clear_context()
    logger.debug(
        "Served overview for member %s over %d days",
        member_id,
        get_settings().app.progress_window_days,
    )
    return ProgressOverviewResponse.from_domain(overview)
