# counsel/infrastructure/access.py
from __future__ import annotations

from sqlalchemy.orm import Session

from .exceptions import ForbiddenError, NotFoundError
from .logging import get_logger
from .models import CounselorAssignmentORM, UserORM

logger = get_logger(__name__)

ACTIVE = "active"


class SqlPermissionChecker:
    """Counselor role, organization ownership and member assignment checks."""

    def __init__(self, session: Session):
        self.s = session

    def _counselor(self, caller_id: str) -> UserORM:
        user = self.s.get(UserORM, caller_id)
        if user is None or not user.is_counselor:
            logger.warning("Caller %s is not a counselor", caller_id)
            raise ForbiddenError("Only counselors can manage assessments", operation="manage")
        return user

    def organization_for_counselor(self, caller_id: str) -> str:
        user = self._counselor(caller_id)
        if not user.organization_id:
            raise ForbiddenError("User must belong to an organization", operation="manage")
        return user.organization_id

    def assert_caller_may_manage(self, owner_organization_id: str, caller_id: str) -> None:
        user = self._counselor(caller_id)
        if user.organization_id != owner_organization_id:
            logger.warning(
                "Caller %s denied access to organization %s", caller_id, owner_organization_id
            )
            raise ForbiddenError(
                "Cannot access assessments from other organizations", operation="manage"
            )

    def verify_counselor_access(self, counselor_id: str, member_id: str) -> None:
        assignment = (
            self.s.query(CounselorAssignmentORM.id)
            .filter(
                CounselorAssignmentORM.counselor_id == counselor_id,
                CounselorAssignmentORM.member_id == member_id,
                CounselorAssignmentORM.status == ACTIVE,
            )
            .first()
        )
        if assignment is None:
            raise NotFoundError(
                "Member not found or access denied", resource="member", resource_id=member_id
            )
