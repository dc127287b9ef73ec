from __future__ import annotations

from collections.abc import Generator

from fastapi import Header, HTTPException, Request, status
from sqlalchemy.orm import Session, sessionmaker


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Factory built once by the application lifespan."""
    return request.app.state.session_factory


def get_db_session(request: Request) -> Generator[Session, None, None]:
    session = get_session_factory(request)()
    try:
        yield session
    finally:
        session.close()


def get_caller_id(x_user_id: str | None = Header(default=None)) -> str:
    """Authenticated user id, set by the gateway in front of this service."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return x_user_id
