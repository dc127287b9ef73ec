# counsel/infrastructure/repositories_base.py
from __future__ import annotations

import builtins
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import NotFoundError, handle_database_error

T = TypeVar("T")  # ORM model type


class BaseRepository(Generic[T]):
    """
    Lightweight generic repository with common CRUD + query helpers.
    - Write failures are translated into DatabaseError subclasses.
    - Entity repos add domain mapping and logging decorators on top.
    """

    model: type[T]  # must be set by subclasses
    resource_name: str = "Record"

    def __init__(self, session: Session):
        if not hasattr(self, "model") or self.model is None:
            raise ValueError(f"{self.__class__.__name__}.model must be set to an ORM class.")
        self.s = session

    # ---------- Read ----------
    def get(self, id_: Any) -> T | None:
        return self.s.get(self.model, id_)

    def get_by_id_required(self, id_: Any) -> T:
        obj = self.get(id_)
        if obj is None:
            raise NotFoundError(
                f"{self.resource_name} not found", resource=self.model.__name__, resource_id=id_
            )
        return obj

    def list(
        self,
        *filters: Any,
        order_by: Iterable[Any] | None = None,
        limit: int | None = None,
    ) -> builtins.list[T]:
        q = self.s.query(self.model)
        for f in filters:
            q = q.filter(f)
        if order_by:
            for ob in order_by:
                q = q.order_by(ob)
        if limit:
            q = q.limit(limit)
        return list(q.all())

    # ---------- Write ----------
    def create(self, **fields: Any) -> T:
        try:
            obj = self.model(**fields)
            self.s.add(obj)
            self.s.flush()  # get PKs without committing
            return obj
        except SQLAlchemyError as e:
            raise handle_database_error(e, f"{self.model.__name__}.create") from e

    def update(self, obj: T, **fields: Any) -> T:
        try:
            for k, v in fields.items():
                setattr(obj, k, v)
            self.s.flush()
            return obj
        except SQLAlchemyError as e:
            raise handle_database_error(e, f"{self.model.__name__}.update") from e

    def delete(self, obj: T) -> None:
        try:
            self.s.delete(obj)
            self.s.flush()
        except SQLAlchemyError as e:
            raise handle_database_error(e, f"{self.model.__name__}.delete") from e
