"""Base SQLModel class exposing `Model.objects` query helpers."""

from __future__ import annotations

from typing import Any, ClassVar

from sqlmodel import SQLModel

from leave_approvals.db.query_manager import ModelManager


class _ObjectsDescriptor:
    def __get__(self, instance: object, owner: type[QueryModel]) -> ModelManager[Any]:
        return ModelManager(owner)


class QueryModel(SQLModel):
    """SQLModel base for tables; `Model.objects.filter_by(...).first(session)`."""

    objects: ClassVar[_ObjectsDescriptor] = _ObjectsDescriptor()
