"""Small chainable query helpers exposed as `Model.objects`."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlmodel import SQLModel, col, select

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement
    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

ModelT = TypeVar("ModelT", bound=SQLModel)


@dataclass(frozen=True)
class ModelQuery(Generic[ModelT]):
    """Immutable filter chain resolved against an async session."""

    model: type[ModelT]
    clauses: tuple[ColumnElement[bool], ...] = field(default_factory=tuple)

    def filter(self, *clauses: ColumnElement[bool]) -> ModelQuery[ModelT]:
        return ModelQuery(self.model, (*self.clauses, *clauses))

    def filter_by(self, **values: Any) -> ModelQuery[ModelT]:
        clauses = tuple(col(getattr(self.model, key)) == value for key, value in values.items())
        return self.filter(*clauses)

    def _statement(self) -> SelectOfScalar[ModelT]:
        statement = select(self.model)
        for clause in self.clauses:
            statement = statement.where(clause)
        return statement

    async def first(self, session: AsyncSession) -> ModelT | None:
        return (await session.exec(self._statement())).first()

    async def all(self, session: AsyncSession) -> list[ModelT]:
        return list(await session.exec(self._statement()))


class ModelManager(Generic[ModelT]):
    """Entry point for `ModelQuery` chains on one model class."""

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    def all(self) -> ModelQuery[ModelT]:
        return ModelQuery(self.model)

    def filter_by(self, **values: Any) -> ModelQuery[ModelT]:
        return self.all().filter_by(**values)
