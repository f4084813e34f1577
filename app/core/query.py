"""
Filtered list / count query construction shared by every resource.

A filter is a list of tagged predicates over one model. Predicates whose
value is missing are ignored, the rest are AND-ed together. Skipping is done
by locating the id of the first row of the window with a one-row subquery and
re-applying the predicates from there, instead of asking the database to scan
and discard ``skip`` rows of the outer query:

    SELECT * FROM t
    WHERE t.id >= (SELECT t.id FROM t WHERE <p> ORDER BY t.id LIMIT 1 OFFSET :skip)
      AND <p>
    ORDER BY t.id
    LIMIT :take

Every literal value is a bound parameter; only column names and operators
come from code.
"""
from dataclasses import dataclass
from typing import Any, Optional, Sequence
from pydantic import BaseModel, Field
from sqlalchemy import Select, func, inspect, select
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.elements import ColumnElement


class PageFilter(BaseModel):
    """Window of a ``/.count`` or ``/.list`` query."""
    skip: Optional[int] = Field(None, description="Rows to skip; <= 0 means none")
    take: Optional[int] = Field(None, ge=0, description="Maximum rows to return")


class SearchFilter(PageFilter):
    """Query-string filter of resources with a name and a disabled flag."""
    name: Optional[str] = Field(None, description="Substring of the name")
    disabled: Optional[bool] = Field(None, description="Match the disabled flag")


@dataclass(frozen=True)
class Contains:
    """``column LIKE '%' || :value || '%'`` with LIKE wildcards in value escaped."""
    column: InstrumentedAttribute
    value: Optional[str]

    def present(self) -> bool:
        return bool(self.value)

    def clause(self) -> ColumnElement[bool]:
        return self.column.contains(self.value, autoescape=True)


@dataclass(frozen=True)
class Equals:
    """``column = :value``."""
    column: InstrumentedAttribute
    value: Any

    def present(self) -> bool:
        return self.value is not None and self.value != ""

    def clause(self) -> ColumnElement[bool]:
        return self.column == self.value


Predicate = Contains | Equals


def _primary_key(model) -> InstrumentedAttribute:
    return getattr(model, inspect(model).primary_key[0].key)


def build_conditions(predicates: Sequence[Predicate]) -> list[ColumnElement[bool]]:
    return [p.clause() for p in predicates if p.present()]


def filtered_select(
    model,
    predicates: Sequence[Predicate],
    skip: Optional[int] = None,
    take: Optional[int] = None,
) -> Select:
    """
    Build the windowed, id-ordered SELECT for ``model``.

    Args:
        model: Mapped class with a single-column integer primary key
        predicates: Tagged predicates; absent ones are dropped
        skip: Matching rows to skip, ``None`` or ``<= 0`` for none
        take: Maximum rows, ``None`` for unbounded

    Returns:
        A ``Select`` of ``model`` rows 1-based ``[skip + 1 .. skip + take]``
        of the matching set. When fewer than ``skip + 1`` rows match the
        anchor subquery is NULL and nothing is returned.
    """
    pk = _primary_key(model)
    conditions = build_conditions(predicates)
    stmt = select(model)
    if skip is not None and skip > 0:
        anchor = (
            select(pk)
            .where(*conditions)
            .order_by(pk)
            .limit(1)
            .offset(skip)
            .scalar_subquery()
        )
        stmt = stmt.where(pk >= anchor)
    stmt = stmt.where(*conditions).order_by(pk)
    if take is not None:
        stmt = stmt.limit(take)
    return stmt


def filtered_count(
    model,
    predicates: Sequence[Predicate],
    skip: Optional[int] = None,
    take: Optional[int] = None,
) -> Select:
    """Number of rows ``filtered_select`` would return for the same arguments."""
    window = filtered_select(model, predicates, skip, take).subquery()
    return select(func.count()).select_from(window)
