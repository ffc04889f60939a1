"""
UserDesk - Listing Pipeline Interpreters

Executes a stage list produced by query_pipeline.build_pipeline().

    SqlAlchemyStore - runs against an ORM model; count and page are issued on
                      the same session from one shared filtered statement.
    MemoryStore     - runs against an in-memory list of mappings (natural
                      order = list order).
"""
import logging
from typing import Any, List, Mapping, Sequence, Tuple

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .query_pipeline import (
    MatchStage, PaginateStage, ProjectStage, QueryExecutionError, SortStage, Stage,
)

logger = logging.getLogger("userdesk.query")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlAlchemyStore:
    """Pipeline interpreter over a SQLAlchemy ORM model."""

    def __init__(self, db: Session, model):
        self.db = db
        self.model = model

    def _column(self, attr: str):
        return getattr(self.model, attr)

    def _where(self, stage: MatchStage) -> list:
        conditions = [self._column(c.field) == c.value for c in stage.equals]
        if stage.any_of:
            conditions.append(or_(*[
                self._column(c.field).ilike(f"%{_escape_like(c.term)}%", escape="\\")
                for c in stage.any_of
            ]))
        return conditions

    def run(self, stages: Sequence[Stage]) -> Tuple[List[Any], int]:
        filtered = select(self.model)
        page_stmt = None
        count_stmt = None
        derived = {}
        order_by = []
        natural = self.model.__mapper__.primary_key[0]

        for stage in stages:
            if isinstance(stage, MatchStage):
                filtered = filtered.where(*self._where(stage))
            elif isinstance(stage, ProjectStage):
                derived[stage.alias] = func.lower(cast(self._column(stage.source), String)).label(stage.alias)
            elif isinstance(stage, SortStage):
                if stage.key is not None:
                    expr = derived[stage.key] if stage.derived else self._column(stage.key)
                    order_by.append(expr.desc() if stage.descending else expr.asc())
                order_by.append(natural.asc())
            elif isinstance(stage, PaginateStage):
                count_stmt = select(func.count()).select_from(filtered.subquery())
                page_stmt = (
                    filtered.add_columns(*derived.values())
                    .order_by(*order_by)
                    .offset(stage.skip)
                    .limit(stage.limit)
                )

        if page_stmt is None:
            raise ValueError("Pipeline has no PaginateStage")

        try:
            total_count = self.db.execute(count_stmt).scalar_one()
            rows = self.db.execute(page_stmt).all()
        except (SQLAlchemyError, OverflowError) as exc:
            logger.error("Listing query on %s failed: %s", self.model.__tablename__, exc)
            raise QueryExecutionError(str(exc)) from exc

        return [row[0] for row in rows], int(total_count)


class MemoryStore:
    """Pipeline interpreter over a list of mappings. Records are never modified."""

    def __init__(self, records: Sequence[Mapping[str, Any]]):
        self.records = list(records)

    @staticmethod
    def _matches(record: Mapping[str, Any], stage: MatchStage) -> bool:
        for cond in stage.equals:
            if record.get(cond.field) != cond.value:
                return False
        if stage.any_of:
            for cond in stage.any_of:
                value = record.get(cond.field)
                if value is not None and cond.term.lower() in str(value).lower():
                    return True
            return False
        return True

    @staticmethod
    def _sort_value(value: Any):
        # Missing values sort before present ones
        return (value is not None, value if value is not None else 0)

    def run(self, stages: Sequence[Stage]) -> Tuple[List[Any], int]:
        snapshot = list(self.records)
        rows = [(record, {}) for record in snapshot]

        for stage in stages:
            if isinstance(stage, MatchStage):
                rows = [(record, extra) for record, extra in rows if self._matches(record, stage)]
            elif isinstance(stage, ProjectStage):
                for record, extra in rows:
                    value = record.get(stage.source)
                    extra[stage.alias] = str(value).lower() if value is not None else None
            elif isinstance(stage, SortStage):
                if stage.key is None:
                    continue
                if stage.derived:
                    key = lambda row, k=stage.key: self._sort_value(row[1].get(k))
                else:
                    key = lambda row, k=stage.key: self._sort_value(row[0].get(k))
                # sorted() is stable under reverse=True, so list order stays the tie-breaker
                rows = sorted(rows, key=key, reverse=stage.descending)
            elif isinstance(stage, PaginateStage):
                total_count = len(rows)
                page = rows[stage.skip:stage.skip + stage.limit]
                return [record for record, _ in page], total_count

        raise ValueError("Pipeline has no PaginateStage")
