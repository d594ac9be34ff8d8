from __future__ import annotations

from typing import Any

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator, TypeEngine


class TagList(TypeDecorator[list[str]]):
    """Ordered list of tag strings in a native JSON column (JSONB on PostgreSQL).

    Domain code only ever sees ``list[str]``; ``NULL`` and empty values load as ``[]``.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value: Any, dialect: Dialect) -> list[str]:
        return [str(tag) for tag in (value or [])]

    def process_result_value(self, value: Any, dialect: Dialect) -> list[str]:
        if not value or not isinstance(value, list):
            return []
        return [str(tag) for tag in value]
