"""
Tourbook Backend — List Query Features
=======================================

What:  Translates list-endpoint query strings into a SQLAlchemy SELECT.
How:   Chainable builder, applied in this order by CrudService.get_all():

        QueryFeatures(Tour, params, field_map, filterable)
            .filter()         ?duration=5&price[lt]=500&difficulty=easy
            .sort()           ?sort=price,-ratingsAverage   (default -createdAt)
            .limit_fields()   ?fields=name,price  or  ?fields=-description
            .paginate()       ?page=2&limit=10               (defaults 1 / 100)

Filtering rules:
    - Only fields listed in `filterable` are applied; unknown keys are ignored
    - A field repeated without operator becomes IN: ?duration=5&duration=9
    - Operators: gte, gt, lte, lt, e.g. price[gte]=100&price[lte]=500
    - Values are converted to the column's Python type; a value that does not
      convert (duration=abc) raises ValidationError (400)

Field names in the query string are the camelCase API names; `field_map`
translates them to model attributes.
"""

import operator
import re
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from sqlalchemy import Select, select

from tourbook.exceptions import ValidationError

RESERVED_PARAMS = {"page", "sort", "limit", "fields"}

DEFAULT_SORT = "-createdAt"
DEFAULT_LIMIT = 100
MAX_LIMIT = 100

_FILTER_KEY = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<op>gte|gt|lte|lt)\])?$")

_OPERATORS = {
    "gte": operator.ge,
    "gt": operator.gt,
    "lte": operator.le,
    "lt": operator.lt,
}


def _positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value > 0 else default


class QueryFeatures:
    def __init__(
        self,
        model: Any,
        params: Sequence[Tuple[str, str]],
        field_map: Mapping[str, str],
        filterable: Optional[Iterable[str]] = None,
        statement: Optional[Select] = None,
    ):
        self.model = model
        self.params = list(params)
        self.field_map = dict(field_map)
        self.filterable: Set[str] = set(filterable) if filterable is not None else set(field_map)
        self.statement = statement if statement is not None else select(model)

        self.selected: Optional[Set[str]] = None
        self.excluded: Set[str] = set()
        self.page = 1
        self.limit = DEFAULT_LIMIT

    def _last(self, name: str) -> Optional[str]:
        values = [value for key, value in self.params if key == name]
        return values[-1] if values else None

    def _column(self, api_name: str):
        return getattr(self.model, self.field_map[api_name])

    @staticmethod
    def _convert(column: Any, api_name: str, raw: str) -> Any:
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            return raw
        try:
            if python_type is bool:
                lowered = raw.strip().lower()
                if lowered in ("true", "1"):
                    return True
                if lowered in ("false", "0"):
                    return False
                raise ValueError(raw)
            if python_type is datetime:
                return datetime.fromisoformat(raw)
            return python_type(raw)
        except (TypeError, ValueError):
            raise ValidationError(
                message=f"Invalid value '{raw}' for filter '{api_name}'",
                field=api_name,
            )

    # ── Builder steps ─────────────────────────────────────────────────────

    def filter(self) -> "QueryFeatures":
        grouped: Dict[Tuple[str, Optional[str]], List[str]] = defaultdict(list)
        for key, value in self.params:
            if key in RESERVED_PARAMS:
                continue
            match = _FILTER_KEY.match(key)
            if not match or match["field"] not in self.filterable or match["field"] not in self.field_map:
                continue
            grouped[(match["field"], match["op"])].append(value)

        for (api_name, op), raw_values in grouped.items():
            column = self._column(api_name)
            values = [self._convert(column, api_name, raw) for raw in raw_values]
            if op is None:
                clause = column == values[0] if len(values) == 1 else column.in_(values)
                self.statement = self.statement.where(clause)
            else:
                for value in values:
                    self.statement = self.statement.where(_OPERATORS[op](column, value))
        return self

    def sort(self, default: str = DEFAULT_SORT) -> "QueryFeatures":
        clauses = self._order_clauses(self._last("sort") or default)
        if not clauses:
            clauses = self._order_clauses(default)
        # Stable pages when the sort key has ties
        clauses.append(self.model.id.asc())
        self.statement = self.statement.order_by(*clauses)
        return self

    def _order_clauses(self, raw: str) -> List[Any]:
        clauses = []
        for token in raw.split(","):
            token = token.strip()
            descending = token.startswith("-")
            name = token.lstrip("-")
            if name not in self.field_map:
                continue
            column = self._column(name)
            clauses.append(column.desc() if descending else column.asc())
        return clauses

    def limit_fields(self) -> "QueryFeatures":
        raw = self._last("fields")
        if not raw:
            return self
        tokens = [token.strip() for token in raw.split(",") if token.strip()]
        include = {t for t in tokens if not t.startswith("-") and t in self.field_map}
        exclude = {t[1:] for t in tokens if t.startswith("-") and t[1:] in self.field_map}
        if include:
            self.selected = include | {"id"}
        elif exclude:
            self.excluded = exclude - {"id"}
        return self

    def paginate(self, default_limit: int = DEFAULT_LIMIT, max_limit: int = MAX_LIMIT) -> "QueryFeatures":
        self.page = _positive_int(self._last("page"), 1)
        self.limit = min(_positive_int(self._last("limit"), default_limit), max_limit)
        self.statement = self.statement.offset((self.page - 1) * self.limit).limit(self.limit)
        return self

    # ── Output ────────────────────────────────────────────────────────────

    def project(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Apply ?fields= to one serialized item."""
        if self.selected is not None:
            return {key: value for key, value in item.items() if key in self.selected}
        if self.excluded:
            return {key: value for key, value in item.items() if key not in self.excluded}
        return item
