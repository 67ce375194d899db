"""Translate ``where``/``orderBy`` query objects into Django ORM expressions.

A ``where`` object maps public field names to a condition object holding a
single operator, for example ``{"title": {"contains": "django"}}``. Each
operator is a member of :class:`FilterOperator` and knows its ORM lookup.
"""

import base64
import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


class FilterOperator(Enum):
    """Supported comparison operators, in match-priority order."""

    EQUALS = ("equals", "exact")
    IN = ("in", "in")
    NOT_IN = ("notIn", "in")
    LT = ("lt", "lt")
    LTE = ("lte", "lte")
    GT = ("gt", "gt")
    GTE = ("gte", "gte")
    CONTAINS = ("contains", "icontains")
    STARTS_WITH = ("startsWith", "istartswith")
    ENDS_WITH = ("endsWith", "iendswith")
    LT_DATE = ("ltDate", "lt")
    LTE_DATE = ("lteDate", "lte")
    GT_DATE = ("gtDate", "gt")
    GTE_DATE = ("gteDate", "gte")

    def __init__(self, key: str, lookup: str):
        self.key = key
        self.lookup = lookup

    @property
    def negated(self) -> bool:
        return self is FilterOperator.NOT_IN

    @property
    def takes_list(self) -> bool:
        return self in (FilterOperator.IN, FilterOperator.NOT_IN)

    @property
    def takes_date(self) -> bool:
        return self.key.endswith("Date")

    @classmethod
    def from_key(cls, key: str) -> "FilterOperator":
        for operator in cls:
            if operator.key == key:
                return operator
        raise ValueError(f"Unknown filter operator: {key}")


def _parse_date_operand(value: Any):
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO date string, got {value!r}")
    parsed = parse_date(value) or parse_datetime(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    if isinstance(parsed, datetime) and timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


@dataclass(frozen=True)
class FilterCondition:
    """One ``field <operator> value`` predicate bound to an ORM field path."""

    field: str
    operator: FilterOperator
    value: Any

    def to_q(self) -> Q:
        value = self.value
        if self.operator.takes_date:
            value = _parse_date_operand(value)
        q = Q(**{f"{self.field}__{self.operator.lookup}": value})
        return ~q if self.operator.negated else q


def _pick_condition(field: str, condition: Mapping[str, Any]) -> FilterCondition | None:
    """Return the first operator present on ``condition`` in priority order.

    Presence is by key, so ``{"equals": None}`` filters on ``IS NULL``.
    """
    for operator in FilterOperator:
        if operator.key not in condition:
            continue
        value = condition[operator.key]
        if operator.takes_list and (not isinstance(value, (list, tuple)) or not value):
            return None
        return FilterCondition(field, operator, value)
    return None


def build_where_condition(where: Mapping[str, Any] | None, field_map: Mapping[str, str]) -> Q:
    """Combine per-field conditions into a single ``Q`` (AND)."""

    q = Q()
    if not where:
        return q

    for name, condition in where.items():
        if name not in field_map:
            raise ValueError(f"Filtering by {name!r} is not supported")
        if not condition:
            continue
        parsed = _pick_condition(field_map[name], condition)
        if parsed is not None:
            q &= parsed.to_q()
    return q


def build_order_by(order_by: Mapping[str, str] | None, field_map: Mapping[str, str]) -> list[str]:
    """Map ``{"publishedAt": "desc"}`` to ``["-published_at"]``; newest first by default."""

    if not order_by:
        return ["-created_at"]

    ordering = []
    for name, direction in order_by.items():
        if name not in field_map:
            raise ValueError(f"Ordering by {name!r} is not supported")
        prefix = "-" if str(direction).lower() == "desc" else ""
        ordering.append(f"{prefix}{field_map[name]}")
    return ordering


def query_fingerprint(query: Mapping[str, Any]) -> str:
    """Deterministic base64 fingerprint of a query object (keys sorted)."""

    encoded = json.dumps(query, sort_keys=True, separators=(",", ":"), default=str)
    return base64.b64encode(encoded.encode()).decode()


__all__ = [
    "FilterOperator",
    "FilterCondition",
    "build_where_condition",
    "build_order_by",
    "query_fingerprint",
]
