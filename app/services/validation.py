from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Protocol

from sqlalchemy import column as sa_column
from sqlalchemy import func, select
from sqlalchemy import table as sa_table
from sqlalchemy.orm import Session

from app.services.query.errors import ValidationFailed

_LOG = logging.getLogger("app.validation")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_IMPLICIT_RULES = {"required", "sometimes", "nullable"}
_BOOLEAN_VALUES = (True, False, 0, 1, "0", "1")

DEFAULT_MESSAGES = {
    "required": "The :attribute field is required.",
    "string": "The :attribute field must be a string.",
    "integer": "The :attribute field must be an integer.",
    "numeric": "The :attribute field must be a number.",
    "boolean": "The :attribute field must be true or false.",
    "email": "The :attribute field must be a valid email address.",
    "date": "The :attribute field must be a valid date.",
    "min": "The :attribute field must be at least :min.",
    "max": "The :attribute field must not be greater than :max.",
    "in": "The selected :attribute is invalid.",
    "unique": "The :attribute has already been taken.",
    "exists": "The selected :attribute is invalid.",
}


@dataclass
class RuleSet:
    rules: dict[str, list[Any]] = field(default_factory=dict)
    messages: dict[str, str] = field(default_factory=dict)


class RuleProvider(Protocol):
    def rules_for(self, model: type) -> RuleSet:
        ...


def split_rules(field_rules: Any) -> list[Any]:
    if isinstance(field_rules, str):
        return [rule for rule in field_rules.split("|") if rule]
    return list(field_rules or [])


def normalize_rules(rules: Mapping[str, Any]) -> dict[str, list[Any]]:
    return {name: split_rules(field_rules) for name, field_rules in rules.items()}


def parse_rule(rule: str) -> tuple[str, list[str]]:
    name, _, raw = rule.partition(":")
    params = [param.strip() for param in raw.split(",")] if raw else []
    return name.strip(), params


class ModelRuleProvider:
    """Reads the rule set an entity declares in __rules__ / __messages__."""

    def rules_for(self, model: type) -> RuleSet:
        return RuleSet(
            rules=normalize_rules(getattr(model, "__rules__", {}) or {}),
            messages=dict(getattr(model, "__messages__", {}) or {}),
        )


def _exclude_from_unique(rule: Any, field_name: str, exclude_id: Any) -> Any:
    if not isinstance(rule, str) or not rule.startswith("unique:"):
        return rule
    _, params = parse_rule(rule)
    if not params or not params[0]:
        return rule
    table = params[0]
    column = params[1] if len(params) > 1 and params[1] else field_name
    id_column = params[3] if len(params) > 3 and params[3] else "id"
    return f"unique:{table},{column},{exclude_id},{id_column}"


def update_unique_rules(rules: Mapping[str, Any], exclude_id: Any) -> dict[str, list[Any]]:
    """Copy of rules where every unique rule ignores the row identified by exclude_id."""
    return {
        field_name: [_exclude_from_unique(rule, field_name, exclude_id) for rule in split_rules(field_rules)]
        for field_name, field_rules in rules.items()
    }


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    try:
        Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return False
    return True


def _size(value: Any, numeric: bool) -> Any:
    if numeric and _is_number(value):
        return Decimal(str(value).strip())
    if isinstance(value, (str, list, tuple, dict)):
        return len(value)
    if _is_number(value):
        return Decimal(str(value))
    return len(str(value))


def _normalize_key(value: Any) -> Any:
    if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        return int(value.strip())
    return value


class RuleValidator:
    """Evaluates pipe-style rule sets (`required|string|max:100|unique:users,email`)."""

    def __init__(self, db: Session):
        self.db = db
        self._checks: dict[str, Callable[[str, Any, list[str], set[str]], bool]] = {
            "string": lambda f, v, p, n: isinstance(v, str),
            "integer": lambda f, v, p, n: (isinstance(v, int) and not isinstance(v, bool))
            or (isinstance(v, str) and bool(_INTEGER_RE.match(v.strip()))),
            "numeric": lambda f, v, p, n: _is_number(v),
            "boolean": lambda f, v, p, n: any(v is b or (type(v) is type(b) and v == b) for b in _BOOLEAN_VALUES),
            "email": lambda f, v, p, n: isinstance(v, str) and bool(_EMAIL_RE.match(v.strip())),
            "date": self._check_date,
            "min": lambda f, v, p, n: bool(p) and _size(v, bool(n & {"integer", "numeric"})) >= Decimal(p[0]),
            "max": lambda f, v, p, n: bool(p) and _size(v, bool(n & {"integer", "numeric"})) <= Decimal(p[0]),
            "in": lambda f, v, p, n: str(v) in p,
            "unique": self._check_unique,
            "exists": self._check_exists,
        }

    @staticmethod
    def _check_date(field_name: str, value: Any, params: list[str], names: set[str]) -> bool:
        if isinstance(value, (date, datetime)):
            return True
        text = str(value or "").strip()
        try:
            datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return False
        return True

    def _check_unique(self, field_name: str, value: Any, params: list[str], names: set[str]) -> bool:
        if not params or not params[0]:
            raise ValueError(f"unique rule for {field_name!r} needs a table name")
        table_name = params[0]
        column_name = params[1] if len(params) > 1 and params[1] else field_name
        except_id = params[2] if len(params) > 2 else None
        id_column = params[3] if len(params) > 3 and params[3] else "id"
        target = sa_table(table_name, sa_column(column_name), sa_column(id_column))
        stmt = select(func.count()).select_from(target).where(target.c[column_name] == value)
        if except_id not in (None, "", "NULL"):
            stmt = stmt.where(target.c[id_column] != _normalize_key(except_id))
        return int(self.db.scalar(stmt) or 0) == 0

    def _check_exists(self, field_name: str, value: Any, params: list[str], names: set[str]) -> bool:
        if not params or not params[0]:
            raise ValueError(f"exists rule for {field_name!r} needs a table name")
        column_name = params[1] if len(params) > 1 and params[1] else field_name
        target = sa_table(params[0], sa_column(column_name))
        stmt = select(func.count()).select_from(target).where(target.c[column_name] == _normalize_key(value))
        return int(self.db.scalar(stmt) or 0) > 0

    @staticmethod
    def _message(messages: Mapping[str, str], field_name: str, rule: str, params: list[str]) -> str:
        template = messages.get(f"{field_name}.{rule}") or messages.get(rule) or DEFAULT_MESSAGES.get(rule)
        if not template:
            template = "The :attribute field is invalid."
        text = template.replace(":attribute", field_name.replace("_", " "))
        if params:
            text = text.replace(":min", params[0]).replace(":max", params[0])
            text = text.replace(":values", ", ".join(params))
        return text

    def validate(self, data: Mapping[str, Any], rule_set: RuleSet) -> dict[str, Any]:
        """Fields carrying rules, as supplied; raises ValidationFailed with every field error."""
        errors: dict[str, list[str]] = {}
        validated: dict[str, Any] = {}
        for field_name, rules in normalize_rules(rule_set.rules).items():
            names = {parse_rule(rule)[0] for rule in rules if isinstance(rule, str)}
            present = field_name in data
            if "sometimes" in names and not present:
                continue
            value = data.get(field_name)
            if _is_blank(value):
                if "required" in names:
                    errors[field_name] = [self._message(rule_set.messages, field_name, "required", [])]
                elif present:
                    validated[field_name] = value
                continue

            field_errors: list[str] = []
            for rule in rules:
                if callable(rule):
                    failure = rule(field_name, value)
                    if failure:
                        field_errors.append(str(failure))
                    continue
                rule_name, params = parse_rule(rule)
                if rule_name in _IMPLICIT_RULES:
                    continue
                check = self._checks.get(rule_name)
                if check is None:
                    raise ValueError(f"Unsupported validation rule {rule_name!r} on {field_name!r}")
                if not check(field_name, value, params, names):
                    field_errors.append(self._message(rule_set.messages, field_name, rule_name, params))
            if field_errors:
                errors[field_name] = field_errors
            else:
                validated[field_name] = value

        if errors:
            _LOG.info("validation failed fields=%s", ",".join(sorted(errors)))
            raise ValidationFailed(errors)
        return validated
