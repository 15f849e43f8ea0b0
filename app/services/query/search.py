import re
from typing import Any, Iterable

from sqlalchemy import and_, func, or_
from sqlalchemy import column as sa_column
from sqlalchemy.orm import Query

from .entities import column_attribute

MATCH_EXACT = "exact"
MATCH_PARTIAL = "partial"
MATCH_STARTS_WITH = "starts_with"
MATCH_ENDS_WITH = "ends_with"

# Tokens are separated by a slash preceded by whitespace ("foo /bar"), not by plain spaces.
_TOKEN_SPLIT_RE = re.compile(r"\s+/")


def split_search_terms(term: str) -> list[str]:
    return [token for token in _TOKEN_SPLIT_RE.split(term or "") if token]


def _pattern(token: str, match_type: str) -> str:
    if match_type == MATCH_STARTS_WITH:
        return f"{token}%"
    if match_type == MATCH_ENDS_WITH:
        return f"%{token}"
    return f"%{token}%"


def _compare(target, value: str, *, exact: bool, case_sensitive: bool):
    if not case_sensitive:
        target = func.lower(target)
        value = value.lower()
    return target == value if exact else target.like(value)


def _token_predicate(target, token: str, *, match_type: str, case_sensitive: bool, word_matching: bool):
    if match_type == MATCH_EXACT:
        return _compare(target, token, exact=True, case_sensitive=case_sensitive)
    if word_matching and match_type == MATCH_PARTIAL:
        return or_(
            _compare(target, token, exact=True, case_sensitive=case_sensitive),
            _compare(target, f"{token} %", exact=False, case_sensitive=case_sensitive),
            _compare(target, f"% {token}", exact=False, case_sensitive=case_sensitive),
            _compare(target, f"% {token} %", exact=False, case_sensitive=case_sensitive),
        )
    return _compare(target, _pattern(token, match_type), exact=False, case_sensitive=case_sensitive)


def build_search_clause(
    model: type,
    term: str,
    fields: Iterable[str],
    *,
    match_type: str = MATCH_PARTIAL,
    case_sensitive: bool = False,
    word_matching: bool = False,
    combine_logic: str = "or",
    split_terms: bool = True,
):
    """One grouped predicate over every (field, token) pair, or None when there is nothing to match."""
    tokens = split_search_terms(term) if split_terms else [term] if term else []
    fields = [field for field in fields if field]
    if not tokens or not fields:
        return None
    predicates = []
    for field in fields:
        target = column_attribute(model, field)
        if target is None:
            target = sa_column(field)
        for token in tokens:
            predicates.append(
                _token_predicate(
                    target,
                    token,
                    match_type=match_type,
                    case_sensitive=case_sensitive,
                    word_matching=word_matching,
                )
            )
    combine = and_ if combine_logic == "and" else or_
    return combine(*predicates).self_group()


def apply_search(query: Query, model: type, term: str, options: Any, searchable_fields: Iterable[str]) -> Query:
    if not term:
        return query
    clause = build_search_clause(
        model,
        term,
        searchable_fields,
        match_type=getattr(options, "match_type", MATCH_PARTIAL),
        case_sensitive=bool(getattr(options, "case_sensitive", False)),
        word_matching=bool(getattr(options, "word_matching", False)),
        combine_logic=getattr(options, "combine_logic", "or"),
    )
    if clause is None:
        return query
    return query.filter(clause)
