"""Translate web-search style queries into SQLite FTS5 MATCH expressions.

Supported syntax, the same subset search boxes usually accept:

* ``patient rights``       → both terms must appear (implicit AND)
* ``"informed consent"``   → exact phrase
* ``refund or reimbursement`` → either term
* ``hospital -private``    → exclude documents containing ``private``

Every term is emitted as a double-quoted FTS5 string, so user input can
never inject FTS5 operators or column filters.  A query with nothing but
exclusions has no positive side to match and translates to ``None``.

Examples
--------
>>> build_match_expression('consent "emergency care" -private')
'("consent") AND ("emergency care") NOT "private"'
>>> build_match_expression("refund or reimbursement")
'("refund" OR "reimbursement")'
"""

from __future__ import annotations

import re

_TOKEN_RE = re.compile(r'-?"[^"]*"?|[^\s"]+')


def _quote(term: str) -> str:
    return '"' + term.replace('"', '""') + '"'


def _has_word(term: str) -> bool:
    return any(ch.isalnum() for ch in term)


def build_match_expression(query: str) -> str | None:
    """Return an FTS5 MATCH expression for *query*, or ``None`` if it has no positive terms."""
    groups: list[list[str]] = []
    negated: list[str] = []
    pending_or = False

    for raw in _TOKEN_RE.findall(query or ""):
        is_negated = raw.startswith("-") and len(raw) > 1
        body = raw[1:] if is_negated else raw
        is_phrase = body.startswith('"')
        text = body.strip('"').strip()

        if not is_phrase and not is_negated and text.lower() == "or":
            pending_or = bool(groups)
            continue
        if not _has_word(text):
            continue

        term = _quote(" ".join(text.split()))
        if is_negated:
            negated.append(term)
            pending_or = False
            continue

        if pending_or:
            groups[-1].append(term)
        else:
            groups.append([term])
        pending_or = False

    if not groups:
        return None

    positive = " AND ".join("(" + " OR ".join(group) + ")" for group in groups)
    return " ".join([positive] + [f"NOT {term}" for term in negated])
