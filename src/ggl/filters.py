from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import FilterMode, FilterRule

FIRST_RULE = "first-rule"
ORDERED = "ordered"
POLICIES = (FIRST_RULE, ORDERED)


def _first_rule(rules: Sequence[FilterRule], changed_paths: set[str] | list[str]) -> bool:
    # Only the first rule is ever consulted; a miss falls back to its inverse.
    rule = rules[0]
    if rule.matches(changed_paths):
        return rule.mode is FilterMode.INCLUDE
    return rule.mode is FilterMode.REJECT


def _ordered(rules: Sequence[FilterRule], changed_paths: set[str] | list[str]) -> bool:
    for rule in rules:
        if rule.matches(changed_paths):
            return rule.mode is FilterMode.INCLUDE
    return not any(rule.mode is FilterMode.INCLUDE for rule in rules)


def is_relevant(
    rules: Sequence[FilterRule] | None,
    changed_paths: Iterable[str],
    policy: str = FIRST_RULE,
) -> bool:
    """
    Decide whether a non-merge commit touching `changed_paths` belongs in the report.

    `first-rule` keeps the historical behavior where the first rule alone decides.
    `ordered` walks every rule in order and lets the first match decide; when nothing
    matches, a rule list containing any Include denies and a pure Reject list allows.
    """
    if not rules:
        return True
    paths = changed_paths if isinstance(changed_paths, (set, list)) else list(changed_paths)
    if policy == FIRST_RULE:
        return _first_rule(rules, paths)
    if policy == ORDERED:
        return _ordered(rules, paths)
    raise ValueError(f"Unknown filter policy: {policy!r} (expected one of: {', '.join(POLICIES)})")
