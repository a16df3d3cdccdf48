"""
Combining an advanced rule's conditions into one verdict.

Conditions sharing a ``group_id`` form a group. Inside a group the
conditions are taken in ``order`` and folded left to right: the operator
between a condition and the next one is the first condition's
``combine_with_next``. There is no AND-over-OR precedence, so
``a AND b OR c`` is ``(a AND b) OR c``.

Groups are folded the same way in ascending ``group_id`` order, joined by
the ``combine_with_next`` of the last condition of the earlier group.

Both folds are lazy: a condition (or a whole group) is not evaluated when
the value so far already decides that step.
"""
from itertools import groupby
import logging
from typing import Callable, Iterable, List, Sequence, TypeVar

from feed_rules.database.models import Article, RuleCondition
from feed_rules.enums import LogicalOperator, RuleOperator

from .conditions import evaluate_condition

logger = logging.getLogger(__name__)

T = TypeVar('T')

FIELD_NAMES = {
    'title': 'Title',
    'content': 'Content',
    'author': 'Author',
    'categories': 'Categories',
    'all_fields': 'All fields',
    'any_field': 'Any field',
    'published_date': 'Published date',
}

OPERATOR_NAMES = {
    'contains': 'contains',
    'equals': 'equals',
    'starts_with': 'starts with',
    'ends_with': 'ends with',
    'not_contains': 'does not contain',
    'not_equals': 'does not equal',
    'regex': 'matches',
    'greater_than': 'is greater than',
    'less_than': 'is less than',
    'is_empty': 'is empty',
    'is_not_empty': 'is not empty',
    'between': 'is between',
    'not_between': 'is not between',
}


def group_conditions(conditions: Iterable[RuleCondition]) -> List[List[RuleCondition]]:
    """Split conditions into groups ordered by group_id, members ordered by order"""
    ordered = sorted(conditions, key=lambda c: (c.group_id or 0, c.order or 0, c.id or 0))
    return [list(members) for _, members in groupby(ordered, key=lambda c: c.group_id or 0)]


def _fold(items: Sequence[T], evaluate: Callable[[T], bool],
          combinator: Callable[[T], LogicalOperator]) -> bool:
    result = evaluate(items[0])
    for previous, item in zip(items, items[1:]):
        if combinator(previous) == LogicalOperator.OR:
            result = result or evaluate(item)
        else:
            result = result and evaluate(item)
    return result


def evaluate_group(group: Sequence[RuleCondition], article: Article) -> bool:
    if not group:
        return False
    return _fold(group, lambda condition: evaluate_condition(condition, article),
                 lambda condition: condition.combine_with_next)


def evaluate_advanced(conditions: Iterable[RuleCondition], article: Article) -> bool:
    """Verdict of an advanced rule; no conditions never matches"""
    groups = group_conditions(conditions)
    if not groups:
        logger.debug("No conditions to evaluate")
        return False

    result = _fold(groups, lambda group: evaluate_group(group, article),
                   lambda group: group[-1].combine_with_next)
    logger.debug(f"Evaluated {len(groups)} condition group(s) -> {result}")
    return result


def describe_condition(condition: RuleCondition) -> str:
    field = FIELD_NAMES.get(_value(condition.field), _value(condition.field))
    operator = condition.operator
    verb = OPERATOR_NAMES.get(_value(operator), _value(operator))

    if operator in (RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY):
        text = f"{field} {verb}"
    elif operator == RuleOperator.REGEX:
        text = f"{field} {verb} '{condition.regex_pattern}'"
    elif operator in (RuleOperator.BETWEEN, RuleOperator.NOT_BETWEEN):
        text = f"{field} {verb} '{condition.value}' and '{condition.value2}'"
    else:
        text = f"{field} {verb} '{condition.value}'"

    if condition.is_case_sensitive:
        text += " (case-sensitive)"
    if condition.negate:
        text = f"NOT ({text})"
    return text


def describe_conditions(conditions: Iterable[RuleCondition]) -> str:
    """Readable form of the fold, one parenthesised clause per group"""
    groups = group_conditions(conditions)
    if not groups:
        return "No conditions defined"

    def join(items, describe, combinator):
        parts = [describe(items[0])]
        for previous, item in zip(items, items[1:]):
            parts.append(_value(combinator(previous)).upper())
            parts.append(describe(item))
        return ' '.join(parts)

    def describe_group(group):
        text = join(group, describe_condition, lambda c: c.combine_with_next)
        return f"({text})" if len(groups) > 1 and len(group) > 1 else text

    return join(groups, describe_group, lambda group: group[-1].combine_with_next)


def _value(member) -> str:
    return getattr(member, 'value', member)
