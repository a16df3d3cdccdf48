"""
Evaluation of a single rule condition against an article
"""
from datetime import datetime, timezone
from functools import lru_cache
import logging
import math
import re
from typing import List, Optional, Pattern, Union

from dateutil import parser as date_parser

from feed_rules.database.models import Article, RuleCondition
from feed_rules.enums import RuleFieldTarget, RuleOperator

logger = logging.getLogger(__name__)

FieldValue = Union[str, datetime, None]

# Fields combined by all_fields and scanned individually by any_field
TEXT_FIELDS = (
    RuleFieldTarget.TITLE,
    RuleFieldTarget.CONTENT,
    RuleFieldTarget.AUTHOR,
    RuleFieldTarget.CATEGORIES,
)

COMPARISON_OPERATORS = (
    RuleOperator.GREATER_THAN,
    RuleOperator.LESS_THAN,
    RuleOperator.BETWEEN,
    RuleOperator.NOT_BETWEEN,
)


def resolve_field(article: Article, field: RuleFieldTarget) -> FieldValue:
    """Return the article value a condition on ``field`` looks at"""
    if field == RuleFieldTarget.TITLE:
        return article.title or ''
    elif field == RuleFieldTarget.CONTENT:
        return article.content or article.summary or ''
    elif field == RuleFieldTarget.AUTHOR:
        return article.author or ''
    elif field == RuleFieldTarget.CATEGORIES:
        return article.categories or ''
    elif field == RuleFieldTarget.PUBLISHED_DATE:
        return article.published_date
    elif field in (RuleFieldTarget.ALL_FIELDS, RuleFieldTarget.ANY_FIELD):
        return ' '.join(part for part in _text_fields(article) if part).strip()
    return ''


def _text_fields(article: Article) -> List[str]:
    return [resolve_field(article, field) for field in TEXT_FIELDS]


def evaluate_condition(condition: RuleCondition, article: Article) -> bool:
    """Evaluate one condition against an article, negation applied last.

    Never raises for data problems: an unparseable date or a broken pattern
    simply does not match.
    """
    if condition.field == RuleFieldTarget.ANY_FIELD:
        raw = any(_apply_operator(condition, text) for text in _text_fields(article))
    else:
        raw = _apply_operator(condition, resolve_field(article, condition.field))

    result = not raw if condition.negate else raw
    logger.debug(f"Condition: {_label(condition.field)} {_label(condition.operator)} "
                 f"'{condition.value}' (negate={bool(condition.negate)}) -> {result}")
    return result


def evaluate_text(condition: RuleCondition, text: str) -> bool:
    """Evaluate a condition against free sample text instead of an article field"""
    raw = _apply_operator(condition, text)
    return not raw if condition.negate else raw


def _apply_operator(condition: RuleCondition, subject: FieldValue) -> bool:
    operator = condition.operator
    if operator in (RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY):
        empty = subject is None or (isinstance(subject, str) and not subject.strip())
        return empty if operator == RuleOperator.IS_EMPTY else not empty
    if operator == RuleOperator.REGEX:
        return _evaluate_regex_condition(condition, _as_text(subject))
    if operator in COMPARISON_OPERATORS:
        return _evaluate_comparison_condition(condition, subject)
    return _evaluate_string_condition(condition, _as_text(subject))


def _as_text(subject: FieldValue) -> str:
    if subject is None:
        return ''
    if isinstance(subject, datetime):
        return subject.isoformat()
    return subject


def _evaluate_string_condition(condition: RuleCondition, text: str) -> bool:
    """Evaluate a string-based condition"""
    expected = condition.value or ''
    if not condition.is_case_sensitive:
        expected = expected.lower()
        text = text.lower()

    operator = condition.operator
    if operator == RuleOperator.CONTAINS:
        return expected in text
    elif operator == RuleOperator.NOT_CONTAINS:
        return expected not in text
    elif operator == RuleOperator.EQUALS:
        return text == expected
    elif operator == RuleOperator.NOT_EQUALS:
        return text != expected
    elif operator == RuleOperator.STARTS_WITH:
        return text.startswith(expected)
    elif operator == RuleOperator.ENDS_WITH:
        return text.endswith(expected)

    logger.warning(f"Unsupported operator for string comparison: {operator}")
    return False


@lru_cache(maxsize=256)
def _compile(pattern: str, case_sensitive: bool) -> Pattern:
    return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)


def _evaluate_regex_condition(condition: RuleCondition, text: str) -> bool:
    pattern = condition.regex_pattern or ''
    if not pattern.strip():
        logger.warning("Empty regex pattern provided")
        return False
    try:
        regex = _compile(pattern, bool(condition.is_case_sensitive))
    except re.error as e:
        logger.warning(f"Invalid regex pattern {pattern!r}: {e}")
        return False
    return regex.search(text) is not None


def _evaluate_comparison_condition(condition: RuleCondition, subject: FieldValue) -> bool:
    """greater_than / less_than / between / not_between"""
    date_format = condition.date_format or None
    low = _compare(subject, condition.value, date_format)
    if low is None:
        logger.debug(f"Could not compare {subject!r} with {condition.value!r}")
        return False

    operator = condition.operator
    if operator == RuleOperator.GREATER_THAN:
        return low > 0
    elif operator == RuleOperator.LESS_THAN:
        return low < 0

    high = _compare(subject, condition.value2, date_format)
    if high is None:
        logger.debug(f"Could not compare {subject!r} with {condition.value2!r}")
        return False
    inside = low >= 0 and high <= 0
    return inside if operator == RuleOperator.BETWEEN else not inside


def _compare(subject: FieldValue, value: Optional[str], date_format: Optional[str]) -> Optional[int]:
    """Three-way compare of the field against an operand, None when incomparable.

    With an explicit date format both sides must match it. Otherwise numbers
    compare numerically and anything else is tried as a date.
    """
    if subject is None or value is None or not str(value).strip():
        return None

    if date_format:
        left = subject if isinstance(subject, datetime) else _parse_date_with_format(subject, date_format)
        right = _parse_date_with_format(value, date_format)
    elif isinstance(subject, datetime):
        left, right = subject, _parse_date(value)
    else:
        left_number, right_number = _parse_number(subject), _parse_number(value)
        if left_number is not None and right_number is not None:
            return _sign(left_number, right_number)
        left, right = _parse_date(subject), _parse_date(value)

    if left is None or right is None:
        return None
    return _sign(_naive_utc(left), _naive_utc(right))


def is_comparable_operand(value: Optional[str], date_format: Optional[str] = None) -> bool:
    """Whether ``value`` can be used by greater_than/less_than/between"""
    if value is None or not value.strip():
        return False
    if date_format:
        return _parse_date_with_format(value, date_format) is not None
    return _parse_number(value) is not None or _parse_date(value) is not None


def _sign(left, right) -> int:
    return (left > right) - (left < right)


def _parse_float(text: str) -> Optional[float]:
    try:
        return float(text.strip())
    except ValueError:
        return None


def _parse_number(text: str) -> Optional[float]:
    # nan and inf have no ordering against real operands
    number = _parse_float(text)
    return number if number is not None and math.isfinite(number) else None


def _parse_date_with_format(text: str, date_format: str) -> Optional[datetime]:
    try:
        return datetime.strptime(text.strip(), date_format)
    except ValueError:
        return None


def _parse_date(text: str) -> Optional[datetime]:
    number = _parse_float(text)
    if number is not None and not math.isfinite(number):
        return None
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError):
        return None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _label(member) -> str:
    return getattr(member, 'value', member)
