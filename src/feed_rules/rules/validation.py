"""
Field requirement checks for rules and conditions.

Every check raises ConfigurationError naming the offending field; the first
violation found wins. Order: name, scope, match condition(s), action.
"""
import re
from typing import Iterable, Optional

from feed_rules.database.models import Rule, RuleCondition
from feed_rules.enums import RuleActionType, RuleOperator, RuleScope
from feed_rules.exceptions import ConfigurationError, DuplicateRuleNameError
from feed_rules.ids import parse_id_list

from .conditions import COMPARISON_OPERATORS, is_comparable_operand

NAME_MAX_LENGTH = 200


def validate_rule(rule: Rule, conditions: Optional[Iterable[RuleCondition]] = None) -> None:
    """Validate a rule before it is stored or evaluated.

    ``conditions`` defaults to ``rule.conditions`` and is only consulted for
    rules in advanced mode.
    """
    _validate_name(rule.name)
    _validate_scope(rule)

    if rule.uses_advanced_conditions:
        for condition in (rule.conditions if conditions is None else conditions):
            validate_condition(condition)
    else:
        _validate_operands(rule.as_condition())

    _validate_action(rule)


def validate_condition(condition: RuleCondition) -> None:
    """Validate one advanced-mode condition"""
    if condition.field is None:
        raise ConfigurationError("Field is required", field='field')
    _validate_operands(condition)
    if (condition.group_id or 0) < 0:
        raise ConfigurationError("GroupId cannot be negative", field='group_id')
    if (condition.order or 0) < 0:
        raise ConfigurationError("Order cannot be negative", field='order')


def check_unique_name(rule_store, name: str, exclude_id: Optional[int] = None) -> None:
    """Ask the rule store whether ``name`` is taken by another rule"""
    if rule_store.exists_by_name(name.strip(), exclude_id=exclude_id):
        raise DuplicateRuleNameError(name.strip())


def _validate_name(name: Optional[str]) -> None:
    trimmed = (name or '').strip()
    if not trimmed:
        raise ConfigurationError("Name is required", field='name')
    if len(trimmed) > NAME_MAX_LENGTH:
        raise ConfigurationError(f"Name cannot exceed {NAME_MAX_LENGTH} characters", field='name')


def _validate_scope(rule: Rule) -> None:
    if rule.scope == RuleScope.SPECIFIC_FEEDS:
        parse_id_list(rule.feed_ids, 'FeedIds', field='feed_ids')
    elif rule.scope == RuleScope.SPECIFIC_CATEGORIES:
        parse_id_list(rule.category_ids, 'CategoryIds', field='category_ids')


def _validate_operands(condition: RuleCondition) -> None:
    operator = condition.operator
    if operator is None:
        raise ConfigurationError("Operator is required", field='operator')
    if operator == RuleOperator.REGEX:
        pattern = condition.regex_pattern or ''
        if not pattern.strip():
            raise ConfigurationError("RegexPattern is required when operator is regex",
                                     field='regex_pattern')
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"RegexPattern is not a valid regular expression: {e}",
                                     field='regex_pattern')
        return

    if operator in (RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY):
        return

    if not (condition.value or '').strip():
        raise ConfigurationError(f"Value is required when operator is {operator.value}", field='value')
    if operator.requires_second_value and not (condition.value2 or '').strip():
        raise ConfigurationError(f"Value2 is required when operator is {operator.value}", field='value2')

    if operator in COMPARISON_OPERATORS:
        date_format = condition.date_format or None
        for field, display_name, operand in (('value', 'Value', condition.value),
                                             ('value2', 'Value2', condition.value2)):
            if field == 'value2' and not operator.requires_second_value:
                continue
            if not is_comparable_operand(operand, date_format):
                raise ConfigurationError(f"{display_name} must be a number or a date for {operator.value}",
                                         field=field)


def _validate_action(rule: Rule) -> None:
    action = rule.action_type
    if action == RuleActionType.APPLY_TAGS:
        parse_id_list(rule.tag_ids, 'TagIds', field='tag_ids')
    elif action == RuleActionType.MOVE_TO_CATEGORY:
        if rule.category_id is None:
            raise ConfigurationError("CategoryId is required when action is move_to_category",
                                     field='category_id')
    elif action == RuleActionType.HIGHLIGHT_ARTICLE:
        if not (rule.highlight_color or '').strip():
            raise ConfigurationError("HighlightColor is required when action is highlight_article",
                                     field='highlight_color')
    elif action == RuleActionType.PLAY_SOUND:
        if not (rule.sound_path or '').strip():
            raise ConfigurationError("SoundPath is required when action is play_sound",
                                     field='sound_path')
