"""
Schemas for authoring rules (JSON rules file, rule editor payloads) and
for reporting on them
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from feed_rules.database.models import Rule, RuleCondition
from feed_rules.enums import (
    LogicalOperator,
    NotificationPriority,
    RuleActionType,
    RuleFieldTarget,
    RuleHealthStatus,
    RuleOperator,
    RuleScope,
)
from feed_rules.ids import encode_id_list

# Either a list of IDs or the raw JSON text a rule editor submits
IdList = Optional[Union[List[int], str]]

ID_LIST_FIELDS = ('feed_ids', 'category_ids', 'tag_ids')

# Columns that cannot hold NULL; an explicit null in an update leaves them unchanged
RULE_REQUIRED_FIELDS = (
    'target', 'operator', 'is_case_sensitive', 'uses_advanced_conditions', 'scope',
    'action_type', 'notification_priority', 'priority', 'is_enabled', 'stop_on_match',
)
CONDITION_REQUIRED_FIELDS = (
    'field', 'operator', 'is_case_sensitive', 'negate', 'group_id', 'order', 'combine_with_next',
)


def _stored_ids(value: IdList) -> str:
    # Raw strings are kept so the validator can report malformed JSON
    if isinstance(value, str):
        return value
    return encode_id_list(value)


def _set_fields(payload: BaseModel, required: Tuple[str, ...], exclude=None) -> Dict[str, Any]:
    data = payload.model_dump(exclude_unset=True, exclude=exclude)
    return {key: value for key, value in data.items() if value is not None or key not in required}


class ConditionDefinition(BaseModel):
    """Schema for one advanced-mode condition"""
    field: RuleFieldTarget = RuleFieldTarget.TITLE
    operator: RuleOperator = RuleOperator.CONTAINS
    value: str = ''
    value2: str = ''
    regex_pattern: str = ''
    date_format: str = ''
    is_case_sensitive: bool = False
    negate: bool = False
    group_id: int = 0
    order: int = 0
    combine_with_next: LogicalOperator = LogicalOperator.AND

    def to_model(self) -> RuleCondition:
        return RuleCondition(**self.model_dump())


class RuleDefinition(BaseModel):
    """Schema for a single rule"""
    name: str
    description: Optional[str] = None

    # Simple mode
    target: RuleFieldTarget = RuleFieldTarget.TITLE
    operator: RuleOperator = RuleOperator.CONTAINS
    value: str = ''
    value2: str = ''
    regex_pattern: str = ''
    is_case_sensitive: bool = False

    # Advanced mode; defaults to on when conditions are given
    uses_advanced_conditions: Optional[bool] = None
    conditions: List[ConditionDefinition] = Field(default_factory=list)

    scope: RuleScope = RuleScope.ALL_FEEDS
    feed_ids: IdList = None
    category_ids: IdList = None

    action_type: RuleActionType = RuleActionType.SEND_NOTIFICATION
    tag_ids: IdList = None
    category_id: Optional[int] = None
    sound_path: Optional[str] = None
    notification_template: Optional[str] = None
    notification_priority: NotificationPriority = NotificationPriority.NORMAL
    highlight_color: Optional[str] = None

    priority: int = 0  # 0 means "use the default priority"
    is_enabled: bool = True
    stop_on_match: bool = False

    def to_model(self) -> Rule:
        """Unsaved Rule (with its conditions) built from this definition"""
        data = self.model_dump(
            exclude={'conditions', 'uses_advanced_conditions', *ID_LIST_FIELDS},
            exclude_none=True,
        )
        uses_advanced = self.uses_advanced_conditions
        if uses_advanced is None:
            uses_advanced = bool(self.conditions)

        rule = Rule(
            **data,
            uses_advanced_conditions=uses_advanced,
            feed_ids=_stored_ids(self.feed_ids),
            category_ids=_stored_ids(self.category_ids),
            tag_ids=_stored_ids(self.tag_ids),
        )
        rule.conditions = [condition.to_model() for condition in self.conditions]
        return rule


class RuleUpdate(BaseModel):
    """Partial update of a rule; only fields that are set are applied"""
    name: Optional[str] = None
    description: Optional[str] = None
    target: Optional[RuleFieldTarget] = None
    operator: Optional[RuleOperator] = None
    value: Optional[str] = None
    value2: Optional[str] = None
    regex_pattern: Optional[str] = None
    is_case_sensitive: Optional[bool] = None
    uses_advanced_conditions: Optional[bool] = None
    scope: Optional[RuleScope] = None
    feed_ids: IdList = None
    category_ids: IdList = None
    action_type: Optional[RuleActionType] = None
    tag_ids: IdList = None
    category_id: Optional[int] = None
    sound_path: Optional[str] = None
    notification_template: Optional[str] = None
    notification_priority: Optional[NotificationPriority] = None
    highlight_color: Optional[str] = None
    priority: Optional[int] = None
    is_enabled: Optional[bool] = None
    stop_on_match: Optional[bool] = None
    reset_match_count: bool = False

    def changes(self) -> Dict[str, Any]:
        """Attribute values to set on the stored rule"""
        changes = _set_fields(self, RULE_REQUIRED_FIELDS, exclude={'reset_match_count'})
        for key in ID_LIST_FIELDS:
            if key in changes:
                changes[key] = _stored_ids(changes[key])
        return changes


class ConditionUpdate(BaseModel):
    field: Optional[RuleFieldTarget] = None
    operator: Optional[RuleOperator] = None
    value: Optional[str] = None
    value2: Optional[str] = None
    regex_pattern: Optional[str] = None
    date_format: Optional[str] = None
    is_case_sensitive: Optional[bool] = None
    negate: Optional[bool] = None
    group_id: Optional[int] = None
    order: Optional[int] = None
    combine_with_next: Optional[LogicalOperator] = None

    def changes(self) -> Dict[str, Any]:
        """Attribute values to set on the stored condition"""
        return _set_fields(self, CONDITION_REQUIRED_FIELDS)


class RulesConfig(BaseModel):
    """Schema for the entire rules configuration file"""
    rules: List[RuleDefinition]


class RuleTestResult(BaseModel):
    """Outcome of dry-running a rule over sample articles"""
    rule_name: str
    total_tested: int = 0
    matched_count: int = 0
    matched_article_ids: List[int] = Field(default_factory=list)
    average_evaluation_time_ms: float = 0.0


class RuleStatistics(BaseModel):
    rule_id: int
    name: str
    is_enabled: bool
    priority: int
    match_count: int
    last_match_date: Optional[datetime] = None
    health_status: RuleHealthStatus
    time_since_last_match: Optional[str] = None
    average_matches_per_day: Optional[float] = None
