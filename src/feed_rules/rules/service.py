"""
Authoring operations on rules and their conditions
"""
from datetime import timedelta
from typing import Dict, List, Optional, Union

import structlog
from sqlalchemy.orm import Session

from feed_rules.config import DEFAULT_RULE_PRIORITY
from feed_rules.database.models import Rule, RuleCondition, utcnow
from feed_rules.database.repositories import RuleConditionRepository, RuleRepository
from feed_rules.exceptions import ConfigurationError, RuleNotFoundError

from .groups import describe_condition, describe_conditions, group_conditions
from .schema import ConditionDefinition, ConditionUpdate, RuleDefinition, RulesConfig, RuleStatistics, RuleUpdate
from .validation import check_unique_name, validate_condition, validate_rule

logger = structlog.get_logger(__name__)

# Kept across updates and rule file syncs
_PRESERVED_COLUMNS = ('id', 'created_at', 'last_modified', 'match_count', 'last_match_date')


def format_time_since(delta: timedelta) -> str:
    minutes = delta.total_seconds() / 60
    if minutes < 1:
        return "less than a minute ago"
    if minutes < 60:
        return f"{int(minutes)} minutes ago"
    if minutes < 60 * 24:
        return f"{int(minutes // 60)} hours ago"
    if delta.days < 30:
        return f"{delta.days} days ago"
    if delta.days < 365:
        return f"{delta.days // 30} months ago"
    return f"{delta.days // 365} years ago"


class RuleService:
    """Create, update and inspect rules; every write is validated first"""

    def __init__(self, rule_store: RuleRepository, condition_store: RuleConditionRepository,
                 default_priority: int = DEFAULT_RULE_PRIORITY):
        self.rule_store = rule_store
        self.condition_store = condition_store
        self.default_priority = default_priority

    @classmethod
    def from_session(cls, db: Session, default_priority: int = DEFAULT_RULE_PRIORITY) -> 'RuleService':
        return cls(RuleRepository(db), RuleConditionRepository(db), default_priority)

    # Rules

    def get_rule(self, rule_id: int) -> Optional[Rule]:
        return self.rule_store.get_by_id(rule_id)

    def list_rules(self) -> List[Rule]:
        return self.rule_store.get_all()

    def list_active_rules(self) -> List[Rule]:
        return self.rule_store.get_active_rules()

    def rule_exists_by_name(self, name: str) -> bool:
        if not (name or '').strip():
            raise ConfigurationError("Name is required", field='name')
        return self.rule_store.exists_by_name(name.strip())

    def create_rule(self, definition: Union[RuleDefinition, Rule]) -> Rule:
        """Validate and store a new rule"""
        rule = definition.to_model() if isinstance(definition, RuleDefinition) else definition
        self._normalize(rule)

        now = utcnow()
        rule.created_at = now
        rule.last_modified = now
        rule.match_count = 0
        rule.last_match_date = None

        validate_rule(rule)
        check_unique_name(self.rule_store, rule.name)

        self.rule_store.insert(rule)
        logger.info("Rule created", rule_id=rule.id, name=rule.name, priority=rule.priority)
        return rule

    def update_rule(self, rule_id: int, update: RuleUpdate) -> Optional[Rule]:
        """Apply a partial update; None when the rule does not exist"""
        rule = self.rule_store.get_by_id(rule_id)
        if rule is None:
            logger.warning("Rule not found for update", rule_id=rule_id)
            return None

        original_name = rule.name
        for key, value in update.changes().items():
            setattr(rule, key, value)
        self._normalize(rule)
        if update.reset_match_count:
            rule.match_count = 0
            rule.last_match_date = None

        try:
            validate_rule(rule)
            if rule.name.lower() != (original_name or '').lower():
                check_unique_name(self.rule_store, rule.name, exclude_id=rule.id)
        except ConfigurationError as e:
            self.rule_store.discard_changes(rule)
            logger.warning("Rule update rejected", rule_id=rule_id, field=e.field, error=e.message)
            raise

        rule.last_modified = utcnow()
        self.rule_store.update(rule)
        logger.info("Rule updated", rule_id=rule.id, name=rule.name)
        return rule

    def delete_rule(self, rule_id: int) -> bool:
        rule = self.rule_store.get_by_id(rule_id)
        if rule is None:
            logger.warning("Rule not found for deletion", rule_id=rule_id)
            return False
        self.rule_store.delete(rule)
        logger.info("Rule deleted", rule_id=rule_id, name=rule.name)
        return True

    def sync_rules(self, config: RulesConfig, prune: bool = True) -> List[Rule]:
        """Make the stored rules match a rules file, matching rules by name.

        Existing rules keep their identity and match statistics. With
        ``prune``, rules missing from the file are deleted.
        """
        synced = []
        for definition in config.rules:
            draft = definition.to_model()
            self._normalize(draft)
            existing = self.rule_store.get_by_name(draft.name)
            if existing is None:
                synced.append(self.create_rule(draft))
                continue

            validate_rule(draft)
            for column in Rule.__table__.columns:
                if column.key not in _PRESERVED_COLUMNS:
                    setattr(existing, column.key, getattr(draft, column.key))
            existing.conditions = list(draft.conditions)
            existing.last_modified = utcnow()
            self.rule_store.update(existing)
            synced.append(existing)
            logger.info("Rule synced", rule_id=existing.id, name=existing.name)

        if prune:
            keep = {rule.id for rule in synced}
            for rule in self.rule_store.get_all():
                if rule.id not in keep:
                    self.rule_store.delete(rule)
                    logger.info("Rule removed", rule_id=rule.id, name=rule.name)
        return synced

    def _normalize(self, rule: Rule) -> None:
        rule.name = (rule.name or '').strip()
        if rule.priority is None or rule.priority <= 0:
            rule.priority = self.default_priority

    # Conditions

    def get_conditions(self, rule_id: int) -> List[List[RuleCondition]]:
        """Conditions of a rule split into ordered groups"""
        return group_conditions(self.condition_store.get_by_rule_id(rule_id))

    def add_condition(self, rule_id: int, definition: ConditionDefinition) -> RuleCondition:
        """Attach a condition and switch the rule to advanced mode"""
        rule = self.rule_store.get_by_id(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)

        condition = definition.to_model()
        if condition.order <= 0:
            condition.order = self.condition_store.get_max_order_in_group(rule_id, condition.group_id) + 1
        validate_condition(condition)

        rule.conditions.append(condition)
        rule.uses_advanced_conditions = True
        rule.last_modified = utcnow()
        self.rule_store.update(rule)
        logger.info("Condition added", rule_id=rule_id, condition_id=condition.id,
                    group_id=condition.group_id, order=condition.order)
        return condition

    def update_condition(self, condition_id: int, update: ConditionUpdate) -> Optional[RuleCondition]:
        condition = self.condition_store.get_by_id(condition_id)
        if condition is None:
            logger.warning("Condition not found for update", condition_id=condition_id)
            return None

        for key, value in update.changes().items():
            setattr(condition, key, value)
        try:
            validate_condition(condition)
        except ConfigurationError as e:
            self.condition_store.discard_changes(condition)
            logger.warning("Condition update rejected", condition_id=condition_id, field=e.field, error=e.message)
            raise

        self.condition_store.update(condition)
        logger.info("Condition updated", condition_id=condition_id)
        return condition

    def delete_condition(self, condition_id: int) -> bool:
        condition = self.condition_store.get_by_id(condition_id)
        if condition is None:
            logger.warning("Condition not found for deletion", condition_id=condition_id)
            return False
        self.condition_store.delete(condition)
        logger.info("Condition deleted", condition_id=condition_id)
        return True

    def reorder_conditions(self, rule_id: int, group_id: int, order_map: Dict[int, int]) -> int:
        """Set the order of conditions within one group from ``{condition_id: order}``"""
        orders = list(order_map.values())
        if any(order < 0 for order in orders):
            raise ConfigurationError("Order cannot be negative", field='order')
        if len(set(orders)) != len(orders):
            raise ConfigurationError("Order values must be unique within a group", field='order')

        changed = self.condition_store.reorder(rule_id, group_id, order_map)
        logger.info("Conditions reordered", rule_id=rule_id, group_id=group_id, count=changed)
        return changed

    # Reporting

    def describe_rule(self, rule: Rule) -> str:
        """Readable summary of what a rule matches"""
        if rule.uses_advanced_conditions:
            return describe_conditions(rule.conditions)
        return describe_condition(rule.as_condition())

    def get_rule_statistics(self, rule_id: int) -> Optional[RuleStatistics]:
        rule = self.rule_store.get_by_id(rule_id)
        if rule is None:
            return None
        return self._statistics(rule)

    def top_rules_by_match_count(self, limit: int = 10) -> List[RuleStatistics]:
        if limit < 1:
            raise ValueError("Limit must be at least 1")
        return [self._statistics(rule) for rule in self.rule_store.get_top_by_match_count(limit)]

    def _statistics(self, rule: Rule) -> RuleStatistics:
        now = utcnow()
        stats = RuleStatistics(
            rule_id=rule.id,
            name=rule.name,
            is_enabled=bool(rule.is_enabled),
            priority=rule.priority,
            match_count=rule.match_count or 0,
            last_match_date=rule.last_match_date,
            health_status=rule.health_status,
        )
        if rule.last_match_date is not None:
            stats.time_since_last_match = format_time_since(now - rule.last_match_date)
        if rule.created_at is not None:
            days = (now - rule.created_at).total_seconds() / 86400
            if days > 0:
                stats.average_matches_per_day = (rule.match_count or 0) / days
        return stats
