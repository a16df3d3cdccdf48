"""
Rules package for the Feed Rules Engine
"""
from .actions import ActionDispatcher
from .conditions import evaluate_condition
from .engine import RulesEngine
from .groups import describe_conditions, evaluate_advanced, evaluate_group, group_conditions
from .schema import (
    ConditionDefinition,
    ConditionUpdate,
    RuleDefinition,
    RulesConfig,
    RuleStatistics,
    RuleTestResult,
    RuleUpdate,
)
from .scope import is_in_scope
from .service import RuleService
from .validation import check_unique_name, validate_condition, validate_rule

__all__ = [
    'ActionDispatcher',
    'RulesEngine',
    'RuleService',
    'ConditionDefinition',
    'ConditionUpdate',
    'RuleDefinition',
    'RulesConfig',
    'RuleStatistics',
    'RuleTestResult',
    'RuleUpdate',
    'check_unique_name',
    'describe_conditions',
    'evaluate_advanced',
    'evaluate_condition',
    'evaluate_group',
    'group_conditions',
    'is_in_scope',
    'validate_condition',
    'validate_rule',
]
