"""
Exceptions raised by the rules engine
"""
from typing import Optional


class ConfigurationError(ValueError):
    """A rule or condition is not well formed.

    ``field`` is the attribute name on the model (``feed_ids``), the message
    uses the display name the rule editor shows (``FeedIds``).
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class DuplicateRuleNameError(ConfigurationError):
    """Another rule already uses this name"""

    def __init__(self, name: str):
        super().__init__(f"A rule with name '{name}' already exists", field='name')
        self.name = name


class RuleNotFoundError(LookupError):
    def __init__(self, rule_id: int):
        super().__init__(f"Rule with ID {rule_id} not found")
        self.rule_id = rule_id
