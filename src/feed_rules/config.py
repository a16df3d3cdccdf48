"""
Runtime settings for the Feed Rules Engine, read from the environment
"""
import os

from pydantic import BaseModel

DEFAULT_RULE_PRIORITY = 100


class Settings(BaseModel):
    """Settings resolved from environment variables (and .env via the CLI)"""
    database_url: str = 'sqlite:///feed_rules.db'
    rules_file: str = 'config/rules.json'
    log_level: str = 'INFO'
    batch_size: int = 50
    notification_suppression_minutes: int = 60
    default_rule_priority: int = DEFAULT_RULE_PRIORITY


def get_settings() -> Settings:
    """Build settings from the current environment"""
    values = {
        'database_url': os.getenv('DATABASE_URL'),
        'rules_file': os.getenv('RULES_FILE'),
        'log_level': os.getenv('LOG_LEVEL'),
        'batch_size': os.getenv('BATCH_SIZE'),
        'notification_suppression_minutes': os.getenv('NOTIFICATION_SUPPRESSION_MINUTES'),
        'default_rule_priority': os.getenv('DEFAULT_RULE_PRIORITY'),
    }
    return Settings(**{key: value for key, value in values.items() if value is not None})
