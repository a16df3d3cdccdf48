"""
Database package for the Feed Rules Engine
"""
from .connection import configure, get_db_session, init_db, session_scope
from .models import Article, ArticleTag, Base, Category, Feed, NotificationLog, Rule, RuleCondition, Tag
from .repositories import (
    ArticleRepository,
    ArticleTagRepository,
    FeedRepository,
    RuleConditionRepository,
    RuleRepository,
)

__all__ = [
    'Base',
    'Article',
    'ArticleTag',
    'Category',
    'Feed',
    'NotificationLog',
    'Rule',
    'RuleCondition',
    'Tag',
    'ArticleRepository',
    'ArticleTagRepository',
    'FeedRepository',
    'RuleConditionRepository',
    'RuleRepository',
    'configure',
    'init_db',
    'get_db_session',
    'session_scope',
]
