"""
Enumerations shared by the rule model, the engine and the persistence layer
"""
from enum import Enum


class RuleScope(str, Enum):
    """Which feeds a rule is eligible to apply to"""
    ALL_FEEDS = 'all_feeds'
    SPECIFIC_FEEDS = 'specific_feeds'
    SPECIFIC_CATEGORIES = 'specific_categories'


class RuleFieldTarget(str, Enum):
    """Article field a condition looks at"""
    TITLE = 'title'
    CONTENT = 'content'
    AUTHOR = 'author'
    CATEGORIES = 'categories'
    ALL_FIELDS = 'all_fields'  # title, content, author and categories joined
    ANY_FIELD = 'any_field'  # operator must hold for at least one field
    PUBLISHED_DATE = 'published_date'


class RuleOperator(str, Enum):
    """Comparison applied to the resolved field"""
    CONTAINS = 'contains'
    EQUALS = 'equals'
    STARTS_WITH = 'starts_with'
    ENDS_WITH = 'ends_with'
    NOT_CONTAINS = 'not_contains'
    NOT_EQUALS = 'not_equals'
    REGEX = 'regex'
    GREATER_THAN = 'greater_than'
    LESS_THAN = 'less_than'
    IS_EMPTY = 'is_empty'
    IS_NOT_EMPTY = 'is_not_empty'
    BETWEEN = 'between'
    NOT_BETWEEN = 'not_between'

    @property
    def requires_value(self) -> bool:
        return self not in (RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY, RuleOperator.REGEX)

    @property
    def requires_second_value(self) -> bool:
        return self in (RuleOperator.BETWEEN, RuleOperator.NOT_BETWEEN)


class LogicalOperator(str, Enum):
    AND = 'and'
    OR = 'or'


class RuleActionType(str, Enum):
    """Side effect performed when a rule matches"""
    MARK_AS_READ = 'mark_as_read'
    MARK_AS_UNREAD = 'mark_as_unread'
    MARK_AS_STARRED = 'mark_as_starred'
    MARK_AS_FAVORITE = 'mark_as_favorite'
    APPLY_TAGS = 'apply_tags'
    MOVE_TO_CATEGORY = 'move_to_category'
    SEND_NOTIFICATION = 'send_notification'
    PLAY_SOUND = 'play_sound'
    DELETE_ARTICLE = 'delete_article'
    ARCHIVE_ARTICLE = 'archive_article'
    HIGHLIGHT_ARTICLE = 'highlight_article'


class NotificationPriority(str, Enum):
    LOW = 'low'
    NORMAL = 'normal'
    HIGH = 'high'
    CRITICAL = 'critical'


class NotificationType(str, Enum):
    TOAST = 'toast'
    SOUND = 'sound'
    BOTH = 'both'
    SILENT = 'silent'
    BANNER = 'banner'


class ArticleStatus(str, Enum):
    UNREAD = 'unread'
    READ = 'read'
    STARRED = 'starred'
    ARCHIVED = 'archived'


class RuleHealthStatus(str, Enum):
    """Coarse indicator of how recently a rule last matched"""
    DISABLED = 'disabled'
    NEVER_MATCHED = 'never_matched'
    ACTIVE = 'active'
    NORMAL = 'normal'
    INFREQUENT = 'infrequent'
    STALE = 'stale'
