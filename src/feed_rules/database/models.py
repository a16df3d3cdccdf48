"""
Database models for the Feed Rules Engine
"""
from datetime import datetime, timezone
from typing import FrozenSet

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

from feed_rules.config import DEFAULT_RULE_PRIORITY
from feed_rules.enums import (
    ArticleStatus,
    LogicalOperator,
    NotificationPriority,
    NotificationType,
    RuleActionType,
    RuleFieldTarget,
    RuleHealthStatus,
    RuleOperator,
    RuleScope,
)
from feed_rules.ids import decode_id_list

DEFAULT_NOTIFICATION_TEMPLATE = "{Title}\n\n{Source}"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _constructor(self, **kwargs):
    """Keyword constructor that also applies scalar column defaults up front,
    so unsaved objects (rule drafts, simple-mode conditions) never carry None
    where the table would have stored a default.
    """
    for column in self.__table__.columns:
        if column.default is not None and column.default.is_scalar:
            kwargs.setdefault(column.key, column.default.arg)

    cls = type(self)
    for key, value in kwargs.items():
        if not hasattr(cls, key):
            raise TypeError(f"{key!r} is an invalid keyword argument for {cls.__name__}")
        setattr(self, key, value)


Base = declarative_base(constructor=_constructor)


def _enum(enum_cls):
    # Store enum values ('all_feeds'), not member names
    return Enum(enum_cls, values_callable=lambda members: [m.value for m in members],
                native_enum=False, length=32)


class Category(Base):
    """Category a feed can be filed under"""
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime, default=utcnow)

    feeds = relationship('Feed', back_populates='category')


class Feed(Base):
    """Subscribed feed; category moves happen at this level"""
    __tablename__ = 'feeds'

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    url = Column(String(1024), nullable=False, unique=True)
    category_id = Column(Integer, ForeignKey('categories.id'), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    category = relationship('Category', back_populates='feeds')
    articles = relationship('Article', back_populates='feed')


class Article(Base):
    """Article fetched from a feed"""
    __tablename__ = 'articles'

    id = Column(Integer, primary_key=True)
    feed_id = Column(Integer, ForeignKey('feeds.id'), nullable=False)
    guid = Column(String(1024))
    title = Column(String(1024))
    link = Column(String(1024))
    author = Column(String(255))
    summary = Column(Text)
    content = Column(Text)
    categories = Column(String(1024))  # comma separated, as published by the feed
    published_date = Column(DateTime)
    status = Column(_enum(ArticleStatus), default=ArticleStatus.UNREAD, nullable=False)
    is_starred = Column(Boolean, default=False)
    is_favorite = Column(Boolean, default=False)
    highlight_color = Column(String(20))
    is_processed = Column(Boolean, default=False)  # already run through the rules
    created_at = Column(DateTime, default=utcnow)

    feed = relationship('Feed', back_populates='articles')


class Tag(Base):
    __tablename__ = 'tags'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    color = Column(String(20))


class ArticleTag(Base):
    """Association between an article and a tag, optionally applied by a rule"""
    __tablename__ = 'article_tags'

    id = Column(Integer, primary_key=True)
    article_id = Column(Integer, ForeignKey('articles.id', ondelete='CASCADE'), nullable=False)
    tag_id = Column(Integer, ForeignKey('tags.id', ondelete='CASCADE'), nullable=False)
    applied_by_rule_id = Column(Integer, ForeignKey('rules.id', ondelete='SET NULL'), nullable=True)
    applied_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint('article_id', 'tag_id', name='uix_article_tag'),
    )


class Rule(Base):
    """User-defined classification rule"""
    __tablename__ = 'rules'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, unique=True)
    description = Column(String(500))

    # Simple mode condition
    target = Column(_enum(RuleFieldTarget), default=RuleFieldTarget.TITLE, nullable=False)
    operator = Column(_enum(RuleOperator), default=RuleOperator.CONTAINS, nullable=False)
    value = Column(String(500), default='')
    value2 = Column(String(500), default='')  # upper bound for between/not_between
    regex_pattern = Column(String(500), default='')
    is_case_sensitive = Column(Boolean, default=False)
    uses_advanced_conditions = Column(Boolean, default=False)

    # Scope, ID lists are JSON integer arrays
    scope = Column(_enum(RuleScope), default=RuleScope.ALL_FEEDS, nullable=False)
    feed_ids = Column(String(1000), default='[]')
    category_ids = Column(String(1000), default='[]')

    # Action payload
    action_type = Column(_enum(RuleActionType), default=RuleActionType.SEND_NOTIFICATION, nullable=False)
    tag_ids = Column(String(1000), default='[]')
    category_id = Column(Integer, nullable=True)
    sound_path = Column(String(500))
    notification_template = Column(String(1000), default=DEFAULT_NOTIFICATION_TEMPLATE)
    notification_priority = Column(_enum(NotificationPriority), default=NotificationPriority.NORMAL,
                                   nullable=False)
    highlight_color = Column(String(20))

    priority = Column(Integer, default=DEFAULT_RULE_PRIORITY, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    stop_on_match = Column(Boolean, default=False, nullable=False)

    match_count = Column(Integer, default=0, nullable=False)
    last_match_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    last_modified = Column(DateTime, default=utcnow)

    conditions = relationship('RuleCondition', back_populates='rule', cascade='all, delete-orphan',
                              order_by=lambda: [RuleCondition.group_id, RuleCondition.order, RuleCondition.id])

    @property
    def feed_id_set(self) -> FrozenSet[int]:
        return decode_id_list(self.feed_ids)

    @property
    def category_id_set(self) -> FrozenSet[int]:
        return decode_id_list(self.category_ids)

    @property
    def tag_id_set(self) -> FrozenSet[int]:
        return decode_id_list(self.tag_ids)

    @property
    def health_status(self) -> RuleHealthStatus:
        if not self.is_enabled:
            return RuleHealthStatus.DISABLED
        if self.last_match_date is None:
            return RuleHealthStatus.NEVER_MATCHED

        days = (utcnow() - self.last_match_date).total_seconds() / 86400
        if days <= 1:
            return RuleHealthStatus.ACTIVE
        if days <= 7:
            return RuleHealthStatus.NORMAL
        if days <= 30:
            return RuleHealthStatus.INFREQUENT
        return RuleHealthStatus.STALE

    def as_condition(self) -> 'RuleCondition':
        """Transient condition carrying this rule's simple-mode match settings"""
        return RuleCondition(
            field=self.target or RuleFieldTarget.TITLE,
            operator=self.operator or RuleOperator.CONTAINS,
            value=self.value or '',
            value2=self.value2 or '',
            regex_pattern=self.regex_pattern or '',
            is_case_sensitive=bool(self.is_case_sensitive),
            negate=False,
        )

    def __repr__(self) -> str:
        return f"<Rule id={self.id} name={self.name!r} priority={self.priority}>"


class RuleCondition(Base):
    """One clause of an advanced rule"""
    __tablename__ = 'rule_conditions'

    id = Column(Integer, primary_key=True)
    rule_id = Column(Integer, ForeignKey('rules.id', ondelete='CASCADE'), nullable=False)
    group_id = Column(Integer, default=0, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    combine_with_next = Column(_enum(LogicalOperator), default=LogicalOperator.AND, nullable=False)

    field = Column(_enum(RuleFieldTarget), default=RuleFieldTarget.TITLE, nullable=False)
    operator = Column(_enum(RuleOperator), default=RuleOperator.CONTAINS, nullable=False)
    value = Column(String(500), default='')
    value2 = Column(String(500), default='')
    regex_pattern = Column(String(500), default='')
    date_format = Column(String(50), default='')
    is_case_sensitive = Column(Boolean, default=False)
    negate = Column(Boolean, default=False)

    rule = relationship('Rule', back_populates='conditions')

    @property
    def is_valid(self) -> bool:
        """Required operands are present (non-blank)"""
        operator = self.operator or RuleOperator.CONTAINS
        if operator in (RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY):
            return True
        if operator == RuleOperator.REGEX:
            return bool((self.regex_pattern or '').strip())
        if not (self.value or '').strip():
            return False
        if operator.requires_second_value:
            return bool((self.value2 or '').strip())
        return True

    def __repr__(self) -> str:
        return (f"<RuleCondition id={self.id} group={self.group_id} order={self.order} "
                f"{getattr(self.field, 'value', self.field)} {getattr(self.operator, 'value', self.operator)}>")


class NotificationLog(Base):
    """Notification sent because a rule matched an article"""
    __tablename__ = 'notification_logs'

    id = Column(Integer, primary_key=True)
    article_id = Column(Integer, ForeignKey('articles.id', ondelete='CASCADE'), nullable=False)
    rule_id = Column(Integer, ForeignKey('rules.id', ondelete='SET NULL'), nullable=True)
    notification_type = Column(_enum(NotificationType), default=NotificationType.TOAST, nullable=False)
    priority = Column(_enum(NotificationPriority), default=NotificationPriority.NORMAL, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text)
    sound_path = Column(String(500))
    created_at = Column(DateTime, default=utcnow)
