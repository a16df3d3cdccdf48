"""
Executing the action of a matched rule.

Match counting has exactly one owner per call path:

* ``ActionDispatcher.execute(rule, article)`` called on its own records the
  match after the action is applied.
* ``ActionDispatcher.process_article(article)`` lets
  ``RulesEngine.evaluate_article`` record each match and then executes the
  matched rules with ``record_match=False``.
"""
from datetime import timedelta
import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from feed_rules.database.models import Article, Feed, Rule
from feed_rules.database.repositories import ArticleRepository, ArticleTagRepository
from feed_rules.enums import ArticleStatus, NotificationType, RuleActionType
from feed_rules.notifications import NotificationService

from .engine import RulesEngine

logger = logging.getLogger(__name__)

Handler = Callable[[Rule, Article, Optional[Feed]], bool]


class ActionDispatcher:
    """Applies rule actions to articles and feeds"""

    def __init__(self, engine: RulesEngine, article_store: ArticleRepository,
                 tag_store: ArticleTagRepository, notifier: Optional[NotificationService] = None):
        self.engine = engine
        self.rule_store = engine.rule_store
        self.feed_store = engine.feed_store
        self.article_store = article_store
        self.tag_store = tag_store
        self.notifier = notifier

        self.handlers: Dict[RuleActionType, Handler] = {
            RuleActionType.MARK_AS_READ: self._mark_as_read,
            RuleActionType.MARK_AS_UNREAD: self._mark_as_unread,
            RuleActionType.MARK_AS_STARRED: self._mark_as_starred,
            RuleActionType.MARK_AS_FAVORITE: self._mark_as_favorite,
            RuleActionType.ARCHIVE_ARTICLE: self._archive,
            RuleActionType.HIGHLIGHT_ARTICLE: self._highlight,
            RuleActionType.DELETE_ARTICLE: self._delete,
            RuleActionType.MOVE_TO_CATEGORY: self._move_to_category,
            RuleActionType.APPLY_TAGS: self._apply_tags,
            RuleActionType.SEND_NOTIFICATION: self._send_notification,
            RuleActionType.PLAY_SOUND: self._play_sound,
        }

    @classmethod
    def from_session(cls, db: Session,
                     suppression_window: timedelta = timedelta(minutes=60)) -> 'ActionDispatcher':
        return cls(
            RulesEngine.from_session(db),
            ArticleRepository(db),
            ArticleTagRepository(db),
            NotificationService(db, suppression_window),
        )

    def execute(self, rule: Optional[Rule], article: Optional[Article], record_match: bool = True) -> bool:
        """Apply ``rule``'s action to ``article`` if the rule matches it.

        Returns True iff the action was applied. Store errors propagate.
        """
        if rule is None or article is None:
            return False

        feed = self.feed_store.get_by_id(article.feed_id)
        if not self.engine.rule_matches(rule, article, feed):
            logger.debug(f"Rule '{rule.name}' does not match article {article.id}, no action taken")
            return False

        handler = self.handlers.get(rule.action_type)
        if handler is None:
            logger.error(f"No handler for action {rule.action_type!r} of rule '{rule.name}'")
            return False

        logger.debug(f"Executing action: {rule.action_type.value} for rule '{rule.name}'")
        applied = handler(rule, article, feed)
        if applied:
            logger.info(f"Action {rule.action_type.value} of rule '{rule.name}' applied to article {article.id}")
            if record_match:
                self.rule_store.record_match(rule)
        else:
            logger.warning(f"Action {rule.action_type.value} of rule '{rule.name}' was not applied")
        return applied

    def process_article(self, article: Article) -> List[Rule]:
        """Evaluate an article and execute every matched rule's action"""
        matched = self.engine.evaluate_article(article)
        for rule in matched:
            applied = self.execute(rule, article, record_match=False)
            if applied and rule.action_type == RuleActionType.DELETE_ARTICLE:
                # Article is gone, nothing left to act on or mark processed
                return matched

        article.is_processed = True
        self.article_store.update(article)
        return matched

    def _set_article_fields(self, article: Article, **fields) -> bool:
        for key, value in fields.items():
            setattr(article, key, value)
        self.article_store.update(article)
        return True

    def _mark_as_read(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        return self._set_article_fields(article, status=ArticleStatus.READ)

    def _mark_as_unread(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        return self._set_article_fields(article, status=ArticleStatus.UNREAD)

    def _mark_as_starred(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        return self._set_article_fields(article, is_starred=True)

    def _mark_as_favorite(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        return self._set_article_fields(article, is_favorite=True)

    def _archive(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        return self._set_article_fields(article, status=ArticleStatus.ARCHIVED)

    def _highlight(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        if not rule.highlight_color:
            return False
        return self._set_article_fields(article, highlight_color=rule.highlight_color)

    def _delete(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        self.article_store.delete(article)
        return True

    def _move_to_category(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        # Categories belong to feeds, so the whole feed moves
        if feed is None or rule.category_id is None:
            return False
        feed.category_id = rule.category_id
        self.feed_store.update(feed)
        logger.info(f"Moved feed {feed.id} to category {rule.category_id}")
        return True

    def _apply_tags(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        tag_ids = rule.tag_id_set
        if not tag_ids:
            return False
        added = self.tag_store.apply_tags(article, tag_ids, rule)
        logger.debug(f"Applied {added} new tag(s) to article {article.id}")
        return True

    def _send_notification(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        return self._notify(rule, article, NotificationType.TOAST)

    def _play_sound(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        return self._notify(rule, article, NotificationType.SOUND)

    def _notify(self, rule: Rule, article: Article, notification_type: NotificationType) -> bool:
        if self.notifier is None:
            logger.warning(f"No notifier configured, rule '{rule.name}' cannot notify")
            return False
        return self.notifier.send_notification(article, rule, notification_type, rule.notification_priority)
