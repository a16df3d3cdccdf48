"""
Notifications raised by rule actions
"""
from datetime import timedelta
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feed_rules.database.models import (
    DEFAULT_NOTIFICATION_TEMPLATE,
    Article,
    NotificationLog,
    Rule,
    utcnow,
)
from feed_rules.enums import NotificationPriority, NotificationType

logger = logging.getLogger(__name__)


def render_template(template: Optional[str], article: Article, source: str = '') -> str:
    """Fill {Title}, {Summary}, {Author}, {Source} and {Link} placeholders"""
    message = template or DEFAULT_NOTIFICATION_TEMPLATE
    replacements = {
        '{Title}': article.title or '',
        '{Summary}': article.summary or '',
        '{Author}': article.author or '',
        '{Source}': source,
        '{Link}': article.link or '',
    }
    for placeholder, value in replacements.items():
        message = message.replace(placeholder, value)
    return message.strip()


class NotificationService:
    """Records notifications and suppresses repeats for the same article and rule"""

    def __init__(self, db: Session, suppression_window: timedelta = timedelta(minutes=60)):
        self.db = db
        self.suppression_window = suppression_window

    def send_notification(self, article: Article, rule: Rule,
                          notification_type: NotificationType = NotificationType.TOAST,
                          priority: NotificationPriority = NotificationPriority.NORMAL) -> bool:
        """Deliver a notification; False when suppressed as a recent duplicate"""
        if self._recently_notified(article.id, rule.id):
            logger.debug(f"Suppressing duplicate notification for article {article.id}, rule {rule.name}")
            return False

        source = article.feed.title if article.feed is not None else ''
        log = NotificationLog(
            article_id=article.id,
            rule_id=rule.id,
            notification_type=notification_type,
            priority=priority,
            title=f"Rule matched: {rule.name}"[:255],
            message=render_template(rule.notification_template, article, source),
            sound_path=rule.sound_path if notification_type in (NotificationType.SOUND, NotificationType.BOTH) else None,
        )
        try:
            self.db.add(log)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Notification sent for article {article.id} by rule '{rule.name}' ({priority.value})")
        return True

    def _recently_notified(self, article_id: int, rule_id: int) -> bool:
        since = utcnow() - self.suppression_window
        return (self.db.query(NotificationLog.id)
                .filter(NotificationLog.article_id == article_id,
                        NotificationLog.rule_id == rule_id,
                        NotificationLog.created_at >= since)
                .first()) is not None
