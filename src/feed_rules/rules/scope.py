"""
Deciding whether a rule applies to an article's feed
"""
import logging
from typing import Optional

from feed_rules.database.models import Article, Feed, Rule
from feed_rules.enums import RuleScope

logger = logging.getLogger(__name__)


def is_in_scope(rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
    """True when ``rule`` may be evaluated for ``article`` published by ``feed``.

    An unresolved feed is out of scope for every rule, including all_feeds
    rules. A feed without a category never matches a category-scoped rule.
    """
    if feed is None:
        logger.debug(f"Feed {article.feed_id} not found, rule {rule.name} skipped")
        return False

    if rule.scope == RuleScope.ALL_FEEDS:
        return True
    elif rule.scope == RuleScope.SPECIFIC_FEEDS:
        return feed.id in rule.feed_id_set
    elif rule.scope == RuleScope.SPECIFIC_CATEGORIES:
        return feed.category_id is not None and feed.category_id in rule.category_id_set

    logger.warning(f"Unknown scope {rule.scope!r} on rule {rule.name}")
    return False
