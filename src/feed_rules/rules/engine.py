"""
Rules engine for classifying articles based on configured rules
"""
import logging
import time
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from feed_rules.database.models import Article, Feed, Rule
from feed_rules.database.repositories import FeedRepository, RuleRepository

from .conditions import evaluate_condition
from .groups import evaluate_advanced
from .schema import RuleTestResult
from .scope import is_in_scope

logger = logging.getLogger(__name__)


class RulesEngine:
    """Engine for evaluating articles against the active rules"""

    def __init__(self, rule_store: RuleRepository, feed_store: FeedRepository):
        self.rule_store = rule_store
        self.feed_store = feed_store

    @classmethod
    def from_session(cls, db: Session) -> 'RulesEngine':
        return cls(RuleRepository(db), FeedRepository(db))

    def evaluate_article(self, article: Optional[Article]) -> List[Rule]:
        """Run an article through the enabled rules in priority order.

        Every match is recorded on the rule (match count, last match date)
        through the rule store. A matching rule flagged stop_on_match ends
        the chain. Returns the matched rules in evaluation order.
        """
        if article is None:
            return []

        rules = self.rule_store.get_active_rules()
        if not rules:
            logger.debug("No active rules found")
            return []

        feed = self.feed_store.get_by_id(article.feed_id)
        logger.debug(f"Processing article: {article.title} (feed {article.feed_id})")

        matched: List[Rule] = []
        for rule in rules:
            if not self.rule_matches(rule, article, feed):
                continue

            logger.info(f"Rule '{rule.name}' matched article {article.id}")
            self.rule_store.record_match(rule)
            matched.append(rule)

            if rule.stop_on_match:
                logger.debug(f"Rule '{rule.name}' has stop_on_match set, stopping evaluation")
                break

        logger.debug(f"Article {article.id} matched {len(matched)} rule(s)")
        return matched

    def rule_matches(self, rule: Rule, article: Article, feed: Optional[Feed]) -> bool:
        """Scope check plus match verdict, without side effects"""
        if not is_in_scope(rule, article, feed):
            return False

        try:
            if rule.uses_advanced_conditions:
                return evaluate_advanced(rule.conditions, article)
            return evaluate_condition(rule.as_condition(), article)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to evaluate rule '{rule.name}' against article {article.id}: {e}")
            return False

    def evaluate_articles(self, articles: Iterable[Article]) -> Dict[int, List[Rule]]:
        """Evaluate several articles; only articles with matches appear in the result"""
        results: Dict[int, List[Rule]] = {}
        total = 0
        for article in articles:
            total += 1
            matched = self.evaluate_article(article)
            if matched:
                results[article.id] = matched

        logger.info(f"Batch evaluation completed: {len(results)} of {total} articles matched rules")
        return results

    def test_rule(self, rule: Rule, articles: Iterable[Article]) -> RuleTestResult:
        """Dry-run one rule over sample articles. Nothing is recorded."""
        result = RuleTestResult(rule_name=rule.name)
        feeds: Dict[int, Optional[Feed]] = {}

        started = time.perf_counter()
        for article in articles:
            result.total_tested += 1
            if article.feed_id not in feeds:
                feeds[article.feed_id] = self.feed_store.get_by_id(article.feed_id)

            if self.rule_matches(rule, article, feeds[article.feed_id]):
                result.matched_count += 1
                result.matched_article_ids.append(article.id)
        elapsed_ms = (time.perf_counter() - started) * 1000

        if result.total_tested:
            result.average_evaluation_time_ms = elapsed_ms / result.total_tested

        logger.info(f"Rule test completed: {result.matched_count}/{result.total_tested} matches")
        return result
