#!/usr/bin/env python3
"""
Feed Rules Engine - Main entry point
"""
import argparse
import json
import logging
from datetime import timedelta

import structlog
from dotenv import load_dotenv

from feed_rules.config import get_settings
from feed_rules.database import ArticleRepository, configure, init_db, session_scope
from feed_rules.rules import ActionDispatcher, RuleService, RulesConfig, RulesEngine, validate_rule

logger = structlog.get_logger()


def setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
    # Disable debug logging for specific modules
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def read_rules(rules_file: str) -> RulesConfig:
    """Parse the rules configuration file"""
    try:
        with open(rules_file, 'r') as f:
            rules_data = json.load(f)
        return RulesConfig(**rules_data)
    except Exception as e:
        logger.error("Error reading rules", rules_file=rules_file, error=str(e))
        raise


def load_rules(db, rules_file: str, default_priority: int) -> RulesConfig:
    """Load rules from configuration file and sync with database"""
    try:
        rules_config = read_rules(rules_file)
        service = RuleService.from_session(db, default_priority)
        service.sync_rules(rules_config)
        logger.info("Rules synced to database", count=len(rules_config.rules), rules_file=rules_file)
        return rules_config

    except Exception as e:
        logger.error("Error loading rules", rules_file=rules_file, error=str(e))
        raise


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description='Feed Rules Engine')
    parser.add_argument('--rules-file', help='Rules JSON file (default: RULES_FILE or config/rules.json)')
    parser.add_argument('--max-articles', type=int, help='Maximum number of articles to process')
    parser.add_argument('--dry-run', action='store_true',
                        help='Report which rules in the rules file would match; the database is not changed')
    return parser.parse_args(argv)


def dry_run(db, rules_config: RulesConfig, articles, default_priority: int) -> None:
    """Report what every enabled rule in the file would match.

    The rules are tested as unsaved drafts, so stored rules, their match
    counts and the articles are left as they are.
    """
    engine = RulesEngine.from_session(db)
    drafts = []
    for definition in rules_config.rules:
        rule = definition.to_model()
        if rule.priority is None or rule.priority <= 0:
            rule.priority = default_priority
        validate_rule(rule)
        drafts.append(rule)

    for rule in sorted(drafts, key=lambda r: r.priority):
        if not rule.is_enabled:
            continue
        result = engine.test_rule(rule, articles)
        logger.info("Rule test",
                    rule=rule.name,
                    matches=result.matched_count,
                    tested=result.total_tested,
                    article_ids=result.matched_article_ids,
                    avg_ms=round(result.average_evaluation_time_ms, 3))


def main(argv=None):
    """Main entry point for the Feed Rules Engine"""
    try:
        args = parse_args(argv)

        load_dotenv()
        settings = get_settings()
        setup_logging(settings.log_level)

        logger.info("Starting Feed Rules Engine...")

        configure(settings.database_url)
        init_db()

        rules_file = args.rules_file or settings.rules_file
        with session_scope() as db:
            if args.dry_run:
                articles = ArticleRepository(db).get_unprocessed(limit=args.max_articles)
                logger.info(f"Found {len(articles)} unprocessed articles")
                dry_run(db, read_rules(rules_file), articles, settings.default_rule_priority)
                return

            load_rules(db, rules_file, settings.default_rule_priority)

            articles = ArticleRepository(db).get_unprocessed(limit=args.max_articles)
            logger.info(f"Found {len(articles)} unprocessed articles")

            dispatcher = ActionDispatcher.from_session(
                db, timedelta(minutes=settings.notification_suppression_minutes))

            batch_size = settings.batch_size
            total_matches = 0
            for i in range(0, len(articles), batch_size):
                batch = articles[i:i + batch_size]
                logger.info(f"Processing batch {i // batch_size + 1} ({len(batch)} articles)")
                for article in batch:
                    matched = dispatcher.process_article(article)
                    total_matches += len(matched)
                logger.info(f"Completed batch {i // batch_size + 1}")

            logger.info("Article processing completed", articles=len(articles), matches=total_matches)
    except Exception as e:
        logger.error("Error processing articles", error=str(e))
        raise


if __name__ == "__main__":
    main()
