"""
Tests for the command line entry point
"""

import json
import tempfile
import unittest
from unittest.mock import patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from feed_rules.database import Article, Feed, Rule, configure, get_db_session, init_db
from feed_rules.main import main, parse_args

RULES = {
    'rules': [
        {'name': 'AI', 'value': 'AI', 'action_type': 'mark_as_starred', 'priority': 1},
        {'name': 'Release notes', 'conditions': [
            {'field': 'title', 'operator': 'contains', 'value': 'release', 'combine_with_next': 'or'},
            {'field': 'content', 'operator': 'contains', 'value': 'changelog', 'order': 1},
        ], 'action_type': 'mark_as_read'},
    ]
}


class TestMain(unittest.TestCase):
    def setUp(self):
        handle, self.rules_file = tempfile.mkstemp(suffix='.json')
        with os.fdopen(handle, 'w') as f:
            json.dump(RULES, f)
        self.env = patch.dict(os.environ, {'DATABASE_URL': 'sqlite://', 'RULES_FILE': self.rules_file,
                                           'LOG_LEVEL': 'WARNING'})
        self.env.start()

        # One in-memory database shared by every main() call in a test
        configure('sqlite://')
        init_db()
        self.configure = patch('feed_rules.main.configure')
        self.configure.start()

    def tearDown(self):
        self.configure.stop()
        self.env.stop()
        os.remove(self.rules_file)

    def test_parse_args(self):
        args = parse_args(['--rules-file', 'custom.json', '--max-articles', '5', '--dry-run'])
        self.assertEqual(args.rules_file, 'custom.json')
        self.assertEqual(args.max_articles, 5)
        self.assertTrue(args.dry_run)

        defaults = parse_args([])
        self.assertIsNone(defaults.rules_file)
        self.assertFalse(defaults.dry_run)

    def test_rules_are_synced(self):
        main([])

        db = get_db_session()
        try:
            rules = db.query(Rule).order_by(Rule.priority).all()
            self.assertEqual([r.name for r in rules], ['AI', 'Release notes'])
            self.assertEqual(rules[1].priority, 100)
            self.assertEqual(len(rules[1].conditions), 2)
        finally:
            db.close()

    def test_process_and_dry_run(self):
        db = get_db_session()
        try:
            feed = Feed(title='Tech News', url='https://example.com/feed')
            db.add(feed)
            db.commit()
            db.add_all([
                Article(feed_id=feed.id, title='The Future of AI'),
                Article(feed_id=feed.id, title='Version 2.0 release'),
                Article(feed_id=feed.id, title='Gardening tips'),
            ])
            db.commit()
        finally:
            db.close()

        main(['--dry-run'])
        db = get_db_session()
        try:
            self.assertEqual(db.query(Article).filter(Article.is_processed.is_(True)).count(), 0)
            self.assertEqual(db.query(Rule).count(), 0)
        finally:
            db.close()

        main(['--max-articles', '10'])
        db = get_db_session()
        try:
            articles = {a.title: a for a in db.query(Article).all()}
            self.assertTrue(articles['The Future of AI'].is_starred)
            self.assertEqual(articles['Version 2.0 release'].status.value, 'read')
            self.assertTrue(all(a.is_processed for a in articles.values()))
            self.assertEqual({r.name: r.match_count for r in db.query(Rule).all()},
                             {'AI': 1, 'Release notes': 1})
        finally:
            db.close()

    def test_dry_run_leaves_stored_rules_alone(self):
        db = get_db_session()
        try:
            feed = Feed(title='Tech News', url='https://example.com/feed')
            db.add_all([feed, Rule(name='Legacy', value='AI', match_count=3)])
            db.commit()
            db.add(Article(feed_id=feed.id, title='The Future of AI'))
            db.commit()
        finally:
            db.close()

        main(['--dry-run'])

        db = get_db_session()
        try:
            rules = db.query(Rule).all()
            self.assertEqual([(r.name, r.match_count) for r in rules], [('Legacy', 3)])
            self.assertFalse(db.query(Article).one().is_processed)
        finally:
            db.close()

    def test_missing_rules_file(self):
        with self.assertRaises(FileNotFoundError):
            main(['--rules-file', self.rules_file + '.missing'])


if __name__ == '__main__':
    unittest.main()
