"""
Tests for single condition evaluation.

Covers field resolution (content fallback, all_fields vs any_field,
published_date), every operator with and without case sensitivity,
negation, regex handling and number/date comparisons.
"""

import unittest
from datetime import datetime

import sys
import os
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from feed_rules.database.models import Article, RuleCondition
from feed_rules.enums import RuleFieldTarget as F, RuleOperator as Op
from feed_rules.rules.conditions import evaluate_condition, evaluate_text, is_comparable_operand, resolve_field


def make_article(**overrides):
    fields = dict(
        id=1,
        feed_id=1,
        title='The Future of AI',
        content='Large language models are changing software.',
        summary='A look ahead',
        author='Ada Lovelace',
        categories='tech, research',
        published_date=datetime(2024, 5, 1, 12, 0),
    )
    fields.update(overrides)
    return Article(**fields)


class TestFieldResolution(unittest.TestCase):
    def test_content_falls_back_to_summary(self):
        article = make_article(content=None, summary='critical bug found')
        self.assertEqual(resolve_field(article, F.CONTENT), 'critical bug found')

    def test_missing_text_fields_resolve_to_empty_string(self):
        article = make_article(author=None, categories=None)
        self.assertEqual(resolve_field(article, F.AUTHOR), '')
        self.assertEqual(resolve_field(article, F.CATEGORIES), '')

    def test_all_fields_joins_text_fields(self):
        article = make_article(title='Alpha', content=None, summary=None, author='Bob', categories=None)
        self.assertEqual(resolve_field(article, F.ALL_FIELDS), 'Alpha Bob')

    def test_published_date_is_datetime(self):
        article = make_article()
        self.assertEqual(resolve_field(article, F.PUBLISHED_DATE), datetime(2024, 5, 1, 12, 0))


class TestStringOperators(unittest.TestCase):
    def test_string_operators(self):
        """contains / equals / starts_with / ends_with and their negative forms"""
        article = make_article()
        test_cases = [
            {'operator': Op.CONTAINS, 'value': 'ai', 'case_sensitive': False, 'should_match': True,
             'description': 'Contains - case insensitive'},
            {'operator': Op.CONTAINS, 'value': 'ai', 'case_sensitive': True, 'should_match': False,
             'description': 'Contains - case sensitive miss'},
            {'operator': Op.CONTAINS, 'value': 'AI', 'case_sensitive': True, 'should_match': True,
             'description': 'Contains - case sensitive hit'},
            {'operator': Op.EQUALS, 'value': 'the future of ai', 'case_sensitive': False, 'should_match': True,
             'description': 'Equals - case insensitive'},
            {'operator': Op.EQUALS, 'value': 'the future of ai', 'case_sensitive': True, 'should_match': False,
             'description': 'Equals - case sensitive'},
            {'operator': Op.EQUALS, 'value': 'Future', 'case_sensitive': False, 'should_match': False,
             'description': 'Equals - partial text'},
            {'operator': Op.NOT_EQUALS, 'value': 'Something else', 'case_sensitive': False, 'should_match': True,
             'description': 'Not equals - different'},
            {'operator': Op.NOT_CONTAINS, 'value': 'crypto', 'case_sensitive': False, 'should_match': True,
             'description': 'Not contains - absent'},
            {'operator': Op.NOT_CONTAINS, 'value': 'future', 'case_sensitive': False, 'should_match': False,
             'description': 'Not contains - present'},
            {'operator': Op.STARTS_WITH, 'value': 'the', 'case_sensitive': False, 'should_match': True,
             'description': 'Starts with'},
            {'operator': Op.STARTS_WITH, 'value': 'Future', 'case_sensitive': False, 'should_match': False,
             'description': 'Starts with - not a prefix'},
            {'operator': Op.ENDS_WITH, 'value': 'of ai', 'case_sensitive': False, 'should_match': True,
             'description': 'Ends with'},
        ]

        for case in test_cases:
            with self.subTest(description=case['description']):
                condition = RuleCondition(field=F.TITLE, operator=case['operator'], value=case['value'],
                                          is_case_sensitive=case['case_sensitive'])
                self.assertEqual(evaluate_condition(condition, article), case['should_match'])

    def test_empty_operators(self):
        article = make_article(author=None)
        self.assertTrue(evaluate_condition(RuleCondition(field=F.AUTHOR, operator=Op.IS_EMPTY), article))
        self.assertFalse(evaluate_condition(RuleCondition(field=F.AUTHOR, operator=Op.IS_NOT_EMPTY), article))
        self.assertTrue(evaluate_condition(RuleCondition(field=F.TITLE, operator=Op.IS_NOT_EMPTY), article))

    def test_whitespace_only_field_is_empty(self):
        article = make_article(categories='   ')
        self.assertTrue(evaluate_condition(RuleCondition(field=F.CATEGORIES, operator=Op.IS_EMPTY), article))

    def test_negate_is_applied_last(self):
        condition = RuleCondition(field=F.TITLE, operator=Op.CONTAINS, value='AI', negate=True)
        self.assertFalse(evaluate_condition(condition, make_article(title='The Future of AI')))
        self.assertTrue(evaluate_condition(condition, make_article(title='Gardening tips')))

    def test_all_fields_versus_any_field(self):
        article = make_article(title='Alpha', content=None, summary=None, author='Bob', categories=None)

        joined = RuleCondition(field=F.ALL_FIELDS, operator=Op.CONTAINS, value='alpha bob')
        self.assertTrue(evaluate_condition(joined, article))

        per_field = RuleCondition(field=F.ANY_FIELD, operator=Op.CONTAINS, value='alpha bob')
        self.assertFalse(evaluate_condition(per_field, article))

        author_equals = RuleCondition(field=F.ANY_FIELD, operator=Op.EQUALS, value='bob')
        self.assertTrue(evaluate_condition(author_equals, article))

        joined_equals = RuleCondition(field=F.ALL_FIELDS, operator=Op.EQUALS, value='bob')
        self.assertFalse(evaluate_condition(joined_equals, article))

    def test_evaluate_text(self):
        condition = RuleCondition(field=F.TITLE, operator=Op.CONTAINS, value='release')
        self.assertTrue(evaluate_text(condition, 'Python 3.13 release notes'))
        self.assertFalse(evaluate_text(condition, 'Conference recap'))


class TestRegexOperator(unittest.TestCase):
    def test_regex(self):
        test_cases = [
            {'pattern': r'\bAI\b', 'title': 'The Future of AI', 'case_sensitive': False, 'should_match': True},
            {'pattern': r'\bAI\b', 'title': 'the future of ai', 'case_sensitive': False, 'should_match': True},
            {'pattern': r'\bAI\b', 'title': 'the future of ai', 'case_sensitive': True, 'should_match': False},
            {'pattern': r'CVE-\d{4}-\d+', 'title': 'Patch for CVE-2024-1234', 'case_sensitive': False,
             'should_match': True},
            {'pattern': r'^Future', 'title': 'The Future of AI', 'case_sensitive': False, 'should_match': False},
        ]

        for case in test_cases:
            with self.subTest(case=case):
                condition = RuleCondition(field=F.TITLE, operator=Op.REGEX, regex_pattern=case['pattern'],
                                          is_case_sensitive=case['case_sensitive'])
                article = make_article(title=case['title'])
                self.assertEqual(evaluate_condition(condition, article), case['should_match'])

    def test_invalid_pattern_does_not_match(self):
        condition = RuleCondition(field=F.TITLE, operator=Op.REGEX, regex_pattern='(unclosed')
        with self.assertLogs('feed_rules.rules.conditions', level='WARNING'):
            self.assertFalse(evaluate_condition(condition, make_article()))

    def test_empty_pattern_does_not_match(self):
        condition = RuleCondition(field=F.TITLE, operator=Op.REGEX, regex_pattern='')
        self.assertFalse(evaluate_condition(condition, make_article()))


class TestComparisonOperators(unittest.TestCase):
    def test_published_date_comparisons(self):
        article = make_article(published_date=datetime(2024, 5, 1, 12, 0))
        test_cases = [
            {'operator': Op.GREATER_THAN, 'value': '2024-01-01', 'value2': '', 'should_match': True},
            {'operator': Op.LESS_THAN, 'value': '2024-01-01', 'value2': '', 'should_match': False},
            {'operator': Op.LESS_THAN, 'value': '2024-12-31T00:00:00+00:00', 'value2': '', 'should_match': True},
            {'operator': Op.BETWEEN, 'value': '2024-01-01', 'value2': '2024-12-31', 'should_match': True},
            {'operator': Op.BETWEEN, 'value': '2023-01-01', 'value2': '2023-12-31', 'should_match': False},
            {'operator': Op.NOT_BETWEEN, 'value': '2024-01-01', 'value2': '2024-12-31', 'should_match': False},
            {'operator': Op.NOT_BETWEEN, 'value': '2023-01-01', 'value2': '2023-12-31', 'should_match': True},
        ]

        for case in test_cases:
            with self.subTest(case=case):
                condition = RuleCondition(field=F.PUBLISHED_DATE, operator=case['operator'],
                                          value=case['value'], value2=case['value2'])
                self.assertEqual(evaluate_condition(condition, article), case['should_match'])

    def test_explicit_date_format(self):
        article = make_article(published_date=datetime(2024, 6, 1))
        condition = RuleCondition(field=F.PUBLISHED_DATE, operator=Op.GREATER_THAN,
                                  value='01/05/2024', date_format='%d/%m/%Y')
        self.assertTrue(evaluate_condition(condition, article))

    def test_numeric_comparison_on_text_field(self):
        article = make_article(title='42')
        test_cases = [
            (Op.GREATER_THAN, '10', '', True),
            (Op.GREATER_THAN, '100', '', False),
            (Op.LESS_THAN, '42.5', '', True),
            (Op.BETWEEN, '42', '50', True),
            (Op.BETWEEN, '0', '42', True),
            (Op.NOT_BETWEEN, '43', '50', True),
        ]
        for operator, value, value2, should_match in test_cases:
            with self.subTest(operator=operator, value=value, value2=value2):
                condition = RuleCondition(field=F.TITLE, operator=operator, value=value, value2=value2)
                self.assertEqual(evaluate_condition(condition, article), should_match)

    def test_incomparable_values_do_not_match(self):
        test_cases = [
            make_article(title='xyz'),
            make_article(published_date=None),
        ]
        for article in test_cases:
            with self.subTest(title=article.title, published=article.published_date):
                for field in (F.TITLE, F.PUBLISHED_DATE):
                    condition = RuleCondition(field=field, operator=Op.GREATER_THAN, value='xyz')
                    self.assertFalse(evaluate_condition(condition, article))

        missing_date = RuleCondition(field=F.PUBLISHED_DATE, operator=Op.LESS_THAN, value='2024-01-01')
        self.assertFalse(evaluate_condition(missing_date, make_article(published_date=None)))

        for title in ('NaN', 'inf', '-Infinity'):
            for operator in (Op.BETWEEN, Op.NOT_BETWEEN, Op.GREATER_THAN, Op.LESS_THAN):
                with self.subTest(title=title, operator=operator):
                    condition = RuleCondition(field=F.TITLE, operator=operator, value='1', value2='5')
                    self.assertFalse(evaluate_condition(condition, make_article(title=title)))

    def test_is_comparable_operand(self):
        self.assertTrue(is_comparable_operand('10'))
        self.assertTrue(is_comparable_operand('2024-01-01'))
        self.assertTrue(is_comparable_operand('01/05/2024', '%d/%m/%Y'))
        self.assertFalse(is_comparable_operand('2024-01-01', '%d/%m/%Y'))
        self.assertFalse(is_comparable_operand('xyz'))
        self.assertFalse(is_comparable_operand('nan'))
        self.assertFalse(is_comparable_operand('inf'))
        self.assertFalse(is_comparable_operand(''))


if __name__ == '__main__':
    unittest.main()
