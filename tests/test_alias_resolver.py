#!/usr/bin/env python3
"""
Alias Resolver Tests: exact, regex, auto-correction and substring matching
against the shipped company alias table
"""

import os
import unittest
from pathlib import Path

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from order_extract.alias_resolver import CompanyAliasResolver
from order_extract.rule_config import LiteralVariant
from order_extract.rule_loader import RuleLoader


class TestCompanyAliasResolver(unittest.TestCase):
    """Canonicalization against order_rules/10_company_aliases.yaml"""

    @classmethod
    def setUpClass(cls):
        cls.rules = RuleLoader(PROJECT_ROOT / 'order_rules', enable_hot_reload=False).build_rules()
        cls.resolver = CompanyAliasResolver(cls.rules.aliases)

    def test_every_literal_variant_resolves(self):
        for entry in self.rules.aliases.companies:
            self.assertEqual(self.resolver.canonicalize(entry.canonical), entry.canonical)
            for variant in entry.variants:
                if not isinstance(variant, LiteralVariant):
                    continue
                with self.subTest(variant=variant.text):
                    self.assertEqual(self.resolver.canonicalize(variant.text), entry.canonical)
                    padded = ' ' + variant.text.upper() + ' '
                    self.assertEqual(self.resolver.canonicalize(padded), entry.canonical)

    def test_regex_variant(self):
        self.assertEqual(self.resolver.canonicalize('ASAP Fruit Co'), 'ASAP Fruit')
        self.assertIsNone(self.resolver.canonicalize('asap'))
        self.assertIsNone(self.resolver.match_company_in_text('Please deliver asap'))

    def test_auto_correction_precedence(self):
        self.assertEqual(self.resolver.canonicalize('mungers'), 'Mungers')
        self.assertEqual(self.resolver.canonicalize('Casa Bellla'), 'Casa Bella')

    def test_punctuation_and_spacing_ignored(self):
        self.assertEqual(self.resolver.canonicalize('Mugg & Bean!'), 'Mugg and Bean')
        self.assertEqual(self.resolver.canonicalize('t-junction'), 'T-junction')

    def test_unknown_and_empty(self):
        self.assertIsNone(self.resolver.canonicalize('5kg tomatoes'))
        self.assertIsNone(self.resolver.canonicalize(''))
        self.assertIsNone(self.resolver.canonicalize('   '))
        self.assertIsNone(self.resolver.canonicalize(None))

    def test_match_company_in_text_first_word_wins(self):
        self.assertEqual(self.resolver.match_company_in_text('Maltos\n5kg tomatoes'), 'Maltos')
        self.assertEqual(self.resolver.match_company_in_text('order for wimpy and maltos'), 'Wimpy Mooikloof')
        self.assertIsNone(self.resolver.match_company_in_text('5kg tomatoes\n3 onions'))

    def test_word_level_does_not_join_words(self):
        # "Casa Bella" spans two words, neither resolves on its own
        self.assertIsNone(self.resolver.match_company_in_text('Casa Bella'))

    def test_substring_match(self):
        self.assertEqual(self.resolver.match_company_substring('casa bella order'), 'Casa Bella')
        self.assertEqual(self.resolver.match_company_substring('pecan'), 'Pecanwood Golf Estate')
        self.assertIsNone(self.resolver.match_company_substring('ab'))
        self.assertIsNone(self.resolver.canonicalize('casa bella order'))

    def test_resolve_label_exact_first(self):
        self.assertEqual(self.resolver.resolve_label('Venue'), 'Venue')
        self.assertEqual(self.resolver.resolve_label('revue bar tonight'), 'Revue Bar')
        self.assertIsNone(self.resolver.resolve_label('tomatoes'))


if __name__ == '__main__':
    unittest.main()
