#!/usr/bin/env python3
"""
Incremental Resolver Tests: forwarder mode, label detection, pending buffer and timeout
"""

import os
import unittest
from dataclasses import replace
from pathlib import Path

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from order_extract.errors import ConfigurationError
from order_extract.incremental import IncrementalResolver, parse_timestamp_ms
from order_extract.rule_config import ForwarderConfig
from order_extract.rule_loader import RuleLoader

FORMATS = ('%H:%M, %d/%m/%Y',)


def line(time, text, sender='Karl'):
    return f'[{time}, 21/10/2026] {sender} → {text}'


class TestIncrementalResolver(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        rules = RuleLoader(PROJECT_ROOT / 'order_rules', enable_hot_reload=False).build_rules()
        cls.rules = replace(rules, forwarders=ForwarderConfig(names=('karl',), timeout_minutes=10,
                                                              timestamp_formats=FORMATS))

    def setUp(self):
        self.resolver = IncrementalResolver(self.rules)

    def test_label_then_items(self):
        self.resolver.feed(line('09:00', 'Casa Bella'))
        touched = self.resolver.feed(line('09:02', '5kg tomatoes\nDeliver to back entrance'))

        self.assertEqual(len(touched), 1)
        order = self.resolver.orders[0]
        self.assertEqual(order.company_name, 'Casa Bella')
        self.assertEqual(order.items_text, ['5kg tomatoes'])
        self.assertEqual(order.instructions, ['Deliver to back entrance'])
        self.assertEqual(self.resolver.pending, [])

    def test_items_before_label_are_pending(self):
        touched = self.resolver.feed(line('09:02', '5kg tomatoes'))
        self.assertEqual(touched, [])
        self.assertEqual(self.resolver.pending, ['5kg tomatoes'])
        self.assertEqual(self.resolver.orders, [])

        self.resolver.feed(line('09:00', 'Casa Bella'))
        self.assertEqual(self.resolver.pending, [])
        self.assertEqual(self.resolver.orders[0].items_text, ['5kg tomatoes'])

    def test_label_and_items_in_one_line(self):
        self.resolver.feed(line('09:00', 'Maltos\n5kg tomatoes\n2kg onions'))
        self.assertEqual(self.resolver.orders[0].company_name, 'Maltos')
        self.assertEqual(self.resolver.orders[0].items_text, ['5kg tomatoes', '2kg onions'])

    def test_timeout_moves_items_to_pending(self):
        self.resolver.feed(line('09:00', 'Casa Bella'))
        self.resolver.feed(line('09:15', '5kg tomatoes'))
        self.assertEqual(self.resolver.orders[0].items_text, [])
        self.assertEqual(self.resolver.pending, ['5kg tomatoes'])

        self.resolver.feed(line('09:16', 'Maltos'))
        self.assertEqual(self.resolver.company_map['Maltos'].items_text, ['5kg tomatoes'])

    def test_non_forwarder_ignored(self):
        self.assertEqual(self.resolver.feed(line('09:00', 'Casa Bella', sender='Maria')), [])
        self.assertIsNone(self.resolver.current_label)
        self.assertEqual(self.resolver.orders, [])

    def test_forwarder_name_prefix(self):
        self.resolver.feed(line('09:00', 'Casa Bella', sender='Karl Smith'))
        self.assertEqual(self.resolver.current_label, 'Casa Bella')

    def test_add_to_label(self):
        self.resolver.feed(line('09:00', 'Please add to Mugg and Bean\n2kg tomatoes'))
        self.assertEqual(self.resolver.orders[0].company_name, 'Mugg and Bean')
        self.assertEqual(self.resolver.orders[0].items_text, ['2kg tomatoes'])

    def test_substring_label(self):
        self.assertEqual(self.resolver.parse_label('casa bella order'), 'Casa Bella')
        self.assertIsNone(self.resolver.parse_label('5kg tomatoes'))
        self.assertIsNone(self.resolver.parse_label('please deliver to the casa bella back entrance'))

    def test_replay_does_not_duplicate(self):
        self.resolver.feed(line('09:00', 'Casa Bella'))
        self.resolver.feed(line('09:01', '5kg tomatoes'))
        self.resolver.feed(line('09:01', '5kg tomatoes'))
        self.assertEqual(self.resolver.orders[0].items_text, ['5kg tomatoes'])

    def test_unparseable_timestamp_treated_as_fresh(self):
        self.resolver.feed('[yesterday] Karl → Casa Bella')
        self.resolver.feed('[later] Karl → 5kg tomatoes')
        self.assertEqual(self.resolver.orders[0].items_text, ['5kg tomatoes'])

    def test_reset(self):
        self.resolver.feed(line('09:00', 'Casa Bella'))
        self.resolver.reset()
        self.assertIsNone(self.resolver.current_label)
        self.assertEqual(self.resolver.orders, [])

    def test_requires_forwarders(self):
        rules = replace(self.rules, forwarders=ForwarderConfig())
        with self.assertRaises(ConfigurationError):
            IncrementalResolver(rules)


class TestParseTimestamp(unittest.TestCase):

    def test_parse(self):
        first = parse_timestamp_ms('09:00, 21/10/2026', FORMATS)
        second = parse_timestamp_ms('09:10, 21/10/2026', FORMATS)
        self.assertEqual(second - first, 10 * 60 * 1000)

    def test_unparseable(self):
        self.assertIsNone(parse_timestamp_ms('yesterday', FORMATS))
        self.assertIsNone(parse_timestamp_ms(None, FORMATS))


if __name__ == '__main__':
    unittest.main()
