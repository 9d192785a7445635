#!/usr/bin/env python3
"""
Message Segmenter Tests: raw line parsing, fragment splitting, chat export splitting
"""

import os
import unittest
from pathlib import Path

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from order_extract.message_segmenter import MessageSegmenter, split_raw_messages
from order_extract.rule_loader import RuleLoader


class TestMessageSegmenter(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        rules = RuleLoader(PROJECT_ROOT / 'order_rules', enable_hot_reload=False).build_rules()
        cls.segmenter = MessageSegmenter(rules.quantities)

    def test_segment_with_phone(self):
        line = self.segmenter.segment('[09:15, 21/10/2026] Karl · +27 82 555 1234 → 5kg tomatoes')
        self.assertEqual(line.timestamp, '09:15, 21/10/2026')
        self.assertEqual(line.sender, 'Karl')
        self.assertEqual(line.phone, '+27 82 555 1234')
        self.assertEqual(line.text, '5kg tomatoes')

    def test_segment_multiline_text(self):
        line = self.segmenter.segment('[09:15, 21/10/2026] Karl → 5kg tomatoes\n3 onions')
        self.assertEqual(line.text, '5kg tomatoes\n3 onions')
        self.assertIsNone(line.phone)

    def test_sub_timestamp_takes_precedence(self):
        line = self.segmenter.segment('[09:15, 21/10/2026] Karl → [08:55, 21/10/2026] Maria: 3kg onions')
        self.assertEqual(line.timestamp, '08:55, 21/10/2026')
        self.assertEqual(line.sender, 'Karl')
        self.assertEqual(line.text, '3kg onions')

    def test_unparseable_lines_dropped(self):
        self.assertIsNone(self.segmenter.segment('just some text'))
        self.assertIsNone(self.segmenter.segment(''))
        self.assertIsNone(self.segmenter.segment('[09:15, 21/10/2026] Karl → '))

    def test_none_line_logged_and_skipped(self):
        with self.assertLogs('order_extract.message_segmenter', level='WARNING'):
            self.assertIsNone(self.segmenter.segment(None))

    def test_skip_pattern(self):
        self.assertIsNone(self.segmenter.segment('[07:00, 21/10/2026] Karl → Stock as at 21 October'))

    def test_fragments_split_trim_and_correct(self):
        fragments = self.segmenter.fragments('  5 kg tomatoes \n\n\n3 kilos onions\n   \nCasa Bella')
        self.assertEqual(fragments, ['5kg tomatoes', '3kg onions', 'Casa Bella'])

    def test_fragments_uncorrected(self):
        self.assertEqual(self.segmenter.fragments('5 kg tomatoes', corrected=False), ['5 kg tomatoes'])


class TestSplitRawMessages(unittest.TestCase):

    def test_continuation_lines_joined(self):
        chat = (
            "Messages and calls are end-to-end encrypted\n"
            "[09:00, 21/10/2026] Karl → 5kg tomatoes\n"
            "3 onions\n"
            "\n"
            "[09:01, 21/10/2026] Karl → Casa Bella\n"
        )
        self.assertEqual(split_raw_messages(chat), [
            '[09:00, 21/10/2026] Karl → 5kg tomatoes\n3 onions',
            '[09:01, 21/10/2026] Karl → Casa Bella',
        ])

    def test_empty_input(self):
        self.assertEqual(split_raw_messages(''), [])
        self.assertEqual(split_raw_messages(None), [])


if __name__ == '__main__':
    unittest.main()
