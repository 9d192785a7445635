#!/usr/bin/env python3
"""
Workflow Tests: chat export file in, orders.json / review Excel out
"""

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path

# Setup path
TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent
os.chdir(PROJECT_ROOT)

from workflow import OrderWorkflow

CHAT_EXPORT = """\
[08:58, 21/10/2026] Karl → Stock as at 21 October
[09:00, 21/10/2026] Karl → 5kg tomatoes
3 onions
[09:01, 21/10/2026] Karl → Casa Bella
[09:03, 21/10/2026] Karl → Venue
2 boxes lettuce
"""


class TestOrderWorkflow(unittest.TestCase):

    def setUp(self):
        self.work_dir = Path(tempfile.mkdtemp())
        self.input_file = self.work_dir / 'chat_export.txt'
        with open(self.input_file, 'w', encoding='utf-8') as f:
            f.write(CHAT_EXPORT)
        self._saved_env = {key: os.environ.pop(key) for key in ('FORWARDER_NAMES', 'FORWARDERS')
                           if key in os.environ}
        self.workflow = OrderWorkflow(rules_dir=str(PROJECT_ROOT / 'order_rules'))

    def tearDown(self):
        shutil.rmtree(self.work_dir, ignore_errors=True)
        os.environ.update(self._saved_env)

    def load_orders(self, summary):
        with open(summary['outputs']['orders_json'], 'r', encoding='utf-8') as f:
            return json.load(f)['orders']

    def test_batch_mode(self):
        summary = self.workflow.run(self.input_file, mode='batch', output_dir=self.work_dir / 'out')
        self.assertEqual(summary['messages'], 4)
        orders = self.load_orders(summary)
        self.assertEqual([o['company_name'] for o in orders], ['Casa Bella', 'Venue'])
        self.assertEqual(orders[0]['items_text'], ['5kg tomatoes', '3 onions'])

    def test_incremental_mode(self):
        summary = self.workflow.run(self.input_file, mode='incremental', output_dir=self.work_dir / 'out')
        orders = self.load_orders(summary)
        self.assertEqual([o['company_name'] for o in orders], ['Casa Bella', 'Venue'])
        self.assertEqual(orders[0]['items_text'], ['5kg tomatoes', '3 onions'])
        self.assertEqual(orders[1]['items_text'], ['2 boxes lettuce'])

    def test_excel_export(self):
        summary = self.workflow.run(self.input_file, output_dir=self.work_dir / 'out', excel=True)
        self.assertTrue(Path(summary['outputs']['review_excel']).exists())

    def test_missing_input_raises(self):
        with self.assertRaises(FileNotFoundError):
            self.workflow.run(self.work_dir / 'missing.txt')


if __name__ == '__main__':
    unittest.main()
