#!/usr/bin/env python3
"""
Main Workflow Script - WhatsApp Order Extraction
        Batch mode: resolve the whole chat export at once, consolidate per company
        Incremental mode: replay the chat line by line through the forwarder resolver
        Both modes write orders.json and, optionally, a review Excel workbook
"""

import sys
import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional
from datetime import datetime

# Load environment variables from .env file if it exists
_env_file = Path(__file__).parent / '.env'
if _env_file.exists():
    with open(_env_file, 'r') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                os.environ[key.strip()] = value.strip()

from order_extract import (
    ConfigurationError,
    IncrementalResolver,
    ItemParser,
    Order,
    OrderResolver,
    RuleLoader,
    split_raw_messages,
)
from order_extract.logger import setup_logger
from order_extract.order_export import export_orders_excel, export_orders_json
from config import INPUT_FILE, LOGGING, OUTPUT_DIR, OUTPUT_FILES, RULES_DIR


class OrderWorkflow:
    """Chat export -> per-company orders"""

    def __init__(self, rules_dir: Optional[str] = None):
        """
        Initialize workflow and build the rule object once

        Args:
            rules_dir: Rule files directory (defaults to config.RULES_DIR)

        Raises:
            ConfigurationError: if a required rule file or key is missing
        """
        self.logger = logging.getLogger(__name__)
        self.rules_dir = Path(rules_dir or RULES_DIR)
        self.rule_loader = RuleLoader(self.rules_dir)
        self.rules = self.rule_loader.build_rules()
        self.item_parser = ItemParser(self.rules.items)

    def read_chat(self, input_file: Path) -> List[str]:
        """Read a chat export and split it into raw message lines"""
        input_file = Path(input_file)
        if not input_file.exists():
            self.logger.error(f"Chat export not found: {input_file}")
            raise FileNotFoundError(f"Chat export not found: {input_file}")

        with open(input_file, 'r', encoding='utf-8') as f:
            raw_lines = split_raw_messages(f.read())
        self.logger.info(f"Read {len(raw_lines)} messages from {input_file}")
        return raw_lines

    def run_batch(self, raw_lines: List[str]) -> List[Order]:
        """Resolve and consolidate the whole batch"""
        resolver = OrderResolver(self.rules)
        return resolver.resolve_batch(raw_lines)['orders']

    def run_incremental(self, raw_lines: List[str]) -> List[Order]:
        """
        Feed lines one at a time, as they would arrive live

        Returns:
            Final company map values, in first-label order
        """
        resolver = IncrementalResolver(self.rules)
        for raw_line in raw_lines:
            resolver.feed(raw_line)
        if resolver.pending:
            self.logger.warning(
                f"{len(resolver.pending)} fragments never matched a company label: "
                f"{resolver.pending[:5]}"
            )
        return resolver.orders

    def export(self, orders: List[Order], output_dir: Path, excel: bool = False) -> Dict[str, str]:
        """
        Write orders.json and optionally the review workbook

        Returns:
            Mapping of output kind -> file path
        """
        output_dir = Path(output_dir)
        outputs = {
            'orders_json': str(export_orders_json(orders, output_dir / OUTPUT_FILES['orders_json'])),
        }
        if excel:
            excel_file = export_orders_excel(orders, output_dir / OUTPUT_FILES['review_excel'], self.item_parser)
            outputs['review_excel'] = str(excel_file)
        return outputs

    def run(self, input_file: Path, mode: str = 'batch', output_dir: Optional[Path] = None,
            excel: bool = False) -> Dict:
        """
        Run the workflow end to end

        Args:
            input_file: Exported chat text
            mode: 'batch' or 'incremental'
            output_dir: Output directory (defaults to config.OUTPUT_DIR)
            excel: Also write the review Excel workbook

        Returns:
            Summary dictionary
        """
        self.logger.info("=" * 80)
        self.logger.info(f"ORDER EXTRACTION ({mode.upper()} MODE)")
        self.logger.info("=" * 80)

        raw_lines = self.read_chat(input_file)
        if mode == 'incremental':
            orders = self.run_incremental(raw_lines)
        else:
            orders = self.run_batch(raw_lines)

        outputs = self.export(orders, Path(output_dir or OUTPUT_DIR), excel=excel)

        summary = {
            'mode': mode,
            'messages': len(raw_lines),
            'orders': len(orders),
            'items': sum(len(order.items_text) for order in orders),
            'instructions': sum(len(order.instructions) for order in orders),
            'outputs': outputs,
            'completed_at': datetime.now().isoformat(),
        }
        self.logger.info(f"Summary: {json.dumps(summary, indent=2, default=str)}")
        return summary


def main():
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='WhatsApp Order Extraction Workflow')
    parser.add_argument('--input', type=str, default=INPUT_FILE,
                        help='Exported WhatsApp chat text file')
    parser.add_argument('--mode', type=str, default='batch', choices=['batch', 'incremental'],
                        help='batch = whole chat at once, incremental = forwarder mode line by line')
    parser.add_argument('--output-dir', type=str, default=OUTPUT_DIR,
                        help='Output directory for orders.json / review Excel')
    parser.add_argument('--excel', action='store_true',
                        help='Also export an Excel workbook for manual review')
    parser.add_argument('--rules-dir', type=str, default=RULES_DIR,
                        help='Rule files directory')
    parser.add_argument('--log-level', type=str, default=LOGGING['level'],
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])

    args = parser.parse_args()

    logger = setup_logger(args.log_level, Path(LOGGING['log_dir']), LOGGING['format'])

    try:
        workflow = OrderWorkflow(rules_dir=args.rules_dir)
        workflow.run(Path(args.input), mode=args.mode, output_dir=Path(args.output_dir), excel=args.excel)
    except ConfigurationError as e:
        logger.error(f"Invalid rule configuration: {e}")
        sys.exit(2)
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == '__main__':
    main()
