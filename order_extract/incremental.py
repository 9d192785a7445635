#!/usr/bin/env python3
"""
Incremental Resolver - Forwarder-mode order grouping, one chat line at a time

Only lines from forwarder accounts are considered. Inside those lines a
fragment that resolves to a company label opens (or reopens) that company's
order; following fragments go to the current label while it is fresh, and
are held as pending otherwise until the next label arrives.

Lines must be fed in chronological order. Replaying a line adds its
fragments again unless the exact string is already in that company's order.
"""

import re
import logging
from datetime import datetime
from typing import Dict, List, Optional

from .alias_resolver import CompanyAliasResolver
from .errors import ConfigurationError
from .fragment_classifier import FragmentClassifier
from .message_segmenter import MessageSegmenter
from .models import ChatLine, Order
from .rule_config import OrderRules

logger = logging.getLogger(__name__)

ADD_TO_LABEL_RE = re.compile(r'^(?:please\s+)?add\s+(?:it\s+|this\s+|these\s+)?(?:on\s*to|onto|to)\s+(.+?)\s*$',
                             re.IGNORECASE)
MAX_LABEL_WORDS = 4
MAX_LABEL_LENGTH = 40
_DIGIT_RE = re.compile(r'\d')


def parse_timestamp_ms(timestamp: str, formats) -> Optional[int]:
    """Parse a chat timestamp (e.g. '09:15, 21/10/2026') to epoch milliseconds"""
    value = (timestamp or '').strip()
    for fmt in formats:
        try:
            return int(datetime.strptime(value, fmt).timestamp() * 1000)
        except ValueError:
            continue
    return None


class IncrementalResolver:
    """Stateful forwarder-mode resolver; one instance per chat session"""

    def __init__(self, rules: OrderRules):
        """
        Args:
            rules: OrderRules with a non-empty forwarder allowlist

        Raises:
            ConfigurationError: if no forwarder names are configured
        """
        if not rules.forwarders.enabled:
            raise ConfigurationError("Incremental resolution requires at least one forwarder name")
        self.rules = rules
        self.forwarders = rules.forwarders
        self.segmenter = MessageSegmenter(rules.quantities)
        self.aliases = CompanyAliasResolver(rules.aliases)
        self.classifier = FragmentClassifier(rules, self.aliases)
        self.timeout_ms = int(self.forwarders.timeout_minutes * 60 * 1000)

        self.current_label: Optional[str] = None
        self.last_label_ts_ms: Optional[int] = None
        self.pending: List[str] = []
        self.company_map: Dict[str, Order] = {}

    @property
    def orders(self) -> List[Order]:
        return list(self.company_map.values())

    def reset(self):
        self.current_label = None
        self.last_label_ts_ms = None
        self.pending = []
        self.company_map = {}

    def parse_label(self, fragment: str) -> Optional[str]:
        """
        Detect a company label inside a forwarder message

        Either an "add to <Company>" phrase, or a short fragment without
        digits that is itself a company name (exact match first, then
        substring containment).
        """
        text = (fragment or '').strip()
        if not text:
            return None

        match = ADD_TO_LABEL_RE.match(text)
        if match:
            return self.aliases.resolve_label(match.group(1))

        if _DIGIT_RE.search(text) or self.classifier.has_quantity(text):
            return None
        if len(text) > MAX_LABEL_LENGTH or len(text.split()) > MAX_LABEL_WORDS:
            return None
        return self.aliases.resolve_label(text)

    def _within_window(self, ts_ms: Optional[int]) -> bool:
        if ts_ms is None or self.last_label_ts_ms is None:
            return True
        return 0 <= ts_ms - self.last_label_ts_ms <= self.timeout_ms

    def _order_for(self, company_name: str, timestamp: str) -> Order:
        order = self.company_map.get(company_name)
        if order is None:
            order = Order(company_name=company_name, timestamp=timestamp)
            self.company_map[company_name] = order
            logger.debug(f"Opened order for {company_name}")
        return order

    def _append(self, order: Order, fragment: str, sender: Optional[str]):
        self.classifier.add_fragment(order, fragment, sender, dedupe=True)

    def feed_line(self, line: ChatLine) -> List[Order]:
        """Process an already segmented line; returns the orders touched by it"""
        if not self.forwarders.is_forwarder(line.sender):
            logger.debug(f"Ignoring line from non-forwarder sender {line.sender!r}")
            return []

        ts_ms = parse_timestamp_ms(line.timestamp, self.forwarders.timestamp_formats)
        if ts_ms is None and line.timestamp:
            logger.warning(f"Unparseable timestamp {line.timestamp!r}, forwarder timeout not applied")

        touched: List[Order] = []
        for fragment in self.segmenter.fragments(line.text):
            label = self.parse_label(fragment)
            if label:
                self.current_label = label
                self.last_label_ts_ms = ts_ms
                order = self._order_for(label, line.timestamp)
                if self.pending:
                    logger.debug(f"Flushing {len(self.pending)} pending fragments into {label}")
                for pending_fragment in self.pending:
                    self._append(order, pending_fragment, line.sender)
                self.pending = []
                if order not in touched:
                    touched.append(order)
                continue

            if self.current_label and self._within_window(ts_ms):
                order = self.company_map[self.current_label]
                self._append(order, fragment, line.sender)
                if order not in touched:
                    touched.append(order)
            else:
                self.pending.append(fragment)

        return touched

    def feed(self, raw_line: Optional[str]) -> List[Order]:
        """
        Process one new raw chat line

        Args:
            raw_line: Raw line in the configured message format

        Returns:
            Orders touched by this line (empty when the line was ignored)
        """
        line = self.segmenter.segment(raw_line)
        if line is None:
            return []
        return self.feed_line(line)
