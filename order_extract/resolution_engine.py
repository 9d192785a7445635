#!/usr/bin/env python3
"""
Resolution Engine - Resolve a batch of chat messages into per-company orders

EXPLICIT PATTERN ORDER (enforced in code):

1. PASS 1 (runs over every adjacent pair before Pass 2 starts):
   items message followed by a message that is only a company label

2. PASS 2 (per unclaimed message, first match wins):
   a. company label message followed by items message
   b. "add <item> to <Company>" directive (appends to an existing order)
   c. multi-line "... please add to <Company>" (appends, creating if needed)
   d. company mentioned inline with items in the same message
   e. image placeholder (attached to the most recent order)

Every message index is claimed by at most one pattern. Claims are recorded in
a ClaimLedger that refuses a second claim on the same index.
"""

import re
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .alias_resolver import CompanyAliasResolver
from .consolidator import consolidate
from .errors import ClaimConflictError
from .fragment_classifier import FragmentClassifier
from .message_segmenter import MessageSegmenter
from .models import ChatLine, Order
from .rule_config import OrderRules

logger = logging.getLogger(__name__)

DEFAULT_MULTILINE_ADD_TO = re.compile(r'please\s+add\s+to\s+(.+?)(?:\s+boxes?)?$', re.IGNORECASE)


@dataclass(frozen=True)
class Claim:
    """Proof that a pattern consumed a set of message indices"""
    pattern: str
    indices: Tuple[int, ...]

    def __copy__(self):
        raise TypeError("Claims cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("Claims cannot be copied")


class ClaimLedger:
    """Records which pattern owns each message index"""

    def __init__(self):
        self._owners: Dict[int, Claim] = {}

    def is_claimed(self, index: int) -> bool:
        return index in self._owners

    def owner(self, index: int) -> Optional[Claim]:
        return self._owners.get(index)

    def claim(self, pattern: str, *indices: int) -> Claim:
        """
        Claim message indices for a pattern

        Raises:
            ClaimConflictError: if any index already belongs to a pattern
        """
        for index in indices:
            if index in self._owners:
                raise ClaimConflictError(
                    f"Message {index} already claimed by '{self._owners[index].pattern}', "
                    f"cannot be claimed by '{pattern}'"
                )
        claim = Claim(pattern=pattern, indices=tuple(indices))
        for index in indices:
            self._owners[index] = claim
        return claim

    def __len__(self) -> int:
        return len(self._owners)


@dataclass
class _Message:
    line: ChatLine
    fragments: List[str]
    label: Optional[str]


class _ResolutionRun:
    """State private to one resolve() call"""

    def __init__(self, engine: 'OrderResolver', lines: Sequence[ChatLine]):
        self.engine = engine
        self.classifier = engine.classifier
        self.aliases = engine.aliases
        self.config = engine.rules.quantities
        self.ledger = ClaimLedger()
        self.orders: List[Order] = []
        self.messages = [self._prepare(line) for line in lines]
        self.claims: List[Claim] = []

    def _prepare(self, line: ChatLine) -> _Message:
        raw_parts = self.engine.segmenter.fragments(line.text, corrected=False)
        label = self.aliases.canonicalize(raw_parts[0]) if len(raw_parts) == 1 else None
        return _Message(
            line=line,
            fragments=self.engine.segmenter.fragments(line.text),
            label=label,
        )

    def _claim(self, pattern: str, *indices: int) -> Claim:
        claim = self.ledger.claim(pattern, *indices)
        self.claims.append(claim)
        return claim

    def _latest_order_for(self, company_name: str) -> Optional[Order]:
        for order in reversed(self.orders):
            if order.company_name == company_name:
                return order
        return None

    def run(self) -> List[Order]:
        for i in range(len(self.messages) - 1):
            if not self.ledger.is_claimed(i):
                self._items_before_label(i)

        handlers: Tuple[Callable[[int], Optional[Claim]], ...] = (
            self._label_before_items,
            self._add_to_directive,
            self._multiline_add_to,
            self._inline_company,
            self._image_placeholder,
        )
        for i in range(len(self.messages)):
            if self.ledger.is_claimed(i):
                continue
            for handler in handlers:
                if handler(i) is not None:
                    break
            else:
                logger.debug(f"Message {i} matched no pattern: {self.messages[i].line.text[:60]!r}")

        return self.orders

    # Pass 1

    def _items_before_label(self, i: int) -> Optional[Claim]:
        current, following = self.messages[i], self.messages[i + 1]
        if not following.label or self.ledger.is_claimed(i + 1):
            return None
        if not self.classifier.any_quantity(current.fragments):
            return None

        order = self.classifier.build_order(following.label, current.fragments, current.line.timestamp,
                                           current.line.sender)
        if not order.items_text:
            return None

        self.orders.append(order)
        logger.debug(f"Items-before-label: messages {i},{i + 1} -> {order.company_name}")
        return self._claim('items_before_label', i, i + 1)

    # Pass 2

    def _label_before_items(self, i: int) -> Optional[Claim]:
        if i == 0 or self.ledger.is_claimed(i - 1):
            return None
        previous, current = self.messages[i - 1], self.messages[i]
        if not previous.label:
            return None
        if self.aliases.match_company_in_text(current.line.text):
            return None
        if not self.classifier.any_quantity(current.fragments):
            return None

        order = self.classifier.build_order(previous.label, current.fragments, previous.line.timestamp,
                                           current.line.sender)
        self.orders.append(order)
        logger.debug(f"Label-before-items: messages {i - 1},{i} -> {order.company_name}")
        return self._claim('label_before_items', i - 1, i)

    def _add_to_directive(self, i: int) -> Optional[Claim]:
        pattern = self.config.add_to_order
        if pattern is None:
            return None
        match = pattern.search(self.messages[i].line.text)
        if not match:
            return None

        groups = match.groupdict()
        item = (groups.get('item') or match.group(1) or '').strip()
        company_text = (groups.get('company') or match.group(2) or '').strip()
        company_name = self.aliases.canonicalize(company_text)
        if not company_name:
            return None

        target = self._latest_order_for(company_name)
        if target is None:
            logger.debug(f"Add-to directive for {company_name} with no existing order, ignored")
        elif self.classifier.noise.is_likely_order_item(item):
            if target.add_item(item):
                logger.debug(f"Added '{item}' to {company_name}")
        return self._claim('add_to_directive', i)

    def _multiline_add_to(self, i: int) -> Optional[Claim]:
        message = self.messages[i]
        pattern = self.engine.multiline_add_to
        match = pattern.search(message.line.text)
        if not match:
            return None
        company_name = self.aliases.canonicalize(match.group(1).strip())
        if not company_name:
            return None

        item_lines = [
            fragment for fragment in message.fragments
            if 'please add to' not in fragment.lower()
            and not self.aliases.canonicalize(fragment)
            and self.classifier.is_item(fragment)
        ]
        if not item_lines:
            return None

        target = self._latest_order_for(company_name)
        if target is None:
            target = Order(company_name=company_name, timestamp=message.line.timestamp)
            self.orders.append(target)
        for item in item_lines:
            target.add_item(item)
        return self._claim('multiline_add_to', i)

    def _inline_company(self, i: int) -> Optional[Claim]:
        message = self.messages[i]
        if len(message.fragments) <= 1:
            return None
        if i + 1 < len(self.messages) and self.messages[i + 1].label:
            return None
        company_name = self.aliases.canonicalize(self.aliases.match_company_in_text(message.line.text))
        if not company_name:
            return None

        order = self.classifier.build_order(company_name, message.fragments, message.line.timestamp,
                                           message.line.sender)
        self.orders.append(order)
        logger.debug(f"Inline company: message {i} -> {company_name} ({len(order.items_text)} items)")
        return self._claim('inline_company', i)

    def _image_placeholder(self, i: int) -> Optional[Claim]:
        pattern = self.config.image_placeholder
        if pattern is None:
            return None
        match = pattern.search(self.messages[i].line.text)
        if not match:
            return None

        image_path = (match.groupdict().get('path') or match.group(1)).strip()
        if self.orders:
            self.orders[-1].add_item(f'[IMAGE: {image_path}]')
        else:
            logger.debug(f"Image {image_path} arrived before any order, ignored")
        return self._claim('image_placeholder', i)


class OrderResolver:
    """Batch resolver: raw lines in, consolidated per-company orders out"""

    def __init__(self, rules: OrderRules):
        """
        Args:
            rules: OrderRules built once at startup (see RuleLoader.build_rules)
        """
        self.rules = rules
        self.segmenter = MessageSegmenter(rules.quantities)
        self.aliases = CompanyAliasResolver(rules.aliases)
        self.classifier = FragmentClassifier(rules, self.aliases)
        self.multiline_add_to = DEFAULT_MULTILINE_ADD_TO

    def segment_lines(self, raw_lines: Sequence[Optional[str]]) -> List[ChatLine]:
        """Segment raw lines, dropping the ones that do not parse"""
        messages = []
        for raw_line in raw_lines:
            line = self.segmenter.segment(raw_line)
            if line is not None:
                messages.append(line)
        return messages

    def resolve(self, lines: Sequence[ChatLine]) -> List[Order]:
        """
        Run both passes over the messages

        Args:
            lines: Full ordered batch of ChatLines (adjacency matters, do not chunk)

        Returns:
            Partial orders, before consolidation
        """
        return _ResolutionRun(self, lines).run()

    def resolve_batch(self, raw_lines: Sequence[Optional[str]]) -> Dict[str, List[Order]]:
        """
        Segment, resolve and consolidate a batch of raw chat lines

        Returns:
            {'orders': [Order, ...]}
        """
        messages = self.segment_lines(raw_lines)
        partial_orders = self.resolve(messages)
        orders = consolidate(partial_orders)
        logger.info(
            f"Resolved {len(messages)} messages into {len(partial_orders)} partial orders, "
            f"{len(orders)} companies"
        )
        return {'orders': orders}


def resolve_batch(raw_lines: Sequence[Optional[str]], rules: OrderRules) -> Dict[str, List[Order]]:
    """Convenience wrapper around OrderResolver.resolve_batch"""
    return OrderResolver(rules).resolve_batch(raw_lines)
