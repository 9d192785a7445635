#!/usr/bin/env python3
"""
Fragment Classifier - Sort chat fragments into order items and instructions

Shared by the batch resolution engine and the incremental resolver so both
entry points apply identical item/instruction rules.
"""

import logging
from typing import Iterable, Optional

from .alias_resolver import CompanyAliasResolver
from .models import Order
from .noise_filter import NoiseFilter, looks_like_phone_number
from .quantity_classifier import QuantityClassifier
from .rule_config import OrderRules

logger = logging.getLogger(__name__)

ITEM = 'item'
INSTRUCTION = 'instruction'


class FragmentClassifier:
    """Classify fragments relative to the company an order belongs to"""

    def __init__(self, rules: OrderRules,
                 aliases: Optional[CompanyAliasResolver] = None):
        self.rules = rules
        self.aliases = aliases or CompanyAliasResolver(rules.aliases)
        self.quantities = QuantityClassifier(rules.quantities)
        self.noise = NoiseFilter(rules.quantities, self.quantities)

    def has_quantity(self, fragment: str) -> bool:
        return self.quantities.looks_like_quantity_item(fragment)

    def is_item(self, fragment: str) -> bool:
        """Quantity-bearing and not rejected as noise (phone numbers, times, dates)"""
        return self.has_quantity(fragment) and self.noise.is_likely_order_item(fragment)

    def any_quantity(self, fragments: Iterable[str]) -> bool:
        return any(self.is_item(f) for f in fragments)

    def classify(self, fragment: str, company_name: Optional[str] = None,
                 sender: Optional[str] = None) -> Optional[str]:
        """
        Classify one fragment

        Args:
            fragment: Trimmed, corrected fragment
            company_name: Canonical company of the order being built
            sender: Message sender (never kept as an instruction)

        Returns:
            ITEM, INSTRUCTION, or None when the fragment is dropped
        """
        canonical = self.aliases.canonicalize(fragment)
        if company_name and canonical == company_name:
            return None
        if not self.noise.is_likely_order_item(fragment):
            return None
        if self.has_quantity(fragment):
            return ITEM
        if canonical:
            return None
        if sender and fragment.strip().lower() == sender.strip().lower():
            return None
        if looks_like_phone_number(fragment):
            return None
        return INSTRUCTION

    def add_fragment(self, order: Order, fragment: str, sender: Optional[str] = None,
                     dedupe: bool = False) -> Optional[str]:
        """Classify a fragment and append it to the order; returns the classification"""
        kind = self.classify(fragment, order.company_name, sender)
        if kind == ITEM:
            if dedupe and fragment in order.items_text:
                return None
            order.items_text.append(fragment)
        elif kind == INSTRUCTION:
            if dedupe and fragment in order.instructions:
                return None
            order.instructions.append(fragment)
        return kind

    def build_order(self, company_name: str, fragments: Iterable[str], timestamp: str,
                    sender: Optional[str] = None) -> Order:
        """Build an order from fragments, items and instructions in fragment order"""
        order = Order(company_name=company_name, timestamp=timestamp)
        for fragment in fragments:
            self.add_fragment(order, fragment, sender)
        return order
