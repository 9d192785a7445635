#!/usr/bin/env python3
"""
Item Parser - Split an order item line into quantity, unit and product name

Patterns are tried in order of specificity:
    0. "Please add spring onion 1kg"
    1. "20kg potato"
    2. "3 box avos"
    3. "5×baby corn"
    4. "5*packets parsley"
    5. "750g wild rocket"
    6. "Parsley ×200g" / "Sweet corn x6 pkts"
    7. "Cucumber 26"
    8. bare product name (quantity 1)

Units and product names are standardized with 30_item_standardization.yaml.
No catalog matching happens here.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional

from .rule_config import ItemStandardization

logger = logging.getLogger(__name__)

_UNITS = r'kg|g|pkt|pkts|packet|packets|box|boxes|bag|bags|bunch|bunches|head|heads|punnet|punnets|pun'

ITEM_PATTERNS = [
    re.compile(rf'^please\s+add\s+(.+?)\s+(\d+(?:\.\d+)?)\s*({_UNITS})?\s*$', re.IGNORECASE),
    re.compile(r'^(\d+(?:\.\d+)?)\s*(kg|g)\s+(.+?)$', re.IGNORECASE),
    re.compile(r'^(\d+(?:\.\d+)?)\s+(box|boxes|bag|bags|bunch|bunches|head|heads|punnet|punnets|pun|packet|packets|pkt|pkts)\s+(.+?)$',
               re.IGNORECASE),
    re.compile(r'^(\d+(?:\.\d+)?)\s*[×x]\s*(.+?)$', re.IGNORECASE),
    re.compile(r'^(\d+(?:\.\d+)?)\s*\*\s*(packets?|pkts?|box|boxes|bag|bags|bunch|bunches|head|heads|punnet|punnets|pun)\s+(.+?)$',
               re.IGNORECASE),
    re.compile(rf'^(\d+(?:\.\d+)?)({_UNITS})\s+(.+?)$', re.IGNORECASE),
    re.compile(rf'^(.+?)\s*[×x]\s*(\d+(?:\.\d+)?)\s*({_UNITS})?\s*$', re.IGNORECASE),
    re.compile(r'^(.+?)\s+(\d+(?:\.\d+)?)$'),
    re.compile(r'^(.+)$'),
]

# Which capture group holds (name, quantity, unit) for each pattern above
_GROUP_LAYOUT = [
    (1, 2, 3),
    (3, 1, 2),
    (3, 1, 2),
    (2, 1, None),
    (3, 1, 2),
    (3, 1, 2),
    (1, 2, 3),
    (1, 2, None),
    (1, None, None),
]

IMAGE_ITEM_RE = re.compile(r'^\[IMAGE:\s*(.+?)\]$')
_LEADING_NUMBER_RE = re.compile(r'^\d+\.\s*')
_TRAILING_UNIT_RE = re.compile(
    r'\s+(kg|g|pkt|pkts|packet|packets|box|boxes|bag|bags|bunch|bunches|head|heads|punnet|punnets|pun|piece|pieces|pc|pcs)s?$',
    re.IGNORECASE,
)
_WORD_START_RE = re.compile(r'\b\w')
MIN_QUANTITY = 0.1


@dataclass
class ParsedItem:
    quantity: float
    unit: str
    name: str
    original_text: str
    is_image: bool = False


def normalize_item_line(line: str) -> str:
    """Drop list numbering ("1. Red Cabbage") and collapse whitespace"""
    normalized = _LEADING_NUMBER_RE.sub('', line)
    return re.sub(r'\s+', ' ', normalized).strip()


class ItemParser:
    """Parse and standardize order item lines"""

    def __init__(self, standardization: Optional[ItemStandardization] = None):
        self.rules = standardization or ItemStandardization()

    def standardize_unit(self, unit: Optional[str]) -> str:
        if not unit:
            return ''
        cleaned = unit.lower().strip()
        return self.rules.unit_map.get(cleaned, cleaned)

    def standardize_product_name(self, name: Optional[str]) -> str:
        if not name:
            return ''
        cleaned = _TRAILING_UNIT_RE.sub('', name.strip())
        cleaned = _WORD_START_RE.sub(lambda m: m.group(0).upper(), cleaned)
        return self.rules.product_name_map.get(cleaned, cleaned)

    def is_non_item_line(self, line: str) -> bool:
        """Obvious chatter ("thanks", "stock as at ...") that is never an item"""
        return any(pattern.search(line) for pattern in self.rules.non_item_patterns)

    def parse(self, line: Optional[str]) -> Optional[ParsedItem]:
        """
        Parse one item line

        Args:
            line: Item text as produced by the resolver (e.g. "5kg tomatoes")

        Returns:
            ParsedItem, or None when no usable product name can be found
        """
        if not line or not isinstance(line, str):
            return None

        original = line.strip()
        if not original:
            return None

        image_match = IMAGE_ITEM_RE.match(original)
        if image_match:
            return ParsedItem(quantity=1, unit='file', name=f'Image: {image_match.group(1)}',
                              original_text=original, is_image=True)

        normalized = normalize_item_line(original)
        for pattern, (name_group, qty_group, unit_group) in zip(ITEM_PATTERNS, _GROUP_LAYOUT):
            match = pattern.match(normalized)
            if not match:
                continue

            name = match.group(name_group) or ''
            quantity = float(match.group(qty_group)) if qty_group and match.group(qty_group) else 1.0
            unit = match.group(unit_group) if unit_group and match.group(unit_group) else ''

            item = ParsedItem(
                quantity=max(quantity or 1.0, MIN_QUANTITY),
                unit=self.standardize_unit(unit),
                name=self.standardize_product_name(name),
                original_text=original,
            )
            if item.name and len(item.name) > 1:
                return item

        logger.debug(f"Could not parse item line: {original!r}")
        return None

    def format_item(self, item: ParsedItem) -> str:
        """Render as "<qty> <unit> <name>" ("5 kg Tomatoes", "2 Lemons")"""
        quantity = item.quantity if item.quantity else 1
        if float(quantity).is_integer():
            quantity = int(quantity)
        unit = f' {item.unit}' if item.unit else ''
        return f'{quantity}{unit} {item.name}'
