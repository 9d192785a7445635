#!/usr/bin/env python3
"""
Quantity Classifier - Detect quantity-bearing order lines
Uses the combined quantity regex compiled from 20_quantity_patterns.yaml
"""

from .rule_config import QuantityPatternConfig


class QuantityClassifier:
    """Pure predicate over a single fragment"""

    def __init__(self, quantity_config: QuantityPatternConfig):
        self.config = quantity_config
        self._regex = quantity_config.quantity_regex

    def looks_like_quantity_item(self, fragment: str) -> bool:
        """
        Check if a fragment carries a quantity

        Matches anywhere in the fragment: "Tomatoes 5kg", "3 x onions",
        "onions x3", "5×tomatoes", "corn×6", "10kgbutternut".
        """
        if not fragment:
            return False
        return self._regex.search(fragment) is not None

    def contains_specific_item(self, fragment: str) -> bool:
        """Check if a fragment mentions a specific-item synonym (e.g. 'punnet')"""
        fragment_lower = (fragment or '').lower()
        return any(item.lower() in fragment_lower for item in self.config.specific_items)
