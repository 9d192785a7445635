#!/usr/bin/env python3
"""
Noise Filter - Decide whether a chat fragment is order-relevant

Rejection checks run first, in a fixed order, then acceptance checks.
The acceptance checks rely on the rejections having already removed
phone numbers, dates and similar noise, so the order must not change.
"""

import re
import logging
from typing import Optional

from .quantity_classifier import QuantityClassifier
from .rule_config import QuantityPatternConfig

logger = logging.getLogger(__name__)

GREETING_WORDS = frozenset([
    'hi', 'hie', 'hey', 'hello', 'hallo', 'morning', 'afternoon', 'evening', 'night',
    'thanks', 'thank', 'thankyou', 'thx', 'ty', 'cheers', 'ok', 'okay', 'okey', 'noted',
    'confirmed', 'confirm', 'received', 'yes', 'no', 'sure', 'great', 'perfect', 'done',
    'please', 'pls', 'regards', 'welcome', 'sorry', 'including', 'herbs',
    'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday',
    'today', 'tomorrow', 'tonight', 'weekend',
])

NON_PRODUCT_STARTS = (
    'can you', 'can we', 'can i', 'could you', 'would you', 'will you', 'do you', 'did you',
    'are you', 'is there', 'is it', 'how much', 'how many', 'what time', 'when will', 'when can',
    'please let', 'please confirm', 'please note', 'please make sure', 'please tell', 'please send',
    'let me know', 'delivery to', 'delivery for', 'delivered to', 'total amount', 'total due',
    'invoice', 'payment', 'paid', 'good morning', 'good afternoon', 'good evening', 'good day',
    'thank you', 'thanks for', 'stock as at', 'customer order from', 'attention', 'we are starting',
    'early this morning',
)

_DIGIT_SYMBOL_ONLY_RE = re.compile(r'^[\d\s.,\-+()/:#*]+$')
_PHONE_RE = re.compile(r'^[\d+\-()\s]+$')
_EMAIL_RE = re.compile(r'[\w.+-]+@[\w-]+\.[\w.-]+')
_URL_RE = re.compile(r'(?:https?://|www\.)\S+', re.IGNORECASE)
_PUNCTUATION_ONLY_RE = re.compile(r'^[^\w]+$')
_TIME_RE = re.compile(r'^\d{1,2}:\d{2}\s*(?:am|pm)?$', re.IGNORECASE)
_DATE_RE = re.compile(r'^\d{1,2}/\d{1,2}(?:/(?:\d{2}|\d{4}))?$')
_LETTER_RE = re.compile(r'[^\W\d_]')


def looks_like_phone_number(fragment: str) -> bool:
    """Digits, '+', '-', parentheses and spaces only, longer than 5 characters"""
    text = (fragment or '').strip()
    return len(text) > 5 and bool(_PHONE_RE.match(text)) and any(c.isdigit() for c in text)


class NoiseFilter:
    """Order-relevance predicate shared by the batch and incremental resolvers"""

    def __init__(self, quantity_config: QuantityPatternConfig,
                 classifier: Optional[QuantityClassifier] = None):
        self.skip_regex = quantity_config.skip_regex
        self.classifier = classifier or QuantityClassifier(quantity_config)

    def rejection_reason(self, fragment: Optional[str]) -> Optional[str]:
        """
        Run the ordered rejection checks

        Returns:
            Name of the first failing check, or None if the fragment survives
        """
        text = (fragment or '').strip()
        if not text:
            return 'empty'
        if self.skip_regex is not None and self.skip_regex.search(text):
            return 'skip_pattern'
        if len(text) < 3:
            return 'too_short'
        if _DIGIT_SYMBOL_ONLY_RE.match(text):
            return 'digits_only'
        if ' ' not in text and text.lower().strip('!.,?:;') in GREETING_WORDS:
            return 'greeting'
        if looks_like_phone_number(text):
            return 'phone_number'
        if _EMAIL_RE.search(text):
            return 'email'
        if _URL_RE.search(text):
            return 'url'
        if _PUNCTUATION_ONLY_RE.match(text):
            return 'punctuation_only'
        if _TIME_RE.match(text) or _DATE_RE.match(text):
            return 'time_or_date'
        if not _LETTER_RE.search(text):
            return 'no_letters'
        return None

    def is_likely_order_item(self, fragment: Optional[str]) -> bool:
        """
        Check if a fragment is order-relevant

        Args:
            fragment: One trimmed chat fragment

        Returns:
            True when the fragment survives every rejection and meets an acceptance rule
        """
        reason = self.rejection_reason(fragment)
        if reason:
            logger.debug(f"Rejected fragment {fragment!r}: {reason}")
            return False

        text = fragment.strip()
        if self.classifier.looks_like_quantity_item(text):
            return True
        if self.classifier.contains_specific_item(text):
            return True

        text_lower = text.lower()
        if 4 <= len(text) <= 50 and _LETTER_RE.search(text):
            if not any(text_lower.startswith(phrase) for phrase in NON_PRODUCT_STARTS):
                return True

        return False
