#!/usr/bin/env python3
"""
Message Segmenter
Splits raw chat lines into ChatLine records and chat text into fragments.

Default line format (see command_patterns.whatsapp_message):
    [<timestamp>] <sender>[ · <phone>] → <text>
where <text> may still carry the chat export framing "[<sub-ts>] <sub-sender>: ".
When a sub_ts group is captured it takes precedence over ts.
"""

import re
import logging
from typing import List, Optional

from .models import ChatLine
from .rule_config import QuantityPatternConfig

logger = logging.getLogger(__name__)

_FRAGMENT_SPLIT_RE = re.compile(r'\n+')
_MESSAGE_START_RE = re.compile(r'^\[[^\]]+\]')


def split_raw_messages(chat_text: str) -> List[str]:
    """
    Split an exported chat text into raw message lines

    A line starting with "[...]" begins a new message; any other line is a
    continuation of the previous message and is joined with a newline.
    Lines before the first message header are dropped.

    Args:
        chat_text: Whole chat export text

    Returns:
        List of raw message strings
    """
    messages: List[str] = []
    for line in (chat_text or '').splitlines():
        if _MESSAGE_START_RE.match(line.strip()):
            messages.append(line.strip())
        elif messages:
            if line.strip():
                messages[-1] = messages[-1] + '\n' + line.rstrip()
        elif line.strip():
            logger.debug(f"Dropping text before first message header: {line[:50]!r}")
    return messages


class MessageSegmenter:
    """Turn raw lines into ChatLines and ChatLine text into fragments"""

    def __init__(self, quantity_config: QuantityPatternConfig):
        self.config = quantity_config
        self.message_pattern = quantity_config.whatsapp_message

    def segment(self, raw_line: Optional[str]) -> Optional[ChatLine]:
        """
        Parse one raw line

        Args:
            raw_line: Raw line in the configured message format

        Returns:
            ChatLine, or None when the line does not match, has no text,
            or matches a skip pattern
        """
        if raw_line is None:
            logger.warning("Received None line in input, skipping")
            return None

        line = str(raw_line).strip()
        if not line:
            return None

        match = self.message_pattern.search(line)
        if not match:
            logger.debug(f"Line does not match message pattern: {line[:60]!r}")
            return None

        groups = match.groupdict()
        text = (groups.get('text') or '').strip()
        if not text:
            logger.warning(f"Message has no text content: {line[:60]!r}")
            return None

        if self.config.skip_regex is not None and self.config.skip_regex.search(text):
            logger.debug(f"Skipping message matching skip pattern: {text[:60]!r}")
            return None

        timestamp = groups.get('sub_ts') or groups.get('ts') or ''
        sender = groups.get('sender') or groups.get('company')
        phone = groups.get('phone')
        return ChatLine(
            timestamp=timestamp.strip(),
            text=text,
            sender=sender.strip() if sender else None,
            phone=phone.strip() if phone else None,
        )

    def apply_quantity_corrections(self, fragment: str) -> str:
        """Apply configured spacing fixes in table order, each globally"""
        corrected = fragment
        for correction in self.config.quantity_corrections:
            corrected = correction.pattern.sub(correction.replacement, corrected)
        return corrected

    def fragments(self, text: str, corrected: bool = True) -> List[str]:
        """
        Split message text into trimmed, non-empty fragments

        Args:
            text: ChatLine text
            corrected: Apply quantity corrections (labels are compared uncorrected)
        """
        parts = [p.strip() for p in _FRAGMENT_SPLIT_RE.split(text or '')]
        if corrected:
            parts = [self.apply_quantity_corrections(p) for p in parts]
        return [p for p in parts if p]
