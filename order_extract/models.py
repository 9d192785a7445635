#!/usr/bin/env python3
"""
Data records passed between the segmenter, the resolution engine and the consolidator
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ChatLine:
    """One chat message as extracted from the chat source"""
    timestamp: str
    text: str
    sender: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class Order:
    """Per-company order; company_name is always a canonical name"""
    company_name: str
    timestamp: str = ''
    items_text: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    removed: Dict[int, bool] = field(default_factory=dict)
    verified: bool = False

    def add_item(self, item: str) -> bool:
        """Append item unless the exact string is already present"""
        if item in self.items_text:
            return False
        self.items_text.append(item)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'company_name': self.company_name,
            'items_text': list(self.items_text),
            'instructions': list(self.instructions),
            'timestamp': self.timestamp,
            'removed': dict(self.removed),
            'verified': self.verified,
        }
