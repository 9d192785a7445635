"""
WhatsApp Order Extraction
Resolves forwarded WhatsApp order messages into per-company orders.
Uses rule-driven architecture: company aliases, quantity patterns and item
standardization are loaded from the order_rules/ YAML files.
"""

from .errors import OrderExtractError, ConfigurationError, ClaimConflictError
from .models import ChatLine, Order
from .rule_config import OrderRules, build_order_rules
from .rule_loader import RuleLoader
from .alias_resolver import CompanyAliasResolver
from .quantity_classifier import QuantityClassifier
from .noise_filter import NoiseFilter
from .message_segmenter import MessageSegmenter, split_raw_messages
from .fragment_classifier import FragmentClassifier
from .resolution_engine import OrderResolver, ClaimLedger, resolve_batch
from .consolidator import consolidate
from .incremental import IncrementalResolver
from .item_parser import ItemParser, ParsedItem

__all__ = [
    'OrderExtractError',
    'ConfigurationError',
    'ClaimConflictError',
    'ChatLine',
    'Order',
    'OrderRules',
    'build_order_rules',
    'RuleLoader',
    'CompanyAliasResolver',
    'QuantityClassifier',
    'NoiseFilter',
    'MessageSegmenter',
    'split_raw_messages',
    'FragmentClassifier',
    'OrderResolver',
    'ClaimLedger',
    'resolve_batch',
    'consolidate',
    'IncrementalResolver',
    'ItemParser',
    'ParsedItem',
]
