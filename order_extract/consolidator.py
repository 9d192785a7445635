#!/usr/bin/env python3
"""
Order Consolidator - One order per canonical company
"""

import logging
from typing import Dict, List, Sequence

from .models import Order

logger = logging.getLogger(__name__)


def consolidate(partial_orders: Sequence[Order]) -> List[Order]:
    """
    Merge partial orders that share a company name

    Items and instructions are concatenated in input order (duplicates are kept
    for downstream review). The earliest timestamp wins, compared as strings.
    Output follows first-seen company order.

    Args:
        partial_orders: Orders from the resolution engine (company names already canonical)

    Returns:
        Consolidated orders
    """
    company_map: Dict[str, Order] = {}

    for order in partial_orders:
        key = order.company_name
        existing = company_map.get(key)
        if existing is None:
            company_map[key] = Order(
                company_name=order.company_name,
                timestamp=order.timestamp,
                items_text=list(order.items_text),
                instructions=list(order.instructions),
            )
            continue

        existing.items_text.extend(order.items_text)
        existing.instructions.extend(order.instructions)
        # TODO: compare parsed datetimes once cross-midnight timestamps are confirmed as a real case
        if order.timestamp < existing.timestamp:
            existing.timestamp = order.timestamp
        logger.debug(f"Merged partial order into {key}: {len(existing.items_text)} items")

    return list(company_map.values())
