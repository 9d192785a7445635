#!/usr/bin/env python3
"""
Order Export - Write resolved orders for downstream review
Flattens orders into one row per item/instruction and writes JSON or Excel.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .item_parser import ItemParser
from .models import Order

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    'company_name',
    'order_timestamp',
    'row_type',
    'row_index',
    'original_text',
    'quantity',
    'unit',
    'product_name',
    'is_image',
    'reviewed_quantity',
    'reviewed_unit',
    'reviewed_product_name',
    'review_notes',
]


def orders_to_rows(orders: Sequence[Order], item_parser: Optional[ItemParser] = None) -> List[Dict[str, Any]]:
    """
    Flatten orders into review rows

    Items are parsed into quantity/unit/product name; instructions are kept as text.
    """
    parser = item_parser or ItemParser()
    rows = []
    for order in orders:
        for index, item_text in enumerate(order.items_text):
            parsed = parser.parse(item_text)
            rows.append({
                'company_name': order.company_name,
                'order_timestamp': order.timestamp,
                'row_type': 'item',
                'row_index': index,
                'original_text': item_text,
                'quantity': parsed.quantity if parsed else None,
                'unit': parsed.unit if parsed else '',
                'product_name': parsed.name if parsed else '',
                'is_image': parsed.is_image if parsed else False,
                'reviewed_quantity': '',
                'reviewed_unit': '',
                'reviewed_product_name': '',
                'review_notes': '',
            })
        for index, instruction in enumerate(order.instructions):
            rows.append({
                'company_name': order.company_name,
                'order_timestamp': order.timestamp,
                'row_type': 'instruction',
                'row_index': index,
                'original_text': instruction,
                'quantity': None,
                'unit': '',
                'product_name': '',
                'is_image': False,
                'reviewed_quantity': '',
                'reviewed_unit': '',
                'reviewed_product_name': '',
                'review_notes': '',
            })
    return rows


def orders_to_dataframe(orders: Sequence[Order], item_parser: Optional[ItemParser] = None) -> pd.DataFrame:
    return pd.DataFrame(orders_to_rows(orders, item_parser), columns=EXPORT_COLUMNS)


def export_orders_json(orders: Sequence[Order], output_file: Path) -> Path:
    """Write {'orders': [...]} as JSON"""
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump({'orders': [order.to_dict() for order in orders]}, f, indent=2, ensure_ascii=False)
    logger.info(f"Wrote {len(orders)} orders to {output_file}")
    return output_file


def export_orders_excel(orders: Sequence[Order], output_file: Path,
                        item_parser: Optional[ItemParser] = None) -> Path:
    """
    Export orders to an Excel workbook for manual review

    Args:
        orders: Consolidated orders
        output_file: Target .xlsx path
        item_parser: Parser used to split items into quantity/unit/name

    Returns:
        Path to generated Excel file
    """
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    df = orders_to_dataframe(orders, item_parser)
    if df.empty:
        logger.info("No orders to export")

    with pd.ExcelWriter(output_file, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='Order Review', index=False)

        worksheet = writer.sheets['Order Review']
        for idx, col in enumerate(df.columns):
            values_max = df[col].map(lambda v: len(str(v)) if pd.notna(v) else 0).max() if not df.empty else 0
            max_length = max(values_max, len(str(col)))
            # Cap at 50 characters for readability
            worksheet.column_dimensions[chr(65 + idx)].width = min(max_length + 2, 50)

    logger.info(f"Exported {len(df)} rows for {len(orders)} orders to {output_file}")
    return output_file
