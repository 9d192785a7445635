#!/usr/bin/env python3
"""
Configuration file for WhatsApp Order Extraction
Edit these values according to your chat export setup
"""

# Rule Files (Rule-Driven Architecture)
# Uses rule files from order_rules/ directory:
# - 10_company_aliases.yaml: Canonical company names, variants, auto-corrections
# - 20_quantity_patterns.yaml: Unit vocabularies, message/command patterns, spacing fixes
# - 30_item_standardization.yaml: Unit map and product name corrections for the review export
# - shared.yaml: Forwarder allowlist and timeout
RULES_DIR = 'order_rules'

# Workflow Folder Structure
INPUT_FILE = 'data/chat_export.txt'     # Input: exported WhatsApp chat text
OUTPUT_DIR = 'data/orders_output'       # Output: orders.json and review Excel

# Output file names (inside OUTPUT_DIR)
OUTPUT_FILES = {
    'orders_json': 'orders.json',
    'review_excel': 'order_review.xlsx',
}

# Forwarder Settings (incremental mode)
# Names come from order_rules/shared.yaml. Override without editing rules:
# 1. Environment variable: FORWARDER_NAMES (JSON list or comma separated)
#    Example: export FORWARDER_NAMES="karl,hazvinei"
# 2. .env file in project root: FORWARDER_NAMES=karl,hazvinei
# Forwarder timeout lives in shared.yaml (forwarders.timeout_minutes).
# ORDERS_HOT_RELOAD=1 re-reads rule files whose checksum changed.

# Logging Settings
LOGGING = {
    'level': 'INFO',                   # DEBUG, INFO, WARNING, ERROR
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'log_dir': 'logs',                 # order_extract.log is written here
}
