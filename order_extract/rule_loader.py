#!/usr/bin/env python3
"""
Rule Loader - Load YAML rules from the order_rules directory
Builds the single OrderRules object handed to every resolver component
"""

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError
from .rule_config import OrderRules, build_order_rules

logger = logging.getLogger(__name__)

COMPANY_ALIASES_FILE = '10_company_aliases.yaml'
QUANTITY_PATTERNS_FILE = '20_quantity_patterns.yaml'
ITEM_STANDARDIZATION_FILE = '30_item_standardization.yaml'
SHARED_FILE = 'shared.yaml'


def parse_forwarder_names(raw: Optional[str]) -> Optional[List[str]]:
    """
    Parse a forwarder allowlist from an environment value

    Accepts a JSON list ('["karl", "anna"]') or a comma separated string.
    Names are trimmed and lower-cased; empty entries are dropped.

    Returns:
        List of names, or None when the value is unset/blank
    """
    if raw is None or not raw.strip():
        return None
    raw = raw.strip()
    if raw.startswith(('[', '{')):
        try:
            values = json.loads(raw)
        except ValueError as e:
            raise ConfigurationError(f"FORWARDER_NAMES is not valid JSON: {e}") from e
        if not isinstance(values, list):
            raise ConfigurationError("FORWARDER_NAMES JSON value must be a list")
    else:
        values = raw.split(',')
    return [str(v).strip().lower() for v in values if v is not None and str(v).strip()]


class RuleLoader:
    """Load and cache YAML rule files"""

    def __init__(self, rules_dir: Path, enable_hot_reload: Optional[bool] = None):
        """
        Initialize rule loader with rules directory

        Args:
            rules_dir: Path to order_rules directory
            enable_hot_reload: Enable checksum-based hot-reload. Defaults to the
                               ORDERS_HOT_RELOAD environment variable ('1' enables it)
        """
        if enable_hot_reload is None:
            enable_hot_reload = os.environ.get('ORDERS_HOT_RELOAD', '0') == '1'
        self.rules_dir = Path(rules_dir)
        self._rules_cache: Dict[str, Dict[str, Any]] = {}
        self._file_checksums = {} if enable_hot_reload else None
        self._enable_hot_reload = enable_hot_reload
        self._file_read_count = 0

    def _calculate_file_checksum(self, file_path: Path) -> str:
        """Calculate MD5 checksum for a file"""
        try:
            with open(file_path, 'rb') as f:
                return hashlib.md5(f.read()).hexdigest()
        except OSError as e:
            logger.warning(f"Error calculating checksum for {file_path}: {e}")
            return ''

    def _should_reload_file(self, filename: str, rule_file: Path) -> bool:
        """Check if a rule file should be reloaded based on checksum"""
        if not self._enable_hot_reload:
            return filename not in self._rules_cache

        if not rule_file.exists():
            return False

        current_checksum = self._calculate_file_checksum(rule_file)
        cached_checksum = self._file_checksums.get(filename)

        if current_checksum != cached_checksum:
            if cached_checksum:
                logger.debug(f"Rule file {filename} modified, reloading...")
            return True

        return False

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load a YAML file directly; a parse error is a configuration error"""
        self._file_read_count += 1
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML file {file_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Rule file {file_path} must contain a mapping at top level")
        return data

    def get_file_read_count(self) -> int:
        return self._file_read_count

    def reset_file_read_count(self):
        self._file_read_count = 0

    def load_rule_file_by_name(self, filename: str, required: bool = False) -> Dict[str, Any]:
        """
        Load a specific rule file by filename (e.g., '10_company_aliases.yaml')

        Args:
            filename: Rule file name
            required: Raise ConfigurationError instead of returning {} when missing

        Returns:
            Rule dictionary or empty dict if not found
        """
        rule_file = self.rules_dir / filename

        if not rule_file.exists():
            if required:
                raise ConfigurationError(f"Required rule file not found: {rule_file}")
            logger.warning(f"Rule file not found: {rule_file}")
            return {}

        if self._should_reload_file(filename, rule_file):
            self._rules_cache[filename] = self._load_yaml_file(rule_file)
            if self._enable_hot_reload:
                self._file_checksums[filename] = self._calculate_file_checksum(rule_file)
            logger.debug(f"Loaded rule file: {filename}")

        return self._rules_cache.get(filename, {})

    def get_company_alias_rules(self) -> Dict[str, Any]:
        """Get company alias rules from 10_company_aliases.yaml"""
        return self.load_rule_file_by_name(COMPANY_ALIASES_FILE, required=True)

    def get_quantity_pattern_rules(self) -> Dict[str, Any]:
        """Get quantity pattern rules from 20_quantity_patterns.yaml"""
        rules = self.load_rule_file_by_name(QUANTITY_PATTERNS_FILE, required=True)
        return rules.get('quantity_patterns', rules)

    def get_item_standardization_rules(self) -> Dict[str, Any]:
        """Get item parser rules from 30_item_standardization.yaml"""
        rules = self.load_rule_file_by_name(ITEM_STANDARDIZATION_FILE)
        return rules.get('item_standardization', rules)

    def get_forwarder_rules(self) -> Dict[str, Any]:
        """Get forwarder settings from shared.yaml"""
        shared_rules = self.load_rule_file_by_name(SHARED_FILE)
        return shared_rules.get('forwarders', {}) or {}

    def get_forwarder_names(self) -> List[str]:
        """
        Get the forwarder allowlist

        FORWARDER_NAMES (or FORWARDERS) in the environment overrides shared.yaml.
        """
        env_value = os.environ.get('FORWARDER_NAMES') or os.environ.get('FORWARDERS')
        names = parse_forwarder_names(env_value)
        if names is not None:
            logger.debug(f"Using {len(names)} forwarder names from environment")
            return names
        return [str(n).strip().lower() for n in self.get_forwarder_rules().get('names', []) or [] if str(n).strip()]

    def build_rules(self) -> OrderRules:
        """
        Load every rule file and build the OrderRules object

        Raises:
            ConfigurationError: if a required file or key is missing
        """
        rules = build_order_rules(
            alias_data=self.get_company_alias_rules(),
            quantity_data=self.get_quantity_pattern_rules(),
            forwarder_data=self.get_forwarder_rules(),
            item_data=self.get_item_standardization_rules(),
            forwarder_names=self.get_forwarder_names(),
        )
        logger.info(
            f"Loaded order rules from {self.rules_dir}: {len(rules.aliases.companies)} companies, "
            f"{len(rules.forwarders.names)} forwarders"
        )
        return rules

    def clear_cache(self):
        """Clear the rules cache"""
        logger.debug("Clearing rules cache")
        self._rules_cache.clear()
        if self._file_checksums is not None:
            self._file_checksums.clear()
