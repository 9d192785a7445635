#!/usr/bin/env python3
"""
Alias Resolver
Canonicalizes company names from chat text using the company alias table.

Two matching strategies are kept separate on purpose:
- canonicalize / match_company_in_text: exact comparison of normalized values
  (plus regex variants), token or word level
- match_company_substring: containment in either direction, used only for
  forwarder-mode label detection
"""

import logging
from typing import Optional

from .rule_config import CompanyAliasTable, LiteralVariant, RegexVariant

logger = logging.getLogger(__name__)

# Shorter normalized values make containment matching meaningless
MIN_SUBSTRING_MATCH_LENGTH = 3


class CompanyAliasResolver:
    """Resolve raw tokens/phrases to canonical company names"""

    def __init__(self, alias_table: CompanyAliasTable):
        """
        Args:
            alias_table: Compiled CompanyAliasTable (read-only)
        """
        self.alias_table = alias_table

    def normalize(self, value: str) -> str:
        return self.alias_table.normalize(value)

    def canonicalize(self, token: Optional[str]) -> Optional[str]:
        """
        Canonicalize a token to a known company name

        Args:
            token: Raw token or phrase (e.g. "casabella", " CASA BELLA ")

        Returns:
            Canonical company name or None
        """
        if not token:
            return None

        working = str(token).strip()
        if not working:
            return None

        working = self.alias_table.correct(working)
        normalized = self.normalize(working)

        for entry in self.alias_table.companies:
            if normalized and entry.normalized == normalized:
                return entry.canonical

            for variant in entry.variants:
                if isinstance(variant, RegexVariant):
                    if variant.pattern.search(working.strip()):
                        logger.debug(f"Regex alias {variant.source} matched '{working}' -> {entry.canonical}")
                        return entry.canonical
                elif isinstance(variant, LiteralVariant):
                    if normalized and variant.normalized == normalized:
                        return entry.canonical

        return None

    def match_company_in_text(self, text: Optional[str]) -> Optional[str]:
        """Return the canonical company for the first whitespace-separated word that resolves"""
        for word in str(text or '').split():
            canonical = self.canonicalize(word)
            if canonical:
                return canonical
        return None

    def match_company_substring(self, text: Optional[str]) -> Optional[str]:
        """
        Looser containment match for forwarder-mode labels

        The normalized text contains a canonical name/literal variant, or the
        canonical name/literal variant contains the normalized text. Regex
        variants are tested with search against the trimmed text.

        Args:
            text: Candidate label text

        Returns:
            Canonical company name or None
        """
        if not text:
            return None
        working = self.alias_table.correct(str(text).strip())
        normalized = self.normalize(working)
        if len(normalized) < MIN_SUBSTRING_MATCH_LENGTH:
            return None

        for entry in self.alias_table.companies:
            candidates = [entry.normalized]
            for variant in entry.variants:
                if isinstance(variant, RegexVariant):
                    if variant.pattern.search(working):
                        return entry.canonical
                else:
                    candidates.append(variant.normalized)

            for candidate in candidates:
                if len(candidate) < MIN_SUBSTRING_MATCH_LENGTH:
                    continue
                if candidate in normalized or normalized in candidate:
                    logger.debug(f"Substring alias '{candidate}' matched '{text}' -> {entry.canonical}")
                    return entry.canonical

        return None

    def resolve_label(self, text: Optional[str]) -> Optional[str]:
        """Exact canonicalization first, then substring containment"""
        return self.canonicalize(text) or self.match_company_substring(text)
