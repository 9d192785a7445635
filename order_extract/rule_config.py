#!/usr/bin/env python3
"""
Rule Config - Validated, compiled rule objects consumed by the resolver components

Raw rule dictionaries (as parsed from the YAML rule files) are turned into
immutable objects exactly once. Every component receives the same OrderRules
instance; nothing is compiled or re-detected per comparison.

Required keys are checked here and a missing key raises ConfigurationError.
Individual malformed company alias regexes are logged and skipped.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple, Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_UNIT_KEYS = (
    'weight_units',
    'count_units',
    'container_units',
    'group_units',
    'specific_items',
    'multiplication_patterns',
)

REQUIRED_COMMAND_PATTERNS = ('whatsapp_message', 'normalization')

# JavaScript-style flags accepted in "/pattern/flags" alias variants
_JS_FLAG_MAP = {
    'i': re.IGNORECASE,
    'm': re.MULTILINE,
    's': re.DOTALL,
    'g': 0,
    'u': 0,
    'y': 0,
}

_JS_NAMED_GROUP_RE = re.compile(r'\(\?<(?![=!])([A-Za-z_]\w*)>')
_JS_BACKREF_RE = re.compile(r'\$(\d+)')


def to_python_regex(pattern: str) -> str:
    """Accept JavaScript named groups ``(?<name>...)`` in rule files"""
    return _JS_NAMED_GROUP_RE.sub(r'(?P<\1>', pattern)


def to_python_replacement(replacement: str) -> str:
    """Accept JavaScript ``$1`` back-references in replacement strings"""
    return _JS_BACKREF_RE.sub(r'\\g<\1>', replacement)


@dataclass(frozen=True)
class LiteralVariant:
    """Plain alias, compared on normalized form"""
    text: str
    normalized: str


@dataclass(frozen=True)
class RegexVariant:
    """Alias given as "/pattern/flags", tested against the trimmed raw value"""
    source: str
    pattern: Pattern


AliasVariant = Union[LiteralVariant, RegexVariant]


@dataclass(frozen=True)
class CompanyEntry:
    canonical: str
    normalized: str
    variants: Tuple[AliasVariant, ...]


@dataclass(frozen=True)
class CompanyAliasTable:
    """Canonical company names with their variants, in table order"""
    companies: Tuple[CompanyEntry, ...]
    auto_corrections: Tuple[Tuple[str, str], ...]
    normalization: Pattern

    def normalize(self, value: str) -> str:
        return self.normalization.sub('', str(value).lower())

    def correct(self, value: str) -> str:
        """Apply the first case-insensitive exact auto-correction hit"""
        lowered = value.lower()
        for typo, correction in self.auto_corrections:
            if lowered == typo.lower():
                return correction
        return value

    @property
    def canonical_names(self) -> List[str]:
        return [entry.canonical for entry in self.companies]


@dataclass(frozen=True)
class QuantityCorrection:
    pattern: Pattern
    replacement: str


@dataclass(frozen=True)
class QuantityPatternConfig:
    """Unit vocabularies and compiled command patterns"""
    weight_units: Tuple[str, ...]
    count_units: Tuple[str, ...]
    container_units: Tuple[str, ...]
    group_units: Tuple[str, ...]
    specific_items: Tuple[str, ...]
    multiplication_patterns: Tuple[str, ...]
    special_patterns: Tuple[str, ...]
    quantity_regex: Pattern
    skip_regex: Optional[Pattern]
    whatsapp_message: Pattern
    normalization: Pattern
    add_to_order: Optional[Pattern]
    image_placeholder: Optional[Pattern]
    quantity_corrections: Tuple[QuantityCorrection, ...]

    @property
    def all_units(self) -> Tuple[str, ...]:
        return (self.weight_units + self.count_units + self.container_units
                + self.group_units + self.specific_items)


@dataclass(frozen=True)
class ForwarderConfig:
    """Trusted relay accounts for forwarder-mode (incremental) resolution"""
    names: Tuple[str, ...] = ()
    timeout_minutes: float = 10.0
    timestamp_formats: Tuple[str, ...] = ('%H:%M, %d/%m/%Y',)

    @property
    def enabled(self) -> bool:
        return bool(self.names)

    def is_forwarder(self, sender: Optional[str]) -> bool:
        if not sender:
            return False
        sender_lower = sender.strip().lower()
        for name in self.names:
            if sender_lower == name or sender_lower.startswith(name + ' '):
                return True
        return False


@dataclass(frozen=True)
class ItemStandardization:
    """Unit map, product name corrections and chatter patterns for the item parser"""
    unit_map: Mapping[str, str] = field(default_factory=dict)
    product_name_map: Mapping[str, str] = field(default_factory=dict)
    non_item_patterns: Tuple[Pattern, ...] = ()
    weight_units: Tuple[str, ...] = ('kg', 'g', 'grams', 'gram')


@dataclass(frozen=True)
class OrderRules:
    """Everything the resolver components need, built once at startup"""
    aliases: CompanyAliasTable
    quantities: QuantityPatternConfig
    forwarders: ForwarderConfig = field(default_factory=ForwarderConfig)
    items: ItemStandardization = field(default_factory=ItemStandardization)


def _require(data: Mapping[str, Any], key: str, source: str) -> Any:
    if not isinstance(data, Mapping) or key not in data or data[key] is None:
        raise ConfigurationError(f"{source} is missing required key '{key}'")
    return data[key]


def _compile(pattern: str, flags: int, source: str) -> Pattern:
    try:
        return re.compile(to_python_regex(pattern), flags)
    except re.error as e:
        raise ConfigurationError(f"Invalid pattern in {source}: {pattern!r} ({e})") from e


def _string_list(value: Any, key: str, source: str) -> Tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ConfigurationError(f"{source}: '{key}' must be a list")
    return tuple(str(v) for v in value if v is not None and str(v) != '')


def parse_alias_variant(variant: str, normalization: Pattern) -> Optional[AliasVariant]:
    """
    Resolve one alias specifier into a tagged variant

    Args:
        variant: Literal alias or "/pattern/flags" specifier
        normalization: Compiled strip pattern used for literal comparison

    Returns:
        LiteralVariant, RegexVariant, or None when a regex specifier is malformed
    """
    text = str(variant)
    last_slash = text.rfind('/')
    if text.startswith('/') and last_slash > 0 and last_slash < len(text) - 1:
        body = text[1:last_slash]
        flag_chars = text[last_slash + 1:]
        flags = 0
        for char in flag_chars:
            if char not in _JS_FLAG_MAP:
                logger.warning(f"Skipping alias regex with unknown flag '{char}': {text}")
                return None
            flags |= _JS_FLAG_MAP[char]
        try:
            return RegexVariant(source=text, pattern=re.compile(to_python_regex(body), flags))
        except re.error as e:
            logger.warning(f"Skipping invalid alias regex {text}: {e}")
            return None
    return LiteralVariant(text=text, normalized=normalization.sub('', text.lower()))


def build_alias_table(data: Mapping[str, Any], normalization: Pattern) -> CompanyAliasTable:
    """
    Build the company alias table

    Accepts either {'companies': {...}, 'auto_corrections': {...}} or the flat
    layout where canonical names sit at top level next to 'auto_corrections'.
    """
    if not data:
        raise ConfigurationError("Company alias rules are empty")

    if 'companies' in data:
        companies_raw = data.get('companies') or {}
    else:
        companies_raw = {k: v for k, v in data.items() if k != 'auto_corrections'}

    if not isinstance(companies_raw, Mapping) or not companies_raw:
        raise ConfigurationError("Company alias rules define no companies")

    entries = []
    for canonical, variants in companies_raw.items():
        canonical = str(canonical).strip()
        if not canonical:
            continue
        parsed = []
        for variant in variants or []:
            if variant is None or str(variant).strip() == '':
                continue
            resolved = parse_alias_variant(str(variant), normalization)
            if resolved is not None:
                parsed.append(resolved)
        entries.append(CompanyEntry(
            canonical=canonical,
            normalized=normalization.sub('', canonical.lower()),
            variants=tuple(parsed),
        ))

    corrections_raw = data.get('auto_corrections') or {}
    if not isinstance(corrections_raw, Mapping):
        raise ConfigurationError("'auto_corrections' must be a mapping")
    corrections = tuple((str(k), str(v)) for k, v in corrections_raw.items())

    logger.debug(f"Built alias table with {len(entries)} companies, {len(corrections)} auto-corrections")
    return CompanyAliasTable(
        companies=tuple(entries),
        auto_corrections=corrections,
        normalization=normalization,
    )


def build_quantity_regex(units: Sequence[str], multiply_chars: Sequence[str],
                         special_patterns: Sequence[str] = ()) -> Pattern:
    """Combine every quantity shape into one case-insensitive search pattern"""
    unit_alt = '|'.join(re.escape(u) for u in sorted(set(units), key=len, reverse=True))
    mult = ''.join(re.escape(c) for c in multiply_chars)
    pattern = (
        rf'(\b\d+(?:[.,]\d+)?\s*(?:{unit_alt})?s?\b'
        rf'|\b\d+\s*[{mult}]\s*\d+'
        rf'|\b[{mult}]\s*\d+'
        rf'|\d+\s*[{mult}]\b'
        rf'|\w+[{mult}]\d+'
        rf'|\d+(?:kg|g)\w+)'
    )
    if special_patterns:
        pattern = '(' + pattern + '|' + '|'.join(to_python_regex(p) for p in special_patterns) + ')'
    return re.compile(pattern, re.IGNORECASE)


def build_quantity_config(data: Mapping[str, Any]) -> QuantityPatternConfig:
    """
    Validate and compile the quantity pattern rules

    Raises:
        ConfigurationError: when any required vocabulary or command pattern is missing
    """
    source = 'quantity pattern rules'
    if not data:
        raise ConfigurationError("Quantity pattern rules are empty")

    vocab = {key: _string_list(_require(data, key, source), key, source) for key in REQUIRED_UNIT_KEYS}
    if not vocab['multiplication_patterns']:
        raise ConfigurationError(f"{source}: 'multiplication_patterns' must not be empty")

    commands = _require(data, 'command_patterns', source)
    for key in REQUIRED_COMMAND_PATTERNS:
        _require(commands, key, f'{source} command_patterns')

    special = _string_list(data.get('special_patterns') or [], 'special_patterns', source)

    units = (vocab['weight_units'] + vocab['count_units'] + vocab['container_units']
             + vocab['group_units'] + vocab['specific_items'])
    try:
        quantity_regex = build_quantity_regex(units, vocab['multiplication_patterns'], special)
    except re.error as e:
        raise ConfigurationError(f"Invalid quantity pattern vocabulary: {e}") from e

    skip_list = _string_list(data.get('skip_patterns') or [], 'skip_patterns', source)
    skip_regex = None
    if skip_list:
        skip_regex = _compile('(' + '|'.join(skip_list) + ')', re.IGNORECASE, f'{source} skip_patterns')

    corrections = []
    for index, correction in enumerate(data.get('quantity_corrections') or []):
        pattern = _require(correction, 'pattern', f'{source} quantity_corrections[{index}]')
        replacement = correction.get('replacement', '')
        corrections.append(QuantityCorrection(
            pattern=_compile(pattern, 0, f'{source} quantity_corrections[{index}]'),
            replacement=to_python_replacement(str(replacement)),
        ))

    def _optional_command(key: str) -> Optional[Pattern]:
        value = commands.get(key)
        if not value:
            logger.debug(f"Command pattern '{key}' not configured")
            return None
        return _compile(value, re.IGNORECASE, f'command_patterns.{key}')

    return QuantityPatternConfig(
        weight_units=vocab['weight_units'],
        count_units=vocab['count_units'],
        container_units=vocab['container_units'],
        group_units=vocab['group_units'],
        specific_items=vocab['specific_items'],
        multiplication_patterns=vocab['multiplication_patterns'],
        special_patterns=special,
        quantity_regex=quantity_regex,
        skip_regex=skip_regex,
        whatsapp_message=_compile(commands['whatsapp_message'], re.DOTALL, 'command_patterns.whatsapp_message'),
        normalization=_compile(commands['normalization'], 0, 'command_patterns.normalization'),
        add_to_order=_optional_command('add_to_order'),
        image_placeholder=_optional_command('image_placeholder'),
        quantity_corrections=tuple(corrections),
    )


def build_forwarder_config(data: Optional[Mapping[str, Any]],
                           names_override: Optional[Sequence[str]] = None) -> ForwarderConfig:
    """Forwarder names are lower-cased; an empty list disables forwarder mode"""
    data = data or {}
    names = names_override if names_override is not None else data.get('names') or []
    cleaned = tuple(str(n).strip().lower() for n in names if n is not None and str(n).strip())
    timeout = data.get('timeout_minutes', ForwarderConfig.timeout_minutes)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"forwarder timeout_minutes must be a number, got {timeout!r}") from e
    formats = data.get('timestamp_formats') or list(ForwarderConfig.timestamp_formats)
    return ForwarderConfig(names=cleaned, timeout_minutes=timeout, timestamp_formats=tuple(formats))


def build_item_standardization(data: Optional[Mapping[str, Any]]) -> ItemStandardization:
    data = data or {}
    unit_map = {str(k).lower(): ('' if v is None else str(v)) for k, v in (data.get('unit_map') or {}).items()}
    name_map = {str(k): str(v) for k, v in (data.get('product_name_map') or {}).items()}
    patterns = tuple(
        _compile(p, re.IGNORECASE, 'item standardization non_item_patterns')
        for p in data.get('non_item_patterns') or []
    )
    weight_units = tuple(data.get('weight_units') or ItemStandardization.weight_units)
    return ItemStandardization(
        unit_map=unit_map,
        product_name_map=name_map,
        non_item_patterns=patterns,
        weight_units=weight_units,
    )


def build_order_rules(alias_data: Mapping[str, Any], quantity_data: Mapping[str, Any],
                      forwarder_data: Optional[Mapping[str, Any]] = None,
                      item_data: Optional[Mapping[str, Any]] = None,
                      forwarder_names: Optional[Sequence[str]] = None) -> OrderRules:
    """
    Build the single OrderRules object from parsed rule dictionaries

    Args:
        alias_data: Company alias rules
        quantity_data: Quantity pattern rules
        forwarder_data: Optional forwarder settings ({names, timeout_minutes, timestamp_formats})
        item_data: Optional item standardization rules
        forwarder_names: Optional override for the forwarder allowlist

    Returns:
        OrderRules instance
    """
    quantities = build_quantity_config(quantity_data)
    aliases = build_alias_table(alias_data, quantities.normalization)
    return OrderRules(
        aliases=aliases,
        quantities=quantities,
        forwarders=build_forwarder_config(forwarder_data, forwarder_names),
        items=build_item_standardization(item_data),
    )
