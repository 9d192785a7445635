#!/usr/bin/env python3
"""
Exceptions raised by the order extraction core
"""


class OrderExtractError(Exception):
    """Base class for order extraction errors"""


class ConfigurationError(OrderExtractError):
    """Rule files are missing or incomplete (raised at load time, never mid-run)"""


class ClaimConflictError(OrderExtractError):
    """A chat message index was claimed by more than one pattern"""
