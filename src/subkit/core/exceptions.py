# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Custom exception hierarchy for subkit."""


class SubkitError(Exception):
    """Base exception for all subkit errors."""


class ConfigurationError(SubkitError):
    """Invalid or missing configuration."""


class CacheKeyError(SubkitError, ValueError):
    """A cache operation was called without an identifier or cache type."""
