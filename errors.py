"""
Exception classes for SplitLedger.

The settlement engine itself never raises for irregular ledger data; these
are reserved for missing inputs and for ingestion of records from files.
"""


class LedgerError(Exception):
    """Base exception for SplitLedger errors."""

    pass


class LedgerInputError(LedgerError, ValueError):
    """A required collection was not supplied to the engine."""

    pass


class ConfigError(LedgerError):
    """Ledger file could not be read or parsed."""

    pass


class DataValidationError(LedgerError):
    """A record was rejected at ingestion time (unknown split method, item without sharers, ...)."""

    pass
