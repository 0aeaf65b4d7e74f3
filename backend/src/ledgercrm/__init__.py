"""LedgerCRM - encrypted holder and alias registry for ledger accounts."""

__version__ = "0.1.0"
