"""Domain layer for ledgerkit."""

from importlib import import_module

_SERVICES = {
    "AccountService": "ledgerkit.domain.account",
    "BalanceService": "ledgerkit.domain.balance",
    "CounterpartyService": "ledgerkit.domain.counterparty",
    "InvoiceService": "ledgerkit.domain.invoice",
    "JournalService": "ledgerkit.domain.journal",
    "PostingService": "ledgerkit.domain.posting",
    "ReportService": "ledgerkit.domain.reports",
    "SnapshotService": "ledgerkit.domain.snapshot",
    "TaxService": "ledgerkit.domain.tax",
}

__all__ = list(_SERVICES)


# Services import the database layer, which imports entities from this
# package, so they are loaded on first access
def __getattr__(name):
    if name in _SERVICES:
        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
