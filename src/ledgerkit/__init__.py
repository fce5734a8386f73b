"""ledgerkit - double-entry accounting ledger."""

__version__ = "0.1.0"


# Import lazily to avoid circular dependencies
def __getattr__(name):
    if name == "main":
        from ledgerkit.cli.main import main
        return main
    if name in ("Ledger", "open_ledger"):
        from ledgerkit import ledger
        return getattr(ledger, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
