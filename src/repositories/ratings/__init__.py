"""Rating store and history ledger implementations."""
