"""Adapters connecting the ledger to databases and upstream order systems."""
