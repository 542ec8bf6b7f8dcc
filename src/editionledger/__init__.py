"""Edition numbering ledger for limited-edition orders."""

from __future__ import annotations

__version__ = "0.1.0"
