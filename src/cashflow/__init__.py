"""
Cashflow - backend platform primitives.

- cashflow.core: errors, logging, settings, store adapters and the
  schema migration engine
- cashflow.cli: operator command line (``cashflow migrate ...``)
"""

__version__ = "0.4.0"
