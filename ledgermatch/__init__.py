"""ledgermatch - similarity-based matching engine for accounting records.

Finds duplicate documents and reconciles bank transactions against documents
and ledger entries by scoring candidates over weighted, field-specific
similarity functions.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
