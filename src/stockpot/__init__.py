"""
Stockpot restaurant inventory package.

The package tracks ingredient stock, maps dishes to their ingredient requirements,
deducts stock when dishes are ordered and raises low-stock signals. Persistence is
pluggable through the storage backends in :mod:`stockpot.storage`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
