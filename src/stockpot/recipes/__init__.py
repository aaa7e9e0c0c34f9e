"""Recipe catalog."""

from stockpot.recipes.catalog import RecipeCatalog

__all__ = ["RecipeCatalog"]
