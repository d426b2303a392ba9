"""fitpick - pick unit combinations that fit an allowance as closely as possible."""

__version__ = "0.1.0"
