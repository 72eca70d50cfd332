"""December/January community prescribing comparison pipeline."""

__version__ = "0.1.0"
