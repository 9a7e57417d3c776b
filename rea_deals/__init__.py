"""REA Deals: deal and commission engine for a real-estate back office."""

__version__ = "1.0.0"
