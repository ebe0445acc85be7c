"""cartflow - cart, pricing and checkout engine for a retail storefront."""

__version__ = "0.1.0"
