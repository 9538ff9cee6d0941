"""Auto parts storefront and role-gated back office."""

__version__ = "0.1.0"
