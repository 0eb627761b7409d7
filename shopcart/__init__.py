"""Shopping cart backend: users, product catalog, cart engine and checkout quotes."""

__version__ = "1.0.0"
