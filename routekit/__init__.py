"""HTTP request model, routing context, middleware chains and middlewares."""

__version__ = "0.1.0"
__all__ = ["__version__"]