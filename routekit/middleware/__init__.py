"""Ready-made HTTP middlewares, one module per concern."""

__all__: list[str] = []