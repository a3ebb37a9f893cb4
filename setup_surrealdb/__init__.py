"""Install a SurrealDB release into the runner tool cache."""

__version__ = "0.1.0"
