"""In-memory key-value server and client over a length-prefixed binary protocol."""

__version__ = "0.1.0"

__all__ = ["client", "protocol", "server", "store"]