"""Flask service toolkit: hook-driven runner, handler wrappers, middleware, logging, env configuration and Redis streams."""

__version__ = "0.1.0"