"""Multi-Swagger API Routes Package."""

# Portal paths dispatch on the path alone; OPTIONS never gets here
ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]

from . import health, proxy, specs, ui  # noqa: E402

__all__ = ["ANY_METHOD", "health", "proxy", "specs", "ui"]
