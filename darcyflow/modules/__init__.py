"""darcyflow solver modules."""

from . import darcy

__all__ = ["darcy"]
