"""API routers."""

from . import auth
from . import health
from . import orders

__all__ = ['auth', 'health', 'orders']
