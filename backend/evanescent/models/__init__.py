"""
ORM models. Importing this package registers every table on `Base.metadata`,
which Alembic and the test fixtures rely on.
"""

from evanescent.models.user import User
from evanescent.models.writeup import Writeup

__all__ = ["User", "Writeup"]
