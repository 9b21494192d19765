"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. Other modules can import from tours_api.models directly
"""

from tours_api.models.user import User, UserRole  # noqa: F401
from tours_api.models.tour import Tour  # noqa: F401
from tours_api.models.review import Review  # noqa: F401
