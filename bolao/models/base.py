"""Declarative base shared by every contest table."""

from sqlalchemy.orm import DeclarativeBase
from bolao.db.metadata import metadata_obj


class Base(DeclarativeBase):
    """Base class of the bolão ORM models, bound to the naming-convention metadata."""

    metadata = metadata_obj
