# nightowl/db/base.py
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def enum_values(enum_cls):
    """Persist str enums by value rather than by member name."""
    return [member.value for member in enum_cls]
