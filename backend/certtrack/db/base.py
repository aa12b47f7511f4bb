"""Declarative base for the remote store schema."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
