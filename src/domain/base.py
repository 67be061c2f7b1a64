"""Shared base for persisted domain entities"""

import uuid
from sqlalchemy import BigInteger, Integer
from sqlmodel import SQLModel


# BIGINT primary keys only autoincrement on SQLite when rendered as INTEGER
IdType = BigInteger().with_variant(Integer(), "sqlite")


def generate_uuid() -> str:
    return uuid.uuid4().hex


class BaseModel(SQLModel):
    """Base class for all table models"""
    pass
