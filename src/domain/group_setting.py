"""Group Setting Domain Entity

Settings shared by a group of clients; sits between client and company
settings in the cascade.
"""

from typing import Any, Dict
from sqlmodel import Field, Column
from sqlalchemy import JSON, ForeignKey, String
from src.domain.base import BaseModel, IdType


class GroupSetting(BaseModel, table=True):
    __tablename__ = "group_settings"

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
    )

    company_id: int = Field(
        sa_column=Column(IdType, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    )

    name: str = Field(
        sa_column=Column(String(255), nullable=False),
    )

    settings: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
