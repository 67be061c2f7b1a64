"""Client Contact Domain Entity"""

from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, String
from src.domain.base import BaseModel, IdType, generate_uuid


class ClientContact(BaseModel, table=True):
    """
    Client Contact - Person invoices are sent to

    Every client needs at least one contact; invitations link an invoice to
    the contacts it was sent to.
    """

    __tablename__ = "client_contacts"
    __table_args__ = (
        Index('ix_client_contacts_client_id', 'client_id'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
    )

    client_id: int = Field(
        sa_column=Column(IdType, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
    )

    company_id: int = Field(
        sa_column=Column(IdType, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    )

    email: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )

    contact_key: str = Field(
        default_factory=generate_uuid,
        sa_column=Column(String(64), nullable=False),
    )

    is_primary: bool = Field(default=False)
