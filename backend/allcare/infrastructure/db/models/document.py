"""
DocumentRecord SQLModel for AllCare

One row per stored document, addressed by its store path.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Column, JSON, String
from sqlmodel import Field, SQLModel


class DocumentRecord(SQLModel, table=True):
    """
    Document table model.

    Maps to the 'documents' table; ``data`` holds the whole document.
    """

    __tablename__ = "documents"

    path: str = Field(
        sa_column=Column(String(512), primary_key=True, nullable=False),
        description="Store path, e.g. paymentsubscriptions/a@b,com"
    )

    data: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Whole document"
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        description="Record creation timestamp (UTC)"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        description="Last overwrite timestamp (UTC)"
    )
