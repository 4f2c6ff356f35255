"""
Modelos SQLAlchemy.

El brain es un almacén clave-valor: cada clave guarda un blob JSON.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base


class BrainEntryModel(Base):
    """Una clave del brain con su valor serializado."""

    __tablename__ = "brain"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )

    def __repr__(self) -> str:
        return f"<BrainEntry {self.key}>"
