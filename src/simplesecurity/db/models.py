"""SQLAlchemy ORM model for the user table.

Learn: The provider needs exactly one table. Roles live in a single
string column as a comma-separated list; the store converts them to
and from a real list, so nothing above the store sees the encoding.

Names are unique case-insensitively through an index on lower(name).
"""

from sqlalchemy import Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class UserRecord(Base):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(256), nullable=False, default="")


Index("ux_user_name_lower", func.lower(UserRecord.name), unique=True)
