"""User model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from bursar.database import Base
from bursar.models.base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, Base):
    """Back-office staff member (token issuance handled elsewhere)."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.username}>"
