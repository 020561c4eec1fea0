from datetime import datetime
from sqlalchemy import String, DateTime, JSON, func
from sqlalchemy.orm import Mapped, mapped_column
from quiz_app.db.base import Base

class Identity(Base):
    """Local stand-in for the hosted identity provider's user table."""
    __tablename__ = "identities"
    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    user_metadata: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(50))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password: Mapped[str] = mapped_column(String(32))  # placeholder; identity owns the hash
    role: Mapped[str] = mapped_column(String(16), default="student")
    created_at: Mapped[str] = mapped_column(String(40))
    last_active: Mapped[str] = mapped_column(String(40))
