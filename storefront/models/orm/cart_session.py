from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from storefront.models.orm.base import Base


class CartSession(Base):
    __tablename__ = "cart_sessions"

    session_key: Mapped[str] = mapped_column(String(128), primary_key=True)
    storage_name: Mapped[str] = mapped_column(
        String(64), primary_key=True, default="cart-storage"
    )
    items: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
