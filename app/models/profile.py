from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, String, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.user import User


class Profile(Base):
    """Per-user studio document: artist roster, generation history and Gemini key."""

    __tablename__ = "profiles"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )
    display_name: Mapped[str] = mapped_column(String(50))
    email: Mapped[str] = mapped_column(String(255))

    artists: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    generation_history: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    api_key: Mapped[str] = mapped_column(String(255), default="")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="profile")

    def to_document(self) -> dict[str, Any]:
        return {
            "artists": list(self.artists or []),
            "generation_history": dict(self.generation_history or {}),
            "display_name": self.display_name,
            "email": self.email,
            "api_key": self.api_key or "",
        }

    def __repr__(self) -> str:
        return f"<Profile {self.user_id}>"
