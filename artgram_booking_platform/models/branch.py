"""
Branch model mirroring the branch records owned by branch administration.
"""

from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .session import ActivitySession


class Branch(Base):
    """A physical studio location and its scheduling policy."""

    __tablename__ = "branches"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Scheduling policy
    allow_slime: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    allow_tufting: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    allow_monday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    sessions: Mapped[List["ActivitySession"]] = relationship(
        "ActivitySession",
        back_populates="branch",
    )

    def allows_activity(self, activity) -> bool:
        """Check whether the branch runs the given activity."""
        value = getattr(activity, "value", activity)
        if value == "slime":
            return self.allow_slime
        if value == "tufting":
            return self.allow_tufting
        return False

    def __repr__(self) -> str:
        return f"<Branch(id={self.id}, name='{self.name}')>"
