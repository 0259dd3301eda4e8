"""
Module: distro_kernel.models.rider
Responsibility: ORM persistence for riders, the field agents who receive
    distributed stock and report outcomes.
Architecture position: Kernel > Models.  May import from db/base.py only.

Deleting a rider cascades to its distributions (ON DELETE CASCADE on
distributions.rider_id).
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from distro_kernel.db.base import TrackedBase


class Rider(TrackedBase):
    """Field sales agent."""

    __tablename__ = "riders"

    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
    )

    phone: Mapped[str | None] = mapped_column(
        String(40),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Rider {self.name}>"
