from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Calendar date as 'YYYY-MM-DD'
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    tickets_available: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        # Backstop for the conditional decrement
        CheckConstraint("tickets_available >= 0", name="ck_events_tickets_non_negative"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} name={self.name!r} tickets_available={self.tickets_available}>"
