from __future__ import annotations

import enum
import uuid
from datetime import time

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Time, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from kinetoflow.models.base import Base, TimestampMixin


class DayOfWeek(str, enum.Enum):
    """ISO weekday names, Monday first."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def ordinal(self) -> int:
        return list(DayOfWeek).index(self)


class MedicWorkingHours(Base, TimestampMixin):
    """Weekly working window of a medic for one day."""

    __tablename__ = "medic_working_hours"
    __table_args__ = (
        UniqueConstraint(
            "medic_id", "day_of_week", name="uq_medic_working_hours_medic_id_day_of_week"
        ),
        CheckConstraint("end_time > start_time", name="end_after_start"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    medic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    day_of_week: Mapped[DayOfWeek] = mapped_column(
        Enum(DayOfWeek, name="day_of_week"), nullable=False
    )
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
