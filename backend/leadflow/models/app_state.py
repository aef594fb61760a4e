"""Key/value application state (lead settings, scheduler state)."""

from datetime import datetime

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from leadflow.clock import utcnow
from leadflow.database import Base, JSONType

LEAD_SETTINGS_KEY = "lead_settings"
AUTOMATION_STATE_KEY = "automation_state"


class AppState(Base):
    __tablename__ = "app_state"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[dict] = mapped_column(JSONType, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
