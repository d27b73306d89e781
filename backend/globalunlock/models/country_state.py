from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from ..db import Base
from .locker_state import utcnow


class CountryState(Base):
    """Per-country activation counter. glow_band is derived from activation_count on every write."""
    __tablename__ = "country_states"

    country_code = Column(String(2), primary_key=True)  # ISO 3166-1 alpha-2, upper-case
    activation_count = Column(Integer, nullable=False, default=0)
    glow_band = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("activation_count >= 0", name="ck_country_states_count_non_negative"),
        CheckConstraint("glow_band >= 0 AND glow_band <= 3", name="ck_country_states_glow_band_range"),
    )
