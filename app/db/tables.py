from sqlalchemy import Column, DateTime, Float, Integer, String, Text

from app.db.database import Base


class RegistrationRow(Base):
    __tablename__ = "registrations"

    # Internal key; clients only ever see registration_id
    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_id = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=False)
    tour_title = Column(String(200), nullable=False)
    people = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0)
    total_price = Column(Float, nullable=False)
    status = Column(String(10), nullable=False, default="undone", index=True)
    message = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
