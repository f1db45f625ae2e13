"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from rpage.db.session import Base
from rpage.domain.common.time import utcnow


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Automation(Base):
    __tablename__ = "automations"

    id = Column(String(64), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    description = Column(Text, default="")
    script = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="idle")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    logs = relationship("LogEntry", back_populates="automation", cascade="all, delete-orphan", passive_deletes=True)
    outputs = relationship(
        "OutputArtifact", back_populates="automation", cascade="all, delete-orphan", passive_deletes=True
    )


class LogEntry(Base):
    __tablename__ = "logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    automation_id = Column(
        String(64), ForeignKey("automations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    automation_name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False)
    output = Column(Text)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    automation = relationship("Automation", back_populates="logs")


class OutputArtifact(Base):
    __tablename__ = "outputs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    automation_id = Column(
        String(64), ForeignKey("automations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, default="text", index=True)
    data = Column(Text)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    automation = relationship("Automation", back_populates="outputs")


class Setting(Base):
    __tablename__ = "settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
