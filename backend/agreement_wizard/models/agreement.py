import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.types import CHAR, TypeDecorator

from ..database import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses CHAR(36) to store UUIDs as strings, compatible with all backends
    including SQLite.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid.UUID(value)
        return value


class GeneratedAgreement(Base):
    __tablename__ = "generated_agreements"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    session_id = Column(String(64), nullable=False, index=True)
    template_id = Column(String(64), nullable=False, default="employment-agreement")
    fingerprint = Column(String(64), nullable=False)
    source = Column(String(16), nullable=False)  # background | direct
    jurisdiction = Column(String(128), nullable=True)
    document_json = Column(Text, nullable=False)  # JSON string
    form_data_json = Column(Text, nullable=False)  # JSON string
    usage_json = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
