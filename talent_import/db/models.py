"""
SQLAlchemy models for the entities the import pipeline creates.

Every row is tenant scoped. Tenant-defined extra attributes live in the
``custom_data`` JSON column.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from talent_import.db.session import Base


def _utcnow():
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_clients_tenant_name"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    industry = Column(String(255))
    website = Column(String(512))
    address = Column(Text)
    city = Column(String(255))
    state = Column(String(255))
    country = Column(String(255))
    notes = Column(Text)
    status = Column(String(32), nullable=False, default="ACTIVE")
    custom_data = Column(JSON, nullable=False, default=dict)
    created_by_id = Column(String(64))
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Candidate(Base):
    __tablename__ = "candidates"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_candidates_tenant_email"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    applicant_id = Column(String(128))
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(320))
    phone = Column(String(64))
    title = Column(String(255))
    current_employer = Column(String(255))
    location = Column(String(255))
    state = Column(String(255))
    visa_status = Column(String(128))
    linkedin_url = Column(String(512))
    rate = Column(Float)
    availability = Column(String(255))
    date_of_birth = Column(DateTime(timezone=True))
    resume_available = Column(String(64))
    skills = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    source = Column(String(32), nullable=False, default="OTHER")
    status = Column(String(32), nullable=False, default="ACTIVE")
    custom_data = Column(JSON, nullable=False, default=dict)
    created_by_id = Column(String(64))
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    requirements = Column(Text)
    location = Column(String(255))
    positions_count = Column(Integer)
    bill_rate = Column(Float)
    pay_rate = Column(Float)
    skills_required = Column(JSON, nullable=False, default=list)
    job_type = Column(String(32), nullable=False, default="FULLTIME")
    status = Column(String(32), nullable=False, default="OPEN")
    priority = Column(String(32), nullable=False, default="NORMAL")
    custom_data = Column(JSON, nullable=False, default=dict)
    created_by_id = Column(String(64))
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class CustomField(Base):
    """Tenant-defined attribute stored inside an entity's ``custom_data``."""

    __tablename__ = "custom_fields"
    __table_args__ = (
        UniqueConstraint("tenant_id", "entity_type", "field_key", name="uq_custom_fields_key"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(32), nullable=False)
    field_key = Column(String(100), nullable=False)
    field_name = Column(String(100), nullable=False)
    display_order = Column(Integer, nullable=False, default=0)


ENTITY_MODELS = {
    "candidate": Candidate,
    "job": Job,
    "client": Client,
}
