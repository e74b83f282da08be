"""Database models backing the clinic calendar portal."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.extensions import db


class TimestampMixin:
    """Mixin providing timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


tenant_practitioners = Table(
    "tenant_practitioners",
    db.metadata,
    Column("tenant_id", ForeignKey("tenants.id"), primary_key=True),
    Column("practitioner_id", ForeignKey("practitioners.id"), primary_key=True),
)

appointment_practitioners = Table(
    "appointment_practitioners",
    db.metadata,
    Column("appointment_id", ForeignKey("appointments.id"), primary_key=True),
    Column("practitioner_id", ForeignKey("practitioners.id"), primary_key=True),
)


class Tenant(db.Model, TimestampMixin):
    """A clinic or practice with its own isolated data scope."""

    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_name: Mapped[str | None] = mapped_column(String(255))
    timezone: Mapped[str | None] = mapped_column(String(100))

    users: Mapped[list["User"]] = relationship("User", back_populates="tenant")
    practitioners: Mapped[list["Practitioner"]] = relationship(
        "Practitioner", secondary=tenant_practitioners, back_populates="tenants"
    )
    appointments: Mapped[list["Appointment"]] = relationship(
        "Appointment", back_populates="tenant"
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.company_name!r}>"


class User(db.Model, TimestampMixin):
    """Portal account for clinic staff and practitioners."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int | None] = mapped_column(ForeignKey("tenants.id"), nullable=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(50), default="staff", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    tenant: Mapped[Tenant | None] = relationship("Tenant", back_populates="users")
    practitioner: Mapped[Practitioner | None] = relationship(
        "Practitioner", back_populates="user", uselist=False
    )
    audit_logs: Mapped[list["AuditLog"]] = relationship("AuditLog", back_populates="user")

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"


class Practitioner(db.Model, TimestampMixin):
    """A clinician who may work across several tenants."""

    __tablename__ = "practitioners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user: Mapped[User | None] = relationship("User", back_populates="practitioner")
    tenants: Mapped[list[Tenant]] = relationship(
        "Tenant", secondary=tenant_practitioners, back_populates="practitioners"
    )
    appointments: Mapped[list["Appointment"]] = relationship(
        "Appointment", secondary=appointment_practitioners, back_populates="practitioners"
    )
    external_events: Mapped[list["ExternalEvent"]] = relationship(
        "ExternalEvent", back_populates="practitioner", cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Practitioner id={self.id} name={self.display_name!r}>"


class Patient(db.Model, TimestampMixin):
    """A patient registered with a tenant."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Patient id={self.id} name={self.display_name!r}>"


class Service(db.Model, TimestampMixin):
    """A bookable service such as a consultation type."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_duration_minutes: Mapped[int | None] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<Service id={self.id} name={self.name!r}>"


class Location(db.Model, TimestampMixin):
    """A physical location of a tenant."""

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r}>"


class Appointment(db.Model, TimestampMixin):
    """A scheduled encounter; start and end are stored as naive UTC."""

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    patient_id: Mapped[int | None] = mapped_column(ForeignKey("patients.id"))
    service_id: Mapped[int | None] = mapped_column(ForeignKey("services.id"))
    location_id: Mapped[int | None] = mapped_column(ForeignKey("locations.id"))
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="pending", nullable=False)
    mode: Mapped[str | None] = mapped_column(String(20))
    notes: Mapped[str | None] = mapped_column(Text)

    tenant: Mapped[Tenant] = relationship("Tenant", back_populates="appointments")
    patient: Mapped[Patient | None] = relationship("Patient")
    service: Mapped[Service | None] = relationship("Service")
    location: Mapped[Location | None] = relationship("Location")
    practitioners: Mapped[list[Practitioner]] = relationship(
        "Practitioner", secondary=appointment_practitioners, back_populates="appointments"
    )

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} status={self.status!r}>"


class ExternalEvent(db.Model, TimestampMixin):
    """An event synced from a practitioner's external calendar."""

    __tablename__ = "external_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    practitioner_id: Mapped[int] = mapped_column(ForeignKey("practitioners.id"), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), default="google", nullable=False)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_all_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    practitioner: Mapped[Practitioner] = relationship(
        "Practitioner", back_populates="external_events"
    )

    def __repr__(self) -> str:
        return f"<ExternalEvent id={self.id} title={self.title!r}>"


class AuditLog(db.Model):
    """Immutable log of significant user actions for compliance."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int | None] = mapped_column(ForeignKey("tenants.id"))
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    method: Mapped[str] = mapped_column(String(10), nullable=False)
    path: Mapped[str] = mapped_column(String(255), nullable=False)
    request_hash: Mapped[str | None] = mapped_column(String(128))
    response_hash: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    user: Mapped[User | None] = relationship("User", back_populates="audit_logs")

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} action={self.action!r}>"
