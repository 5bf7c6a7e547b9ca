"""SQLAlchemy database models."""

import secrets
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hrdesk.core.time import utcnow
from hrdesk.db.database import Base

MONEY = Numeric(14, 2)


def generate_id() -> str:
    """Generate a unique ID."""
    return secrets.token_urlsafe(16)


class User(Base):
    """Account able to authenticate and hold a role."""

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(64), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="member")
    employee_id = Column(
        String(32), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    employee: Optional["Employee"] = relationship("Employee")
    conversations: List["Conversation"] = relationship(
        "Conversation", back_populates="user", cascade="all, delete-orphan"
    )
    sessions: List["Session"] = relationship(
        "Session", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"


class Session(Base):
    """Resolved session token. Tokens are issued elsewhere; only the hash is stored."""

    __tablename__ = "sessions"

    id = Column(String(32), primary_key=True, default=generate_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(255), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    user: User = relationship("User", back_populates="sessions")

    def __repr__(self) -> str:
        return f"<Session {self.id[:8]}...>"


class Employee(Base):
    """Employee record. Owned by the employee it represents."""

    __tablename__ = "employees"
    __table_args__ = (Index("ix_employees_department", "department"),)

    id = Column(String(32), primary_key=True, default=generate_id)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    national_id = Column(String(64), unique=True, nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(String(16), nullable=False)
    phone_number = Column(String(64), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    job_title = Column(String(128), nullable=False)
    department = Column(String(128), nullable=False)
    salary = Column(MONEY, nullable=False)
    benefits_json = Column(JSON, nullable=True)
    leave_balance = Column(Float, default=0)
    hire_date = Column(Date, nullable=False)
    employment_status = Column(String(32), nullable=False, default="Onboarding")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    contracts: List["Contract"] = relationship(
        "Contract", back_populates="employee", cascade="all, delete-orphan"
    )
    letters: List["AdministrativeLetter"] = relationship(
        "AdministrativeLetter", back_populates="employee", cascade="all, delete-orphan"
    )
    attendance_records: List["AttendanceRecord"] = relationship(
        "AttendanceRecord", back_populates="employee", cascade="all, delete-orphan"
    )
    payrolls: List["Payroll"] = relationship(
        "Payroll", back_populates="employee", cascade="all, delete-orphan"
    )
    employee_benefits: List["Benefit"] = relationship(
        "Benefit", back_populates="employee", cascade="all, delete-orphan"
    )

    @property
    def owner_id(self) -> str:
        return self.id

    def __repr__(self) -> str:
        return f"<Employee {self.first_name} {self.last_name}>"


class Contract(Base):
    """Employment contract."""

    __tablename__ = "contracts"

    id = Column(String(32), primary_key=True, default=generate_id)
    employee_id = Column(
        String(32), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    contract_type = Column(String(32), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    signed_by_employee = Column(Boolean, default=False)
    signed_by_hr = Column(Boolean, default=False)
    document_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    employee: Employee = relationship("Employee", back_populates="contracts")

    @property
    def owner_id(self) -> str:
        return self.employee_id


class AdministrativeLetter(Base):
    """Administrative letter issued to an employee."""

    __tablename__ = "administrative_letters"

    id = Column(String(32), primary_key=True, default=generate_id)
    employee_id = Column(
        String(32), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    letter_type = Column(String(32), nullable=False)
    content = Column(Text, nullable=False)
    document_url = Column(String(1024), nullable=True)
    issued_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    employee: Employee = relationship("Employee", back_populates="letters")

    @property
    def owner_id(self) -> str:
        return self.employee_id


class AttendanceRecord(Base):
    """Daily attendance row, also used for leave requests."""

    __tablename__ = "attendance_records"
    __table_args__ = (Index("ix_attendance_employee_date", "employee_id", "date"),)

    id = Column(String(32), primary_key=True, default=generate_id)
    employee_id = Column(
        String(32), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    date = Column(Date, nullable=False)
    check_in_time = Column(DateTime, nullable=True)
    check_out_time = Column(DateTime, nullable=True)
    hours_worked = Column(Float, nullable=True)
    overtime_hours = Column(Float, default=0)
    leave_type = Column(String(16), nullable=False, default="None")
    leave_status = Column(String(16), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    employee: Employee = relationship("Employee", back_populates="attendance_records")

    @property
    def owner_id(self) -> str:
        return self.employee_id


class Payroll(Base):
    """Payroll run for one employee and period."""

    __tablename__ = "payrolls"
    __table_args__ = (Index("ix_payrolls_employee_period", "employee_id", "period_start"),)

    id = Column(String(32), primary_key=True, default=generate_id)
    employee_id = Column(
        String(32), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    base_salary = Column(MONEY, nullable=False)
    overtime_pay = Column(MONEY, nullable=False, default=0)
    deductions_json = Column(JSON, nullable=True)
    net_salary = Column(MONEY, nullable=False)
    status = Column(String(16), nullable=False, default="Pending")
    payment_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    employee: Employee = relationship("Employee", back_populates="payrolls")

    @property
    def owner_id(self) -> str:
        return self.employee_id


class Benefit(Base):
    """Benefit granted to an employee."""

    __tablename__ = "benefits"

    id = Column(String(32), primary_key=True, default=generate_id)
    employee_id = Column(
        String(32), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    benefit_type = Column(String(32), nullable=False)
    amount = Column(MONEY, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    employee: Employee = relationship("Employee", back_populates="employee_benefits")

    @property
    def owner_id(self) -> str:
        return self.employee_id


class AuditLog(Base):
    """Append-only audit entry for an HR operation."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_created_at", "created_at"),
        Index("ix_audit_logs_entity", "entity_kind", "entity_id"),
        Index("ix_audit_logs_actor_id", "actor_id"),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    entity_kind = Column(String(32), nullable=False)
    entity_id = Column(String(64), nullable=True)
    action = Column(String(16), nullable=False)
    actor_id = Column(String(32), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    detail_json = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.entity_kind} {self.id[:8]}...>"


class Conversation(Base):
    """Chat conversation owned by a user."""

    __tablename__ = "conversations"

    id = Column(String(32), primary_key=True, default=generate_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), default="New Conversation")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user: User = relationship("User", back_populates="conversations")
    messages: List["ConversationMessage"] = relationship(
        "ConversationMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ConversationMessage.position",
    )

    def __repr__(self) -> str:
        return f"<Conversation {self.id[:8]}...>"


class ConversationMessage(Base):
    """One stored message of a conversation, addressed by its client-visible id."""

    __tablename__ = "conversation_messages"
    __table_args__ = (
        UniqueConstraint("conversation_id", "message_id", name="uq_conversation_message_id"),
        Index("ix_conversation_messages_position", "conversation_id", "position"),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    conversation_id = Column(
        String(32), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    message_id = Column(String(64), nullable=False)
    position = Column(Integer, nullable=False)
    role = Column(String(16), nullable=False)
    parts_json = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    conversation: Conversation = relationship("Conversation", back_populates="messages")

    def __repr__(self) -> str:
        return f"<ConversationMessage {self.role} #{self.position}>"
