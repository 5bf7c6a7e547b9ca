"""Database module for HRDesk."""

from hrdesk.db.database import (
    Base,
    dispose_engine,
    get_db,
    get_engine,
    get_session_local,
    verify_database_connection,
)
from hrdesk.db.models import (
    AdministrativeLetter,
    AttendanceRecord,
    AuditLog,
    Benefit,
    Contract,
    Conversation,
    ConversationMessage,
    Employee,
    Payroll,
    Session,
    User,
)

__all__ = [
    # Database infrastructure
    "Base",
    "get_db",
    "get_engine",
    "get_session_local",
    "dispose_engine",
    "verify_database_connection",
    # Accounts
    "User",
    "Session",
    "AuditLog",
    # HR records
    "Employee",
    "Contract",
    "AdministrativeLetter",
    "AttendanceRecord",
    "Payroll",
    "Benefit",
    # Chat
    "Conversation",
    "ConversationMessage",
]
