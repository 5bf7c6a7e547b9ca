"""Initial database schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(14, 2)


def _employee_fk(index: bool = True) -> sa.Column:
    return sa.Column(
        'employee_id',
        sa.String(32),
        sa.ForeignKey('employees.id', ondelete='CASCADE'),
        nullable=False,
        index=index,
    )


def upgrade() -> None:
    # Employees come first: users link to them
    op.create_table(
        'employees',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('first_name', sa.String(128), nullable=False),
        sa.Column('last_name', sa.String(128), nullable=False),
        sa.Column('national_id', sa.String(64), unique=True, nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('gender', sa.String(16), nullable=False),
        sa.Column('phone_number', sa.String(64), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('job_title', sa.String(128), nullable=False),
        sa.Column('department', sa.String(128), nullable=False),
        sa.Column('salary', MONEY, nullable=False),
        sa.Column('benefits_json', sa.JSON(), nullable=True),
        sa.Column('leave_balance', sa.Float(), default=0),
        sa.Column('hire_date', sa.Date(), nullable=False),
        sa.Column('employment_status', sa.String(32), nullable=False, server_default='Onboarding'),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_index('ix_employees_department', 'employees', ['department'])

    op.create_table(
        'users',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('username', sa.String(64), unique=True, nullable=False, index=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', sa.String(32), nullable=False, server_default='member'),
        sa.Column(
            'employee_id',
            sa.String(32),
            sa.ForeignKey('employees.id', ondelete='SET NULL'),
            nullable=True,
            index=True,
        ),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('user_id', sa.String(32), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token_hash', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    op.create_table(
        'contracts',
        sa.Column('id', sa.String(32), primary_key=True),
        _employee_fk(),
        sa.Column('contract_type', sa.String(32), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('signed_by_employee', sa.Boolean(), default=False),
        sa.Column('signed_by_hr', sa.Boolean(), default=False),
        sa.Column('document_url', sa.String(1024), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'administrative_letters',
        sa.Column('id', sa.String(32), primary_key=True),
        _employee_fk(),
        sa.Column('letter_type', sa.String(32), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('document_url', sa.String(1024), nullable=True),
        sa.Column('issued_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.String(32), primary_key=True),
        _employee_fk(index=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('check_in_time', sa.DateTime(), nullable=True),
        sa.Column('check_out_time', sa.DateTime(), nullable=True),
        sa.Column('hours_worked', sa.Float(), nullable=True),
        sa.Column('overtime_hours', sa.Float(), default=0),
        sa.Column('leave_type', sa.String(16), nullable=False, server_default='None'),
        sa.Column('leave_status', sa.String(16), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_index('ix_attendance_employee_date', 'attendance_records', ['employee_id', 'date'])

    op.create_table(
        'payrolls',
        sa.Column('id', sa.String(32), primary_key=True),
        _employee_fk(index=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('base_salary', MONEY, nullable=False),
        sa.Column('overtime_pay', MONEY, nullable=False, server_default='0'),
        sa.Column('deductions_json', sa.JSON(), nullable=True),
        sa.Column('net_salary', MONEY, nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='Pending'),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_index('ix_payrolls_employee_period', 'payrolls', ['employee_id', 'period_start'])

    op.create_table(
        'benefits',
        sa.Column('id', sa.String(32), primary_key=True),
        _employee_fk(),
        sa.Column('benefit_type', sa.String(32), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('entity_kind', sa.String(32), nullable=False),
        sa.Column('entity_id', sa.String(64), nullable=True),
        sa.Column('action', sa.String(16), nullable=False),
        sa.Column('actor_id', sa.String(32), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('detail_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_kind', 'entity_id'])
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])

    op.create_table(
        'conversations',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column(
            'user_id', sa.String(32), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True
        ),
        sa.Column('title', sa.String(255), default='New Conversation'),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'conversation_messages',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column(
            'conversation_id',
            sa.String(32),
            sa.ForeignKey('conversations.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('message_id', sa.String(64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('parts_json', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('conversation_id', 'message_id', name='uq_conversation_message_id'),
    )
    op.create_index(
        'ix_conversation_messages_position', 'conversation_messages', ['conversation_id', 'position']
    )


def downgrade() -> None:
    op.drop_table('conversation_messages')
    op.drop_table('conversations')
    op.drop_table('audit_logs')
    op.drop_table('benefits')
    op.drop_table('payrolls')
    op.drop_table('attendance_records')
    op.drop_table('administrative_letters')
    op.drop_table('contracts')
    op.drop_table('sessions')
    op.drop_table('users')
    op.drop_table('employees')
