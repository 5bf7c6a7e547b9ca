"""Attendance and leave tools."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.agents.hr.enums import LeaveStatus
from hrdesk.agents.hr.registry import ToolOutcome, hr_tool
from hrdesk.agents.hr.schemas import (
    ApproveLeaveInput,
    GetAttendanceInput,
    RecordAttendanceInput,
    RequestLeaveInput,
    UpdateAttendanceInput,
)
from hrdesk.agents.hr.serializers import serialize_attendance
from hrdesk.agents.hr.tools.base import apply_changes, listing, load_owned, load_target_employee, visible
from hrdesk.auth.rbac import Action, EntityKind
from hrdesk.core.exceptions import InvalidInputError
from hrdesk.core.time import as_naive_utc
from hrdesk.db.models import AttendanceRecord

_ENTITY = EntityKind.ATTENDANCE


def _hours_between(check_in: Optional[datetime], check_out: Optional[datetime]) -> Optional[float]:
    if check_in is None or check_out is None:
        return None
    if check_out < check_in:
        raise InvalidInputError("checkOutTime must not be before checkInTime")
    return round((check_out - check_in).total_seconds() / 3600, 2)


@hr_tool(
    "recordAttendance",
    input_model=RecordAttendanceInput,
    action=Action.CREATE,
    entity=_ENTITY,
    description="Record attendance for an employee (check-in, check-out, hours worked, overtime).",
)
def record_attendance(db: DBSession, ctx: ExecutionContext, params: RecordAttendanceInput) -> ToolOutcome:
    load_target_employee(db, ctx, params.employee_id, Action.CREATE, _ENTITY)
    check_in, check_out = as_naive_utc(params.check_in_time), as_naive_utc(params.check_out_time)
    hours = params.hours_worked
    if hours is None:
        hours = _hours_between(check_in, check_out)

    record = AttendanceRecord(
        employee_id=params.employee_id,
        date=params.attendance_date,
        check_in_time=check_in,
        check_out_time=check_out,
        hours_worked=hours,
        overtime_hours=params.overtime_hours,
        leave_type=params.leave_type.value,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return ToolOutcome(serialize_attendance(record), entity_id=record.id)


@hr_tool(
    "updateAttendance",
    input_model=UpdateAttendanceInput,
    action=Action.UPDATE,
    entity=_ENTITY,
    description="Update an attendance record.",
)
def update_attendance(db: DBSession, ctx: ExecutionContext, params: UpdateAttendanceInput) -> ToolOutcome:
    record = load_owned(db, ctx, AttendanceRecord, params.attendance_id, Action.UPDATE, _ENTITY, "Attendance record")
    touched = apply_changes(
        record,
        {
            "check_in_time": as_naive_utc(params.check_in_time),
            "check_out_time": as_naive_utc(params.check_out_time),
            "hours_worked": params.hours_worked,
            "overtime_hours": params.overtime_hours,
            "leave_type": params.leave_type.value if params.leave_type else None,
        },
    )
    _hours_between(record.check_in_time, record.check_out_time)
    db.commit()
    db.refresh(record)
    return ToolOutcome(serialize_attendance(record), entity_id=record.id, detail={"fields": touched})


@hr_tool(
    "getAttendance",
    input_model=GetAttendanceInput,
    action=Action.READ,
    entity=_ENTITY,
    description="Retrieve attendance records for an employee within a date range.",
)
def get_attendance(db: DBSession, ctx: ExecutionContext, params: GetAttendanceInput) -> ToolOutcome:
    rows = (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.employee_id == params.employee_id,
            AttendanceRecord.date >= params.start_date,
            AttendanceRecord.date <= params.end_date,
        )
        .order_by(AttendanceRecord.date.desc())
        .all()
    )
    rows = visible(ctx, rows)
    return ToolOutcome(listing([serialize_attendance(r) for r in rows]), detail={"count": len(rows)})


@hr_tool(
    "approveLeave",
    input_model=ApproveLeaveInput,
    action=Action.APPROVE,
    entity=_ENTITY,
    description="Approve or reject a leave request.",
)
def approve_leave(db: DBSession, ctx: ExecutionContext, params: ApproveLeaveInput) -> ToolOutcome:
    record = load_owned(db, ctx, AttendanceRecord, params.attendance_id, Action.APPROVE, _ENTITY, "Attendance record")
    if record.leave_status != LeaveStatus.REQUESTED.value:
        raise InvalidInputError(
            f"Leave is not awaiting a decision (status: {record.leave_status or 'none'})",
            details={"attendanceId": record.id},
        )
    record.leave_status = params.status.value
    db.commit()
    db.refresh(record)
    return ToolOutcome(
        serialize_attendance(record),
        entity_id=record.id,
        detail={"change": "leave_decided", "status": params.status.value},
    )


@hr_tool(
    "requestLeave",
    input_model=RequestLeaveInput,
    action=Action.CREATE,
    entity=_ENTITY,
    description="Request leave for a date (creates an attendance record awaiting approval).",
)
def request_leave(db: DBSession, ctx: ExecutionContext, params: RequestLeaveInput) -> ToolOutcome:
    load_target_employee(db, ctx, params.employee_id, Action.CREATE, _ENTITY)
    record = AttendanceRecord(
        employee_id=params.employee_id,
        date=params.attendance_date,
        overtime_hours=0,
        leave_type=params.leave_type.value,
        leave_status=LeaveStatus.REQUESTED.value,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return ToolOutcome(serialize_attendance(record), entity_id=record.id)
