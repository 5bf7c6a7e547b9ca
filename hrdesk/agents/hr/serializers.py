"""Wire serialization of HR records: camelCase keys, ISO dates, numeric money."""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from hrdesk.db.models import (
    AdministrativeLetter,
    AttendanceRecord,
    Benefit,
    Contract,
    Employee,
    Payroll,
    User,
)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _timestamps(record: Any) -> Dict[str, Optional[str]]:
    data = {"createdAt": _iso(getattr(record, "created_at", None))}
    if hasattr(record, "updated_at"):
        data["updatedAt"] = _iso(record.updated_at)
    return data


def serialize_employee(employee: Employee, *, include_related: bool = False) -> Dict[str, Any]:
    data = {
        "id": employee.id,
        "firstName": employee.first_name,
        "lastName": employee.last_name,
        "nationalId": employee.national_id,
        "dateOfBirth": _iso(employee.date_of_birth),
        "gender": employee.gender,
        "phoneNumber": employee.phone_number,
        "email": employee.email,
        "address": employee.address,
        "jobTitle": employee.job_title,
        "department": employee.department,
        "salary": _money(employee.salary),
        "benefits": employee.benefits_json or {},
        "leaveBalance": employee.leave_balance,
        "hireDate": _iso(employee.hire_date),
        "employmentStatus": employee.employment_status,
        **_timestamps(employee),
    }
    if include_related:
        data["contracts"] = [serialize_contract(c) for c in employee.contracts]
        data["letters"] = [serialize_letter(letter) for letter in employee.letters]
        data["employeeBenefits"] = [serialize_benefit(b) for b in employee.employee_benefits]
    return data


def serialize_contract(contract: Contract) -> Dict[str, Any]:
    return {
        "id": contract.id,
        "employeeId": contract.employee_id,
        "contractType": contract.contract_type,
        "startDate": _iso(contract.start_date),
        "endDate": _iso(contract.end_date),
        "signedByEmployee": bool(contract.signed_by_employee),
        "signedByHr": bool(contract.signed_by_hr),
        "documentUrl": contract.document_url,
        **_timestamps(contract),
    }


def serialize_letter(letter: AdministrativeLetter) -> Dict[str, Any]:
    return {
        "id": letter.id,
        "employeeId": letter.employee_id,
        "letterType": letter.letter_type,
        "content": letter.content,
        "documentUrl": letter.document_url,
        "issuedDate": _iso(letter.issued_date),
        **_timestamps(letter),
    }


def serialize_attendance(record: AttendanceRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "employeeId": record.employee_id,
        "date": _iso(record.date),
        "checkInTime": _iso(record.check_in_time),
        "checkOutTime": _iso(record.check_out_time),
        "hoursWorked": record.hours_worked,
        "overtimeHours": record.overtime_hours or 0,
        "leaveType": record.leave_type,
        "leaveStatus": record.leave_status,
        **_timestamps(record),
    }


def serialize_payroll(payroll: Payroll) -> Dict[str, Any]:
    return {
        "id": payroll.id,
        "employeeId": payroll.employee_id,
        "periodStart": _iso(payroll.period_start),
        "periodEnd": _iso(payroll.period_end),
        "baseSalary": _money(payroll.base_salary),
        "overtimePay": _money(payroll.overtime_pay),
        "deductions": payroll.deductions_json or {},
        "netSalary": _money(payroll.net_salary),
        "status": payroll.status,
        "paymentDate": _iso(payroll.payment_date),
        **_timestamps(payroll),
    }


def serialize_benefit(benefit: Benefit) -> Dict[str, Any]:
    return {
        "id": benefit.id,
        "employeeId": benefit.employee_id,
        "benefitType": benefit.benefit_type,
        "amount": _money(benefit.amount),
        "startDate": _iso(benefit.start_date),
        "endDate": _iso(benefit.end_date),
        **_timestamps(benefit),
    }


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "role": user.role,
        "employeeId": user.employee_id,
        "isActive": bool(user.is_active),
        **_timestamps(user),
    }
