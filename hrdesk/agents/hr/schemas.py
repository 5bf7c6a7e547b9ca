"""Input contracts for the HR tools.

Field names are snake_case in Python and camelCase on the wire; both are
accepted when validating.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

from hrdesk.agents.hr.enums import (
    BenefitType,
    ContractType,
    EmploymentStatus,
    Gender,
    LeaveDecision,
    LeaveType,
    LetterType,
    PayrollApproval,
    RequestableLeaveType,
)
from hrdesk.auth.rbac import EntityKind

AmountMapping = Union[Dict[str, Any], str]


class ToolInput(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


# Employees


class CreateEmployeeInput(ToolInput):
    first_name: str = Field(min_length=1, description="Employee first name")
    last_name: str = Field(min_length=1, description="Employee last name")
    national_id: str = Field(min_length=1, description="National ID (unique)")
    date_of_birth: date = Field(description="Date of birth (ISO format)")
    gender: Gender
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    job_title: str = Field(min_length=1)
    department: str = Field(min_length=1)
    salary: float = Field(ge=0, description="Base salary")
    benefits: Optional[AmountMapping] = Field(
        default=None, description="Benefit allowances as {category: amount}"
    )
    leave_balance: float = Field(default=0, ge=0, description="Initial leave balance in days")


class UpdateEmployeeInput(ToolInput):
    employee_id: str = Field(min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    salary: Optional[float] = Field(default=None, ge=0)
    benefits: Optional[AmountMapping] = None
    leave_balance: Optional[float] = Field(default=None, ge=0)
    employment_status: Optional[EmploymentStatus] = None


class GetEmployeeInput(ToolInput):
    employee_id: Optional[str] = Field(default=None, description="Employee ID (if searching by ID)")
    name: Optional[str] = Field(default=None, description="Search by name (partial match)")
    department: Optional[str] = Field(default=None, description="Filter by department")
    limit: int = Field(default=10, ge=1, le=100)


class EmployeeRefInput(ToolInput):
    employee_id: str = Field(min_length=1)


# Contracts


class CreateContractInput(ToolInput):
    employee_id: str = Field(min_length=1)
    contract_type: ContractType
    start_date: date
    end_date: Optional[date] = Field(default=None, description="Optional for permanent contracts")
    document_url: Optional[str] = Field(default=None, description="Reference to the stored document")

    @model_validator(mode="after")
    def _check_dates(self) -> "CreateContractInput":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class UpdateContractInput(ToolInput):
    contract_id: str = Field(min_length=1)
    contract_type: Optional[ContractType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    signed_by_employee: Optional[bool] = None
    signed_by_hr: Optional[bool] = None
    document_url: Optional[str] = None


class GetContractInput(ToolInput):
    employee_id: Optional[str] = None
    contract_id: Optional[str] = Field(default=None, description="Contract ID (if searching by contract)")

    @model_validator(mode="after")
    def _require_reference(self) -> "GetContractInput":
        if not self.employee_id and not self.contract_id:
            raise ValueError("Provide either employeeId or contractId")
        return self


class TerminateContractInput(ToolInput):
    contract_id: str = Field(min_length=1)
    termination_date: date


# Letters


class GenerateLetterInput(ToolInput):
    employee_id: str = Field(min_length=1)
    letter_type: LetterType
    content: str = Field(min_length=1, description="Letter content")
    document_url: Optional[str] = None


# Attendance


class RecordAttendanceInput(ToolInput):
    employee_id: str = Field(min_length=1)
    attendance_date: date = Field(alias="date")
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    hours_worked: Optional[float] = Field(default=None, ge=0, le=24)
    overtime_hours: float = Field(default=0, ge=0, le=24)
    leave_type: LeaveType = LeaveType.NONE


class UpdateAttendanceInput(ToolInput):
    attendance_id: str = Field(min_length=1)
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    hours_worked: Optional[float] = Field(default=None, ge=0, le=24)
    overtime_hours: Optional[float] = Field(default=None, ge=0, le=24)
    leave_type: Optional[LeaveType] = None


class GetAttendanceInput(ToolInput):
    employee_id: str = Field(min_length=1)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self) -> "GetAttendanceInput":
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class ApproveLeaveInput(ToolInput):
    attendance_id: str = Field(min_length=1)
    status: LeaveDecision


class RequestLeaveInput(ToolInput):
    employee_id: str = Field(min_length=1)
    attendance_date: date = Field(alias="date")
    leave_type: RequestableLeaveType


# Payroll


class CalculatePayrollInput(ToolInput):
    employee_id: str = Field(min_length=1)
    period_start: date
    period_end: date
    deductions: Optional[AmountMapping] = Field(
        default=None,
        description="Deductions as {category: amount}, e.g. tax, insurance, pension, penalty, loan",
    )

    @model_validator(mode="after")
    def _check_period(self) -> "CalculatePayrollInput":
        if self.period_end < self.period_start:
            raise ValueError("periodEnd must not be before periodStart")
        return self


class GetPayrollInput(ToolInput):
    employee_id: Optional[str] = None
    payroll_id: Optional[str] = None
    limit: int = Field(default=10, ge=1, le=100)

    @model_validator(mode="after")
    def _require_reference(self) -> "GetPayrollInput":
        if not self.employee_id and not self.payroll_id:
            raise ValueError("Provide either employeeId or payrollId")
        return self


class ApprovePayrollInput(ToolInput):
    payroll_id: str = Field(min_length=1)
    status: PayrollApproval


class PaySalaryInput(ToolInput):
    payroll_id: str = Field(min_length=1)
    payment_date: date


# Benefits


class AddBenefitInput(ToolInput):
    employee_id: str = Field(min_length=1)
    benefit_type: BenefitType
    amount: float = Field(ge=0)
    start_date: date
    end_date: Optional[date] = None


class UpdateBenefitInput(ToolInput):
    benefit_id: str = Field(min_length=1)
    benefit_type: Optional[BenefitType] = None
    amount: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# Audit


class GetAuditLogsInput(ToolInput):
    entity_kind: Optional[EntityKind] = None
    entity_id: Optional[str] = None
    actor_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(default=50, ge=1, le=500)
