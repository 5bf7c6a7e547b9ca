"""Closed value sets for HR record fields."""

from enum import Enum
from typing import Dict, Optional


class EmploymentStatus(str, Enum):
    ACTIVE = "Active"
    ONBOARDING = "Onboarding"
    TERMINATED = "Terminated"
    ARCHIVED = "Archived"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class ContractType(str, Enum):
    PERMANENT = "Permanent"
    TEMPORARY = "Temporary"
    INTERNSHIP = "Internship"
    CONSULTANT = "Consultant"


class LetterType(str, Enum):
    CONFIRMATION = "Confirmation"
    TERMINATION = "Termination"
    PROMOTION = "Promotion"
    WARNING = "Warning"
    OTHER = "Other"


class LeaveType(str, Enum):
    SICK = "Sick"
    VACATION = "Vacation"
    UNPAID = "Unpaid"
    NONE = "None"


class RequestableLeaveType(str, Enum):
    SICK = "Sick"
    VACATION = "Vacation"
    UNPAID = "Unpaid"


class LeaveStatus(str, Enum):
    REQUESTED = "Requested"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class LeaveDecision(str, Enum):
    APPROVED = "Approved"
    REJECTED = "Rejected"


class PayrollStatus(str, Enum):
    PENDING = "Pending"
    CALCULATED = "Calculated"
    VERIFIED = "Verified"
    APPROVED = "Approved"
    PAID = "Paid"


class PayrollApproval(str, Enum):
    VERIFIED = "Verified"
    APPROVED = "Approved"


class BenefitType(str, Enum):
    INSURANCE = "Insurance"
    HOUSING = "Housing"
    TRANSPORT = "Transport"
    OTHER = "Other"


class DeductionCategory(str, Enum):
    TAX = "tax"
    INSURANCE = "insurance"
    PENSION = "pension"
    PENALTY = "penalty"
    LOAN = "loan"
    OTHER = "other"


# Payroll moves forward one step at a time.
_PAYROLL_NEXT: Dict[PayrollStatus, Optional[PayrollStatus]] = {
    PayrollStatus.PENDING: PayrollStatus.CALCULATED,
    PayrollStatus.CALCULATED: PayrollStatus.VERIFIED,
    PayrollStatus.VERIFIED: PayrollStatus.APPROVED,
    PayrollStatus.APPROVED: PayrollStatus.PAID,
    PayrollStatus.PAID: None,
}


def next_payroll_status(current: PayrollStatus) -> Optional[PayrollStatus]:
    return _PAYROLL_NEXT[current]


def can_transition_payroll(current: PayrollStatus, target: PayrollStatus) -> bool:
    return _PAYROLL_NEXT[current] is target
