from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EmployeeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: str
    first_name: str
    last_name: str
    email: str
    department_id: int
    owner_user_id: int | None
    position: str | None
    salary: float | None
    hire_date: date | None
    created_at: datetime


class EmployeeCreate(BaseModel):
    employee_id: str = Field(min_length=1, max_length=20)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=100)
    department_id: int
    owner_user_id: int | None = None
    position: str | None = None
    salary: float | None = Field(default=None, ge=0)
    hire_date: date | None = None


class EmployeeUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, min_length=3, max_length=100)
    department_id: int | None = None
    position: str | None = None
    salary: float | None = Field(default=None, ge=0)


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    department_id: int
    owner_user_id: int | None
    leave_type: str
    start_date: date
    end_date: date
    reason: str | None
    status: str
    reviewed_by_id: int | None
    reviewed_at: datetime | None
    created_at: datetime


class LeaveRequestCreate(BaseModel):
    employee_id: int
    leave_type: str = Field(min_length=1, max_length=30)
    start_date: date
    end_date: date
    reason: str | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AttendanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    department_id: int
    owner_user_id: int | None
    work_date: date
    check_in: datetime | None
    check_out: datetime | None
    status: str
    created_at: datetime


class AttendanceCreate(BaseModel):
    employee_id: int
    work_date: date
    check_in: datetime | None = None
    check_out: datetime | None = None
    status: str = Field(default="present", max_length=20)


class PerformanceReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    department_id: int
    reviewer_id: int | None
    review_date: date
    rating: int
    comments: str | None
    created_at: datetime


class PerformanceReviewCreate(BaseModel):
    employee_id: int
    review_date: date
    rating: int = Field(ge=1, le=5)
    comments: str | None = None


class PayrollOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    department_id: int
    period_start: date
    period_end: date
    gross_amount: float
    deductions: float
    net_amount: float
    status: str
    created_at: datetime


class PayrollCreate(BaseModel):
    employee_id: int
    period_start: date
    period_end: date
    gross_amount: float = Field(ge=0)
    deductions: float = Field(default=0, ge=0)
