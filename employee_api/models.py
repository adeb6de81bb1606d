"""
Employee models and the upstream response envelope.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Employee(BaseModel):
    """Employee record as served by the upstream service."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = Field(alias="employee_name")
    salary: int = Field(alias="employee_salary")
    age: int = Field(alias="employee_age")
    title: str = Field(alias="employee_title")
    email: str = Field(alias="employee_email")


class EmployeeInput(BaseModel):
    """Create-employee payload.

    Every field is optional here so that missing values are reported by
    ``validate_employee_input`` together with the other violations.
    """

    name: str | None = None
    salary: int | None = None
    age: int | None = None
    title: str | None = None


class DeleteRequest(BaseModel):
    """Upstream delete payload (deletion is addressed by name)."""

    name: str


class Envelope(BaseModel, Generic[T]):
    """``{data, status}`` wrapper used by every upstream response."""

    data: T | None = None
    status: str | None = None
