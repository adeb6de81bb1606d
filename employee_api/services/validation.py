"""
Field checks for create-employee payloads.
"""

from employee_api.models import EmployeeInput

NAME_MAX_LENGTH = 100
TITLE_MAX_LENGTH = 200
MIN_SALARY = 1
MIN_AGE = 16
MAX_AGE = 75


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_employee_input(data: EmployeeInput) -> list[tuple[str, str]]:
    """
    Check every field of ``data``.

    Returns:
        (field, message) pairs in field order name, salary, age, title.
        Empty when the input is valid.
    """
    violations: list[tuple[str, str]] = []

    if _is_blank(data.name):
        violations.append(("name", "Name is required"))
    elif len(data.name) > NAME_MAX_LENGTH:
        violations.append(
            ("name", f"Name must not exceed {NAME_MAX_LENGTH} characters")
        )

    if data.salary is None:
        violations.append(("salary", "Salary is required"))
    elif data.salary < MIN_SALARY:
        violations.append(("salary", "Salary must be greater than zero"))

    if data.age is None:
        violations.append(("age", "Age is required"))
    elif data.age < MIN_AGE:
        violations.append(("age", f"Age must be at least {MIN_AGE}"))
    elif data.age > MAX_AGE:
        violations.append(("age", f"Age must be at most {MAX_AGE}"))

    if _is_blank(data.title):
        violations.append(("title", "Title is required"))
    elif len(data.title) > TITLE_MAX_LENGTH:
        violations.append(
            ("title", f"Title must not exceed {TITLE_MAX_LENGTH} characters")
        )

    return violations


def format_violations(violations: list[tuple[str, str]]) -> str:
    """Join violations as ``"field: message, field: message"``."""
    return ", ".join(f"{field}: {message}" for field, message in violations)
