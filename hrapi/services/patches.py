"""Request bodies for the HR records.

Patches are sparse: a field missing from the request body is left alone,
a field sent as ``null`` or as an empty/falsy value is stored as NULL.
Pydantic's ``exclude_unset`` carries the unset/null distinction.
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Iterable, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from hrapi.services.errors import ValidationError
from hrapi.services.statuses import AssignmentStatus, EmploymentStatus

EMPLOYEE_FIELDS = (
    "name",
    "department_id",
    "position",
    "hire_date",
    "email",
    "phone",
    "age",
    "address",
    "applied_part",
    "birth_date",
    "status",
    "gender",
    "current_company",
    "current_applied_part",
    "current_position",
    "project_history",
    "work_history",
    "work_period",
)

ASSIGNMENT_FIELDS = ("site_id", "start_date", "end_date", "monthly_rate", "status")

SITE_FIELDS = ("name", "client_name", "address", "contract_start", "contract_end", "status", "notes")

SERVER_FIELDS = ("name", "host", "port", "purpose", "notes")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


LocalDate = Annotated[Optional[date], BeforeValidator(_blank_to_none)]
OptionalInt = Annotated[Optional[int], BeforeValidator(_blank_to_none)]
OptionalFloat = Annotated[Optional[float], BeforeValidator(_blank_to_none)]


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")


class EmployeeFields(_Body):
    name: Optional[str] = None
    department_id: OptionalInt = None
    position: Optional[str] = None
    hire_date: LocalDate = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: OptionalInt = None
    address: Optional[str] = None
    applied_part: Optional[str] = None
    birth_date: LocalDate = None
    status: Optional[EmploymentStatus] = None
    gender: Optional[str] = None
    current_company: Optional[str] = None
    current_applied_part: Optional[str] = None
    current_position: Optional[str] = None
    project_history: Optional[str] = None
    work_history: Optional[str] = None
    work_period: Optional[str] = None


class EmployeeCreate(EmployeeFields):
    pass


class EmployeePatch(EmployeeFields):
    pass


class AssignmentCreate(_Body):
    employee_id: int
    site_id: int
    start_date: LocalDate = None
    end_date: LocalDate = None
    monthly_rate: OptionalFloat = None


class AssignmentPatch(_Body):
    site_id: OptionalInt = None
    start_date: LocalDate = None
    end_date: LocalDate = None
    monthly_rate: OptionalFloat = None
    status: Optional[AssignmentStatus] = None


class SiteCreate(_Body):
    name: Optional[str] = None
    client_name: Optional[str] = None
    address: Optional[str] = None
    contract_start: LocalDate = None
    contract_end: LocalDate = None
    status: Optional[str] = None
    notes: Optional[str] = None


class SitePatch(SiteCreate):
    pass


class ServerCreate(_Body):
    name: Optional[str] = None
    host: Optional[str] = None
    port: OptionalInt = None
    purpose: Optional[str] = None
    notes: Optional[str] = None


class ServerPatch(ServerCreate):
    pass


class DepartmentCreate(_Body):
    name: str


def sparse_values(
    body: BaseModel | dict[str, Any],
    allowed: Iterable[str],
    model: Optional[type[BaseModel]] = None,
) -> dict[str, Any]:
    """Fields actually sent, restricted to ``allowed``, falsy values as None.

    Dates come out as ``YYYY-MM-DD`` strings and enums as their stored
    values. A plain dict is first validated through ``model`` when one is
    given, so internal callers get the same vocabulary checks as requests.
    """
    allowed = tuple(allowed)
    if not isinstance(body, BaseModel) and model is not None:
        try:
            body = model.model_validate(dict(body))
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise ValidationError(f"Invalid {field}: {first['msg']}") from exc
    if isinstance(body, BaseModel):
        sent = body.model_dump(mode="json", exclude_unset=True)
    else:
        sent = dict(body)
    values: dict[str, Any] = {}
    for key in allowed:
        if key not in sent:
            continue
        value = sent[key]
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        elif hasattr(value, "value"):
            value = value.value
        values[key] = value if value else None
    return values
