from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from brokerdesk.business.employees.models import Employee
from brokerdesk.business.employees.schemas import EmployeeListResponse, EmployeeRead, EmployeeUpdate
from brokerdesk.core.errors import NotFoundError
from brokerdesk.core.rbac import ensure_role
from brokerdesk.platform.integrity import commit_or_conflict
from brokerdesk.platform.pagination import PageRequest, paginate
from brokerdesk.platform.security.context import Caller
from brokerdesk.platform.security.roles import RoleGroup


_RESOURCE = "employee"
_UNIQUE_FIELDS = {"employee_code": "employeeCode", "email": "email", "user_id": "userId"}


@dataclass(slots=True)
class EmployeeService:
    def list_employees(
        self,
        session: Session,
        caller: Caller,
        page: PageRequest,
        *,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> EmployeeListResponse:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        stmt: Select[tuple[Employee]] = select(Employee)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    Employee.first_name.ilike(pattern),
                    Employee.last_name.ilike(pattern),
                    Employee.email.ilike(pattern),
                    Employee.employee_code.ilike(pattern),
                )
            )
        if is_active is not None:
            stmt = stmt.where(Employee.is_active.is_(is_active))

        rows, meta = paginate(
            session, stmt, page, [Employee.last_name.asc(), Employee.first_name.asc()], tie_breaker=Employee.id
        )
        return EmployeeListResponse(employees=[EmployeeRead.model_validate(row) for row in rows], pagination=meta)

    def get_employee(self, session: Session, caller: Caller, employee_id: uuid.UUID) -> EmployeeRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        return EmployeeRead.model_validate(self._load(session, employee_id))

    def update_employee(self, session: Session, caller: Caller, employee_id: uuid.UUID, dto: EmployeeUpdate) -> EmployeeRead:
        ensure_role(caller, RoleGroup.BROKER_EMPLOYEES, resource=_RESOURCE)
        employee = self._load(session, employee_id)
        for key, value in dto.changes().items():
            setattr(employee, key, value)
        commit_or_conflict(session, _UNIQUE_FIELDS, resource="Employee")
        session.refresh(employee)
        return EmployeeRead.model_validate(employee)

    @staticmethod
    def _load(session: Session, employee_id: uuid.UUID) -> Employee:
        employee = session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        return employee


employee_service = EmployeeService()
