from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from brokerdesk.business.employees.schemas import EmployeeListResponse, EmployeeRead, EmployeeUpdate
from brokerdesk.business.employees.service import employee_service
from brokerdesk.core.database import get_db
from brokerdesk.platform.pagination import PageRequest, get_page_request
from brokerdesk.platform.security.caller import get_caller
from brokerdesk.platform.security.context import Caller


router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=EmployeeListResponse)
def list_employees(
    search: str | None = Query(default=None, max_length=200),
    is_active: bool | None = Query(default=None, alias="isActive"),
    page: PageRequest = Depends(get_page_request),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> EmployeeListResponse:
    return employee_service.list_employees(db, caller, page, search=search, is_active=is_active)


@router.get("/{employee_id}", response_model=EmployeeRead)
def get_employee(employee_id: uuid.UUID, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)) -> EmployeeRead:
    return employee_service.get_employee(db, caller, employee_id)


@router.patch("/{employee_id}", response_model=EmployeeRead)
def update_employee(
    employee_id: uuid.UUID,
    payload: EmployeeUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
) -> EmployeeRead:
    return employee_service.update_employee(db, caller, employee_id, payload)
