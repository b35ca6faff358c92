"""
Record store for employees, users and image requests.

All persistence goes through `RecordStore`, which wraps one SQLAlchemy
session. Connectivity and driver failures are rolled back, logged and
surfaced as a single `StorageUnavailable` error so callers never handle
SQLAlchemy exceptions directly.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, defer

from ..core.errors import AlreadyCompleted, StorageUnavailable, ValidationError, log_exception
from ..models import AppUser, Employee, ImageRequest
from ..models.image_request import BINARY_COLUMNS

logger = logging.getLogger("record_store")

EMPLOYEE_FIELDS = ("display_name", "mini_region_name", "region_name", "sub_zone_name", "zone_name")


def _without_binary():
    return [defer(col) for col in BINARY_COLUMNS]


class RecordStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def _op(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Integrity error op=%s context=%s err=%s", operation, context, exc.orig)
            raise ValidationError("Record conflicts with an existing entry") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            log_exception(logger, "Record store operation failed", extra={"op": operation, **context}, exc=exc)
            raise StorageUnavailable(str(exc)) from exc

    def ping(self) -> None:
        with self._op("ping"):
            self.db.execute(text("SELECT 1"))

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    def get_employee_by_employee_id(self, employee_id: str) -> Optional[Employee]:
        with self._op("get_employee", employee_id=employee_id):
            return self.db.query(Employee).filter(Employee.employee_id == str(employee_id)).first()

    def create_employee(self, *, employee_id: str, **fields: str) -> Employee:
        with self._op("create_employee", employee_id=employee_id):
            row = Employee(employee_id=str(employee_id), **{k: v for k, v in fields.items() if k in EMPLOYEE_FIELDS})
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row

    def upsert_employee(self, *, employee_id: str, **fields: str) -> tuple[Employee, bool]:
        with self._op("upsert_employee", employee_id=employee_id):
            row = self.db.query(Employee).filter(Employee.employee_id == str(employee_id)).first()
            created = row is None
            if created:
                row = Employee(employee_id=str(employee_id))
            for key in EMPLOYEE_FIELDS:
                if key in fields and fields[key] is not None:
                    setattr(row, key, fields[key])
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row, created

    def list_employees(self) -> list[Employee]:
        with self._op("list_employees"):
            return self.db.query(Employee).order_by(Employee.employee_id.asc()).all()

    def delete_all_employees(self) -> int:
        with self._op("delete_all_employees"):
            deleted = self.db.query(Employee).delete(synchronize_session=False)
            self.db.commit()
            return int(deleted or 0)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user_by_employee_id(self, employee_id: str) -> Optional[AppUser]:
        with self._op("get_user_by_employee_id", employee_id=employee_id):
            return self.db.query(AppUser).filter(AppUser.employee_id == str(employee_id)).first()

    def create_user(self, *, employee_id: str, display_name: str, role: str = "user") -> AppUser:
        with self._op("create_user", employee_id=employee_id):
            row = AppUser(employee_id=str(employee_id), display_name=display_name, role=role)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row

    def get_or_create_user(self, *, employee_id: str, display_name: str, role: str = "user") -> tuple[AppUser, bool]:
        """Return the user for an employee, creating it when absent.

        A concurrent insert for the same employee loses on the unique
        constraint; the row that won is read back instead.
        """
        existing = self.get_user_by_employee_id(employee_id)
        if existing is not None:
            return existing, False
        with self._op("get_or_create_user", employee_id=employee_id):
            row = AppUser(employee_id=str(employee_id), display_name=display_name, role=role)
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                winner = self.db.query(AppUser).filter(AppUser.employee_id == str(employee_id)).first()
                if winner is None:
                    raise
                logger.info("User already created concurrently employee_id=%s user_id=%s", employee_id, winner.id)
                return winner, False
            self.db.refresh(row)
            return row, True

    def list_users(self) -> list[AppUser]:
        with self._op("list_users"):
            return self.db.query(AppUser).order_by(AppUser.created_at.asc(), AppUser.id.asc()).all()

    # ------------------------------------------------------------------
    # Image requests
    # ------------------------------------------------------------------

    def create_image_request(self, **fields: Any) -> ImageRequest:
        with self._op("create_image_request", user_id=fields.get("user_id")):
            row = ImageRequest(**fields)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row

    def get_image_request(self, request_id: str) -> Optional[ImageRequest]:
        with self._op("get_image_request", request_id=request_id):
            return self.db.get(ImageRequest, request_id)

    def list_image_requests_for_user(self, user_id: str) -> list[ImageRequest]:
        with self._op("list_image_requests_for_user", user_id=user_id):
            return (
                self.db.query(ImageRequest)
                .options(*_without_binary())
                .filter(ImageRequest.user_id == user_id)
                .order_by(ImageRequest.uploaded_at.desc(), ImageRequest.id.asc())
                .all()
            )

    def list_image_requests(self, *, page: int, limit: int) -> tuple[list[ImageRequest], int]:
        with self._op("list_image_requests", page=page, limit=limit):
            total = self.db.query(func.count(ImageRequest.id)).scalar() or 0
            items = (
                self.db.query(ImageRequest)
                .options(*_without_binary())
                .order_by(ImageRequest.uploaded_at.desc(), ImageRequest.id.asc())
                .offset(max(page - 1, 0) * limit)
                .limit(limit)
                .all()
            )
            return items, int(total)

    def list_all_image_requests(self) -> list[ImageRequest]:
        with self._op("list_all_image_requests"):
            return (
                self.db.query(ImageRequest)
                .options(*_without_binary())
                .order_by(ImageRequest.uploaded_at.desc(), ImageRequest.id.asc())
                .all()
            )

    def update_image_request(
        self,
        request_id: str,
        changes: dict[str, Any],
        *,
        expected_status: Optional[str] = None,
    ) -> Optional[ImageRequest]:
        """
        Apply ``changes`` in one UPDATE statement and return the fresh row.

        With ``expected_status`` the row is only updated while it still has
        that status; a miss on an existing row raises `AlreadyCompleted`.
        Returns None when no row has ``request_id``.
        """
        with self._op("update_image_request", request_id=request_id):
            query = self.db.query(ImageRequest).filter(ImageRequest.id == request_id)
            if expected_status is not None:
                query = query.filter(ImageRequest.status == expected_status)
            updated = query.update(changes, synchronize_session=False)
            self.db.commit()
            if not updated:
                exists = self.db.query(ImageRequest.id).filter(ImageRequest.id == request_id).first()
                if exists is None:
                    return None
                raise AlreadyCompleted(f"Request {request_id} is not {expected_status}")
            self.db.expire_all()
            return self.db.get(ImageRequest, request_id)
