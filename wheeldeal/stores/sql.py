"""
SQLAlchemy reservation store

Serialization of check-then-insert per resource happens in two layers:
1. an in-process lock per resource_id (threads of one worker)
2. a reservation_locks row held with SELECT ... FOR UPDATE (workers on PostgreSQL)

On PostgreSQL the reservations table also carries an EXCLUDE constraint over
(resource_id, daterange(start_date, end_date, '[]')) for active rows; a
violation surfaces here as IntegrityError and is reported as a conflict.
"""

import threading

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from wheeldeal.core.logging import get_logger
from wheeldeal.domain.reservation import Reservation, ReservationStatus
from wheeldeal.models.reservation import ReservationLock, ReservationRow
from wheeldeal.stores.base import (
    Guard,
    ReservationStore,
    TransitionFn,
    conflict_for,
    first_overlap,
    reactivates,
)

logger = get_logger(__name__)


class SqlReservationStore(ReservationStore):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._registry_lock = threading.Lock()
        self._resource_locks: dict[str, threading.Lock] = {}
        # Serializes read-modify-write on existing rows within this process.
        self._row_lock = threading.Lock()

    def insert_if_available(self, reservation: Reservation) -> Reservation:
        with self._resource_lock(reservation.resource_id):
            db = self._session_factory()
            try:
                self._lock_resource_row(db, reservation.resource_id)
                taken = first_overlap(
                    self._active_rows(db, reservation.resource_id),
                    reservation.start,
                    reservation.end,
                )
                if taken is not None:
                    raise conflict_for(reservation)
                db.add(ReservationRow.from_domain(reservation))
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.warning("reservation_insert_rejected_at_commit", resource_id=reservation.resource_id)
                raise conflict_for(reservation)
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()
        return reservation

    def get(self, reservation_id: str) -> Reservation | None:
        with self._session_factory() as db:
            row = db.get(ReservationRow, reservation_id)
            return row.to_domain() if row else None

    def get_by_payment_ref(self, payment_ref: str) -> Reservation | None:
        if not payment_ref:
            return None
        with self._session_factory() as db:
            row = db.execute(
                select(ReservationRow).where(ReservationRow.external_payment_ref == payment_ref)
            ).scalars().first()
            return row.to_domain() if row else None

    def active_for_resource(self, resource_id: str) -> list[Reservation]:
        with self._session_factory() as db:
            return self._active_rows(db, resource_id)

    def list_for_requester(self, requester_id: str) -> list[Reservation]:
        with self._session_factory() as db:
            rows = db.execute(
                select(ReservationRow)
                .where(ReservationRow.requester_id == requester_id)
                .order_by(ReservationRow.created_at.desc())
            ).scalars().all()
            return [row.to_domain() for row in rows]

    def list_all(self) -> list[Reservation]:
        with self._session_factory() as db:
            rows = db.execute(select(ReservationRow).order_by(ReservationRow.created_at.desc())).scalars().all()
            return [row.to_domain() for row in rows]

    def transition(self, reservation_id: str, fn: TransitionFn):
        return self._transition(select(ReservationRow).where(ReservationRow.id == reservation_id), fn)

    def transition_by_payment_ref(self, payment_ref: str, fn: TransitionFn):
        if not payment_ref:
            return None
        return self._transition(
            select(ReservationRow).where(ReservationRow.external_payment_ref == payment_ref),
            fn,
        )

    def delete(self, reservation_id: str, guard: Guard | None = None) -> Reservation | None:
        with self._row_lock:
            db = self._session_factory()
            try:
                row = db.execute(
                    select(ReservationRow).where(ReservationRow.id == reservation_id).with_for_update()
                ).scalars().first()
                if row is None:
                    return None
                current = row.to_domain()
                if guard is not None:
                    guard(current)
                db.delete(row)
                db.commit()
                return current
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def _transition(self, stmt, fn: TransitionFn):
        with self._row_lock:
            db = self._session_factory()
            try:
                row = db.execute(stmt.with_for_update()).scalars().first()
                if row is None:
                    return None
                current = row.to_domain()
                t = fn(current)
                if not t.changed:
                    db.rollback()
                    return t
                if reactivates(current, t.reservation):
                    self._reclaim_dates(db, current)
                row.apply(t.reservation)
                db.commit()
                return t
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def _reclaim_dates(self, db: Session, current: Reservation) -> None:
        with self._resource_lock(current.resource_id):
            self._lock_resource_row(db, current.resource_id)
            others = [r for r in self._active_rows(db, current.resource_id) if r.id != current.id]
            if first_overlap(others, current.start, current.end) is not None:
                raise conflict_for(current)

    @staticmethod
    def _active_rows(db: Session, resource_id: str) -> list[Reservation]:
        rows = db.execute(
            select(ReservationRow).where(
                ReservationRow.resource_id == resource_id,
                ReservationRow.status != ReservationStatus.CANCELLED.value,
            )
        ).scalars().all()
        return [row.to_domain() for row in rows]

    @staticmethod
    def _lock_resource_row(db: Session, resource_id: str) -> None:
        stmt = select(ReservationLock).where(ReservationLock.resource_id == resource_id).with_for_update()
        if db.execute(stmt).scalar_one_or_none() is not None:
            return
        if not SqlReservationStore._insert_lock_row(db, resource_id):
            # Another worker created the lock row first; wait on theirs.
            db.execute(stmt).scalar_one()

    @staticmethod
    def _insert_lock_row(db: Session, resource_id: str) -> bool:
        """Insert the lock row inside a savepoint; False if it already exists.

        Only the savepoint is rolled back on a duplicate, so row locks and
        pending work held by ``db`` survive.
        """
        try:
            with db.begin_nested():
                db.add(ReservationLock(resource_id=resource_id))
                db.flush()
        except IntegrityError:
            return False
        return True

    def _resource_lock(self, resource_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._resource_locks.get(resource_id)
            if lock is None:
                lock = self._resource_locks[resource_id] = threading.Lock()
            return lock
