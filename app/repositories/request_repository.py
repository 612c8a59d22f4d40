# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for delivery requests and their timeline."""
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from app.core.database import delivery_requests
from app.core.logging import get_logger
from app.models.domain import DeliveryRequest, RequestEvent, RequestState

logger = get_logger(__name__)

REQUEST_COLS = (
    "id, requester_id, deliverer_id, status, item_description, item_category, "
    "payment_status, pickup_location, delivery_location, note, verification_code, "
    "created_at, updated_at, accepted_at, completed_at, cancelled_at"
)
_R_COLS = ", ".join(f"r.{c.strip()}" for c in REQUEST_COLS.split(","))
_COLUMNS = frozenset(delivery_requests.c.keys())
_UPDATABLE = _COLUMNS - {"id", "requester_id", "created_at"}


def _ts(value) -> Optional[datetime]:
    """Normalise driver timestamps (datetime on PostgreSQL, str on SQLite) to aware UTC."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _row_to_request(row) -> DeliveryRequest:
    return DeliveryRequest(
        id=str(row["id"]),
        requester_id=str(row["requester_id"]),
        deliverer_id=str(row["deliverer_id"]) if row["deliverer_id"] else None,
        status=RequestState(row["status"]),
        item_description=row["item_description"],
        item_category=row["item_category"],
        payment_status=row["payment_status"],
        pickup_location=row["pickup_location"],
        delivery_location=row["delivery_location"],
        note=row["note"],
        verification_code=row["verification_code"],
        created_at=_ts(row["created_at"]),
        updated_at=_ts(row["updated_at"]),
        accepted_at=_ts(row["accepted_at"]),
        completed_at=_ts(row["completed_at"]),
        cancelled_at=_ts(row["cancelled_at"]),
    )


class RequestRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def insert_request(self, request: DeliveryRequest, actor_id: str,
                       event_detail: Optional[Dict[str, Any]] = None) -> DeliveryRequest:
        with self._engine.begin() as conn:
            conn.execute(
                text(f"""
                    INSERT INTO delivery_requests ({REQUEST_COLS})
                    VALUES
                        (:id, :requester_id, :deliverer_id, :status, :item_description,
                         :item_category, :payment_status, :pickup_location, :delivery_location,
                         :note, :verification_code, :created_at, :updated_at, :accepted_at,
                         :completed_at, :cancelled_at)
                """),
                {**request.model_dump(), "status": request.status.value},
            )
            self._add_event(conn, request.id, "created", actor_id, request.created_at,
                            event_detail)
        return request

    def conditional_update(self, request_id: str, expected_state: RequestState,
                           new_fields: Dict[str, Any],
                           match: Optional[Dict[str, Any]] = None,
                           exclude: Optional[Dict[str, Any]] = None,
                           event: Optional[Dict[str, Any]] = None) -> Optional[DeliveryRequest]:
        """
        Apply ``new_fields`` only if the row is still in ``expected_state`` and every
        ``match`` column equals (and every ``exclude`` column differs from) the given
        value. Returns the updated request, or None when no row matched.
        """
        match = match or {}
        exclude = exclude or {}
        bad = (set(new_fields) - _UPDATABLE) | ((set(match) | set(exclude)) - _COLUMNS)
        if bad:
            raise ValueError(f"Unknown or immutable columns: {sorted(bad)}")

        params: Dict[str, Any] = {"id": request_id, "expected_status": expected_state.value}
        assignments = []
        for col, value in new_fields.items():
            assignments.append(f"{col} = :set_{col}")
            params[f"set_{col}"] = value.value if isinstance(value, RequestState) else value
        conditions = ["id = :id", "status = :expected_status"]
        for col, value in match.items():
            conditions.append(f"{col} = :eq_{col}")
            params[f"eq_{col}"] = value
        for col, value in exclude.items():
            conditions.append(f"{col} <> :ne_{col}")
            params[f"ne_{col}"] = value

        with self._engine.begin() as conn:
            result = conn.execute(
                text(f"UPDATE delivery_requests SET {', '.join(assignments)} "
                     f"WHERE {' AND '.join(conditions)}"),
                params,
            )
            if result.rowcount != 1:
                return None
            if event:
                self._add_event(conn, request_id, event["type"], event.get("actor"),
                                new_fields.get("updated_at") or datetime.now(timezone.utc),
                                event.get("detail"))
            row = conn.execute(
                text(f"SELECT {REQUEST_COLS} FROM delivery_requests WHERE id = :id"),
                {"id": request_id},
            ).mappings().first()
        return _row_to_request(row)

    # ── Read ───────────────────────────────────────────────────────────

    def get_request(self, request_id: str) -> Optional[DeliveryRequest]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {REQUEST_COLS} FROM delivery_requests WHERE id = :id"),
                {"id": request_id},
            ).mappings().first()
        return _row_to_request(row) if row else None

    def list_open(self, exclude_member_id: str, page: int = 1,
                  per_page: int = 50) -> Tuple[int, List[Dict[str, Any]]]:
        params: Dict[str, Any] = {"status": RequestState.PENDING.value,
                                  "mid": exclude_member_id}
        where = "WHERE r.status = :status AND r.requester_id <> :mid"
        with self._engine.connect() as conn:
            total = conn.execute(
                text(f"SELECT COUNT(*) FROM delivery_requests r {where}"), params,
            ).scalar() or 0
            params["limit"] = per_page
            params["offset"] = (page - 1) * per_page
            rows = conn.execute(
                text(f"""
                    SELECT {_R_COLS}, m.name AS requester_name
                    FROM delivery_requests r
                    JOIN members m ON m.id = r.requester_id
                    {where}
                    ORDER BY r.created_at DESC
                    LIMIT :limit OFFSET :offset
                """),
                params,
            ).mappings().all()
        return total, [
            {"request": _row_to_request(r), "requester_name": r["requester_name"]}
            for r in rows
        ]

    def list_by_requester(self, member_id: str) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {_R_COLS}, d.name AS deliverer_name
                    FROM delivery_requests r
                    LEFT JOIN members d ON d.id = r.deliverer_id
                    WHERE r.requester_id = :mid
                    ORDER BY r.created_at DESC
                """),
                {"mid": member_id},
            ).mappings().all()
        return [
            {"request": _row_to_request(r), "deliverer_name": r["deliverer_name"]}
            for r in rows
        ]

    def list_active_deliveries(self, member_id: str) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"""
                    SELECT {_R_COLS}, m.name AS requester_name, m.phone AS requester_phone
                    FROM delivery_requests r
                    JOIN members m ON m.id = r.requester_id
                    WHERE r.deliverer_id = :mid AND r.status = :status
                    ORDER BY r.created_at DESC
                """),
                {"mid": member_id, "status": RequestState.IN_PROGRESS.value},
            ).mappings().all()
        return [
            {"request": _row_to_request(r), "requester_name": r["requester_name"],
             "requester_phone": r["requester_phone"]}
            for r in rows
        ]

    def find_active_as_deliverer(self, member_id: str) -> Optional[DeliveryRequest]:
        active = self.list_active_deliveries(member_id)
        return active[0]["request"] if active else None

    def find_active_as_requester(self, member_id: str) -> Optional[DeliveryRequest]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"""
                    SELECT {REQUEST_COLS} FROM delivery_requests
                    WHERE requester_id = :mid AND status IN (:pending, :in_progress)
                    ORDER BY created_at DESC
                    LIMIT 1
                """),
                {"mid": member_id, "pending": RequestState.PENDING.value,
                 "in_progress": RequestState.IN_PROGRESS.value},
            ).mappings().first()
        return _row_to_request(row) if row else None

    def get_timeline(self, request_id: str) -> List[RequestEvent]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("""
                    SELECT id, request_id, event_type, actor_id, detail, created_at
                    FROM request_events WHERE request_id = :rid ORDER BY created_at
                """),
                {"rid": request_id},
            ).mappings().all()
        return [
            RequestEvent(
                id=str(r["id"]), request_id=str(r["request_id"]),
                event_type=r["event_type"], actor_id=r["actor_id"],
                detail=r["detail"] if isinstance(r["detail"], dict) else json.loads(r["detail"] or "{}"),
                created_at=_ts(r["created_at"]),
            )
            for r in rows
        ]

    def count_by_status(self) -> Dict[str, int]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("SELECT status, COUNT(*) AS cnt FROM delivery_requests GROUP BY status")
            ).mappings().all()
        return {r["status"]: r["cnt"] for r in rows}

    def member_stats(self, member_id: str) -> Dict[str, int]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("""
                    SELECT
                        (SELECT COUNT(*) FROM delivery_requests
                         WHERE requester_id = :mid) AS requests_created,
                        (SELECT COUNT(*) FROM delivery_requests
                         WHERE deliverer_id = :mid AND status = :completed) AS deliveries_completed
                """),
                {"mid": member_id, "completed": RequestState.COMPLETED.value},
            ).mappings().first()
        return {
            "requests_created": row["requests_created"] or 0,
            "deliveries_completed": row["deliveries_completed"] or 0,
        }

    def verify_connection(self):
        with self._engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    # ── Private ────────────────────────────────────────────────────────

    def _add_event(self, conn: Connection, request_id: str, event_type: str,
                   actor_id: Optional[str], at: datetime,
                   detail: Optional[Dict[str, Any]] = None):
        conn.execute(
            text("""
                INSERT INTO request_events (id, request_id, event_type, actor_id, detail, created_at)
                VALUES (:id, :rid, :etype, :actor, :detail, :ts)
            """),
            {"id": str(uuid.uuid4()), "rid": request_id, "etype": event_type,
             "actor": actor_id, "detail": json.dumps(detail or {}), "ts": at},
        )
