# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for members."""
from datetime import datetime
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from app.models.domain import Member
from app.repositories.request_repository import _ts

MEMBER_COLS = "id, external_id, name, email, phone, avatar_url, created_at, updated_at"


def _row_to_member(row) -> Member:
    return Member(
        id=str(row["id"]),
        external_id=row["external_id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        avatar_url=row["avatar_url"],
        created_at=_ts(row["created_at"]),
        updated_at=_ts(row["updated_at"]),
    )


class MemberRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ── Write ──

    def insert_member(self, member: Member) -> Member:
        with self._engine.begin() as conn:
            conn.execute(
                text(f"""
                    INSERT INTO members ({MEMBER_COLS})
                    VALUES (:id, :external_id, :name, :email, :phone, :avatar_url,
                            :created_at, :updated_at)
                """),
                member.model_dump(),
            )
        return member

    def update_profile(self, member_id: str, name: str, avatar_url: Optional[str],
                       at: datetime) -> Optional[Member]:
        return self._update(member_id, "name = :name, avatar_url = :avatar_url",
                            {"name": name, "avatar_url": avatar_url, "at": at})

    def update_phone(self, member_id: str, phone: str, at: datetime) -> Optional[Member]:
        return self._update(member_id, "phone = :phone", {"phone": phone, "at": at})

    # ── Read ──

    def get_by_id(self, member_id: str) -> Optional[Member]:
        return self._fetch_one("id = :v", member_id)

    def get_by_external_id(self, external_id: str) -> Optional[Member]:
        return self._fetch_one("external_id = :v", external_id)

    # ── Private ──

    def _fetch_one(self, condition: str, value: str) -> Optional[Member]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {MEMBER_COLS} FROM members WHERE {condition}"),
                {"v": value},
            ).mappings().first()
        return _row_to_member(row) if row else None

    def _update(self, member_id: str, assignments: str, params: dict) -> Optional[Member]:
        with self._engine.begin() as conn:
            conn.execute(
                text(f"UPDATE members SET {assignments}, updated_at = :at WHERE id = :id"),
                {**params, "id": member_id},
            )
            row = conn.execute(
                text(f"SELECT {MEMBER_COLS} FROM members WHERE id = :id"), {"id": member_id},
            ).mappings().first()
        return _row_to_member(row) if row else None
