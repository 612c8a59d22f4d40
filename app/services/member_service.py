# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: member directory.

Turns an identity already verified by the upstream provider into a member record,
restricted to the community's email domain.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.domain import Member
from app.repositories.member_repository import MemberRepository

logger = get_logger(__name__)


class MemberService:
    def __init__(self, repo: MemberRepository, allowed_domain: Optional[str] = None,
                 now_fn: Optional[Callable[[], datetime]] = None) -> None:
        self._repo = repo
        self._domain = (allowed_domain or settings.ALLOWED_EMAIL_DOMAIN).lower()
        self._now = now_fn or (lambda: datetime.now(timezone.utc))

    def resolve_login(self, identity: Mapping[str, Any]) -> Member:
        """Find-or-create the member behind a verified identity; refresh name and avatar."""
        external_id = (identity.get("external_id") or "").strip()
        email = (identity.get("email") or "").strip().lower()
        name = (identity.get("name") or "").strip()
        avatar_url = identity.get("avatar_url")
        if not external_id or not email or not name:
            raise ValidationError("Identity payload must include external_id, email and name")
        if not email.endswith("@" + self._domain):
            logger.warning("Login rejected: email outside %s", self._domain)
            raise ForbiddenError(
                f"Only @{self._domain} accounts may join.", {"reason": "domain_mismatch"},
            )

        now = self._now()
        existing = self._repo.get_by_external_id(external_id)
        if existing is not None:
            return self._repo.update_profile(existing.id, name, avatar_url, now)

        member = Member(
            id=str(uuid.uuid4()), external_id=external_id, name=name, email=email,
            avatar_url=avatar_url, created_at=now, updated_at=now,
        )
        try:
            self._repo.insert_member(member)
        except IntegrityError:
            # Concurrent first login for the same identity, or the email is taken
            raced = self._repo.get_by_external_id(external_id)
            if raced is None:
                raise ConflictError("Email is already registered to another account.")
            return self._repo.update_profile(raced.id, name, avatar_url, now)
        logger.info("Member registered id=%s", member.id)
        return member

    def find_member(self, member_id: str) -> Optional[Member]:
        return self._repo.get_by_id(member_id)

    def get_member(self, member_id: str) -> Member:
        member = self._repo.get_by_id(member_id)
        if member is None:
            raise NotFoundError("Member", member_id)
        return member

    def update_phone(self, member_id: str, phone: str) -> Member:
        phone = (phone or "").strip()
        if not phone:
            raise ValidationError("Phone number cannot be empty")
        member = self._repo.update_phone(member_id, phone, self._now())
        if member is None:
            raise NotFoundError("Member", member_id)
        return member
