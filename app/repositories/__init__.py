# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository package: re-exports the request and member repositories."""
from app.repositories.member_repository import MemberRepository
from app.repositories.request_repository import RequestRepository

__all__ = ["MemberRepository", "RequestRepository"]
