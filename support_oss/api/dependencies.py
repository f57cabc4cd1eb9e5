"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from support_oss.domain.models import DEFAULT_WEIGHTS, ScoringWeights
from support_oss.infrastructure.database.repositories import PackageRepository
from support_oss.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_package_repository(db: Session = Depends(get_db)) -> PackageRepository:
    """Provide a package repository bound to the request's session"""
    return PackageRepository(db)


def get_scoring_weights() -> ScoringWeights:
    """Scoring weights used by every endpoint; override as a whole in tests"""
    return DEFAULT_WEIGHTS
