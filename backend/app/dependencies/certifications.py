from __future__ import annotations

from fastapi import Request

from app.services.certifications import CertificationService
from app.services.object_store import ObjectStore


def get_certification_service(request: Request) -> CertificationService:
    return request.app.state.certification_service


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store
