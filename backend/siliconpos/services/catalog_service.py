# backend/siliconpos/services/catalog_service.py
"""Service catalog (installation, maintenance, training offerings)."""
from __future__ import annotations

from ..extensions import db
from ..models import Service
from ..validation import NotFoundError
from .. import cache

SERVICE_MUTABLE_FIELDS = {"name", "description", "price_cents", "duration", "is_active"}


def list_services(*, active_only: bool = False) -> list[Service]:
    query = db.session.query(Service)
    if active_only:
        query = query.filter(Service.is_active.is_(True))
    return query.order_by(Service.created_at.desc(), Service.id.desc()).all()


def get_service(service_id: int) -> Service:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")
    return service


def create_service(*, patch: dict) -> Service:
    service = Service()
    for k, v in patch.items():
        if k in SERVICE_MUTABLE_FIELDS:
            setattr(service, k, v)
    db.session.add(service)
    db.session.commit()
    cache.get_cache().invalidate_for_write(cache.SERVICES)
    return service


def update_service(*, service_id: int, patch: dict) -> Service:
    service = get_service(service_id)
    for k, v in patch.items():
        if k in SERVICE_MUTABLE_FIELDS:
            setattr(service, k, v)
    db.session.commit()
    cache.get_cache().invalidate_for_write(cache.SERVICES)
    return service


def delete_service(*, service_id: int) -> None:
    service = get_service(service_id)
    db.session.delete(service)
    db.session.commit()
    cache.get_cache().invalidate_for_write(cache.SERVICES)
