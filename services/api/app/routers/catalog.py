from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from services.api.app.db.deps import get_db
from services.api.app.db.models import Extra, Region, Service, ServiceCategory, Suburb
from services.api.app.models.catalog import (
    ExtraOut,
    RegionOut,
    ServiceCategoryOut,
    ServiceOut,
    ServicesCatalogOut,
    SuburbOut,
)
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/api/services", response_model=ServicesCatalogOut)
def list_services(db: Session = Depends(get_db)) -> ServicesCatalogOut:
    categories = (
        db.query(ServiceCategory)
        .order_by(ServiceCategory.sort_order.asc(), ServiceCategory.name.asc())
        .all()
    )
    services = (
        db.query(Service).filter(Service.active.is_(True)).order_by(Service.name.asc()).all()
    )

    by_category: dict[str, list[ServiceOut]] = {}
    for service in services:
        by_category.setdefault(service.category_id, []).append(_service_out(service))

    return ServicesCatalogOut(
        categories=[
            ServiceCategoryOut(
                id=c.id,
                name=c.name,
                slug=c.slug,
                description=c.description,
                services=by_category.get(c.id, []),
            )
            for c in categories
        ],
        extras=_active_extras(db),
    )


@router.get("/api/services/{slug}", response_model=ServiceOut)
def get_service(slug: str, db: Session = Depends(get_db)) -> ServiceOut:
    service = (
        db.query(Service).filter(Service.slug == slug, Service.active.is_(True)).first()
    )
    if service is None:
        raise HTTPException(status_code=404, detail="Service not found")
    return _service_out(service)


@router.get("/api/extras", response_model=list[ExtraOut])
def list_extras(db: Session = Depends(get_db)) -> list[ExtraOut]:
    return _active_extras(db)


@router.get("/api/regions", response_model=list[RegionOut])
def list_regions(db: Session = Depends(get_db)) -> list[RegionOut]:
    regions = db.query(Region).order_by(Region.name.asc()).all()
    return [RegionOut(id=r.id, name=r.name, state=r.state) for r in regions]


@router.get("/api/suburbs", response_model=list[SuburbOut])
def list_suburbs(region_id: str | None = None, db: Session = Depends(get_db)) -> list[SuburbOut]:
    q = db.query(Suburb).filter(Suburb.active.is_(True))
    if region_id:
        q = q.filter(Suburb.region_id == region_id)

    return [
        SuburbOut(
            id=s.id,
            region_id=s.region_id,
            name=s.name,
            postcode=s.postcode,
            delivery_fee=float(s.delivery_fee),
        )
        for s in q.order_by(Suburb.name.asc()).all()
    ]


def _active_extras(db: Session) -> list[ExtraOut]:
    extras = (
        db.query(Extra)
        .filter(Extra.active.is_(True))
        .order_by(Extra.sort_order.asc(), Extra.name.asc())
        .all()
    )
    return [
        ExtraOut(
            id=e.id,
            name=e.name,
            slug=e.slug,
            description=e.description,
            price=float(e.price),
            sort_order=e.sort_order,
        )
        for e in extras
    ]


def _service_out(service: Service) -> ServiceOut:
    return ServiceOut(
        id=service.id,
        category_id=service.category_id,
        name=service.name,
        slug=service.slug,
        description=service.description,
        base_fee=float(service.base_fee),
        per_bedroom=float(service.per_bedroom),
        per_bathroom=float(service.per_bathroom),
        service_fee_flat=float(service.service_fee_flat),
        service_fee_pct=float(service.service_fee_pct),
        duration_minutes=service.duration_minutes,
    )
