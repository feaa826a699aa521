from __future__ import annotations

from pydantic import BaseModel, Field


class ExtraOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    price: float
    sort_order: int = 0


class ServiceOut(BaseModel):
    id: str
    category_id: str
    name: str
    slug: str
    description: str | None = None

    base_fee: float
    per_bedroom: float
    per_bathroom: float
    service_fee_flat: float
    service_fee_pct: float
    duration_minutes: int


class ServiceCategoryOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    services: list[ServiceOut] = Field(default_factory=list)


class ServicesCatalogOut(BaseModel):
    categories: list[ServiceCategoryOut]
    extras: list[ExtraOut]


class RegionOut(BaseModel):
    id: str
    name: str
    state: str | None = None


class SuburbOut(BaseModel):
    id: str
    region_id: str
    name: str
    postcode: str | None = None
    delivery_fee: float
