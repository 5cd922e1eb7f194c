"""Catalog router - salon owners manage their services"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import UserProfile
from ...schemas import ServiceResponse, success
from .schemas import ServiceCreate, ServiceUpdate
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("/categories")
async def get_categories(service: CatalogService = Depends(get_catalog_service)):
    return success({"categories": service.list_categories()})


@router.get("")
async def get_services(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    current_user: UserProfile = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """Services of the caller's salon"""
    services, total = service.list_services(current_user, page, limit)
    return success(
        {
            "services": [ServiceResponse.model_validate(s) for s in services],
            "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
        }
    )


@router.post("", status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: UserProfile = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    created = service.create_service(current_user, data)
    return success({"service": ServiceResponse.model_validate(created)}, message="Service created successfully")


@router.put("/{service_id}")
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    current_user: UserProfile = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    updated = service.update_service(current_user, service_id, data)
    return success({"service": ServiceResponse.model_validate(updated)}, message="Service updated successfully")


@router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    deleted = service.delete_service(current_user, service_id)
    message = "Service deleted successfully" if deleted else "Service has bookings and was deactivated"
    return success({"deleted": deleted}, message=message)
