"""Catalog repository - Database operations for services and categories"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service, ServiceCategory


class ServiceRepository:
    """Repository for salon service database operations"""

    @staticmethod
    def list_for_salon(db: Session, salon_id: str, offset: int = 0, limit: int = 50) -> tuple[list[Service], int]:
        query = db.query(Service).filter(Service.salon_id == salon_id)
        total = query.count()
        services = query.order_by(Service.created_at.desc(), Service.name.asc()).offset(offset).limit(limit).all()
        return services, total

    @staticmethod
    def get_for_salon(db: Session, service_id: str, salon_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id, Service.salon_id == salon_id).first()

    @staticmethod
    def create(db: Session, salon_id: str, **service_data) -> Service:
        service = Service(salon_id=salon_id, **service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def create_many(db: Session, salon_id: str, items: list[dict]) -> list[Service]:
        services = [Service(salon_id=salon_id, **item) for item in items]
        db.add_all(services)
        db.commit()
        return services

    @staticmethod
    def update(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()

    @staticmethod
    def list_categories(db: Session) -> list[ServiceCategory]:
        return db.query(ServiceCategory).order_by(ServiceCategory.name.asc()).all()
