"""Tattoo request repository - Database operations for tattoo requests"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import TattooRequest


class TattooRequestRepository:
    """Repository for tattoo request database operations"""

    @staticmethod
    def get_request(db: Session, request_id: str) -> Optional[TattooRequest]:
        return (
            db.query(TattooRequest)
            .options(joinedload(TattooRequest.customer))
            .filter(TattooRequest.id == request_id)
            .first()
        )

    @staticmethod
    def get_request_by_tracking_token(db: Session, token: str) -> Optional[TattooRequest]:
        return db.query(TattooRequest).filter(TattooRequest.tracking_token == token).first()

    @staticmethod
    def _filtered(db: Session, status: Optional[str] = None, customer_id: Optional[str] = None):
        query = db.query(TattooRequest)
        if status:
            query = query.filter(TattooRequest.status == status)
        if customer_id:
            query = query.filter(TattooRequest.customer_id == customer_id)
        return query

    @staticmethod
    def find_requests(db: Session, offset: int = 0, limit: int = 20, **filters) -> list[TattooRequest]:
        # Newest first
        return (
            TattooRequestRepository._filtered(db, **filters)
            .order_by(TattooRequest.created_at.desc(), TattooRequest.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_requests(db: Session, **filters) -> int:
        return (
            TattooRequestRepository._filtered(db, **filters)
            .with_entities(func.count(TattooRequest.id))
            .scalar()
        )

    @staticmethod
    def create_request(db: Session, **request_data) -> TattooRequest:
        tattoo_request = TattooRequest(**request_data)
        db.add(tattoo_request)
        db.flush()
        return tattoo_request
