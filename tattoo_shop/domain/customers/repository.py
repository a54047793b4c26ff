"""Customer repository - Database operations for customers"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Customer

logger = logging.getLogger(__name__)


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_customer(db: Session, customer_id: str) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.id == customer_id).first()

    @staticmethod
    def get_customer_by_email(db: Session, email: str) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.email == email.strip().lower()).first()

    @staticmethod
    def create_customer(db: Session, **customer_data) -> Customer:
        if customer_data.get("email"):
            customer_data["email"] = customer_data["email"].strip().lower()
        customer = Customer(**customer_data)
        db.add(customer)
        db.flush()
        return customer

    @staticmethod
    def find_or_create_by_email(
        db: Session,
        email: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        created_from_request: bool = False,
    ) -> tuple[Customer, bool]:
        """
        Return (customer, created). Safe to retry: a concurrent insert of the
        same email loses on the unique constraint and reuses the winner's row.
        """
        existing = CustomerRepository.get_customer_by_email(db, email)
        if existing:
            return existing, False

        try:
            with db.begin_nested():
                customer = Customer(
                    email=email.strip().lower(),
                    name=name,
                    phone=phone,
                    created_from_request=created_from_request,
                )
                db.add(customer)
        except IntegrityError:
            logger.info(f"ℹ️ Customer {email} created concurrently, reusing existing record")
            existing = CustomerRepository.get_customer_by_email(db, email)
            if existing is None:
                raise
            return existing, False

        logger.info(f"✅ Customer materialized from contact email: {customer.id}")
        return customer, True
