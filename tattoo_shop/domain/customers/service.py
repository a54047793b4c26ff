"""Customer service - Business logic for customer records"""

import logging

from sqlalchemy.orm import Session

from ...errors import NotFoundError, ValidationError
from ...models import Customer
from .repository import CustomerRepository
from .schemas import CustomerCreate

logger = logging.getLogger(__name__)


class CustomerService:
    """Service layer for customer business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def get_customer(self, customer_id: str) -> Customer:
        customer = self.repo.get_customer(self.db, customer_id)
        if not customer:
            raise NotFoundError("Customer", customer_id)
        return customer

    def create_customer(self, data: CustomerCreate) -> Customer:
        """Create a customer; emails are unique"""
        if self.repo.get_customer_by_email(self.db, data.email):
            raise ValidationError("A customer with this email already exists", field="email")

        try:
            customer = self.repo.create_customer(
                self.db, name=data.name, email=data.email, phone=data.phone
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Customer created: {customer.id}")
        return customer
