"""Customer domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_phone


class CustomerCreate(BaseModel):
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v) if v else v


class CustomerResponse(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    squareCustomerId: Optional[str] = None
    createdFromRequest: bool = False
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, customer) -> "CustomerResponse":
        return cls(
            id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            squareCustomerId=customer.square_customer_id,
            createdFromRequest=bool(customer.created_from_request),
            createdAt=customer.created_at,
        )
