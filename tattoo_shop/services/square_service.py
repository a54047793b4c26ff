"""
Square Bookings Service
Thin async client for the Square Bookings and Customers APIs
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ..config import (
    SQUARE_ACCESS_TOKEN,
    SQUARE_API_URL,
    SQUARE_API_VERSION,
    SQUARE_LOCATION_ID,
    SQUARE_SERVICE_VARIATION_ID,
    SQUARE_SERVICE_VARIATION_VERSION,
    SQUARE_TIMEOUT_SECONDS,
)
from ..errors import ExternalSyncError

logger = logging.getLogger(__name__)


class SquareBookingsClient:
    """
    Every mutating call takes a caller-supplied idempotency key so a retried
    request cannot create a second remote booking.
    """

    def __init__(
        self,
        access_token: Optional[str] = SQUARE_ACCESS_TOKEN,
        location_id: Optional[str] = SQUARE_LOCATION_ID,
        base_url: str = SQUARE_API_URL,
        timeout: float = SQUARE_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.location_id = location_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.location_id)

    def _headers(self) -> Dict[str, str]:
        return {
            "Square-Version": SQUARE_API_VERSION,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as http_client:
            response = await http_client.request(
                method, f"{self.base_url}{path}", json=json, headers=self._headers()
            )

        if response.status_code not in (200, 201):
            errors = []
            try:
                errors = response.json().get("errors", [])
            except ValueError:
                pass
            detail = errors[0].get("detail") if errors else response.text
            raise ExternalSyncError(
                f"Square API error ({response.status_code}): {detail}",
                status_code=response.status_code,
                errors=errors,
            )
        return response.json()

    def _appointment_segment(self, duration_minutes: int, team_member_id: Optional[str]) -> dict:
        segment = {
            "duration_minutes": duration_minutes,
            "team_member_id": team_member_id or "any",
        }
        if SQUARE_SERVICE_VARIATION_ID:
            segment["service_variation_id"] = SQUARE_SERVICE_VARIATION_ID
        if SQUARE_SERVICE_VARIATION_VERSION:
            segment["service_variation_version"] = int(SQUARE_SERVICE_VARIATION_VERSION)
        return segment

    async def create_booking(
        self,
        start_at: str,
        customer_id: str,
        duration_minutes: int,
        idempotency_key: str,
        staff_id: Optional[str] = None,
        note: Optional[str] = None,
        location_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a booking; returns the booking object"""
        booking = {
            "start_at": start_at,
            "location_id": location_id or self.location_id,
            "customer_id": customer_id,
            "appointment_segments": [self._appointment_segment(duration_minutes, staff_id)],
        }
        if note:
            booking["seller_note"] = note[:4096]

        data = await self._request(
            "POST", "/bookings", json={"idempotency_key": idempotency_key, "booking": booking}
        )
        return data.get("booking", {})

    async def update_booking(
        self,
        booking_id: str,
        version: int,
        start_at: str,
        duration_minutes: int,
        idempotency_key: str,
        staff_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        """In-place update; only used when SQUARE_NATIVE_UPDATE is enabled"""
        booking = {
            "version": version,
            "start_at": start_at,
            "appointment_segments": [self._appointment_segment(duration_minutes, staff_id)],
        }
        if note:
            booking["seller_note"] = note[:4096]

        data = await self._request(
            "PUT",
            f"/bookings/{booking_id}",
            json={"idempotency_key": idempotency_key, "booking": booking},
        )
        return data.get("booking", {})

    async def cancel_booking(
        self, booking_id: str, version: Optional[int], idempotency_key: str
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"idempotency_key": idempotency_key}
        if version is not None:
            payload["booking_version"] = version
        data = await self._request("POST", f"/bookings/{booking_id}/cancel", json=payload)
        return data.get("booking", {})

    async def get_booking(self, booking_id: str) -> Dict[str, Any]:
        data = await self._request("GET", f"/bookings/{booking_id}")
        return data.get("booking", {})

    async def create_customer(
        self,
        idempotency_key: str,
        email: str,
        given_name: Optional[str] = None,
        family_name: Optional[str] = None,
        phone: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        customer: Dict[str, Any] = {"idempotency_key": idempotency_key, "email_address": email}
        if given_name:
            customer["given_name"] = given_name
        if family_name:
            customer["family_name"] = family_name
        if phone:
            customer["phone_number"] = phone
        if reference_id:
            customer["reference_id"] = reference_id

        data = await self._request("POST", "/customers", json=customer)
        return data.get("customer", {})
