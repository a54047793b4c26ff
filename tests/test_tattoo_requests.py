from datetime import datetime, timezone

import pytest

from tattoo_shop.domain.appointments.service import BookingOrchestrator
from tattoo_shop.domain.tattoo_requests.schemas import ConvertToAppointment, TattooRequestCreate
from tattoo_shop.domain.tattoo_requests.service import TattooRequestService
from tattoo_shop.errors import InvalidTransitionError, NotFoundError, SlotUnavailableError, ValidationError
from tattoo_shop.models import Appointment, Customer
from tattoo_shop.services.audit_service import get_audit_trail

START = datetime(2024, 2, 3, 11, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(db, sync_adapter):
    return TattooRequestService(db, BookingOrchestrator(db, sync_adapter=sync_adapter))


@pytest.fixture
def anonymous_request(service):
    return service.create(
        TattooRequestCreate(
            description="Fine-line botanical sleeve on the left forearm",
            firstName="Robin",
            contactEmail="Robin@Example.com",
            contactPhone="(604) 555-0142",
            placement="forearm",
            referenceImages=[{"url": "https://img.test/1.jpg", "publicId": "ref-1"}],
        )
    )


def approve(service, request_id):
    service.update_status(request_id, "reviewed")
    return service.update_status(request_id, "approved")


def test_anonymous_request_gets_tracking_token(service, anonymous_request):
    assert anonymous_request.status == "new"
    assert anonymous_request.tracking_token
    assert anonymous_request.contact_email == "robin@example.com"
    assert anonymous_request.contact_phone == "+16045550142"
    assert anonymous_request.reference_images == [{"url": "https://img.test/1.jpg", "publicId": "ref-1"}]

    found = service.get_by_tracking_token(anonymous_request.tracking_token)
    assert found.id == anonymous_request.id


def test_customer_request_has_no_tracking_token(service, customer):
    tattoo_request = service.create(
        TattooRequestCreate(description="Small compass behind the ear", customerId=customer.id)
    )

    assert tattoo_request.tracking_token is None
    assert tattoo_request.customer_id == customer.id


@pytest.mark.parametrize(
    "fields",
    [
        {"description": "Too short", "contactEmail": "a@example.com"},
        {"description": "A perfectly detailed description"},
    ],
)
def test_intake_validation(service, fields):
    with pytest.raises(ValidationError):
        service.create(TattooRequestCreate(**fields))


def test_intake_rejects_bad_email():
    with pytest.raises(ValueError):
        TattooRequestCreate(description="A perfectly detailed description", contactEmail="not-an-email")


def test_intake_for_unknown_customer(service):
    with pytest.raises(NotFoundError):
        service.create(TattooRequestCreate(description="A perfectly detailed description", customerId="missing"))


def test_unknown_tracking_token(service):
    with pytest.raises(NotFoundError):
        service.get_by_tracking_token("does-not-exist")


def test_status_updates_follow_review_flow(db, service, anonymous_request):
    with pytest.raises(InvalidTransitionError):
        service.update_status(anonymous_request.id, "approved")

    approve(service, anonymous_request.id)

    actions = [e.action for e in get_audit_trail(db, "TattooRequest", anonymous_request.id)]
    assert actions == ["tattoo_request_created", "tattoo_request_status_updated", "tattoo_request_status_updated"]


def test_rejected_is_terminal(service, anonymous_request):
    service.update_status(anonymous_request.id, "reviewed")
    service.update_status(anonymous_request.id, "rejected")

    with pytest.raises(InvalidTransitionError):
        service.update_status(anonymous_request.id, "approved")


def test_conversion_status_cannot_be_set_directly(service, anonymous_request):
    approve(service, anonymous_request.id)

    with pytest.raises(ValidationError):
        service.update_status(anonymous_request.id, "converted_to_appointment")


def test_list_filters_by_status(service, anonymous_request, customer):
    service.create(TattooRequestCreate(description="Small compass behind the ear", customerId=customer.id))
    service.update_status(anonymous_request.id, "reviewed")

    reviewed = service.list(status="reviewed")
    everything = service.list(page=1, limit=1)

    assert [r.id for r in reviewed["data"]] == [anonymous_request.id]
    assert everything["pagination"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}


async def test_convert_anonymous_request(db, service, anonymous_request, artist, sync_adapter):
    approve(service, anonymous_request.id)

    result = await service.convert_to_appointment(
        anonymous_request.id, ConvertToAppointment(startAt=START, duration=180, artistId="artist-a")
    )

    customer = db.query(Customer).filter(Customer.email == "robin@example.com").one()
    assert customer.created_from_request is True
    assert customer.name == "Robin"

    appointment = result.booking.appointment
    assert appointment.status == "confirmed"
    assert appointment.booking_type == "tattoo_session"
    assert appointment.customer_id == customer.id
    assert appointment.contact_email == "robin@example.com"
    assert appointment.tattoo_request_id == anonymous_request.id
    assert result.tattoo_request.status == "converted_to_appointment"
    assert result.tattoo_request.customer_id == customer.id
    assert result.booking.external_sync_succeeded is True

    actions = [e.action for e in get_audit_trail(db, "TattooRequest", anonymous_request.id)]
    assert actions[-1] == "tattoo_request_converted"


async def test_convert_links_existing_customer_by_email(db, service, customer, artist):
    tattoo_request = service.create(
        TattooRequestCreate(description="Matching tattoo with my sister", contactEmail="jane@example.com")
    )
    approve(service, tattoo_request.id)

    result = await service.convert_to_appointment(
        tattoo_request.id, ConvertToAppointment(startAt=START, duration=60, artistId="artist-a")
    )

    assert result.booking.appointment.customer_id == customer.id
    assert db.query(Customer).count() == 1


async def test_convert_requires_approval(service, anonymous_request, artist):
    with pytest.raises(InvalidTransitionError):
        await service.convert_to_appointment(
            anonymous_request.id, ConvertToAppointment(startAt=START, duration=60, artistId="artist-a")
        )


async def test_converted_request_cannot_convert_twice(service, anonymous_request, artist):
    approve(service, anonymous_request.id)
    await service.convert_to_appointment(
        anonymous_request.id, ConvertToAppointment(startAt=START, duration=60, artistId="artist-a")
    )

    with pytest.raises(InvalidTransitionError):
        await service.convert_to_appointment(
            anonymous_request.id,
            ConvertToAppointment(startAt=START.replace(hour=15), duration=60, artistId="artist-a"),
        )


async def test_failed_conversion_changes_nothing(db, service, anonymous_request, book, artist):
    await book(START, 60)
    approve(service, anonymous_request.id)

    with pytest.raises(SlotUnavailableError):
        await service.convert_to_appointment(
            anonymous_request.id, ConvertToAppointment(startAt=START, duration=60, artistId="artist-a")
        )

    tattoo_request = service.get(anonymous_request.id)
    assert tattoo_request.status == "approved"
    assert tattoo_request.customer_id is None
    assert db.query(Customer).filter(Customer.email == "robin@example.com").count() == 0
    assert db.query(Appointment).count() == 1


async def test_invalid_conversion_input_changes_nothing(db, service, anonymous_request, artist):
    approve(service, anonymous_request.id)

    with pytest.raises(ValidationError):
        await service.convert_to_appointment(
            anonymous_request.id, ConvertToAppointment(startAt=START, duration=5, artistId="artist-a")
        )

    assert service.get(anonymous_request.id).customer_id is None
    assert db.query(Customer).count() == 0
