import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tattoo_shop import models, models_business_hours  # noqa: F401
from tattoo_shop.database import Base, get_db
from tattoo_shop.domain.appointments.router import get_sync_adapter
from tattoo_shop.domain.appointments.schemas import AppointmentCreate
from tattoo_shop.domain.appointments.service import BookingOrchestrator
from tattoo_shop.domain.integrations.square.sync_adapter import FAILED, SYNCED, SyncOutcome
from tattoo_shop.domain.scheduling.business_hours import BusinessHoursStore, DayHours
from tattoo_shop.main import app
from tattoo_shop.models import Artist, Customer


class FakeSyncAdapter:
    """Records every call; mimics cancel-and-recreate by handing out a new id per update"""

    def __init__(self):
        self.calls = []
        self._ids = itertools.count(1)

    def _next_id(self) -> str:
        return f"sq-{next(self._ids)}"

    async def sync_create(self, appointment):
        self.calls.append(("create", appointment.id))
        return SyncOutcome(operation="create", status=SYNCED, external_id=self._next_id())

    async def sync_update(self, appointment):
        self.calls.append(("update", appointment.id))
        return SyncOutcome(operation="update", status=SYNCED, external_id=self._next_id())

    async def sync_cancel(self, external_id, appointment_id=None):
        self.calls.append(("cancel", external_id))
        return SyncOutcome(operation="cancel", status=SYNCED, external_id=external_id)

    def operations(self):
        return [operation for operation, _ in self.calls]


class FailingSyncAdapter(FakeSyncAdapter):
    """Provider outage reported the way the real adapter reports it"""

    async def sync_create(self, appointment):
        self.calls.append(("create", appointment.id))
        return SyncOutcome(operation="create", status=FAILED, error="Square unavailable")

    async def sync_update(self, appointment):
        self.calls.append(("update", appointment.id))
        return SyncOutcome(
            operation="update", status=FAILED, error="Square unavailable", previous_booking_cancelled=True
        )


class FlakySyncAdapter(FakeSyncAdapter):
    """Fails the chosen operations, optionally only for chosen appointments; the rest succeed"""

    def __init__(self):
        super().__init__()
        self.failing_operations = set()
        self.failing_appointment_ids = set()

    def _fails(self, operation, appointment_id):
        if operation not in self.failing_operations:
            return False
        return not self.failing_appointment_ids or appointment_id in self.failing_appointment_ids

    async def sync_create(self, appointment):
        if self._fails("create", appointment.id):
            self.calls.append(("create", appointment.id))
            return SyncOutcome(operation="create", status=FAILED, error="Square unavailable")
        return await super().sync_create(appointment)

    async def sync_update(self, appointment):
        if self._fails("update", appointment.id):
            self.calls.append(("update", appointment.id))
            return SyncOutcome(operation="update", status=FAILED, error="Square unavailable")
        return await super().sync_update(appointment)

    async def sync_cancel(self, external_id, appointment_id=None):
        if self._fails("cancel", appointment_id):
            self.calls.append(("cancel", external_id))
            return SyncOutcome(operation="cancel", status=FAILED, error="Square unavailable")
        return await super().sync_cancel(external_id, appointment_id)


class ExplodingSyncAdapter(FakeSyncAdapter):
    """Breaks its own contract and raises"""

    async def sync_create(self, appointment):
        raise RuntimeError("connection reset by peer")

    async def sync_update(self, appointment):
        raise RuntimeError("connection reset by peer")

    async def sync_cancel(self, external_id, appointment_id=None):
        raise RuntimeError("connection reset by peer")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs to be told to emit BEGIN itself for SAVEPOINT to work
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def artist(db):
    artist = Artist(id="artist-a", name="Artist A", email="a@shop.test", square_team_member_id="TM-A")
    db.add(artist)
    db.commit()
    return artist


@pytest.fixture
def other_artist(db):
    artist = Artist(id="artist-b", name="Artist B", email="b@shop.test", square_team_member_id="TM-B")
    db.add(artist)
    db.commit()
    return artist


@pytest.fixture
def customer(db):
    customer = Customer(name="Jane Doe", email="jane@example.com", phone="+16045550100")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def weekly_hours(db):
    """Open every day 09:00-17:00 shop time"""
    return BusinessHoursStore(db).replace_all(
        DayHours(day_of_week=day, open_time="09:00", close_time="17:00", is_open=True)
        for day in range(7)
    )


@pytest.fixture
def sync_adapter():
    return FakeSyncAdapter()


@pytest.fixture
def failing_sync_adapter():
    return FailingSyncAdapter()


@pytest.fixture
def flaky_sync_adapter():
    return FlakySyncAdapter()


@pytest.fixture
def exploding_sync_adapter():
    return ExplodingSyncAdapter()


@pytest.fixture
def orchestrator(db, sync_adapter):
    return BookingOrchestrator(db, sync_adapter=sync_adapter)


@pytest.fixture
def book(orchestrator, customer):
    """Create an appointment for the default customer with sensible defaults"""

    async def _book(start_at, duration=60, artist_id="artist-a", **fields):
        if "contactEmail" not in fields:
            fields.setdefault("customerId", customer.id)
        data = AppointmentCreate(startAt=start_at, duration=duration, artistId=artist_id, **fields)
        return await orchestrator.create(data)

    return _book


@pytest.fixture
def client(db, sync_adapter):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_adapter] = lambda: sync_adapter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()