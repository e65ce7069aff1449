"""Tests for the reservation engine"""

import pytest
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from poolbook.database import Base
from poolbook.models import Booking, MeetingRoom, Organization, PoolResource, ResourceStatus
from poolbook.services.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from poolbook.services.reservation_engine import ReservationEngine
from poolbook.services.references import (
    CallerIdentity,
    EphemeralResourceRef,
    PoolResourceRef,
    RoomRef,
)
from poolbook.services.resource_catalog import ResourceCatalog


def caller_for(user):
    return CallerIdentity(user_id=user.id, organization_id=user.organization_id, role=user.role)


class TestCreateBooking:
    """Booking creation and conflict detection"""

    @pytest.fixture
    def engine(self, db_session):
        """Create ReservationEngine instance"""
        return ReservationEngine(db_session)

    def book_pool(self, engine, org, resource, start, end, **kwargs):
        return engine.create_booking(
            org.id, "Lisa van den Berg", start, end, PoolResourceRef(resource.id), **kwargs
        )

    def test_create_pool_booking(self, engine, sample_organization, sample_pool_resource, sample_member):
        """Test a valid booking is stored with its owner"""
        booking = self.book_pool(
            engine,
            sample_organization,
            sample_pool_resource,
            datetime(2025, 6, 10, 9),
            datetime(2025, 6, 10, 10),
            caller=caller_for(sample_member),
            note="Klantbezoek Utrecht",
        )

        assert booking.id is not None
        assert booking.pool_resource_id == sample_pool_resource.id
        assert booking.user_id == sample_member.id
        assert booking.note == "Klantbezoek Utrecht"
        assert booking.source_organization_id is None

    def test_touching_bookings_do_not_conflict(self, engine, sample_organization, sample_pool_resource):
        """Test [09:00, 10:00) and [10:00, 11:00) can both be booked"""
        self.book_pool(
            engine, sample_organization, sample_pool_resource,
            datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
        )
        second = self.book_pool(
            engine, sample_organization, sample_pool_resource,
            datetime(2025, 6, 10, 10), datetime(2025, 6, 10, 11),
        )

        assert second.id is not None

    @pytest.mark.parametrize(
        "start_hour,end_hour",
        [(9, 10), (8, 10), (9, 12), (10, 11), (8, 12)],
    )
    def test_overlapping_booking_conflicts(
        self, engine, sample_organization, sample_pool_resource, start_hour, end_hour
    ):
        """Test any strict overlap with [09:00, 11:00) is rejected"""
        self.book_pool(
            engine, sample_organization, sample_pool_resource,
            datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 11),
        )

        with pytest.raises(ConflictError) as exc_info:
            self.book_pool(
                engine, sample_organization, sample_pool_resource,
                datetime(2025, 6, 10, start_hour), datetime(2025, 6, 10, end_hour),
            )

        assert exc_info.value.message == "Resource already booked in this period"
        assert len(engine.list_bookings(sample_organization.id)) == 1

    def test_timezone_aware_times_are_normalized(self, engine, sample_organization, sample_pool_resource):
        """Test aware times in another offset conflict with the same UTC instant"""
        self.book_pool(
            engine, sample_organization, sample_pool_resource,
            datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
        )
        cest = timezone(timedelta(hours=2))

        with pytest.raises(ConflictError):
            self.book_pool(
                engine, sample_organization, sample_pool_resource,
                datetime(2025, 6, 10, 11, 30, tzinfo=cest),
                datetime(2025, 6, 10, 12, 30, tzinfo=cest),
            )

    def test_other_resource_does_not_conflict(
        self, engine, sample_organization, sample_pool_resource, second_pool_resource
    ):
        """Test overlap is checked per resource"""
        self.book_pool(
            engine, sample_organization, sample_pool_resource,
            datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 11),
        )
        booking = self.book_pool(
            engine, sample_organization, second_pool_resource,
            datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 11),
        )

        assert booking.pool_resource_id == second_pool_resource.id

    @pytest.mark.parametrize("offset_minutes", [0, -30])
    def test_invalid_range(self, engine, sample_organization, sample_pool_resource, offset_minutes):
        """Test end at or before start is rejected"""
        start = datetime(2025, 6, 10, 9)

        with pytest.raises(ValidationError):
            self.book_pool(
                engine, sample_organization, sample_pool_resource,
                start, start + timedelta(minutes=offset_minutes),
            )

    def test_missing_requester_name(self, engine, sample_organization, sample_pool_resource):
        """Test requester name is required"""
        with pytest.raises(ValidationError):
            engine.create_booking(
                sample_organization.id,
                "  ",
                datetime(2025, 6, 10, 9),
                datetime(2025, 6, 10, 10),
                PoolResourceRef(sample_pool_resource.id),
            )

    def test_missing_resource(self, engine, sample_organization):
        """Test a resource must be selected"""
        with pytest.raises(ValidationError):
            engine.create_booking(
                sample_organization.id,
                "Lisa van den Berg",
                datetime(2025, 6, 10, 9),
                datetime(2025, 6, 10, 10),
                None,
            )

    def test_unknown_organization(self, engine, sample_pool_resource):
        """Test unknown organization"""
        with pytest.raises(NotFoundError):
            engine.create_booking(
                uuid4(),
                "Lisa van den Berg",
                datetime(2025, 6, 10, 9),
                datetime(2025, 6, 10, 10),
                PoolResourceRef(sample_pool_resource.id),
            )

    def test_unknown_pool_resource(self, engine, sample_organization):
        """Test unknown pool resource"""
        with pytest.raises(NotFoundError):
            engine.create_booking(
                sample_organization.id,
                "Lisa van den Berg",
                datetime(2025, 6, 10, 9),
                datetime(2025, 6, 10, 10),
                PoolResourceRef(uuid4()),
            )

    def test_pool_resource_of_other_organization(
        self, engine, db_session, sample_organization, other_organization
    ):
        """Test a pool resource owned by another organization cannot be booked"""
        owned = PoolResource(
            name="MB Bus",
            license_plate="V-840-NP",
            organization_id=other_organization.id,
            status=ResourceStatus.AVAILABLE.value,
        )
        db_session.add(owned)
        db_session.commit()

        with pytest.raises(NotFoundError):
            self.book_pool(
                engine, sample_organization, owned,
                datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
            )

    def test_caller_of_other_organization(
        self, engine, sample_pool_resource, sample_member, other_organization
    ):
        """Test a caller cannot book on behalf of another organization"""
        with pytest.raises(ForbiddenError):
            self.book_pool(
                engine, other_organization, sample_pool_resource,
                datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
                caller=caller_for(sample_member),
            )

    def test_same_pool_resource_for_different_organizations(
        self, engine, sample_organization, other_organization, sample_pool_resource
    ):
        """Test pool bookings are scoped per organization"""
        self.book_pool(
            engine, sample_organization, sample_pool_resource,
            datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
        )
        booking = self.book_pool(
            engine, other_organization, sample_pool_resource,
            datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
        )

        assert booking.organization_id == other_organization.id


class TestMaintenance:
    """Bookings against maintenance blackouts"""

    @pytest.fixture
    def engine(self, db_session):
        """Create ReservationEngine instance"""
        return ReservationEngine(db_session)

    def book(self, engine, org, resource, start, end):
        return engine.create_booking(
            org.id, "Lisa van den Berg", start, end, PoolResourceRef(resource.id)
        )

    def test_blackout_window(self, engine, db_session, sample_organization, sample_pool_resource):
        """Test a Monday to Wednesday blackout rejects Tuesday and accepts Wednesday just after its end"""
        ResourceCatalog(db_session).set_maintenance(
            sample_pool_resource.id,
            "maintenance",
            (datetime(2025, 6, 9), datetime(2025, 6, 11)),
        )

        with pytest.raises(ConflictError):
            self.book(
                engine, sample_organization, sample_pool_resource,
                datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
            )

        booking = self.book(
            engine, sample_organization, sample_pool_resource,
            datetime(2025, 6, 11, 1), datetime(2025, 6, 11, 2),
        )
        assert booking.id is not None

    def test_maintenance_without_window(self, engine, db_session, sample_organization, sample_pool_resource):
        """Test maintenance without window blocks every booking"""
        ResourceCatalog(db_session).set_maintenance(sample_pool_resource.id, "maintenance")

        with pytest.raises(ConflictError):
            self.book(
                engine, sample_organization, sample_pool_resource,
                datetime(2030, 1, 1, 9), datetime(2030, 1, 1, 10),
            )

    def test_back_to_available(self, engine, db_session, sample_organization, sample_pool_resource):
        """Test a resource is bookable again after maintenance ends"""
        catalog = ResourceCatalog(db_session)
        catalog.set_maintenance(sample_pool_resource.id, "maintenance")
        catalog.set_maintenance(sample_pool_resource.id, "available")

        booking = self.book(
            engine, sample_organization, sample_pool_resource,
            datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
        )
        assert booking.id is not None


class TestEphemeralBookings:
    """Bookings of extra day resources"""

    @pytest.fixture
    def engine(self, db_session):
        """Create ReservationEngine instance"""
        return ReservationEngine(db_session)

    def test_book_on_its_day(self, engine, sample_organization, sample_ephemeral_resource):
        """Test an extra resource can be booked on its day"""
        booking = engine.create_booking(
            sample_organization.id,
            "Lisa van den Berg",
            datetime(2025, 6, 10, 9),
            datetime(2025, 6, 10, 17),
            EphemeralResourceRef(sample_ephemeral_resource.id),
        )

        assert booking.ephemeral_resource_id == sample_ephemeral_resource.id

    def test_book_on_other_day(self, engine, sample_organization, sample_ephemeral_resource):
        """Test an extra resource cannot be booked on another day"""
        with pytest.raises(ValidationError):
            engine.create_booking(
                sample_organization.id,
                "Lisa van den Berg",
                datetime(2025, 6, 11, 9),
                datetime(2025, 6, 11, 10),
                EphemeralResourceRef(sample_ephemeral_resource.id),
            )

    def test_book_for_other_organization(self, engine, other_organization, sample_ephemeral_resource):
        """Test an extra resource is not visible to other organizations"""
        with pytest.raises(NotFoundError):
            engine.create_booking(
                other_organization.id,
                "Lisa van den Berg",
                datetime(2025, 6, 10, 9),
                datetime(2025, 6, 10, 10),
                EphemeralResourceRef(sample_ephemeral_resource.id),
            )

    def test_book_after_its_day_passed(
        self, engine, sample_organization, sample_ephemeral_resource, monkeypatch
    ):
        """Test an extra resource is no longer offered once its day has passed"""
        monkeypatch.setattr(
            "poolbook.services.resource_catalog.utc_today", lambda: date(2025, 6, 11)
        )

        with pytest.raises(ValidationError):
            engine.create_booking(
                sample_organization.id,
                "Lisa van den Berg",
                datetime(2025, 6, 10, 9),
                datetime(2025, 6, 10, 10),
                EphemeralResourceRef(sample_ephemeral_resource.id),
            )

        assert engine.list_bookings(sample_organization.id) == []

    def test_overlap_conflicts(self, engine, sample_organization, sample_ephemeral_resource):
        """Test extra resources get the same overlap check"""
        ref = EphemeralResourceRef(sample_ephemeral_resource.id)
        engine.create_booking(
            sample_organization.id, "Lisa", datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 12), ref
        )

        with pytest.raises(ConflictError):
            engine.create_booking(
                sample_organization.id, "Mark", datetime(2025, 6, 10, 11), datetime(2025, 6, 10, 13), ref
            )


class TestRoomBookings:
    """Meeting room bookings across a namespace"""

    @pytest.fixture
    def engine(self, db_session):
        """Create ReservationEngine instance"""
        return ReservationEngine(db_session)

    @pytest.fixture
    def shared_namespace(self, db_session, sample_organization, other_organization):
        sample_organization.meeting_namespace = "campus-noord"
        other_organization.meeting_namespace = "campus-noord"
        db_session.commit()

    def test_book_own_room(self, engine, sample_organization, sample_room):
        """Test booking a room of the own organization"""
        booking = engine.create_booking(
            sample_organization.id,
            "Lisa van den Berg",
            datetime(2025, 6, 10, 9),
            datetime(2025, 6, 10, 10),
            RoomRef(sample_room.id),
            title="Weekstart",
        )

        assert booking.room_id == sample_room.id
        assert booking.title == "Weekstart"
        assert booking.organization_id == sample_organization.id
        assert booking.source_organization_id == sample_organization.id

    def test_book_room_of_namespace_member(
        self, engine, shared_namespace, sample_organization, other_organization, sample_room
    ):
        """Test a namespace member books a shared room on behalf of the room owner"""
        booking = engine.create_booking(
            other_organization.id,
            "Mark Janssen",
            datetime(2025, 6, 10, 9),
            datetime(2025, 6, 10, 10),
            RoomRef(sample_room.id),
        )

        assert booking.organization_id == sample_organization.id
        assert booking.source_organization_id == other_organization.id
        assert [b.id for b in engine.list_bookings(other_organization.id)] == [booking.id]

    def test_room_overlap_across_organizations(
        self, engine, shared_namespace, sample_organization, other_organization, sample_room
    ):
        """Test one room cannot be double-booked by two organizations"""
        engine.create_booking(
            sample_organization.id, "Lisa", datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
            RoomRef(sample_room.id),
        )

        with pytest.raises(ConflictError):
            engine.create_booking(
                other_organization.id, "Mark", datetime(2025, 6, 10, 9, 30), datetime(2025, 6, 10, 10, 30),
                RoomRef(sample_room.id),
            )

    def test_room_outside_namespace(self, engine, other_organization, sample_room):
        """Test rooms of organizations outside the namespace are not bookable"""
        with pytest.raises(NotFoundError):
            engine.create_booking(
                other_organization.id, "Mark", datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
                RoomRef(sample_room.id),
            )

    def test_list_meeting_bookings(
        self, engine, db_session, shared_namespace, sample_organization, other_organization, sample_room
    ):
        """Test the shared calendar lists bookings of every visible room"""
        other_room = MeetingRoom(organization_id=other_organization.id, name="Zaal B")
        db_session.add(other_room)
        db_session.commit()

        first = engine.create_booking(
            sample_organization.id, "Lisa", datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
            RoomRef(sample_room.id),
        )
        second = engine.create_booking(
            sample_organization.id, "Lisa", datetime(2025, 6, 10, 11), datetime(2025, 6, 10, 12),
            RoomRef(other_room.id),
        )

        bookings = engine.list_meeting_bookings(other_organization.id, "2025-06-10")

        assert [b.id for b in bookings] == [first.id, second.id]


class TestListBookings:
    """Listing bookings per organization and day"""

    @pytest.fixture
    def engine(self, db_session):
        """Create ReservationEngine instance"""
        return ReservationEngine(db_session)

    def test_created_booking_is_listed_for_its_day(self, engine, sample_organization, sample_pool_resource):
        """Test a created booking appears in the listing of its day and not the adjacent days"""
        booking = engine.create_booking(
            sample_organization.id,
            "Lisa van den Berg",
            datetime(2025, 6, 10, 23, 30),
            datetime(2025, 6, 11, 0, 30),
            PoolResourceRef(sample_pool_resource.id),
        )

        assert [b.id for b in engine.list_bookings(sample_organization.id, "2025-06-10")] == [booking.id]
        assert engine.list_bookings(sample_organization.id, "2025-06-11") == []
        assert engine.list_bookings(sample_organization.id, "2025-06-09") == []

    def test_list_hides_other_organizations(
        self, engine, sample_organization, other_organization, sample_pool_resource
    ):
        """Test tenants only see their own bookings"""
        engine.create_booking(
            other_organization.id, "Mark", datetime(2025, 6, 10, 9), datetime(2025, 6, 10, 10),
            PoolResourceRef(sample_pool_resource.id),
        )

        assert engine.list_bookings(sample_organization.id) == []

    def test_invalid_day(self, engine, sample_organization):
        """Test a malformed day token"""
        with pytest.raises(ValidationError):
            engine.list_bookings(sample_organization.id, "10-06-2025")

    def test_unknown_organization(self, engine):
        """Test listing for an unknown organization"""
        with pytest.raises(NotFoundError):
            engine.list_bookings(uuid4())


class TestCancelBooking:
    """Ownership-gated cancellation"""

    @pytest.fixture
    def engine(self, db_session):
        """Create ReservationEngine instance"""
        return ReservationEngine(db_session)

    @pytest.fixture
    def owned_booking(self, engine, sample_organization, sample_pool_resource, sample_member):
        return engine.create_booking(
            sample_organization.id,
            sample_member.name,
            datetime(2025, 6, 10, 9),
            datetime(2025, 6, 10, 10),
            PoolResourceRef(sample_pool_resource.id),
            caller=caller_for(sample_member),
        )

    @pytest.fixture
    def legacy_booking(self, engine, sample_organization, sample_pool_resource):
        return engine.create_booking(
            sample_organization.id,
            "Onbekend",
            datetime(2025, 6, 10, 11),
            datetime(2025, 6, 10, 12),
            PoolResourceRef(sample_pool_resource.id),
        )

    def test_owner_can_cancel(self, engine, owned_booking, sample_member, sample_organization):
        removed = engine.cancel_booking(owned_booking.id, caller_for(sample_member))

        assert removed.id == owned_booking.id
        assert engine.list_bookings(sample_organization.id) == []

    def test_admin_can_cancel(self, engine, owned_booking, sample_admin):
        removed = engine.cancel_booking(owned_booking.id, caller_for(sample_admin))
        assert removed.id == owned_booking.id

    def test_other_member_cannot_cancel(self, engine, owned_booking, second_member, sample_organization):
        with pytest.raises(ForbiddenError):
            engine.cancel_booking(owned_booking.id, caller_for(second_member))

        assert len(engine.list_bookings(sample_organization.id)) == 1

    def test_member_cannot_cancel_legacy_booking(self, engine, legacy_booking, sample_member):
        with pytest.raises(ForbiddenError) as exc_info:
            engine.cancel_booking(legacy_booking.id, caller_for(sample_member))

        assert "admin" in exc_info.value.message

    def test_admin_can_cancel_legacy_booking(self, engine, legacy_booking, sample_admin):
        removed = engine.cancel_booking(legacy_booking.id, caller_for(sample_admin))
        assert removed.user_id is None

    def test_cancel_without_caller(self, engine, owned_booking, sample_organization):
        """Test anonymous cancellation is still accepted"""
        engine.cancel_booking(owned_booking.id)
        assert engine.list_bookings(sample_organization.id) == []

    def test_admin_of_other_organization_cannot_cancel(self, engine, owned_booking, other_organization):
        caller = CallerIdentity(user_id=uuid4(), organization_id=other_organization.id, role="admin")

        with pytest.raises(ForbiddenError):
            engine.cancel_booking(owned_booking.id, caller)

    def test_cancel_unknown_booking(self, engine):
        with pytest.raises(NotFoundError):
            engine.cancel_booking(uuid4())

    def test_cancelled_slot_can_be_rebooked(
        self, engine, owned_booking, sample_member, sample_organization, sample_pool_resource
    ):
        """Test cancellation frees the interval"""
        engine.cancel_booking(owned_booking.id, caller_for(sample_member))

        booking = engine.create_booking(
            sample_organization.id,
            "Mark Janssen",
            datetime(2025, 6, 10, 9),
            datetime(2025, 6, 10, 10),
            PoolResourceRef(sample_pool_resource.id),
        )
        assert booking.id is not None


class TestStoreFailures:
    """Database failures are reported as StoreError, never as a domain error"""

    def test_overlap_check_failure(self, db_session, sample_organization, sample_pool_resource, monkeypatch):
        """Test a failing booking query during create raises StoreError"""
        query = db_session.query

        def failing_query(*entities, **kwargs):
            if entities and entities[0] is Booking:
                raise OperationalError("SELECT FROM bookings", {}, Exception("database is locked"))
            return query(*entities, **kwargs)

        monkeypatch.setattr(db_session, "query", failing_query)
        engine = ReservationEngine(db_session)

        with pytest.raises(StoreError):
            engine.create_booking(
                sample_organization.id,
                "Lisa van den Berg",
                datetime(2025, 6, 10, 9),
                datetime(2025, 6, 10, 10),
                PoolResourceRef(sample_pool_resource.id),
            )

    def test_unknown_caller_user(self, tmp_path):
        """Test a caller whose user row does not exist is a store failure, not a conflict"""
        db_engine = create_engine(
            f"sqlite:///{tmp_path / 'foreign_keys.db'}",
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(db_engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        Base.metadata.create_all(db_engine)
        session = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)()
        try:
            org = Organization(name="Voorbeeldbedrijf BV", code="DEMO", enabled_sections=["cars"])
            resource = PoolResource(
                name="Toyota Aygo", license_plate="S-551-FT", status=ResourceStatus.AVAILABLE.value
            )
            session.add_all([org, resource])
            session.commit()

            engine = ReservationEngine(session)
            with pytest.raises(StoreError):
                engine.create_booking(
                    org.id,
                    "Lisa van den Berg",
                    datetime(2025, 6, 10, 9),
                    datetime(2025, 6, 10, 10),
                    PoolResourceRef(resource.id),
                    caller=CallerIdentity(user_id=uuid4(), organization_id=org.id),
                )

            assert session.query(Booking).count() == 0
        finally:
            session.close()
            Base.metadata.drop_all(db_engine)
            db_engine.dispose()
