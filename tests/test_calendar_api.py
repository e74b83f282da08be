from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from http import HTTPStatus
import unittest
from unittest import mock

from portal.app import create_app
from portal.app.models import (
    Appointment,
    AuditLog,
    ExternalEvent,
    Location,
    Patient,
    Practitioner,
    Service,
    Tenant,
    User,
)
from portal.extensions import bcrypt, db


class _EarlyMarch10Utc(datetime):
    """Clock frozen at 02:00 UTC on 10 March 2024."""

    @classmethod
    def now(cls, tz=None):
        instant = datetime(2024, 3, 10, 2, 0, tzinfo=timezone.utc)
        return instant.astimezone(tz) if tz is not None else instant.replace(tzinfo=None)


class CalendarApiTestCase(unittest.TestCase):
    """Exercise the calendar endpoints against an in-memory database."""

    def setUp(self) -> None:  # noqa: D401 - documented in base class
        self.app = create_app("testing")
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        self.tenant = Tenant(company_name="SSO Clinic", timezone="America/Toronto")
        self.other_tenant = Tenant(company_name="Muneeb Clinic", timezone="Asia/Karachi")
        db.session.add_all([self.tenant, self.other_tenant])
        db.session.flush()

        password = bcrypt.generate_password_hash("calendar-pass").decode("utf-8")
        self.staff = User(
            email="frontdesk@example.com",
            password_hash=password,
            full_name="Front Desk",
            role="staff",
            tenant_id=self.tenant.id,
        )
        self.practitioner_user = User(
            email="smith@example.com",
            password_hash=password,
            full_name="Ada Smith",
            role="practitioner",
        )
        db.session.add_all([self.staff, self.practitioner_user])
        db.session.flush()

        self.smith = Practitioner(
            user_id=self.practitioner_user.id,
            first_name="Ada",
            last_name="Smith",
        )
        self.jones = Practitioner(first_name="Bo", last_name="Jones")
        self.retired = Practitioner(first_name="Cy", last_name="Old", is_active=False)
        self.smith.tenants = [self.tenant, self.other_tenant]
        self.jones.tenants = [self.tenant]
        self.retired.tenants = [self.tenant]
        db.session.add_all([self.smith, self.jones, self.retired])
        db.session.flush()

        patient = Patient(tenant_id=self.tenant.id, first_name="Ana", last_name="Lima")
        other_patient = Patient(tenant_id=self.other_tenant.id, first_name="Sam", last_name="Park")
        service = Service(
            tenant_id=self.tenant.id, name="Initial Consultation", default_duration_minutes=45
        )
        location = Location(tenant_id=self.tenant.id, name="Room 2")
        db.session.add_all([patient, other_patient, service, location])
        db.session.flush()

        self.shared_visit = Appointment(
            tenant_id=self.tenant.id,
            patient_id=patient.id,
            service_id=service.id,
            location_id=location.id,
            start_time=datetime(2024, 3, 10, 14, 30),
            end_time=datetime(2024, 3, 10, 15, 15),
            status="confirmed",
            mode="physical",
        )
        self.shared_visit.practitioners = [self.smith, self.jones]
        self.jones_visit = Appointment(
            tenant_id=self.tenant.id,
            patient_id=patient.id,
            start_time=datetime(2024, 3, 10, 18, 0),
            end_time=datetime(2024, 3, 10, 18, 30),
            status="pending",
        )
        self.jones_visit.practitioners = [self.jones]
        self.remote_visit = Appointment(
            tenant_id=self.other_tenant.id,
            patient_id=other_patient.id,
            start_time=datetime(2024, 3, 11, 3, 0),
            end_time=datetime(2024, 3, 11, 3, 30),
            status="pending",
            mode="virtual",
        )
        self.remote_visit.practitioners = [self.smith]

        upcoming = datetime.combine(date.today() + timedelta(days=2), time(15, 0))
        self.upcoming_visit = Appointment(
            tenant_id=self.tenant.id,
            patient_id=patient.id,
            start_time=upcoming,
            end_time=upcoming + timedelta(minutes=30),
            status="confirmed",
        )
        self.upcoming_visit.practitioners = [self.smith]
        db.session.add_all(
            [self.shared_visit, self.jones_visit, self.remote_visit, self.upcoming_visit]
        )

        mirrored = ExternalEvent(
            practitioner_id=self.smith.id,
            external_id="evt-mirror",
            title="Clinic booking",
            start_time=upcoming + timedelta(minutes=3),
            end_time=upcoming + timedelta(minutes=33),
        )
        personal = ExternalEvent(
            practitioner_id=self.smith.id,
            external_id="evt-dentist",
            title="Dentist",
            location="Downtown",
            start_time=upcoming + timedelta(days=1),
            end_time=upcoming + timedelta(days=1, hours=1),
        )
        db.session.add_all([mirrored, personal])
        db.session.commit()

        self.client = self.app.test_client()

    def tearDown(self) -> None:  # noqa: D401 - documented in base class
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def _login(self, email: str) -> dict[str, str]:
        response = self.client.post(
            "/api/auth/login",
            json={"email": email, "password": "calendar-pass"},
        )
        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        payload = response.get_json()
        assert payload is not None
        token = payload.get("access_token")
        self.assertTrue(token)
        return {"Authorization": f"Bearer {token}"}

    def test_login_is_audited(self) -> None:
        headers = self._login(self.staff.email)

        logs = AuditLog.query.order_by(AuditLog.id).all()
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].action, "auth.login")
        self.assertEqual(logs[0].user_id, self.staff.id)
        self.assertEqual(logs[0].tenant_id, self.tenant.id)
        self.assertEqual(len(logs[0].request_hash), 64)
        self.assertEqual(len(logs[0].response_hash), 64)

        response = self.client.get("/api/auth/me", headers=headers)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertEqual(response.get_json()["tenant_id"], self.tenant.id)

    def test_failed_login_is_not_audited(self) -> None:
        response = self.client.post(
            "/api/auth/login",
            json={"email": self.staff.email, "password": "wrong"},
        )

        self.assertEqual(response.status_code, HTTPStatus.UNAUTHORIZED)
        self.assertEqual(AuditLog.query.count(), 0)

    def test_tenant_calendar_props(self) -> None:
        headers = self._login(self.staff.email)

        response = self.client.get("/api/calendar", headers=headers)

        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        props = response.get_json()
        self.assertFalse(props["isCentral"])
        self.assertEqual(props["currentDate"], date.today().isoformat())
        self.assertEqual(
            props["practitioners"],
            [
                {"id": self.smith.id, "name": "Ada Smith"},
                {"id": self.jones.id, "name": "Bo Jones"},
            ],
        )

        first = props["appointments"][0]
        self.assertEqual(first["date"], "2024-03-10")
        self.assertEqual(first["time"], "10:30")
        self.assertEqual(first["practitioner"], "Ada Smith, Bo Jones")
        self.assertEqual(first["title"], "Initial Consultation")
        self.assertEqual(first["duration"], 45)
        self.assertEqual(first["location"], "Room 2")
        self.assertEqual(first["clinic"], "SSO Clinic")
        self.assertEqual(first["source"], "clinic")

        second = props["appointments"][1]
        self.assertEqual(second["title"], "Appointment")
        self.assertEqual(second["type"], "General Consultation")
        self.assertEqual(second["duration"], 60)
        self.assertEqual(second["location"], "TBD")

    def test_tenant_calendar_requires_tenant(self) -> None:
        headers = self._login(self.practitioner_user.email)

        response = self.client.get("/api/calendar", headers=headers)

        self.assertEqual(response.status_code, HTTPStatus.BAD_REQUEST)

    def test_central_calendar_props(self) -> None:
        headers = self._login(self.practitioner_user.email)

        response = self.client.get("/api/central/calendar", headers=headers)

        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        props = response.get_json()
        self.assertTrue(props["isCentral"])
        by_id = {item["id"]: item for item in props["appointments"]}

        shared = by_id[self.shared_visit.id]
        self.assertEqual(shared["timezone"], "UTC")
        self.assertEqual(shared["time"], "14:30")
        self.assertEqual(shared["utc_start_time"], "2024-03-10T14:30:00Z")
        self.assertEqual(shared["title"], "Initial Consultation - Ana Lima")
        self.assertEqual(shared["duration"], 45)

        remote = by_id[self.remote_visit.id]
        self.assertEqual(remote["clinic"], "Muneeb Clinic")
        self.assertEqual(remote["location"], "Virtual")
        self.assertEqual(remote["tenant_id"], str(self.other_tenant.id))

        self.assertNotIn(self.jones_visit.id, by_id)
        self.assertNotIn("google_evt-mirror", by_id)
        dentist = by_id["google_evt-dentist"]
        self.assertEqual(dentist["status"], "external")
        self.assertEqual(dentist["clinic"], "Google Calendar")
        self.assertEqual(dentist["title"], "Dentist (Google Calendar)")
        self.assertFalse(dentist["clickable"])

    def test_central_calendar_forbidden_for_staff(self) -> None:
        headers = self._login(self.staff.email)

        for path in ("/api/central/calendar", "/api/central/calendar/view"):
            with self.subTest(path=path):
                response = self.client.get(path, headers=headers)
                self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)

    def test_viewer_timezone_drives_central_view(self) -> None:
        headers = self._login(self.practitioner_user.email)

        response = self.client.post(
            "/api/users/timezone", json={"timezone": "America/New_York"}, headers=headers
        )
        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        self.assertEqual(response.get_json()["timezone"], "America/New_York")

        logs = AuditLog.query.filter_by(action="viewer.timezone_set").all()
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].user_id, self.practitioner_user.id)

        response = self.client.get(
            "/api/central/calendar/view?date=2024-03-10&mode=day", headers=headers
        )
        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        view = response.get_json()
        self.assertEqual(view["title"], "03/10/2024")
        self.assertEqual(view["display_timezone"]["abbreviation"], "EST/EDT")
        (cell,) = view["cells"]
        times = [entry["time"] for entry in cell["appointments"]]
        self.assertEqual(times, ["10:30", "23:00"])

    def test_central_view_today_follows_viewer_zone(self) -> None:
        headers = self._login(self.practitioner_user.email)

        with mock.patch(
            "portal.app.services.timezone_service.datetime", _EarlyMarch10Utc
        ):
            west = self.client.get(
                "/api/central/calendar/view?mode=day&tz=America/Los_Angeles",
                headers=headers,
            )
            east = self.client.get(
                "/api/central/calendar/view?mode=day&tz=Asia/Karachi",
                headers=headers,
            )

        self.assertEqual(west.status_code, HTTPStatus.OK, west.get_data(as_text=True))
        west_view = west.get_json()
        self.assertEqual(west_view["reference_date"], "2024-03-09")
        self.assertEqual(west_view["today"]["date"], "2024-03-09")
        (west_cell,) = west_view["cells"]
        self.assertEqual(west_cell["date"], "2024-03-09")
        self.assertTrue(west_cell["is_today"])
        self.assertEqual(west_view["today"]["empty_message"], "No appointments today")

        self.assertEqual(east.status_code, HTTPStatus.OK, east.get_data(as_text=True))
        east_view = east.get_json()
        self.assertEqual(east_view["today"]["date"], "2024-03-10")
        self.assertEqual(
            [entry["id"] for entry in east_view["today"]["appointments"]],
            [self.shared_visit.id],
        )
        self.assertEqual(east_view["today"]["appointments"][0]["time"], "19:30")

    def test_tz_parameter_overrides_session(self) -> None:
        headers = self._login(self.practitioner_user.email)

        response = self.client.get(
            "/api/central/calendar/view?date=2024-03-11&mode=day&tz=Asia/Karachi",
            headers=headers,
        )

        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        view = response.get_json()
        self.assertEqual(view["display_timezone"], {"name": "Asia/Karachi", "abbreviation": "PKT"})
        (cell,) = view["cells"]
        self.assertEqual([entry["time"] for entry in cell["appointments"]], ["08:00"])

    def test_invalid_timezone_is_rejected(self) -> None:
        headers = self._login(self.practitioner_user.email)

        response = self.client.post(
            "/api/users/timezone", json={"timezone": "Mars/Olympus"}, headers=headers
        )

        self.assertEqual(response.status_code, HTTPStatus.BAD_REQUEST)
        self.assertEqual(AuditLog.query.filter_by(action="viewer.timezone_set").count(), 0)

    def test_tenant_view_filters_by_practitioner(self) -> None:
        headers = self._login(self.staff.email)

        response = self.client.get(
            f"/api/calendar/view?date=2024-03-10&mode=day&practitioners={self.smith.id}",
            headers=headers,
        )

        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        view = response.get_json()
        self.assertEqual(view["display_timezone"], {"name": "America/Toronto", "abbreviation": "Toronto"})
        self.assertEqual(view["filters"]["practitioner_ids"], [self.smith.id])
        (cell,) = view["cells"]
        self.assertEqual([entry["id"] for entry in cell["appointments"]], [self.shared_visit.id])

    def test_tenant_view_status_filter_and_list_mode(self) -> None:
        headers = self._login(self.staff.email)

        response = self.client.get("/api/calendar/view?mode=list&status=pending", headers=headers)

        self.assertEqual(response.status_code, HTTPStatus.OK, response.get_data(as_text=True))
        view = response.get_json()
        self.assertEqual(view["title"], "All Appointments")
        self.assertEqual([entry["id"] for entry in view["appointments"]], [self.jones_visit.id])

    def test_malformed_view_parameters(self) -> None:
        headers = self._login(self.staff.email)

        for query in ("date=2024-13-01", "mode=year", "practitioners=a,b"):
            with self.subTest(query=query):
                response = self.client.get(f"/api/calendar/view?{query}", headers=headers)
                self.assertEqual(response.status_code, HTTPStatus.BAD_REQUEST)
                self.assertTrue(response.get_json()["message"])

        practitioner_headers = self._login(self.practitioner_user.email)
        response = self.client.get(
            "/api/central/calendar/view?tz=Mars/Olympus", headers=practitioner_headers
        )
        self.assertEqual(response.status_code, HTTPStatus.BAD_REQUEST)

    def test_calendar_requires_token(self) -> None:
        response = self.client.get("/api/calendar")

        self.assertEqual(response.status_code, HTTPStatus.UNAUTHORIZED)


if __name__ == "__main__":
    unittest.main()
