import pytest
from fastapi.testclient import TestClient

from carelink.core.config import get_settings, load_clinic_config
from carelink.main import create_app

CLINIC_YAML = """doctors:
  - doctor_id: DOC-1
    name: Ayesha Khan
    contact:
      email: ayesha@clinic.example.com
      phone: "03001234567"
patients:
  - patient_id: PAT-1
    name: Bilal Ahmed
    primary_doctor_id: DOC-1
    contact:
      email: bilal@example.com
      phone: "03217654321"
  - patient_id: PAT-2
    name: Sara Malik
    contact:
      email: sara@example.com
      phone: "03001112222"
"""

START = "2099-03-03T10:00:00"


def _make_client(tmp_path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    config_path = tmp_path / "clinic.yaml"
    config_path.write_text(CLINIC_YAML, encoding="utf-8")
    monkeypatch.setenv("CONFIG_PATH", str(config_path))
    monkeypatch.setenv("DUCKDB_PATH", str(tmp_path / "telemetry.duckdb"))
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    get_settings.cache_clear()
    load_clinic_config.cache_clear()
    app = create_app()
    return TestClient(app)


def _schedule(client: TestClient, patient_id="PAT-1", date_time=START) -> dict:
    response = client.post(
        "/v1/appointments",
        json={"patient_id": patient_id, "doctor_id": "DOC-1", "date_time": date_time},
    )
    assert response.status_code == 201
    return response.json()


def test_health_returns_ok(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "정상",
        "version": "0.1.0",
        "environment": "local",
        "reminders_running": False,
    }


def test_schedule_and_confirm_appointment(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    created = _schedule(client)
    assert created["status"] == "SCHEDULED"
    assert created["reason"] == "Routine checkup"

    pending = client.get("/v1/doctors/DOC-1/pending").json()
    assert [a["id"] for a in pending] == [created["id"]]

    response = client.post(
        f"/v1/appointments/{created['id']}/confirm", json={"doctor_id": "DOC-1"}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"

    schedule = client.get("/v1/doctors/DOC-1/schedule", params={"day": "2099-03-03"})
    assert [a["id"] for a in schedule.json()] == [created["id"]]


def test_confirm_conflict_returns_409(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    first = _schedule(client)
    second = _schedule(client, patient_id="PAT-2", date_time="2099-03-03T10:15:00")
    client.post(f"/v1/appointments/{first['id']}/confirm", json={"doctor_id": "DOC-1"})

    response = client.post(
        f"/v1/appointments/{second['id']}/confirm", json={"doctor_id": "DOC-1"}
    )

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "APT_CONFLICT_001"


def test_start_before_confirm_returns_409(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    created = _schedule(client)

    response = client.post(
        f"/v1/appointments/{created['id']}/start", json={"doctor_id": "DOC-1"}
    )

    assert response.status_code == 409
    assert response.json()["detail"] == {
        "code": "APT_STATE_001",
        "message": "Only confirmed appointments can be started",
    }


def test_error_status_codes(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    created = _schedule(client)

    missing = client.get("/v1/appointments/APT-missing")
    foreign = client.post(
        f"/v1/appointments/{created['id']}/cancel", json={"patient_id": "PAT-2"}
    )
    too_short = client.post(
        "/v1/appointments",
        json={
            "patient_id": "PAT-1",
            "doctor_id": "DOC-1",
            "date_time": START,
            "duration_minutes": 10,
        },
    )
    anonymous = client.post(f"/v1/appointments/{created['id']}/cancel", json={})

    assert missing.status_code == 404
    assert foreign.status_code == 403
    assert too_short.status_code == 422
    assert anonymous.status_code == 422


def test_reschedule_returns_new_appointment(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    created = _schedule(client)

    response = client.post(
        f"/v1/appointments/{created['id']}/reschedule",
        json={"new_date_time": "2099-03-04T11:00:00", "requested_by": "patient"},
    )

    assert response.status_code == 200
    rescheduled = response.json()
    assert rescheduled["id"] != created["id"]
    original = client.get(f"/v1/appointments/{created['id']}").json()
    assert original["status"] == "RESCHEDULED"


def test_record_vitals_once_per_day(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    payload = {
        "body_temperature": 36.9,
        "pulse_rate": 74,
        "respiratory_rate": 15,
        "systolic": 182,
        "diastolic": 100,
        "oxygen_saturation": 97.0,
    }

    first = client.post("/v1/patients/PAT-2/vitals", json=payload)
    second = client.post("/v1/patients/PAT-2/vitals", json=payload)

    assert first.json() == {
        "recorded": True,
        "critical": True,
        "blood_pressure_category": "Hypertensive Crisis",
    }
    assert second.json()["recorded"] is False
    assert len(client.get("/v1/patients/PAT-2/vitals/dates").json()) == 1

    trend = client.get(
        "/v1/patients/PAT-2/vitals/trends", params={"component": "pulse_rate"}
    ).json()
    assert trend["sample_count"] == 1
    assert trend["latest"] == 74.0


def test_invalid_vitals_return_422(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    response = client.post(
        "/v1/patients/PAT-1/vitals",
        json={
            "body_temperature": 45.0,
            "pulse_rate": 74,
            "respiratory_rate": 15,
            "systolic": 120,
            "diastolic": 80,
            "oxygen_saturation": 97.0,
        },
    )
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "APT_VALID_001"


def test_latest_vitals_missing_returns_404(tmp_path, monkeypatch):
    client = _make_client(tmp_path, monkeypatch)
    assert client.get("/v1/patients/PAT-1/vitals/latest").status_code == 404
