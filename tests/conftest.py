from datetime import datetime

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from carelink.core.alerts import AlertDispatcher
from carelink.core.appointment_store import AppointmentStore
from carelink.core.clock import ManualClock
from carelink.core.directory import ClinicDirectory
from carelink.core.errors import NotificationError
from carelink.core.reminders import ReminderScheduler
from carelink.core.scheduling import SchedulingEngine
from carelink.core.vital_store import VitalTimeSeriesStore
from carelink.models.contact import Contact, DoctorProfile, PatientProfile
from carelink.models.vitals import BloodPressure, VitalSigns

NOW = datetime(2026, 3, 2, 9, 0)


class RecordingNotifier:
    def __init__(self) -> None:
        self.fail = False
        self.reminders: list = []
        self.statuses: list = []
        self.medications: list = []

    def send_appointment_reminder(self, appointment, patient) -> None:
        if self.fail:
            raise NotificationError("gateway down")
        self.reminders.append((appointment.id, patient.patient_id))

    def send_status_notification(self, appointment, status, patient) -> None:
        if self.fail:
            raise NotificationError("gateway down")
        self.statuses.append((appointment.id, status))

    def send_medication_reminder(self, prescription, patient) -> None:
        if self.fail:
            raise NotificationError("gateway down")
        self.medications.append((prescription.medication, patient.patient_id))


class RecordingNotificationService:
    def __init__(self) -> None:
        self.fail = False
        self.emergency_calls: list = []
        self.critical_calls: list = []

    def send_emergency_alert(self, contacts, patient_id, emergency_type) -> None:
        if self.fail:
            raise NotificationError("gateway down")
        self.emergency_calls.append((contacts, patient_id, emergency_type))

    def send_critical_results(self, contact, patient_label, test_name, value) -> None:
        if self.fail:
            raise NotificationError("gateway down")
        self.critical_calls.append((contact, patient_label, test_name, value))

    @property
    def call_count(self) -> int:
        return len(self.emergency_calls) + len(self.critical_calls)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(NOW)


@pytest.fixture
def directory() -> ClinicDirectory:
    return ClinicDirectory(
        patients=[
            PatientProfile(
                patient_id="PAT-1",
                name="Bilal Ahmed",
                contact=Contact(email="bilal@example.com", phone="03217654321"),
                primary_doctor_id="DOC-1",
            ),
            PatientProfile(
                patient_id="PAT-2",
                name="Sara Malik",
                contact=Contact(email="sara@example.com", phone="03001112222"),
            ),
        ],
        doctors=[
            DoctorProfile(
                doctor_id="DOC-1",
                name="Ayesha Khan",
                contact=Contact(email="ayesha@clinic.example.com", phone="03001234567"),
            ),
            DoctorProfile(
                doctor_id="DOC-2",
                name="Omar Farooq",
                contact=Contact(email="omar@clinic.example.com", phone="03007654321"),
            ),
        ],
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def scheduler():
    # 시작하지 않은 스케줄러: 작업이 대기 상태로 남는다
    scheduler = BackgroundScheduler()
    yield scheduler
    if scheduler.running:
        scheduler.shutdown(wait=False)


@pytest.fixture
def reminders(notifier, directory, clock, scheduler) -> ReminderScheduler:
    return ReminderScheduler(notifier, directory, clock, scheduler=scheduler)


@pytest.fixture
def store() -> AppointmentStore:
    return AppointmentStore()


@pytest.fixture
def engine(store, reminders, directory, clock) -> SchedulingEngine:
    return SchedulingEngine(store, reminders, directory, clock)


@pytest.fixture
def alert_service() -> RecordingNotificationService:
    return RecordingNotificationService()


@pytest.fixture
def dispatcher(alert_service, clock) -> AlertDispatcher:
    return AlertDispatcher(5, alert_service, clock)


@pytest.fixture
def vital_store(dispatcher, directory, clock) -> VitalTimeSeriesStore:
    return VitalTimeSeriesStore(3, dispatcher, directory, clock)


@pytest.fixture
def make_vitals():
    def _make(
        timestamp: datetime = NOW,
        body_temperature: float = 36.8,
        pulse_rate: int = 72,
        respiratory_rate: int = 16,
        systolic: int = 118,
        diastolic: int = 76,
        oxygen_saturation: float = 98.0,
        **extra,
    ) -> VitalSigns:
        return VitalSigns(
            timestamp=timestamp,
            body_temperature=body_temperature,
            pulse_rate=pulse_rate,
            respiratory_rate=respiratory_rate,
            blood_pressure=BloodPressure(systolic=systolic, diastolic=diastolic),
            oxygen_saturation=oxygen_saturation,
            **extra,
        )

    return _make
