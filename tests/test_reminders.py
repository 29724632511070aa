import threading
from datetime import datetime, timedelta

from carelink.core.reminders import ReminderScheduler, build_scheduler, reminder_delay
from carelink.models.appointment import Appointment, AppointmentStatus
from carelink.models.contact import Prescription

from conftest import NOW, RecordingNotifier


def _appointment(start: datetime, patient_id: str = "PAT-1") -> Appointment:
    return Appointment(
        patient_id=patient_id,
        doctor_id="DOC-1",
        date_time=start,
        duration=timedelta(minutes=30),
    )


def test_reminder_delay_is_clamped_to_zero():
    assert reminder_delay(NOW - timedelta(hours=2), NOW) == timedelta(0)
    assert reminder_delay(NOW + timedelta(hours=2), NOW) == timedelta(hours=2)


def test_reminders_registered_for_both_offsets(reminders, scheduler):
    appointment = _appointment(NOW + timedelta(days=2))

    job_ids = reminders.schedule_reminders(appointment)

    assert job_ids == [
        f"reminder-{appointment.id}-24h",
        f"reminder-{appointment.id}-1h",
    ]
    assert {job.id for job in scheduler.get_jobs()} == set(job_ids)
    assert reminders.pending_reminders(appointment.id) == [
        appointment.date_time - timedelta(hours=24),
        appointment.date_time - timedelta(hours=1),
    ]


def test_past_fire_times_are_due_immediately(reminders):
    appointment = _appointment(NOW + timedelta(hours=2))

    reminders.schedule_reminders(appointment)

    assert reminders.pending_reminders(appointment.id) == [
        NOW,
        appointment.date_time - timedelta(hours=1),
    ]


def test_cancel_reminders_removes_jobs(reminders, scheduler):
    appointment = _appointment(NOW + timedelta(days=2))
    reminders.schedule_reminders(appointment)

    assert reminders.cancel_reminders(appointment.id) == 2
    assert scheduler.get_jobs() == []
    assert reminders.pending_reminders(appointment.id) == []
    assert reminders.cancel_reminders(appointment.id) == 0


def test_reminder_job_sends_and_untracks(reminders, scheduler, notifier):
    appointment = _appointment(NOW + timedelta(days=2))
    job_id = reminders.schedule_reminders(appointment)[0]

    job = scheduler.get_job(job_id)
    job.func(*job.args)

    assert notifier.reminders == [(appointment.id, "PAT-1")]
    assert len(reminders.pending_reminders(appointment.id)) == 1


def test_reminder_failure_is_swallowed(reminders, scheduler, notifier):
    notifier.fail = True
    appointment = _appointment(NOW + timedelta(days=2))
    job = scheduler.get_job(reminders.schedule_reminders(appointment)[0])

    job.func(*job.args)

    assert notifier.reminders == []


def test_reminder_for_unknown_patient_is_skipped(reminders, scheduler, notifier):
    appointment = _appointment(NOW + timedelta(days=2), patient_id="PAT-404")
    job = scheduler.get_job(reminders.schedule_reminders(appointment)[0])

    job.func(*job.args)

    assert notifier.reminders == []


def test_status_change_notification(reminders, notifier):
    appointment = _appointment(NOW + timedelta(days=2))
    reminders.notify_status_change(appointment, AppointmentStatus.CONFIRMED)
    assert notifier.statuses == [(appointment.id, AppointmentStatus.CONFIRMED)]


def test_medication_reminder_job(reminders, scheduler, notifier):
    prescription = Prescription(
        medication="Amlodipine", dosage="5mg", prescriber="Ayesha Khan"
    )
    job_id = reminders.schedule_medication_reminder(
        prescription, "PAT-1", NOW + timedelta(hours=8)
    )

    job = scheduler.get_job(job_id)
    job.func(*job.args)

    assert notifier.medications == [("Amlodipine", "PAT-1")]


def test_running_scheduler_delivers_due_reminders(directory, clock):
    delivered = threading.Event()

    class SignallingNotifier(RecordingNotifier):
        def send_appointment_reminder(self, appointment, patient) -> None:
            super().send_appointment_reminder(appointment, patient)
            if len(self.reminders) == 2:
                delivered.set()

    notifier = SignallingNotifier()
    reminders = ReminderScheduler(
        notifier, directory, clock, scheduler=build_scheduler(workers=2)
    )
    reminders.start()
    try:
        appointment = _appointment(NOW + timedelta(minutes=30))
        reminders.schedule_reminders(appointment)

        assert delivered.wait(timeout=5)
        assert reminders.pending_reminders(appointment.id) == []
    finally:
        reminders.shutdown()
