from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from apscheduler.schedulers.base import BaseScheduler

from carelink.clients.notify_api import (
    NotificationGateway,
    WebhookNotificationService,
    WebhookNotifier,
)
from carelink.core.alerts import AlertDispatcher
from carelink.core.appointment_store import AppointmentStore
from carelink.core.clock import Clock, SystemClock
from carelink.core.config import ClinicConfig, Settings
from carelink.core.directory import ClinicDirectory
from carelink.core.notifications import NotificationService, Notifier
from carelink.core.reminders import ReminderScheduler, build_scheduler
from carelink.core.scheduling import SchedulingEngine
from carelink.core.telemetry import TelemetryStore
from carelink.core.trends import TrendAnalyzer
from carelink.core.vital_store import VitalTimeSeriesStore


@dataclass
class CareServices:
    """명시적으로 구성된 서비스 묶음"""

    settings: Settings
    clock: Clock
    directory: ClinicDirectory
    telemetry: TelemetryStore
    store: AppointmentStore
    reminders: ReminderScheduler
    scheduling: SchedulingEngine
    alerts: AlertDispatcher
    vitals: VitalTimeSeriesStore
    trends: TrendAnalyzer


def build_services(
    settings: Settings,
    clinic: ClinicConfig,
    clock: Clock | None = None,
    notifier: Notifier | None = None,
    notification_service: NotificationService | None = None,
    scheduler: BaseScheduler | None = None,
    telemetry: TelemetryStore | None = None,
) -> CareServices:
    """설정에서 전체 서비스를 구성

    Args:
        settings: 애플리케이션 설정
        clinic: 환자/의사 목록
        clock: 시계(기본 SystemClock)
        notifier: 환자 알림 전송자(기본 게이트웨이 전송)
        notification_service: 의료진 알림 전송자(기본 게이트웨이 전송)
        scheduler: 리마인더 스케줄러(기본 고정 크기 스레드 풀)
        telemetry: 텔레메트리 저장소(기본 settings.duckdb_path)

    Returns:
        서비스 묶음
    """
    clock = clock or SystemClock()
    telemetry = telemetry or TelemetryStore(settings.duckdb_path)
    directory = ClinicDirectory.from_config(clinic)
    gateway = NotificationGateway(settings.notify_base_url, settings.notify_api_key)
    notifier = notifier or WebhookNotifier(gateway)
    notification_service = notification_service or WebhookNotificationService(
        gateway, settings.ehr_base_url
    )

    store = AppointmentStore()
    reminders = ReminderScheduler(
        notifier,
        directory,
        clock,
        scheduler=scheduler or build_scheduler(settings.reminder_workers),
        offsets=[timedelta(hours=h) for h in settings.reminder_offsets_hours],
        telemetry=telemetry,
    )
    scheduling = SchedulingEngine(store, reminders, directory, clock, telemetry)
    alerts = AlertDispatcher(
        settings.alert_cooldown_minutes, notification_service, clock, telemetry
    )
    vitals = VitalTimeSeriesStore(
        settings.vitals_max_entries, alerts, directory, clock, telemetry
    )
    trends = TrendAnalyzer(vitals, clock)
    return CareServices(
        settings=settings,
        clock=clock,
        directory=directory,
        telemetry=telemetry,
        store=store,
        reminders=reminders,
        scheduling=scheduling,
        alerts=alerts,
        vitals=vitals,
        trends=trends,
    )
