from __future__ import annotations

from pathlib import Path

import pytest

from appointment_notify.domain.errors import ConfigError
from appointment_notify.jobs import config, scheduler
from appointment_notify.triggers import FOLLOWUP_SCHEDULE, REMINDER_SCHEDULE
from appointment_notify.workflows.runtime import build_router

from conftest import IST, FakeAppointments, build_deps

NOTIFY_ENV = (
    "NOTIFY_TIMEZONE",
    "NOTIFY_DATA_PATH",
    "NOTIFY_EMAIL_TRANSPORT",
    "NOTIFY_MESSAGE_TRANSPORT",
    "NOTIFY_CHANNEL_TIMEOUT_SECONDS",
    "NOTIFY_BATCH_WORKERS",
    "NOTIFY_COUNTRY_CODE",
    "NOTIFY_REMINDER_POLICY",
    "NOTIFY_DEDUP_STORE_PATH",
    "NOTIFY_DEDUP_TTL_SECONDS",
    "NOTIFY_ARTIFACT_ROOT",
    "NOTIFY_RETRY_DELAY_SECONDS",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in NOTIFY_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class FakeHost:
    def __init__(self) -> None:
        self.jobs = {}

    def add_cron_job(self, job_id, cron, func) -> None:
        self.jobs[job_id] = (cron, func)

    def start(self) -> None:
        raise AssertionError("not started in tests")


def test_register_schedules_adds_one_job_per_schedule(email_sender) -> None:
    appointments = FakeAppointments()
    router = build_router(build_deps(appointments=appointments, email_sender=email_sender))
    host = FakeHost()

    registered = scheduler.register_schedules(host, router, IST)

    assert registered == [REMINDER_SCHEDULE, FOLLOWUP_SCHEDULE]
    assert host.jobs[REMINDER_SCHEDULE][0] == "0 9 * * *"
    assert host.jobs[FOLLOWUP_SCHEDULE][0] == "0 10 * * *"

    host.jobs[REMINDER_SCHEDULE][1]()

    assert appointments.calls[0][0] == "confirmed"


def test_apscheduler_host_registers_cron_trigger() -> None:
    host = scheduler.APSchedulerHost(IST)

    host.add_cron_job(REMINDER_SCHEDULE, "0 9 * * *", lambda: None)

    job = host.scheduler.get_job(REMINDER_SCHEDULE)
    assert job is not None
    assert "hour='9'" in str(job.trigger)
    assert "minute='0'" in str(job.trigger)
    assert job.coalesce is True
    assert job.misfire_grace_time == 1800


def test_build_scheduler_uses_supplied_router() -> None:
    host = scheduler.build_scheduler(build_router(build_deps()), IST)

    assert {job.id for job in host.scheduler.get_jobs()} == {REMINDER_SCHEDULE, FOLLOWUP_SCHEDULE}


def test_resolve_config_defaults(clean_env) -> None:
    resolved = config.resolve_config()

    assert resolved.timezone is None
    assert resolved.data_path == Path("state/clinic.json")
    assert resolved.email_transport == "console"
    assert resolved.message_transport == "console"
    assert resolved.channel_timeout_s == 5.0
    assert resolved.batch_workers == 4
    assert resolved.country_code == "+91"
    assert resolved.reminder_policy == "attempted"
    assert resolved.dedup_store_path is None
    assert resolved.smtp is None


def test_resolve_config_reads_env(clean_env, tmp_path: Path) -> None:
    clean_env.setenv("NOTIFY_TIMEZONE", "Asia/Kolkata")
    clean_env.setenv("NOTIFY_BATCH_WORKERS", "0")
    clean_env.setenv("NOTIFY_REMINDER_POLICY", "ANY_CHANNEL")
    clean_env.setenv("NOTIFY_DEDUP_STORE_PATH", str(tmp_path / "dedup.json"))

    resolved = config.resolve_config()

    assert resolved.timezone.key == "Asia/Kolkata"
    assert resolved.batch_workers == 1
    assert resolved.reminder_policy == "any_channel"
    assert resolved.dedup_store_path == tmp_path / "dedup.json"


@pytest.mark.parametrize(
    ("name", "value", "match"),
    [
        ("NOTIFY_TIMEZONE", "Mars/Olympus", "NOTIFY_TIMEZONE"),
        ("NOTIFY_CHANNEL_TIMEOUT_SECONDS", "fast", "must be a number"),
        ("NOTIFY_CHANNEL_TIMEOUT_SECONDS", "0", "must be > 0"),
        ("NOTIFY_BATCH_WORKERS", "-2", "must be >= 0"),
        ("NOTIFY_EMAIL_TRANSPORT", "pigeon", "must be one of"),
    ],
)
def test_resolve_config_rejects_bad_values(clean_env, name, value, match) -> None:
    clean_env.setenv(name, value)

    with pytest.raises(ConfigError, match=match):
        config.resolve_config()


def test_smtp_transport_requires_credentials(clean_env) -> None:
    clean_env.setenv("NOTIFY_EMAIL_TRANSPORT", "smtp")
    for name in ("SMTP_HOST", "SMTP_PORT", "SMTP_USERNAME", "SMTP_PASSWORD", "SMTP_SENDER_EMAIL"):
        clean_env.delenv(name, raising=False)

    with pytest.raises(ConfigError, match="Missing email configuration"):
        config.resolve_config()


def test_whatsapp_transport_builds_settings(clean_env) -> None:
    clean_env.setenv("NOTIFY_MESSAGE_TRANSPORT", "whatsapp")
    clean_env.setenv("WHATSAPP_TOKEN", "token")
    clean_env.setenv("WHATSAPP_PHONE_NUMBER_ID", "12345")

    resolved = config.resolve_config()

    assert resolved.whatsapp is not None
    assert resolved.whatsapp.phone_number_id == "12345"
    assert resolved.whatsapp.api_version == "v22.0"
