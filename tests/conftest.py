"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

# No test may reach Gemini; settings must not pick up a developer key
os.environ.pop("GEMINI_API_KEY", None)
os.environ.setdefault("LOG_FORMAT", "console")
# Google Sheets settings are required fields; tests mock the gspread client
os.environ.setdefault("GOOGLE_SHEETS_CREDENTIALS_PATH", "test-credentials.json")
os.environ.setdefault("GOOGLE_SHEETS_SPREADSHEET_ID", "test-spreadsheet-id")

from cash_close.agents import SummaryAgent
from cash_close.assembly import empty_draft
from cash_close.config import GeminiSettings, get_settings
from cash_close.models.record import (
    DailyRecord,
    StaffMember,
    StaffPayment,
    StaffRole,
)
from cash_close.orchestrator import DailyCloseFlow
from cash_close.services.storage import InMemoryRecordStore, InMemoryStaffDirectory


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; tests that touch env vars need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def staff():
    """Staff directory used across tests: one attendant, a rider, a cook."""
    return [
        StaffMember(id="att", name="Maria", role=StaffRole.ATTENDANT, pix_key="maria@pix"),
        StaffMember(id="a", name="A", role=StaffRole.MOTOBOY, pix_key="11999990000"),
        StaffMember(id="b", name="B", role=StaffRole.KITCHEN),
    ]


@pytest.fixture
def staff_directory(staff):
    return InMemoryStaffDirectory(staff)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def clock():
    """Deterministic clock: every call is one minute after the previous one."""
    start = datetime(2024, 1, 11, 22, 0, tzinfo=timezone.utc)
    calls = {"n": 0}

    def now():
        value = start + timedelta(minutes=calls["n"])
        calls["n"] += 1
        return value

    return now


@pytest.fixture
def offline_summary_agent():
    """Summary agent with no API key: always the static template."""
    return SummaryAgent(settings=GeminiSettings(api_key=None))


@pytest.fixture
def flow(store, staff_directory, offline_summary_agent, clock):
    return DailyCloseFlow(
        store=store,
        staff_directory=staff_directory,
        summary_agent=offline_summary_agent,
        clock=clock,
        enforce_version_check=False,
        deduplicate_carried_pendencies=True,
    )


@pytest.fixture
def prior_record():
    """2024-01-10 with payments A: 50 and B: 30."""
    return DailyRecord(
        date="2024-01-10",
        sales={"ifood": "100.00", "kcms": "50.00", "sgv": "25.00"},
        payments=[
            StaffPayment(staff_id="a", amount=Decimal("50.00"), delivery_count=4),
            StaffPayment(staff_id="b", amount=Decimal("30.00")),
        ],
        closed_by_staff_id="att",
        version=1,
    )


@pytest.fixture
def draft():
    """A valid draft for 2024-01-11 closed by the attendant."""
    d = empty_draft("2024-01-11")
    d.sales = {"ifood": "120.00", "kcms": "60.00", "sgv": "10.00"}
    d.closed_by_staff_id = "att"
    d.activate_staff("a", amount="45.00", delivery_count=3)
    return d
