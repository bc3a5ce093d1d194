"""
Tests against blobs in the layout the mobile client writes.

Each fixture below is a collection exactly as that client saves it:
money as JSON numbers, ISO timestamps with a trailing Z, untouched
optional dates as "" and unset optional keys left out altogether.
"""

import json
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from freelance_core.models.entities import (
    AdjustmentType,
    InvoiceStatus,
    Project,
    ProjectType,
)
from freelance_core.orchestrator import create_app_components
from freelance_core.services.storage import (
    SETTINGS_KEY,
    CollectionKey,
    InMemoryKeyValueBackend,
    PersistenceStore,
)


CLIENTS = [
    {
        "id": "m8k2c1a9f3x",
        "name": "Acme Studio",
        "company": "Acme",
        "email": "hello@acme.test",
        "phone": "",
        "notes": "",
        "currency": "USD",
        "createdAt": "2026-01-04T10:15:30.120Z",
    },
    {
        "id": "m8k2c7zz01q",
        "name": "Globex",
        "company": "",
        "email": "",
        "notes": "Pays late",
        "currency": "EUR",
        "createdAt": "2026-01-09T16:02:11.004Z",
    },
]

PROJECTS = [
    {
        "id": "m8k3p0web01",
        "name": "Website",
        "clientId": "m8k2c1a9f3x",
        "startDate": "2026-01-05",
        "deadline": "",
        "status": "active",
        "projectType": "hourly",
        "hourlyRate": 50,
        "fixedBudget": 0,
        "currency": "USD",
        "description": "",
        "tags": ["web"],
        "deliverables": [],
        "timeTrackingEnabled": True,
        "attachments": [],
        "privateNotes": "",
        "createdAt": "2026-01-05T08:00:00.000Z",
    },
    {
        "id": "m8k3p0logo2",
        "name": "Logo",
        "clientId": "m8k2c7zz01q",
        "startDate": "2026-01-10",
        "deadline": "2026-02-01",
        "status": "paused",
        "projectType": "fixed",
        "hourlyRate": 50,
        "fixedBudget": 1200.5,
        "currency": "EUR",
        "description": "Brand refresh",
        "tags": [],
        "deliverables": ["SVG", "PNG"],
        "timeTrackingEnabled": False,
        "attachments": [],
        "privateNotes": "",
        "createdAt": "2026-01-10T12:30:00.000Z",
    },
]

TASKS = [
    {
        "id": "m8k4t0aaa01",
        "projectId": "m8k3p0web01",
        "title": "Wireframes",
        "description": "",
        "completed": True,
        "createdAt": "2026-01-06T09:00:00.000Z",
    },
    {
        "id": "m8k4t0bbb02",
        "projectId": "m8k3p0web01",
        "title": "Copy",
        "description": "",
        "completed": False,
        "dueDate": "",
        "createdAt": "2026-01-06T09:05:00.000Z",
    },
]

TIME_LOGS = [
    {
        "id": "m8k5l0tim01",
        "projectId": "m8k3p0web01",
        "description": "Timer session",
        "startTime": "2026-01-06T09:00:00.000Z",
        "endTime": "2026-01-06T10:30:00.000Z",
        "duration": 90,
        "hourlyRate": 50,
        "createdAt": "2026-01-06T10:30:00.412Z",
    },
    {
        "id": "m8k5l0man02",
        "projectId": "m8k3p0web01",
        "taskId": "m8k4t0aaa01",
        "description": "Review call",
        "startTime": "2026-01-07T14:00:00.000Z",
        "duration": 25,
        "hourlyRate": 62.5,
        "createdAt": "2026-01-07T14:25:00.000Z",
    },
]

INVOICES = [
    {
        "id": "m8k6i0inv01",
        "invoiceNumber": "INV-482913",
        "clientId": "m8k2c1a9f3x",
        "items": [
            {"id": "m8k6x0it001", "description": "Design", "quantity": 10,
             "rate": 50, "amount": 500},
            {"id": "m8k6x0it002", "description": "Hosting", "quantity": 1,
             "rate": 19.99, "amount": 19.99},
        ],
        "subtotal": 519.99,
        "discount": 0,
        "discountType": "flat",
        "tax": 0,
        "taxType": "percentage",
        "total": 519.99,
        "status": "sent",
        "issueDate": "2026-01-08",
        "dueDate": "2026-02-07",
        "notes": "Thank you for your business!",
        "termsAndConditions": "",
        "currency": "USD",
        "createdAt": "2026-01-08T11:00:00.000Z",
        "sentAt": "2026-01-08T11:00:00.000Z",
    },
    {
        "id": "m8k6i0inv02",
        "invoiceNumber": "INV-482990",
        "clientId": "m8k2c7zz01q",
        "projectId": "m8k3p0logo2",
        "items": [
            {"id": "m8k6x0it003", "description": "Logo", "quantity": 1,
             "rate": 1200, "amount": 1200},
        ],
        "subtotal": 1200,
        "discount": 100,
        "discountType": "flat",
        "tax": 0,
        "taxType": "percentage",
        "total": 1100,
        "status": "overdue",
        "issueDate": "2026-01-10",
        "dueDate": "2026-01-25",
        "notes": "",
        "termsAndConditions": "Net 15",
        "currency": "EUR",
        "createdAt": "2026-01-10T13:00:00.000Z",
    },
]

SETTINGS = {
    "currency": "USD",
    "defaultHourlyRate": 50,
    "taxRate": 0,
    "notifications": True,
    "biometricLock": False,
    "invoicePrefix": "INV",
    "exchangeRates": {"EUR": 0.92, "GBP": 0.79},
    "lastExchangeRateUpdate": "",
    "defaultBillingType": "hourly",
    "invoiceDueDateWindow": "30",
    "defaultInvoiceNotes": "Thank you for your business!",
    "timeTrackingEnabled": True,
    "timeFormat": "24h",
    "timeIncrement": "15m",
    "remindToLogTime": False,
    "remindTime": "Evening",
    "autoStopTimer": False,
    "autoStopTimeHours": 8,
    "themeMode": "auto",
}

LEGACY_COLLECTIONS = {
    CollectionKey.CLIENTS: CLIENTS,
    CollectionKey.PROJECTS: PROJECTS,
    CollectionKey.TASKS: TASKS,
    CollectionKey.TIME_LOGS: TIME_LOGS,
    CollectionKey.INVOICES: INVOICES,
}


@pytest_asyncio.fixture
async def backend():
    backend = InMemoryKeyValueBackend()
    for key, records in LEGACY_COLLECTIONS.items():
        await backend.set_item(key.value, json.dumps(records))
    await backend.set_item(SETTINGS_KEY, json.dumps(SETTINGS))
    return backend


@pytest.fixture
def store(backend):
    return PersistenceStore(backend)


class TestLegacyLoad:
    """Every collection the mobile client wrote loads in full."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", list(LEGACY_COLLECTIONS))
    async def test_nothing_is_dropped(self, store, key):
        loaded = await store.load_collection(key)
        assert [item.id for item in loaded] == [r["id"] for r in LEGACY_COLLECTIONS[key]]

    @pytest.mark.asyncio
    async def test_clients(self, store):
        acme, globex = await store.load_collection(CollectionKey.CLIENTS)
        assert acme.phone == ""
        assert globex.phone is None
        assert acme.created_at == datetime(2026, 1, 4, 10, 15, 30, 120000, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_projects(self, store):
        website, logo = await store.load_collection(CollectionKey.PROJECTS)
        assert website.deadline is None
        assert website.hourly_rate == Decimal("50")
        assert website.fixed_budget == Decimal("0")
        assert logo.project_type == ProjectType.FIXED
        assert logo.fixed_budget == Decimal("1200.5")
        assert logo.deadline == date(2026, 2, 1)

    @pytest.mark.asyncio
    async def test_tasks(self, store):
        wireframes, copy = await store.load_collection(CollectionKey.TASKS)
        assert wireframes.due_date is None
        assert copy.due_date is None
        assert wireframes.completed is True

    @pytest.mark.asyncio
    async def test_time_logs(self, store):
        timer, manual = await store.load_collection(CollectionKey.TIME_LOGS)
        assert timer.task_id is None
        assert timer.end_time - timer.start_time == timedelta(minutes=90)
        assert manual.end_time is None
        assert manual.hourly_rate == Decimal("62.5")
        assert timer.earnings == Decimal("75")

    @pytest.mark.asyncio
    async def test_invoices(self, store):
        sent, overdue = await store.load_collection(CollectionKey.INVOICES)
        assert sent.project_id is None
        assert sent.items[1].amount == Decimal("19.99")
        assert sent.total == Decimal("519.99")
        assert sent.sent_at == datetime(2026, 1, 8, 11, tzinfo=timezone.utc)
        assert sent.paid_at is None
        assert overdue.status == InvoiceStatus.SENT
        assert overdue.discount_type == AdjustmentType.FLAT
        assert overdue.terms == "Net 15"

    @pytest.mark.asyncio
    async def test_settings(self, store):
        settings = await store.load_settings()
        assert settings.last_exchange_rate_update is None
        assert settings.exchange_rates == {"EUR": Decimal("0.92"), "GBP": Decimal("0.79")}
        assert settings.payment_confirmations is True


class TestLegacyRoundTrip:
    """Saving loaded legacy data keeps both the records and their layout."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", list(LEGACY_COLLECTIONS))
    async def test_save_and_reload(self, store, backend, key):
        loaded = await store.load_collection(key)
        await store.save_collection(key, loaded)

        assert await store.load_collection(key) == loaded
        saved = json.loads(await backend.get_item(key.value))
        originals = LEGACY_COLLECTIONS[key]
        for written, original in zip(saved, originals):
            assert set(original) <= set(written)

    @pytest.mark.asyncio
    async def test_money_stays_numeric(self, store, backend):
        invoices = await store.load_collection(CollectionKey.INVOICES)
        await store.save_collection(CollectionKey.INVOICES, invoices)

        [first, _] = json.loads(await backend.get_item("invoices"))
        assert first["total"] == 519.99
        assert first["items"][0]["amount"] == 500
        assert first["items"][1]["rate"] == 19.99

    @pytest.mark.asyncio
    async def test_settings_round_trip(self, store):
        settings = await store.load_settings()
        await store.save_settings(settings)
        assert await store.load_settings() == settings

    @pytest.mark.asyncio
    async def test_new_records_join_legacy_ones(self, store, backend):
        app = create_app_components(store=store)

        await app.projects.create(Project(client_id="m8k2c1a9f3x", name="Newsletter"))
        await app.tasks.set_completed("m8k4t0bbb02")
        await app.invoices.change_status("m8k6i0inv02", InvoiceStatus.PAID)

        projects = json.loads(await backend.get_item("projects"))
        assert [p["name"] for p in projects] == ["Website", "Logo", "Newsletter"]
        assert projects[0]["deadline"] is None
        assert (await app.tasks.get("m8k4t0bbb02")).completed is True
        paid = await app.invoices.get("m8k6i0inv02")
        assert paid.paid_at is not None
        assert len(await app.invoices.list_all()) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
