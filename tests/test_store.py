"""
Tests for the key-value backends and the PersistenceStore.
"""

import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from freelance_core.config import StorageSettings
from freelance_core.models.app_settings import AppSettings
from freelance_core.models.entities import Client, Invoice, InvoiceItem, InvoiceStatus, Project
from freelance_core.services.storage import (
    CollectionKey,
    FileKeyValueBackend,
    InMemoryKeyValueBackend,
    ONBOARDING_KEY,
    PersistenceStore,
    QuotaExceededError,
    SETTINGS_KEY,
    StorageError,
    StorageReadError,
    StorageWriteError,
    create_backend,
)


class SlowWriteBackend(InMemoryKeyValueBackend):
    """Writes take longer than any sane timeout."""

    async def set_item(self, key, value):
        await asyncio.sleep(1)
        await super().set_item(key, value)


class YieldingBackend(InMemoryKeyValueBackend):
    """Yields to the event loop on every call so tasks can interleave."""

    async def get_item(self, key):
        await asyncio.sleep(0)
        return await super().get_item(key)

    async def set_item(self, key, value):
        await asyncio.sleep(0)
        await super().set_item(key, value)


@pytest.fixture
def backend():
    return InMemoryKeyValueBackend()


@pytest.fixture
def store(backend):
    return PersistenceStore(backend)


class TestInMemoryBackend:
    """Tests for the dict-backed backend."""

    @pytest.mark.asyncio
    async def test_set_get_remove(self, backend):
        await backend.set_item("clients", "[]")
        assert await backend.get_item("clients") == "[]"
        assert await backend.keys() == ["clients"]
        await backend.remove_item("clients")
        assert await backend.get_item("clients") is None

    @pytest.mark.asyncio
    async def test_quota_refuses_write_and_keeps_prior_value(self):
        backend = InMemoryKeyValueBackend(quota_bytes=10)
        await backend.set_item("clients", "[]")
        with pytest.raises(QuotaExceededError):
            await backend.set_item("clients", "x" * 50)
        assert await backend.get_item("clients") == "[]"

    @pytest.mark.asyncio
    async def test_rejects_invalid_key(self, backend):
        with pytest.raises(StorageError):
            await backend.set_item("../etc", "x")


class TestFileBackend:
    """Tests for the one-file-per-slot backend."""

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        backend = FileKeyValueBackend(tmp_path / "data")
        await backend.set_item("clients", '[{"name": "Acme"}]')
        assert await backend.get_item("clients") == '[{"name": "Acme"}]'
        assert (tmp_path / "data" / "clients.json").exists()

    @pytest.mark.asyncio
    async def test_absent_key(self, tmp_path):
        backend = FileKeyValueBackend(tmp_path)
        assert await backend.get_item("invoices") is None
        assert await backend.keys() == []

    @pytest.mark.asyncio
    async def test_overwrite_leaves_no_temp_files(self, tmp_path):
        backend = FileKeyValueBackend(tmp_path)
        await backend.set_item("settings", "{}")
        await backend.set_item("settings", '{"currency": "EUR"}')
        assert [p.name for p in tmp_path.iterdir()] == ["settings.json"]
        assert await backend.get_item("settings") == '{"currency": "EUR"}'

    @pytest.mark.asyncio
    async def test_keys_and_remove(self, tmp_path):
        backend = FileKeyValueBackend(tmp_path)
        await backend.set_item("tasks", "[]")
        await backend.set_item("clients", "[]")
        assert await backend.keys() == ["clients", "tasks"]
        await backend.remove_item("tasks")
        await backend.remove_item("tasks")
        assert await backend.keys() == ["clients"]

    @pytest.mark.asyncio
    async def test_rejects_path_traversal(self, tmp_path):
        backend = FileKeyValueBackend(tmp_path)
        with pytest.raises(StorageError):
            await backend.get_item("../secrets")

    def test_create_backend_from_settings(self, tmp_path):
        memory = create_backend(StorageSettings(backend="memory", quota_bytes=100))
        assert isinstance(memory, InMemoryKeyValueBackend)
        files = create_backend(StorageSettings(backend="file", data_dir=tmp_path))
        assert isinstance(files, FileKeyValueBackend)
        assert files.directory == tmp_path


class TestCollections:
    """Tests for whole-collection load / save."""

    @pytest.mark.asyncio
    async def test_missing_collection_is_empty(self, store):
        assert await store.load_collection(CollectionKey.CLIENTS) == []

    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        clients = [Client(name="Acme"), Client(name="Globex", currency="eur")]
        await store.save_collection(CollectionKey.CLIENTS, clients)
        assert await store.load_collection(CollectionKey.CLIENTS) == clients

    @pytest.mark.asyncio
    async def test_blob_is_camel_case_json_array(self, store, backend):
        invoice = Invoice(
            client_id="c1",
            items=[InvoiceItem(description="Work", rate=Decimal("10"))],
        )
        await store.save_collection(CollectionKey.INVOICES, [invoice])
        blob = json.loads(await backend.get_item("invoices"))
        assert isinstance(blob, list)
        assert blob[0]["clientId"] == "c1"
        assert blob[0]["items"][0]["amount"] == 10

    @pytest.mark.asyncio
    async def test_corrupt_blob_loads_empty(self, store, backend):
        await backend.set_item("clients", "{not json")
        assert await store.load_collection(CollectionKey.CLIENTS) == []

    @pytest.mark.asyncio
    async def test_non_array_blob_loads_empty(self, store, backend):
        await backend.set_item("projects", '{"id": "p1"}')
        assert await store.load_collection(CollectionKey.PROJECTS) == []

    @pytest.mark.asyncio
    async def test_legacy_overdue_invoice_loads(self, store, backend):
        await backend.set_item(
            "invoices",
            '[{"id": "i1", "clientId": "c1", "status": "overdue", "total": "12.50"}]',
        )
        [invoice] = await store.load_collection(CollectionKey.INVOICES)
        assert invoice.status == InvoiceStatus.SENT
        assert invoice.total == Decimal("12.50")

    @pytest.mark.asyncio
    async def test_wrong_model_type_rejected(self, store):
        with pytest.raises(TypeError):
            await store.save_collection(CollectionKey.INVOICES, [Client(name="Acme")])

    @pytest.mark.asyncio
    async def test_quota_failure_keeps_previous_collection(self):
        backend = InMemoryKeyValueBackend(quota_bytes=1000)
        store = PersistenceStore(backend)
        original = [Client(name="Acme")]
        await store.save_collection(CollectionKey.CLIENTS, original)

        with pytest.raises(StorageWriteError):
            await store.save_collection(
                CollectionKey.CLIENTS,
                [Client(name=f"Client {n}") for n in range(50)],
            )

        assert await store.load_collection(CollectionKey.CLIENTS) == original

    @pytest.mark.asyncio
    async def test_write_timeout_raises(self):
        store = PersistenceStore(SlowWriteBackend(), write_timeout=0.05)
        with pytest.raises(StorageWriteError, match="Timed out"):
            await store.save_collection(CollectionKey.CLIENTS, [Client(name="Acme")])
        assert await store.load_collection(CollectionKey.CLIENTS) == []

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_serialized(self):
        store = PersistenceStore(YieldingBackend())

        async def add(n):
            await store.update_collection(
                CollectionKey.CLIENTS,
                lambda current: [*current, Client(name=f"Client {n}")],
            )

        await asyncio.gather(*(add(n) for n in range(20)))
        clients = await store.load_collection(CollectionKey.CLIENTS)
        assert len(clients) == 20

    @pytest.mark.asyncio
    async def test_failed_mutation_writes_nothing(self, store):
        await store.save_collection(CollectionKey.CLIENTS, [Client(name="Acme")])

        def explode(current):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.update_collection(CollectionKey.CLIENTS, explode)
        assert len(await store.load_collection(CollectionKey.CLIENTS)) == 1

    @pytest.mark.asyncio
    async def test_update_refuses_to_overwrite_undecodable_slot(self, store, backend):
        """A slot that exists but won't decode must survive an update."""
        corrupt = '[{"id": "p1", "clientId": "c1", "name": "Site", "hourlyRate": "lots"}]'
        await backend.set_item("projects", corrupt)
        called = []

        with pytest.raises(StorageReadError):
            await store.update_collection(
                CollectionKey.PROJECTS,
                lambda current: called.append(current) or current,
            )

        assert called == []
        assert await backend.get_item("projects") == corrupt
        assert await store.load_collection(CollectionKey.PROJECTS) == []

    @pytest.mark.asyncio
    async def test_update_on_absent_slot_starts_empty(self, store):
        saved = await store.update_collection(
            CollectionKey.CLIENTS,
            lambda current: [*current, Client(name="Acme")],
        )
        assert [client.name for client in saved] == ["Acme"]

    @pytest.mark.asyncio
    async def test_update_keeps_records_with_blank_deadline(self, store, backend):
        await backend.set_item("projects", json.dumps([{
            "id": "legacy", "clientId": "c1", "name": "Old site",
            "startDate": "2025-06-01", "deadline": "", "hourlyRate": 50,
            "createdAt": "2025-06-01T08:00:00.000Z",
        }]))

        await store.update_collection(
            CollectionKey.PROJECTS,
            lambda current: [*current, Project(id="new", client_id="c1", name="New site")],
        )

        projects = await store.load_collection(CollectionKey.PROJECTS)
        assert [project.id for project in projects] == ["legacy", "new"]
        assert projects[0].deadline is None


class TestSettingsRecord:
    """Tests for the settings record and onboarding flag."""

    @pytest.mark.asyncio
    async def test_missing_settings_are_defaults(self, store):
        assert await store.load_settings() == AppSettings()

    @pytest.mark.asyncio
    async def test_partial_record_merged_with_defaults(self, store, backend):
        await backend.set_item(SETTINGS_KEY, '{"currency": "eur", "invoicePrefix": "ACME"}')
        settings = await store.load_settings()
        assert settings.currency == "EUR"
        assert settings.invoice_prefix == "ACME"
        assert settings.default_hourly_rate == Decimal("50")

    @pytest.mark.asyncio
    async def test_null_values_fall_back_to_defaults(self, store, backend):
        await backend.set_item(SETTINGS_KEY, '{"taxRate": null, "themeMode": null}')
        settings = await store.load_settings()
        assert settings.tax_rate == Decimal("0")
        assert settings == AppSettings()

    @pytest.mark.asyncio
    async def test_corrupt_settings_are_defaults(self, store, backend):
        await backend.set_item(SETTINGS_KEY, "[1, 2, 3]")
        assert await store.load_settings() == AppSettings()

    @pytest.mark.asyncio
    async def test_loading_twice_is_idempotent(self, store, backend):
        await backend.set_item(SETTINGS_KEY, '{"currency": "JPY"}')
        assert await store.load_settings() == await store.load_settings()

    @pytest.mark.asyncio
    async def test_save_and_reload(self, store):
        settings = AppSettings(
            currency="EUR",
            exchange_rates={"USD": Decimal("1.08")},
            last_exchange_rate_update=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        await store.save_settings(settings)
        assert await store.load_settings() == settings

    @pytest.mark.asyncio
    async def test_onboarding_flag(self, store, backend):
        assert await store.is_onboarding_completed() is False
        await store.set_onboarding_completed()
        assert await store.is_onboarding_completed() is True
        assert await backend.get_item(ONBOARDING_KEY) == "true"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
