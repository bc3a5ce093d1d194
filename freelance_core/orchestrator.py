"""
Main Orchestrator for Freelance Core

This module ties the store, validator, calculator and logger together
into the create / edit / delete flows the screens call.

Every mutation follows the same lifecycle:
1. Load the collection (under the collection's write lock)
2. Build the new collection (append / replace by id / filter by id)
3. Validate the affected record against the collection
4. Save the whole collection
5. Return the saved record; the caller updates its view only now

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing invalid is written
- Nothing is half-written (a failed save leaves the old collection)
- No two writes to one collection interleave
- Deletes never cascade: dangling references are a normal state
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Generic, Optional, TypeVar
from uuid import UUID

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from freelance_core.activity import ActivityLogger, configure_logging
from freelance_core.config import ExchangeRateSettings, Settings, get_settings
from freelance_core.identifiers import generate_invoice_number
from freelance_core.invoicing.calculator import Number, apply_totals, to_decimal
from freelance_core.models.activity import ActivityEventBuilder
from freelance_core.models.app_settings import AppSettings
from freelance_core.models.entities import (
    AdjustmentType,
    Client,
    Entity,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Project,
    Task,
    TimeLog,
    utcnow,
)
from freelance_core.models.validation import ValidationResult
from freelance_core.queries import WorkspaceQueries, find_by_id
from freelance_core.services.exchange import ExchangeRateError, ExchangeRateProvider
from freelance_core.services.storage import (
    CollectionKey,
    DuplicateError,
    NotFoundError,
    PersistenceStore,
    create_backend,
)
from freelance_core.validation import EntityValidationError, EntityValidator


T = TypeVar("T", bound=Entity)


class CollectionService(Generic[T]):
    """
    Create / edit / delete for one collection.

    Every mutation is a serialized read-modify-write through
    PersistenceStore.update_collection, so two in-flight edits to the
    same collection cannot overwrite each other.
    """

    key: CollectionKey
    entity_type: str

    def __init__(
        self,
        store: PersistenceStore,
        validator: Optional[EntityValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._store = store
        self._validator = validator or EntityValidator()
        self._activity = activity_logger or ActivityLogger()

    async def list_all(self) -> list[T]:
        return await self._store.load_collection(self.key)

    async def get(self, entity_id: str) -> Optional[T]:
        """The record, or None if no record has this id."""
        return find_by_id(await self.list_all(), entity_id)

    def _validate(
        self,
        entity: T,
        current: list[T],
        correlation_id: Optional[UUID],
    ) -> ValidationResult:
        try:
            return self._validator.ensure_valid(entity, current)
        except EntityValidationError as e:
            self._activity.log_validation_failed(
                entity_type=self.entity_type,
                entity_id=entity.id,
                issues=[issue.model_dump() for issue in e.result.issues],
                correlation_id=correlation_id,
            )
            raise

    async def create(self, entity: T, correlation_id: Optional[UUID] = None) -> T:
        """
        Append a new record and save the collection.

        Raises:
            EntityValidationError: Required fields missing / semantic errors
            DuplicateError: A record with this id already exists
            StorageReadError: The stored collection does not decode
                              (nothing written)
            StorageWriteError: The save failed (nothing changed)
        """
        def mutate(current: list[T]) -> list[T]:
            if find_by_id(current, entity.id) is not None:
                raise DuplicateError(f"{self.entity_type} {entity.id} already exists")
            self._validate(entity, current, correlation_id)
            return [*current, entity]

        await self._store.update_collection(self.key, mutate)
        self._activity.log_entity_created(self.entity_type, entity.id, correlation_id)
        return entity

    async def update(self, entity: T, correlation_id: Optional[UUID] = None) -> T:
        """
        Replace the record with the same id and save the collection.

        Raises:
            NotFoundError: No record has this id
            EntityValidationError: The edited record is invalid
            StorageReadError: The stored collection does not decode
            StorageWriteError: The save failed (nothing changed)
        """
        def mutate(current: list[T]) -> list[T]:
            if find_by_id(current, entity.id) is None:
                raise NotFoundError(f"{self.entity_type} not found: {entity.id}")
            self._validate(entity, current, correlation_id)
            return [entity if item.id == entity.id else item for item in current]

        await self._store.update_collection(self.key, mutate)
        self._activity.log_entity_updated(self.entity_type, entity.id, correlation_id)
        return entity

    async def delete(self, entity_id: str, correlation_id: Optional[UUID] = None) -> bool:
        """
        Remove the record with entity_id and save the collection.

        Returns:
            True if a record was removed, False if none had this id
        """
        removed = False

        def mutate(current: list[T]) -> list[T]:
            nonlocal removed
            remaining = [item for item in current if item.id != entity_id]
            removed = len(remaining) != len(current)
            return remaining

        await self._store.update_collection(self.key, mutate)
        if removed:
            self._activity.log_entity_deleted(self.entity_type, entity_id, correlation_id)
        return removed

    async def modify(
        self,
        entity_id: str,
        change: Callable[[T], T],
        correlation_id: Optional[UUID] = None,
    ) -> T:
        """
        Apply change() to the stored record under the collection lock.

        Use this instead of get() + update() when the edit depends on the
        stored state, so no concurrent write can slip in between.
        """
        result: dict[str, T] = {}

        def mutate(current: list[T]) -> list[T]:
            existing = find_by_id(current, entity_id)
            if existing is None:
                raise NotFoundError(f"{self.entity_type} not found: {entity_id}")
            updated = change(existing)
            self._validate(updated, current, correlation_id)
            result["entity"] = updated
            return [updated if item.id == entity_id else item for item in current]

        await self._store.update_collection(self.key, mutate)
        self._activity.log_entity_updated(self.entity_type, entity_id, correlation_id)
        return result["entity"]


class ClientService(CollectionService[Client]):
    """
    Clients.

    Deleting a client does NOT touch its projects or invoices; they keep
    the dangling client_id and display as "Unknown Client".
    """
    key = CollectionKey.CLIENTS
    entity_type = "client"


class ProjectService(CollectionService[Project]):
    key = CollectionKey.PROJECTS
    entity_type = "project"


class TaskService(CollectionService[Task]):
    key = CollectionKey.TASKS
    entity_type = "task"

    async def set_completed(
        self,
        task_id: str,
        completed: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> Task:
        return await self.modify(
            task_id,
            lambda task: task.model_copy(update={"completed": completed}),
            correlation_id,
        )


class TimeLogService(CollectionService[TimeLog]):
    key = CollectionKey.TIME_LOGS
    entity_type = "time log"

    async def log_time(
        self,
        project: Project,
        start_time: datetime,
        duration: int,
        description: str = "",
        task_id: Optional[str] = None,
        end_time: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TimeLog:
        """
        Record time against a project.

        The project's current hourly rate is copied into the log and
        stays there even if the project's rate changes later.
        """
        log = TimeLog(
            project_id=project.id,
            task_id=task_id,
            description=description,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            hourly_rate=project.hourly_rate,
        )
        return await self.create(log, correlation_id)


class InvoiceService(CollectionService[Invoice]):
    """
    Invoices.

    save() is the only path that writes totals: it recomputes every
    item amount from quantity x rate, recomputes the totals, and
    applies the status transition.
    """
    key = CollectionKey.INVOICES
    entity_type = "invoice"

    def new_draft(
        self,
        settings: AppSettings,
        today: Optional[date] = None,
    ) -> Invoice:
        """A blank invoice pre-filled from the user's defaults. Not saved."""
        today = today or date.today()
        return Invoice(
            invoice_number=generate_invoice_number(settings.invoice_prefix),
            issue_date=today,
            due_date=settings.due_date_for(today),
            currency=settings.currency,
            discount=Decimal(0),
            discount_type=AdjustmentType.FLAT,
            tax=settings.tax_rate,
            tax_type=AdjustmentType.PERCENTAGE,
            notes=settings.default_invoice_notes,
        )

    @staticmethod
    def add_item(
        invoice: Invoice,
        description: str,
        quantity: Number = 1,
        rate: Number = 0,
    ) -> Invoice:
        """Return a copy of invoice with one more line (amount = quantity x rate)."""
        quantity = to_decimal(quantity)
        rate = to_decimal(rate)
        item = InvoiceItem(
            description=description,
            quantity=quantity,
            rate=rate,
            amount=quantity * rate,
        )
        return invoice.model_copy(update={"items": [*invoice.items, item]})

    @staticmethod
    def remove_item(invoice: Invoice, item_id: str) -> Invoice:
        return invoice.model_copy(update={
            "items": [item for item in invoice.items if item.id != item_id],
        })

    @staticmethod
    def prepare(invoice: Invoice, invoice_prefix: str = "INV") -> Invoice:
        """
        Normalize an invoice for saving.

        - every item amount becomes quantity x rate
        - subtotal / discount_amount / tax_amount / total are recomputed
        - a blank invoice number is generated from invoice_prefix
        """
        items = [item.with_recomputed_amount() for item in invoice.items]
        number = invoice.invoice_number.strip() or generate_invoice_number(invoice_prefix)
        normalized = invoice.model_copy(update={"items": items, "invoice_number": number})
        return apply_totals(normalized)

    async def save(
        self,
        invoice: Invoice,
        status: Optional[InvoiceStatus] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Invoice:
        """
        Create or update an invoice in the given status.

        sent_at / paid_at are stamped only on the first transition into
        sent / paid; an earlier stamp (on the stored copy or the given
        one) is never overwritten.

        Raises:
            EntityValidationError: Missing client/items/due date, or the
                                   invoice number is already in use
            StorageWriteError: The save failed (nothing changed)
        """
        settings = await self._store.load_settings()
        prepared = self.prepare(invoice, settings.invoice_prefix)
        target_status = status or prepared.status
        result: dict = {}

        def mutate(current: list[Invoice]) -> list[Invoice]:
            existing = find_by_id(current, prepared.id)
            base = prepared
            if existing is not None:
                base = prepared.model_copy(update={
                    "created_at": existing.created_at,
                    "sent_at": existing.sent_at or prepared.sent_at,
                    "paid_at": existing.paid_at or prepared.paid_at,
                })
            saved = base.with_status(target_status)
            self._validate(saved, current, correlation_id)
            result["invoice"] = saved
            result["previous_status"] = existing.status if existing else None
            if existing is None:
                return [*current, saved]
            return [saved if item.id == saved.id else item for item in current]

        await self._store.update_collection(self.key, mutate)

        saved = result["invoice"]
        previous = result["previous_status"]
        if previous is None:
            self._activity.log_entity_created(self.entity_type, saved.id, correlation_id)
        else:
            self._activity.log_entity_updated(self.entity_type, saved.id, correlation_id)
            if previous != saved.status:
                self._activity.log_invoice_status_changed(
                    saved.id, previous.value, saved.status.value, correlation_id
                )
        return saved

    async def change_status(
        self,
        invoice_id: str,
        new_status: InvoiceStatus,
        correlation_id: Optional[UUID] = None,
    ) -> Invoice:
        """
        Move an invoice to new_status without touching anything else.

        Raises:
            NotFoundError: No invoice has this id
        """
        previous: dict[str, InvoiceStatus] = {}

        def change(invoice: Invoice) -> Invoice:
            previous["status"] = invoice.status
            return invoice.with_status(new_status)

        updated = await self.modify(invoice_id, change, correlation_id)
        if previous["status"] != updated.status:
            self._activity.log_invoice_status_changed(
                invoice_id, previous["status"].value, updated.status.value, correlation_id
            )
        return updated


class SettingsService:
    """
    The settings record, the onboarding flag and the rate snapshot.
    """

    def __init__(
        self,
        store: PersistenceStore,
        rate_settings: Optional[ExchangeRateSettings] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._store = store
        self._rate_settings = rate_settings or ExchangeRateSettings()
        self._activity = activity_logger or ActivityLogger()

    async def load(self) -> AppSettings:
        return await self._store.load_settings()

    async def save(self, settings: AppSettings) -> AppSettings:
        await self._store.save_settings(settings)
        return settings

    async def is_onboarding_completed(self) -> bool:
        return await self._store.is_onboarding_completed()

    async def complete_onboarding(self) -> None:
        await self._store.set_onboarding_completed()

    async def update_exchange_rates(
        self,
        provider: ExchangeRateProvider,
        settings: Optional[AppSettings] = None,
    ) -> AppSettings:
        """
        Refresh the stored rate snapshot from provider.

        The provider is retried with exponential back-off. If it still
        fails, the failure is logged and the settings come back
        unchanged: an ExchangeRateError as exchange_rates_failed, any
        other exception as a system error. A failure to SAVE the new
        snapshot propagates.
        """
        settings = settings or await self.load()
        base = settings.currency

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._rate_settings.retry_attempts),
                wait=wait_exponential(
                    multiplier=1,
                    min=self._rate_settings.retry_min_wait,
                    max=self._rate_settings.retry_max_wait,
                ),
                reraise=True,
            ):
                with attempt:
                    rates = await provider.fetch_rates(base)
        except ExchangeRateError as e:
            self._activity.log(ActivityEventBuilder.exchange_rates_failed(base, str(e)))
            return settings
        except Exception as e:
            # Unexpected provider failure
            self._activity.log_error(
                type(e).__name__,
                str(e),
                {"operation": "update_exchange_rates", "base_currency": base},
            )
            return settings

        updated = settings.model_copy(update={
            "exchange_rates": {
                code.upper(): to_decimal(rate) for code, rate in rates.items()
            },
            "last_exchange_rate_update": utcnow(),
        })
        await self.save(updated)
        self._activity.log(ActivityEventBuilder.exchange_rates_updated(base, len(rates)))
        return updated


@dataclass
class AppComponents:
    """Everything a front-end needs, wired to one store."""
    store: PersistenceStore
    clients: ClientService
    projects: ProjectService
    tasks: TaskService
    time_logs: TimeLogService
    invoices: InvoiceService
    settings: SettingsService
    queries: WorkspaceQueries


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[PersistenceStore] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Runtime configuration (defaults to get_settings())
        store: An already-built store; if None one is built from
               settings.storage

    Returns:
        AppComponents sharing one store, validator and activity logger
    """
    settings = settings or get_settings()
    configure_logging(settings.logging)

    activity_logger = ActivityLogger()
    if store is None:
        storage_settings = settings.storage
        store = PersistenceStore(
            create_backend(storage_settings),
            activity_logger=activity_logger,
            write_timeout=storage_settings.write_timeout_seconds,
        )

    validator = EntityValidator()
    common = dict(validator=validator, activity_logger=activity_logger)

    return AppComponents(
        store=store,
        clients=ClientService(store, **common),
        projects=ProjectService(store, **common),
        tasks=TaskService(store, **common),
        time_logs=TimeLogService(store, **common),
        invoices=InvoiceService(store, **common),
        settings=SettingsService(
            store,
            rate_settings=settings.exchange_rates,
            activity_logger=activity_logger,
        ),
        queries=WorkspaceQueries(store),
    )
