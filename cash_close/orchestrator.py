"""
Main Orchestrator for Cash Close

This module ties together all the components and defines the
end-to-end flows for:
1. Save (draft → validate → reconcile prior day? → assemble → diff → audit → store)
2. Manual previous-day check (lookup → confirm → pendencies buffer only)
3. Delete and summary generation

DESIGN DECISION: The orchestrator enforces the boundaries:
- No store mutation before validation passes
- Exactly one audit entry per successful save
- Nothing from the workflow escapes as an exception; every outcome is a
  status plus an operator-visible message

Invalid reconciliation transitions (confirming a cancelled or already
confirmed session, a session for another date) come back as FAILED
results; the draft is left untouched.
"""

from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from cash_close.agents import SummaryAgent
from cash_close.assembly import (
    ClosingError,
    MissingCloserError,
    assemble,
    draft_from_record,
    empty_draft,
)
from cash_close.audit import (
    ClosingEventLogger,
    append_entry,
    build_save_description,
    compute_changes,
    configure_logging,
    resolve_actor_name,
)
from cash_close.config import get_settings, validate_all_settings
from cash_close.models.audit import AuditEntry, utc_now
from cash_close.models.record import (
    ClosingDraft,
    DailyRecord,
    StaffMember,
    format_display_date,
    staff_name_map,
)
from cash_close.reconciliation import (
    CarryForward,
    PriorDayReconciler,
    ReconciliationSession,
    ReconciliationStateError,
)
from cash_close.reports import ConsolidatedSummary, PeriodType, consolidate_period
from cash_close.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    GoogleSheetsStaffDirectory,
    InMemoryRecordStore,
    InMemoryStaffDirectory,
    JsonFileRecordStore,
    RecordStoreInterface,
    StaffDirectoryInterface,
    StorageError,
    VersionConflictError,
)
from cash_close.validation import ClosingValidator, ValidationResult


logger = structlog.get_logger(__name__)


class SaveStatus(str, Enum):
    SAVED = "saved"
    NEEDS_RECONCILIATION = "needs_reconciliation"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    CONFLICT = "conflict"
    FAILED = "failed"


class SaveResult(BaseModel):
    """Outcome of a save request, shown to the operator as `message`."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: SaveStatus
    record_date: str
    message: str
    record: Optional[DailyRecord] = None
    audit_entry: Optional[AuditEntry] = None
    validation: Optional[ValidationResult] = None
    session: Optional[ReconciliationSession] = None

    @property
    def saved(self) -> bool:
        return self.status == SaveStatus.SAVED


class DailyCloseFlow:
    """
    Orchestrates the daily closing.

    Flow:
    1. Load → reopen the stored record for a date, or start an empty draft
    2. Request save → validate the draft
    3. Reconcile → first save of a day prompts for the prior day's payments
    4. Confirm → unpaid prior payments become pendencies, then save
    5. Save → assemble, describe changes, append one audit entry, upsert

    Cancel at step 3 aborts the save with no record change.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        staff_directory: StaffDirectoryInterface,
        summary_agent: Optional[SummaryAgent] = None,
        validator: Optional[ClosingValidator] = None,
        event_logger: Optional[ClosingEventLogger] = None,
        reconciler: Optional[PriorDayReconciler] = None,
        enforce_version_check: Optional[bool] = None,
        deduplicate_carried_pendencies: Optional[bool] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        settings = get_settings().app
        self._store = store
        self._staff_directory = staff_directory
        self._summary_agent = summary_agent
        self._validator = validator or ClosingValidator()
        self._events = event_logger or ClosingEventLogger()
        self._reconciler = reconciler or PriorDayReconciler(store)
        self._enforce_version_check = (
            settings.enforce_version_check
            if enforce_version_check is None else enforce_version_check
        )
        self._deduplicate = (
            settings.deduplicate_carried_pendencies
            if deduplicate_carried_pendencies is None else deduplicate_carried_pendencies
        )
        self._clock = clock or utc_now

    @property
    def reconciler(self) -> PriorDayReconciler:
        return self._reconciler

    def _list_staff(self) -> list[StaffMember]:
        return self._staff_directory.list_staff()

    def _storage_failure(
        self,
        operation: str,
        record_date: str,
        error: StorageError,
    ) -> SaveResult:
        self._events.log_storage_error(operation, str(error), record_date)
        return SaveResult(
            status=SaveStatus.FAILED,
            record_date=record_date,
            message=f"Could not reach the record store: {error}",
        )

    def _stale_session(
        self,
        record_date: str,
        error: ReconciliationStateError,
    ) -> SaveResult:
        logger.warning("reconciliation_rejected", record_date=record_date, error=str(error))
        return SaveResult(
            status=SaveStatus.FAILED,
            record_date=record_date,
            message=f"This previous-day check is no longer open: {error}",
        )

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_draft(self, record_date: str) -> tuple[ClosingDraft, Optional[str]]:
        """
        Open a date for editing.

        Returns:
            (draft, message); message is set only when the store failed and
            an empty draft was returned instead.
        """
        try:
            record = self._store.get_by_date(record_date)
        except StorageError as e:
            self._events.log_storage_error("load", str(e), record_date)
            return empty_draft(record_date), f"Could not load {format_display_date(record_date)}: {e}"

        if record is None:
            return empty_draft(record_date), None
        return draft_from_record(record), None

    def validate_draft(self, draft: ClosingDraft) -> ValidationResult:
        return self._validator.validate(draft, self._list_staff())

    # -------------------------------------------------------------------------
    # Save path
    # -------------------------------------------------------------------------

    def _reject(self, draft: ClosingDraft, validation: ValidationResult) -> SaveResult:
        self._events.log_save_rejected(draft.date, validation.errors)
        return SaveResult(
            status=SaveStatus.REJECTED,
            record_date=draft.date,
            message=self._validator.get_user_friendly_summary(validation),
            validation=validation,
        )

    def request_save(self, draft: ClosingDraft) -> SaveResult:
        """
        Save the draft, or stop to ask about the prior day first.

        Returns NEEDS_RECONCILIATION with an open session when the date
        has no stored record and an earlier closing exists; the caller then
        calls confirm_reconciliation() or cancel_reconciliation().
        """
        try:
            staff = self._list_staff()
            validation = self._validator.validate(draft, staff)
            if not validation.is_valid:
                return self._reject(draft, validation)

            prior = self._reconciler.prior_to_prompt_for(draft)
        except StorageError as e:
            return self._storage_failure("save", draft.date, e)

        if prior is not None:
            session = self._reconciler.open_session(draft.date, prior)
            self._events.log_reconciliation_prompted(
                draft.date, prior.date, len(prior.payments), manual=False
            )
            return SaveResult(
                status=SaveStatus.NEEDS_RECONCILIATION,
                record_date=draft.date,
                message=(
                    f"Confirm which staff payments from "
                    f"{format_display_date(prior.date)} were paid"
                ),
                validation=validation,
                session=session,
            )

        return self._perform_save(draft, staff, validation)

    def _apply_carry_forward(
        self,
        draft: ClosingDraft,
        session: ReconciliationSession,
        staff: list[StaffMember],
    ) -> CarryForward:
        if session.target_date != draft.date:
            raise ReconciliationStateError(
                f"Session for {session.target_date} cannot be applied to {draft.date}"
            )

        carried = session.confirm(
            draft.pending_payables,
            staff_name_map(staff),
            deduplicate=self._deduplicate,
        )
        draft.pending_payables = carried.pending
        if session.prior_date not in draft.reconciled_prior_dates:
            draft.reconciled_prior_dates = [*draft.reconciled_prior_dates, session.prior_date]
        self._reconciler.close_session(session)

        self._events.log_reconciliation_confirmed(
            draft.date, session.prior_date, len(carried.added), len(carried.skipped)
        )
        return carried

    def confirm_reconciliation(
        self,
        draft: ClosingDraft,
        session: ReconciliationSession,
    ) -> SaveResult:
        """Carry unpaid prior payments into the draft, then save it."""
        try:
            staff = self._list_staff()
        except StorageError as e:
            return self._storage_failure("save", draft.date, e)

        try:
            self._apply_carry_forward(draft, session, staff)
        except ReconciliationStateError as e:
            return self._stale_session(draft.date, e)

        validation = self._validator.validate(draft, staff)
        if not validation.is_valid:
            return self._reject(draft, validation)
        return self._perform_save(draft, staff, validation)

    def cancel_reconciliation(self, session: ReconciliationSession) -> SaveResult:
        """Abort the pending save; nothing is written."""
        try:
            session.cancel()
        except ReconciliationStateError as e:
            return self._stale_session(session.target_date, e)
        self._reconciler.close_session(session)
        self._events.log_reconciliation_cancelled(session.target_date, session.prior_date)
        return SaveResult(
            status=SaveStatus.CANCELLED,
            record_date=session.target_date,
            message="Save cancelled. Nothing was changed.",
        )

    def _expected_version(self, draft: ClosingDraft) -> Optional[int]:
        if not self._enforce_version_check:
            return None
        return draft.base_version if draft.base_version is not None else 0

    def _perform_save(
        self,
        draft: ClosingDraft,
        staff: list[StaffMember],
        validation: Optional[ValidationResult] = None,
    ) -> SaveResult:
        """Assemble → describe → audit → upsert. Called once validation passed."""
        try:
            previous = self._store.get_by_date(draft.date)
            now = self._clock()
            candidate = assemble(draft, previous, now)

            description = build_save_description(previous, candidate, staff_name_map(staff))
            actor_name = resolve_actor_name(candidate.closed_by_staff_id, staff)
            record = candidate.model_copy(update={
                "audit_log": append_entry(candidate.audit_log, actor_name, description, now),
            })

            self._store.upsert(record, expected_version=self._expected_version(draft))
        except MissingCloserError as e:
            self._events.log_save_rejected(draft.date, [str(e)])
            return SaveResult(
                status=SaveStatus.REJECTED,
                record_date=draft.date,
                message=str(e),
                validation=validation,
            )
        except VersionConflictError as e:
            self._events.log_version_conflict(draft.date, e.expected_version, e.stored_version)
            return SaveResult(
                status=SaveStatus.CONFLICT,
                record_date=draft.date,
                message=(
                    f"The closing for {format_display_date(draft.date)} was changed "
                    "elsewhere. Reload it before saving again."
                ),
                validation=validation,
            )
        except StorageError as e:
            return self._storage_failure("save", draft.date, e)
        except ClosingError as e:
            logger.error("save_failed", record_date=draft.date, error=str(e))
            return SaveResult(
                status=SaveStatus.FAILED,
                record_date=draft.date,
                message=str(e),
                validation=validation,
            )

        draft.base_version = record.version
        draft.reconciled_prior_dates = list(record.reconciled_prior_dates)

        change_count = len(compute_changes(previous, record)) if previous else 0
        self._events.log_record_saved(record.date, record.version, actor_name, change_count)

        return SaveResult(
            status=SaveStatus.SAVED,
            record_date=record.date,
            message=f"Closing for {format_display_date(record.date)} saved.",
            record=record,
            audit_entry=record.audit_log[-1],
            validation=validation,
        )

    # -------------------------------------------------------------------------
    # Manual previous-day check
    # -------------------------------------------------------------------------

    def check_previous_day(
        self,
        draft: ClosingDraft,
    ) -> tuple[Optional[ReconciliationSession], str]:
        """
        Open a reconciliation session on request, outside the save path.

        Returns:
            (session, message); session is None when no earlier closing exists.
        """
        try:
            prior = self._reconciler.find_prior(draft.date)
        except StorageError as e:
            self._events.log_storage_error("previous_day_check", str(e), draft.date)
            return None, f"Could not reach the record store: {e}"

        if prior is None:
            self._events.log_reconciliation_not_found(draft.date)
            return None, (
                f"No closing found before {format_display_date(draft.date)}. Nothing to check."
            )

        session = self._reconciler.open_session(draft.date, prior, manual=True)
        self._events.log_reconciliation_prompted(
            draft.date, prior.date, len(prior.payments), manual=True
        )
        return session, (
            f"Confirm which staff payments from {format_display_date(prior.date)} were paid"
        )

    def confirm_previous_day_check(
        self,
        draft: ClosingDraft,
        session: ReconciliationSession,
    ) -> tuple[Optional[CarryForward], str]:
        """
        Carry unpaid prior payments into the draft without saving.

        Returns (None, message) when the session is no longer open.
        """
        try:
            staff = self._list_staff()
        except StorageError as e:
            self._events.log_storage_error("previous_day_check", str(e), draft.date)
            staff = []

        try:
            carried = self._apply_carry_forward(draft, session, staff)
        except ReconciliationStateError as e:
            return None, self._stale_session(draft.date, e).message

        message = f"{len(carried.added)} pending payment(s) added."
        if carried.skipped:
            message += f" {len(carried.skipped)} already listed."
        return carried, message

    # -------------------------------------------------------------------------
    # Delete, summary, reports
    # -------------------------------------------------------------------------

    def delete_record(self, record_date: str) -> tuple[bool, str]:
        """Remove a date's closing; deleting a missing date is a no-op."""
        try:
            existed = self._store.delete(record_date)
        except StorageError as e:
            self._events.log_storage_error("delete", str(e), record_date)
            return False, f"Could not delete {format_display_date(record_date)}: {e}"

        self._reconciler.forget(record_date)
        self._events.log_record_deleted(record_date, existed)
        if existed:
            return True, f"Closing for {format_display_date(record_date)} deleted."
        return False, f"No closing saved for {format_display_date(record_date)}."

    async def generate_summary(self, record_date: str) -> tuple[Optional[str], str]:
        """
        Summary text for a saved closing.

        Runs on the stored record only, never on a draft; failures fall
        back to the static summary and never touch the store.
        """
        try:
            record = self._store.get_by_date(record_date)
            staff = self._list_staff()
        except StorageError as e:
            self._events.log_storage_error("summary", str(e), record_date)
            return None, f"Could not reach the record store: {e}"

        if record is None:
            return None, f"No closing saved for {format_display_date(record_date)}."

        if self._summary_agent is None:
            self._summary_agent = SummaryAgent()

        result = await self._summary_agent.summarize(record, staff)
        if result.used_ai:
            self._events.log_summary_generated(record_date, used_ai=True)
            return result.text, "Summary generated."

        self._events.log_summary_fallback(record_date, result.error_message or "")
        return result.text, "Summary generated from the standard template."

    def consolidated_report(
        self,
        period: PeriodType,
        today: Optional[date] = None,
    ) -> tuple[Optional[ConsolidatedSummary], str]:
        """Totals for a predefined window ending today."""
        try:
            records = self._store.list_all()
        except StorageError as e:
            self._events.log_storage_error("report", str(e))
            return None, f"Could not reach the record store: {e}"

        summary = consolidate_period(records, period, today)
        if not summary.data_found:
            return summary, "No closings found in the selected period."
        return summary, f"{summary.record_count} closing(s) consolidated."


def create_app_components(
    staff: Optional[list[StaffMember]] = None,
    backend: Optional[str] = None,
) -> DailyCloseFlow:
    """
    Factory function to create the closing flow from settings.

    Args:
        staff: Staff directory for the memory and json backends
        backend: Overrides the configured store backend

    Returns:
        A DailyCloseFlow wired to the selected store
    """
    settings = get_settings().app
    configure_logging()

    backend = backend or settings.store_backend
    if backend == "memory":
        store = InMemoryRecordStore()
        staff_directory = InMemoryStaffDirectory(staff)
    elif backend == "json":
        store = JsonFileRecordStore(settings.json_store_path)
        staff_directory = InMemoryStaffDirectory(staff)
    elif backend == "google_sheets":
        client = GoogleSheetsClient()
        store = GoogleSheetsRecordStore(client)
        staff_directory = GoogleSheetsStaffDirectory(client)
    else:
        raise ValueError(f"Unknown store backend: {backend}")

    services = validate_all_settings()
    if not services.get("gemini"):
        logger.warning("gemini_not_configured", fallback="static_summary")
    if backend == "google_sheets" and not services.get("google_sheets"):
        logger.warning("google_sheets_settings_invalid", error=services.get("google_sheets_error"))

    logger.info("app_components_created", backend=backend, services=services)
    return DailyCloseFlow(store=store, staff_directory=staff_directory)
