"""Statement of adjustments service: calculation, version history and lock workflow."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from ..calculations.soa import calculate_soa
from ..errors import LockedStateError, NotFoundError, PreconditionNotMetError
from ..models.lookups import ConfirmingParty, SOAVersionSource
from ..models.statements import AuditLogEntry, LockState, SOAVersion, StatementOfAdjustments
from .audit import AuditSink, InMemoryAuditSink, NotificationDispatcher, NullNotificationDispatcher
from .repository import ClosingRepository

logger = logging.getLogger(__name__)

ENTITY_TYPE = "StatementOfAdjustments"


@dataclass(frozen=True)
class Actor:
    """The user a recorded action is attributed to."""

    user_id: str
    role: str = "System"


class SOAService:
    """Calculates, versions and locks statements of adjustments.

    Args:
        repository: Source of units and projects, and store of snapshots.
        audit_sink: Receives audit-log entries.
        notifier: Informed of every new SOA version.
        clock: Returns the current time; injectable for deterministic tests.
    """

    def __init__(
        self,
        repository: ClosingRepository,
        audit_sink: Optional[AuditSink] = None,
        notifier: Optional[NotificationDispatcher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.audit_sink = audit_sink or InMemoryAuditSink()
        self.notifier = notifier or NullNotificationDispatcher()
        self.clock = clock

    # === Calculation ===

    def recalculate(self, unit_id: int) -> StatementOfAdjustments:
        """Calculate the unit's SOA without appending a version record.

        Raises:
            NotFoundError: If the unit or its project does not exist.
            LockedStateError: If the unit's SOA is locked.
        """
        with self.repository.transaction():
            return self._calculate(unit_id)

    def recalculate_and_record(self, unit_id: int, actor: Actor) -> StatementOfAdjustments:
        """Calculate the unit's SOA and append a version attributed to ``actor``."""
        with self.repository.transaction():
            soa = self._calculate(unit_id)
            figures = soa.figures
            self._append_version(
                unit_id,
                SOAVersionSource.SYSTEM_CALCULATION,
                actor,
                balance_due=figures.balance_due_on_closing,
                soa=soa,
                notes=f"Auto-calculated. Balance: ${figures.balance_due_on_closing:,.2f}",
            )
            return soa

    def calculate_soa(
        self,
        unit_id: int,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> StatementOfAdjustments:
        """Calculate the SOA, recording a version only when an actor is given."""
        if actor_id:
            return self.recalculate_and_record(unit_id, Actor(actor_id, actor_role or "System"))
        return self.recalculate(unit_id)

    def recalculate_soa(self, unit_id: int) -> StatementOfAdjustments:
        return self.recalculate(unit_id)

    def _calculate(self, unit_id: int) -> StatementOfAdjustments:
        unit = self.repository.get_unit(unit_id)
        project = self.repository.get_project(unit.project_id)

        existing = self.repository.get_soa(unit_id)
        if existing is not None and existing.is_locked:
            logger.warning("Attempted to recalculate locked SOA for Unit %s", unit_id)
            raise LockedStateError(unit_id)

        now = self.clock()
        figures = calculate_soa(unit, project, self.repository.fee_schedule, as_of=now.date())

        if existing is not None:
            self._audit(unit_id, "Recalculate", old_values={
                "balance_due_on_closing": existing.figures.balance_due_on_closing,
                "total_vendor_credits": existing.figures.total_vendor_credits,
                "total_purchaser_credits": existing.figures.total_purchaser_credits,
                "calculation_version": existing.calculation_version,
                "calculated_at": existing.recalculated_at or existing.calculated_at,
            })
            existing.apply_calculation(figures, now)
            soa = existing
        else:
            soa = StatementOfAdjustments(unit_id=unit_id, figures=figures, calculated_at=now)
            self.repository.save_soa(soa)

        logger.info(
            "SOA calculated for Unit %s. Balance Due: %s, HST: %s",
            unit_id, figures.balance_due_on_closing, figures.net_hst_payable,
        )
        return soa

    # === Version history ===

    def versions(self, unit_id: int) -> List[SOAVersion]:
        return self.repository.versions(unit_id)

    def record_lawyer_upload(
        self,
        unit_id: int,
        actor: Actor,
        balance_due: Decimal,
        file_path: Optional[str] = None,
    ) -> SOAVersion:
        """Record the balance from the lawyer's own statement of adjustments.

        The balance is stored on the SOA, audited, and appended to the version
        history. Without a calculated SOA only the version is appended.

        Raises:
            NotFoundError: If the unit does not exist.
            LockedStateError: If the unit's SOA is locked.
        """
        with self.repository.transaction():
            self.repository.get_unit(unit_id)
            soa = self.repository.get_soa(unit_id)
            if soa is not None:
                previous = soa.record_lawyer_balance(balance_due)
                self._audit(
                    unit_id, "LawyerUploadSOA", actor=actor,
                    old_values={"lawyer_uploaded_balance_due": previous} if previous is not None else {},
                    new_values={"lawyer_uploaded_balance_due": balance_due, "file_path": file_path},
                )
            version = self._append_version(
                unit_id,
                SOAVersionSource.LAWYER_UPLOAD,
                actor,
                balance_due=balance_due,
                soa=soa,
                file_path=file_path,
                notes=f"Lawyer upload. Balance: ${balance_due:,.2f}",
            )
        logger.info("Lawyer %s uploaded SOA for Unit %s, balance due: %s", actor.user_id, unit_id, balance_due)
        return version

    def _append_version(
        self,
        unit_id: int,
        source: SOAVersionSource,
        actor: Actor,
        balance_due: Decimal,
        soa: Optional[StatementOfAdjustments],
        file_path: Optional[str] = None,
        notes: str = "",
    ) -> SOAVersion:
        figures = soa.figures if soa is not None else None
        version = self.repository.append_version(SOAVersion(
            unit_id=unit_id,
            version_number=self.repository.last_version_number(unit_id) + 1,
            source=source,
            balance_due_on_closing=balance_due,
            total_vendor_credits=figures.total_vendor_credits if figures else Decimal("0"),
            total_purchaser_credits=figures.total_purchaser_credits if figures else Decimal("0"),
            cash_required_to_close=figures.cash_required_to_close if figures else Decimal("0"),
            created_by_user_id=actor.user_id,
            created_by_role=actor.role,
            created_at=self.clock(),
            uploaded_file_path=file_path,
            notes=notes,
        ))
        self.notifier.soa_version_created(version)
        return version

    # === Confirmation & lock workflow ===

    def confirm_soa(self, unit_id: int, party: ConfirmingParty, user_id: str) -> StatementOfAdjustments:
        """Record a builder or lawyer confirmation, then lock once both have confirmed.

        Raises:
            NotFoundError: If the unit has no SOA.
            LockedStateError: If the SOA is already locked.
        """
        with self.repository.transaction():
            soa = self._require_soa(unit_id)
            if not soa.confirm(party, user_id, self.clock()):
                logger.info("SOA for Unit %s already confirmed by %s", unit_id, party.value)
                return soa
            self._audit(unit_id, "ConfirmSOA", actor=Actor(user_id, party.value.title()),
                        new_values={"lock_state": soa.lock_state.value})
            if soa.lock_state is LockState.CONFIRMED:
                self.lock_soa(unit_id, user_id)
            return soa

    def lock_soa(self, unit_id: int, user_id: str) -> bool:
        """Lock the unit's SOA.

        Returns:
            True if locked, including when it already was; False if there is
            no SOA or a confirmation is missing.
        """
        with self.repository.transaction():
            soa = self.repository.get_soa(unit_id)
            if soa is None:
                return False
            if soa.is_locked:
                logger.info("SOA for Unit %s is already locked", unit_id)
                return True
            try:
                soa.lock(user_id, self.clock())
            except PreconditionNotMetError:
                logger.warning("Cannot lock SOA for Unit %s - missing confirmations", unit_id)
                return False
            self._audit(unit_id, "Lock", actor=Actor(user_id))

        logger.info("SOA locked for Unit %s by User %s", unit_id, user_id)
        return True

    def unlock_soa(self, unit_id: int, user_id: str, reason: str) -> bool:
        """Unlock the unit's SOA, clearing both confirmations.

        Unlocking is never refused for a locked SOA, but it is always logged
        and audited as a privileged action.

        Returns:
            True if unlocked; False if there is no SOA or it is not locked.
        """
        with self.repository.transaction():
            soa = self.repository.get_soa(unit_id)
            if soa is None or not soa.is_locked:
                return False
            locked_by = soa.locked_by_user_id
            soa.unlock()
            self._audit(
                unit_id, "Unlock", actor=Actor(user_id),
                old_values={"locked_by_user_id": locked_by},
                new_values={"reason": reason},
            )

        logger.warning("SOA unlocked for Unit %s by User %s. Reason: %s", unit_id, user_id, reason)
        return True

    # === Helpers ===

    def _require_soa(self, unit_id: int) -> StatementOfAdjustments:
        self.repository.get_unit(unit_id)
        soa = self.repository.get_soa(unit_id)
        if soa is None:
            raise NotFoundError("StatementOfAdjustments", unit_id)
        return soa

    def _audit(self, unit_id: int, action: str, actor: Optional[Actor] = None,
               old_values: Optional[dict] = None, new_values: Optional[dict] = None) -> None:
        self.audit_sink.record(AuditLogEntry(
            entity_type=ENTITY_TYPE,
            entity_id=unit_id,
            action=action,
            timestamp=self.clock(),
            user_id=actor.user_id if actor else None,
            user_role=actor.role if actor else None,
            old_values=old_values or {},
            new_values=new_values or {},
        ))
