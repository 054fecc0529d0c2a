"""Single-flight contract ownership.

UNLOCKED → PURCHASE_PENDING → LOCKED(contract_id) → UNLOCKED. At most one
contract is ever open or pending. A lock held longer than ``hold_for`` clears
itself on the next check; ``hold_for`` is ``max_lock_duration`` or, when the
purchase names a longer span, that span.
"""
import time
from typing import Callable, Optional

from ..constants import LockState
from ..errors import InvariantViolation
from ..utils.logger import log


class ContractLock:
    def __init__(self, max_lock_duration: float = 900.0,
                 clock: Callable[[], float] = time.monotonic):
        self.max_lock_duration = max_lock_duration
        self._clock = clock
        self.state = LockState.UNLOCKED
        self.active_contract_id: Optional[str] = None
        self.lock_timestamp: Optional[float] = None
        self.hold_for = max_lock_duration

    @property
    def is_locked(self) -> bool:
        return self.state == LockState.LOCKED

    @property
    def purchase_pending(self) -> bool:
        return self.state == LockState.PURCHASE_PENDING

    def age(self) -> float:
        if self.lock_timestamp is None:
            return 0.0
        return self._clock() - self.lock_timestamp

    def is_engaged(self) -> bool:
        """True while a contract is open or pending. Releases a stale lock."""
        if self.state != LockState.UNLOCKED and self.age() > self.hold_for:
            log.warning("⚠️ Contract lock timeout after %.0fs (ID: %s) - force releasing",
                        self.age(), self.active_contract_id or "pending")
            self._reset()
            return False
        return self.state != LockState.UNLOCKED

    # ------------------------------------------------------------------
    def begin_purchase(self, hold_for: float = 0.0) -> bool:
        """Engage for a new order. ``hold_for`` is how long the contract may
        take to settle; the timeout never fires before it."""
        if self.is_engaged():
            log.warning("⚠️ Contract lock active - cannot request a new contract")
            return False
        self.state = LockState.PURCHASE_PENDING
        self.lock_timestamp = self._clock()
        self.hold_for = max(self.max_lock_duration, hold_for)
        log.info("⏳ Purchase pending - lock engaged")
        return True

    def confirm(self, contract_id: str):
        contract_id = str(contract_id)
        if self.state == LockState.LOCKED and self.active_contract_id != contract_id:
            raise InvariantViolation(
                f"purchase confirmed for {contract_id} while locked on {self.active_contract_id}")
        self.state = LockState.LOCKED
        self.active_contract_id = contract_id
        self.lock_timestamp = self._clock()
        log.info("🔒 Contract lock engaged - Contract ID: %s", contract_id)

    def release(self, contract_id: str):
        """Unlock on settlement of the active contract."""
        contract_id = str(contract_id)
        if self.state != LockState.LOCKED or self.active_contract_id != contract_id:
            raise InvariantViolation(
                f"settlement for {contract_id} does not match active contract "
                f"{self.active_contract_id or 'none'}")
        self._reset()

    def abort(self, reason: str = "purchase failed"):
        if self.state == LockState.UNLOCKED:
            return
        log.warning("⚠️ %s - releasing contract lock", reason)
        self._reset()

    def force_unlock(self, reason: str = "manual unlock"):
        log.warning("🔓 Force unlock (%s)", reason)
        self._reset()

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "is_locked": self.is_locked,
            "purchase_pending": self.purchase_pending,
            "active_contract_id": self.active_contract_id,
            "lock_timestamp": self.lock_timestamp,
            "max_lock_duration": self.max_lock_duration,
            "hold_for": self.hold_for,
        }

    def _reset(self):
        was_engaged = self.state != LockState.UNLOCKED
        self.state = LockState.UNLOCKED
        self.active_contract_id = None
        self.lock_timestamp = None
        self.hold_for = self.max_lock_duration
        if was_engaged:
            log.info("🔓 Contract lock released - ready for next trade")
