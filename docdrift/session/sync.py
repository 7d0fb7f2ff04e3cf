"""Optimistic mutation and reconciliation of remote entities"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from docdrift.services.notifications import ToastManager
from docdrift.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    MESSAGE = "message"
    DOCUMENT = "document"
    CONVERSATION = "conversation"


class SyncOperation(str, Enum):
    SEND = "send"
    UPLOAD = "upload"
    TOGGLE = "toggle"
    DELETE = "delete"
    RENAME = "rename"
    CREATE = "create"


class FailurePolicy(str, Enum):
    FAIL_OPEN = "fail_open"  # fabricate placeholder state so the user sees a result
    FAIL_CLOSED = "fail_closed"  # leave state untouched, notify
    FAIL_CLOSED_RAISE = "fail_closed_raise"  # leave state untouched, notify, re-raise


class SyncOutcome(str, Enum):
    CONFIRMED = "confirmed"
    FALLBACK = "fallback"
    REJECTED = "rejected"
    SKIPPED = "skipped"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class SyncPolicy:
    failure: FailurePolicy
    failure_toast: str
    success_toast: Optional[str] = None
    success_title: str = ""


# Send and upload fall back to offline placeholders; toggle, delete and
# rename never fabricate state.
SYNC_POLICIES: dict[tuple[EntityKind, SyncOperation], SyncPolicy] = {
    (EntityKind.MESSAGE, SyncOperation.SEND): SyncPolicy(
        FailurePolicy.FAIL_OPEN,
        "Failed to send message. Using offline mode.",
    ),
    (EntityKind.DOCUMENT, SyncOperation.UPLOAD): SyncPolicy(
        FailurePolicy.FAIL_OPEN,
        "Failed to upload document. Using offline mode.",
        "{subject} uploaded successfully",
    ),
    (EntityKind.DOCUMENT, SyncOperation.TOGGLE): SyncPolicy(
        FailurePolicy.FAIL_CLOSED,
        "Failed to update document",
    ),
    (EntityKind.DOCUMENT, SyncOperation.DELETE): SyncPolicy(
        FailurePolicy.FAIL_CLOSED,
        "Failed to delete document",
        "Document deleted successfully",
    ),
    (EntityKind.CONVERSATION, SyncOperation.CREATE): SyncPolicy(
        FailurePolicy.FAIL_OPEN,
        "Failed to create conversation. Using offline mode.",
        "Conversation created successfully",
    ),
    (EntityKind.CONVERSATION, SyncOperation.RENAME): SyncPolicy(
        FailurePolicy.FAIL_CLOSED_RAISE,
        "Failed to rename conversation",
        "Title updated successfully",
        "Conversation renamed",
    ),
    (EntityKind.CONVERSATION, SyncOperation.DELETE): SyncPolicy(
        FailurePolicy.FAIL_CLOSED,
        "Failed to delete conversation",
        "Conversation deleted successfully",
    ),
}


class SyncResult(BaseModel):
    """Outcome of one synchronized command"""

    kind: EntityKind
    operation: SyncOperation
    outcome: SyncOutcome
    entity: Optional[Any] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == SyncOutcome.CONFIRMED


class EntitySynchronizer:
    """
    Runs a remote mutation between an optional optimistic step and a
    reconciliation step, applying the failure policy of SYNC_POLICIES.

    Order per call: optimistic() -> await remote() -> apply(result).
    On failure the policy decides: fallback() is only called for fail-open
    operations, and only if the optimistic step (when there is one) already
    happened.
    """

    def __init__(self, toast_manager: ToastManager, token: CancellationToken):
        self.toast_manager = toast_manager
        self._token = token

    @staticmethod
    def policy_for(kind: EntityKind, operation: SyncOperation) -> SyncPolicy:
        return SYNC_POLICIES[(kind, operation)]

    async def run(
        self,
        kind: EntityKind,
        operation: SyncOperation,
        remote: Callable[[], Awaitable[Any]],
        *,
        optimistic: Optional[Callable[[], None]] = None,
        apply: Optional[Callable[[Any], Any]] = None,
        fallback: Optional[Callable[[], Any]] = None,
        subject: str = "",
    ) -> SyncResult:
        policy = self.policy_for(kind, operation)
        optimistic_applied = False

        try:
            if optimistic:
                optimistic()
                optimistic_applied = True
            result = await remote()
        except Exception as e:
            if self._token.cancelled:
                return self._discarded(kind, operation, e)
            can_fall_back = optimistic is None or optimistic_applied
            return self._handle_failure(
                kind, operation, policy, e, fallback if can_fall_back else None
            )

        if self._token.cancelled:
            return self._discarded(kind, operation)

        entity = apply(result) if apply else result
        if policy.success_toast:
            self.toast_manager.success(
                policy.success_toast.format(subject=subject), policy.success_title
            )
        logger.debug(f"{kind.value}.{operation.value} confirmed")
        return SyncResult(kind=kind, operation=operation, outcome=SyncOutcome.CONFIRMED, entity=entity)

    def fail(
        self, kind: EntityKind, operation: SyncOperation, error: Exception
    ) -> SyncResult:
        """Apply the failure policy for an error raised before the remote step"""
        if self._token.cancelled:
            return self._discarded(kind, operation, error)
        return self._handle_failure(kind, operation, self.policy_for(kind, operation), error, None)

    def _handle_failure(
        self,
        kind: EntityKind,
        operation: SyncOperation,
        policy: SyncPolicy,
        error: Exception,
        fallback: Optional[Callable[[], Any]],
    ) -> SyncResult:
        logger.error(f"Failed to {operation.value} {kind.value}: {error}", exc_info=error)
        self.toast_manager.error(policy.failure_toast)

        if policy.failure == FailurePolicy.FAIL_CLOSED_RAISE:
            raise error

        if policy.failure == FailurePolicy.FAIL_OPEN and fallback is not None:
            entity = fallback()
            return SyncResult(
                kind=kind,
                operation=operation,
                outcome=SyncOutcome.FALLBACK,
                entity=entity,
                error=str(error),
            )

        return SyncResult(kind=kind, operation=operation, outcome=SyncOutcome.REJECTED, error=str(error))

    @staticmethod
    def _discarded(
        kind: EntityKind, operation: SyncOperation, error: Optional[Exception] = None
    ) -> SyncResult:
        logger.debug(f"{kind.value}.{operation.value} settled after teardown, result discarded")
        return SyncResult(
            kind=kind,
            operation=operation,
            outcome=SyncOutcome.DISCARDED,
            error=str(error) if error else None,
        )

    @staticmethod
    def skipped(kind: EntityKind, operation: SyncOperation) -> SyncResult:
        return SyncResult(kind=kind, operation=operation, outcome=SyncOutcome.SKIPPED)
