"""
Result types for lookups, reconciliation steps and whole provisioning runs.

Lookups return an explicit Found / NotFound / LookupFailed value so an absent
resource is never confused with a lookup that could not be answered.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    """The resource exists; ``descriptor`` is its current representation."""

    descriptor: T


@dataclass(frozen=True)
class NotFound:
    """Keycloak answered and the resource does not exist."""


@dataclass(frozen=True)
class LookupFailed:
    """The lookup itself failed, so existence is unknown."""

    cause: Exception


type Lookup[T] = Found[T] | NotFound | LookupFailed


class ReconciliationOutcome(Enum):
    """Per-step result classification."""

    CREATED = "Created"
    UPDATED = "Updated"
    ALREADY_SATISFIED = "AlreadySatisfied"
    FAILED = "Failed"


@dataclass
class StepResult:
    """Outcome of a single reconciliation step."""

    step: str
    outcome: ReconciliationOutcome
    detail: str = ""
    value: Any = field(default=None, repr=False)
    error: Exception | None = None
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.outcome is not ReconciliationOutcome.FAILED


class ProvisioningState(Enum):
    """States of the linear provisioning chain."""

    PENDING = "Pending"
    SERVICE_READY = "ServiceReady"
    AUTHENTICATED = "Authenticated"
    REALM_READY = "RealmReady"
    CLIENT_READY = "ClientReady"
    ROLE_READY = "RoleReady"
    USER_VERIFIED = "UserVerified"
    ROLE_GRANTED = "RoleGranted"
    SECRET_FETCHED = "SecretFetched"
    FAILED = "Failed"


@dataclass
class ProvisioningRun:
    """Record of one provisioning run, built up as the chain advances."""

    workspace_id: str
    state: ProvisioningState = ProvisioningState.PENDING
    results: list[StepResult] = field(default_factory=list)
    failed_state: ProvisioningState | None = None
    error: Exception | None = None
    client_secret: str | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.state is ProvisioningState.SECRET_FETCHED

    def outcome_of(self, step: str) -> ReconciliationOutcome | None:
        """Return the recorded outcome for ``step``, or None if it never ran."""
        for result in self.results:
            if result.step == step:
                return result.outcome
        return None
