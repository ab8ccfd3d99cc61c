"""Connection health state machine and reconnect backoff policy.

The state of a connection is an immutable record. Transports never mutate
it in place; they replace it with the result of one of the named transition
functions below, which keeps every transition checkable on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from ..exceptions import InvalidTransitionError


class HealthState(str, Enum):
    """Caller-observable lifecycle phase of a connection."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"
    ERROR = "error"


# Explicit close() may always move to CLOSED; it is checked separately.
ALLOWED_TRANSITIONS: dict[HealthState, frozenset[HealthState]] = {
    HealthState.CLOSED: frozenset({HealthState.CONNECTING}),
    HealthState.CONNECTING: frozenset({HealthState.CONNECTED, HealthState.ERROR}),
    HealthState.CONNECTED: frozenset({HealthState.CLOSED, HealthState.ERROR}),
    HealthState.ERROR: frozenset({HealthState.CONNECTING}),
}


@dataclass(frozen=True)
class RetryPolicy:
    """Reconnect policy shared by every transport.

    Attributes:
        enabled: Whether unexpected drops schedule a reconnect at all.
        max_retries: Ceiling on consecutive retries, or None for no ceiling.
        backoff_step: Seconds of delay added per retry already performed.
        max_backoff: Upper bound on any single delay, in seconds.
    """

    enabled: bool = True
    max_retries: int | None = 3
    backoff_step: float = 1.0
    max_backoff: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError("max_retries must be >= 0 or None")
        if self.backoff_step < 0 or self.max_backoff < 0:
            raise ValueError("backoff values must be >= 0")


@dataclass(frozen=True)
class ConnectionState:
    """Snapshot of a connection's health and retry bookkeeping."""

    health: HealthState = HealthState.CLOSED
    retry_count: int = 0
    should_retry: bool = False


def transition(state: ConnectionState, target: HealthState) -> ConnectionState:
    """Move to ``target`` if the state machine allows it."""
    if target not in ALLOWED_TRANSITIONS[state.health]:
        raise InvalidTransitionError(
            f"Cannot move from {state.health.value} to {target.value}"
        )
    return replace(state, health=target)


def begin_connect(state: ConnectionState, policy: RetryPolicy) -> ConnectionState:
    """Caller-initiated connect: re-arm retries and start counting from zero."""
    if state.health is HealthState.CONNECTING:
        return replace(state, retry_count=0, should_retry=policy.enabled)
    if state.health is HealthState.CONNECTED:
        # A push-stream may be restarted by the caller while streaming.
        state = replace(state, health=HealthState.CLOSED)
    return replace(
        transition(state, HealthState.CONNECTING),
        retry_count=0,
        should_retry=policy.enabled,
    )


def opened(state: ConnectionState, *, reset_retries: bool = True) -> ConnectionState:
    """Handshake succeeded."""
    state = transition(state, HealthState.CONNECTED)
    if reset_retries:
        state = replace(state, retry_count=0)
    return state


def faulted(state: ConnectionState) -> ConnectionState:
    """Transport fault while connecting or connected."""
    if state.health is HealthState.ERROR:
        return state
    return transition(state, HealthState.ERROR)


def ended(state: ConnectionState) -> ConnectionState:
    """Graceful end of the link."""
    return transition(state, HealthState.CLOSED)


def retry_scheduled(state: ConnectionState) -> ConnectionState:
    return replace(state, retry_count=state.retry_count + 1)


def begin_retry(state: ConnectionState) -> ConnectionState:
    """A scheduled reconnect fires."""
    return transition(state, HealthState.CONNECTING)


def disarmed(state: ConnectionState) -> ConnectionState:
    """Disable further retries without touching health."""
    return replace(state, should_retry=False)


def closed(state: ConnectionState) -> ConnectionState:
    """Explicit close: allowed from any state."""
    return replace(state, health=HealthState.CLOSED, should_retry=False)


def backoff_delay(policy: RetryPolicy, retry_count: int) -> float:
    """Delay before the next reconnect attempt, in seconds."""
    return min(max(retry_count, 0) * policy.backoff_step, policy.max_backoff)


def can_retry(policy: RetryPolicy, state: ConnectionState) -> bool:
    """Whether another reconnect attempt may be scheduled."""
    if not state.should_retry:
        return False
    if policy.max_retries is None:
        return True
    return state.retry_count < policy.max_retries
