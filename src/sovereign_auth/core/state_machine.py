"""
SovereignAuth State Machine Base

Base class for per-attempt protocol state machines with:
- Invariant checking at each transition
- Complete transition history for auditing
- JSON trace export

Design Principles:
1. Pure context updaters (no side effects in handlers)
2. All state changes through explicit transitions
3. Invariant checking before committing state changes
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Tuple,
    TypeVar,
)
import json
import structlog

import attrs
from returns.result import Failure, Result, Success

from sovereign_auth.core.exceptions import InvariantViolation

logger = structlog.get_logger()


S = TypeVar("S", bound=Enum)  # State type
E = TypeVar("E")  # Event type
C = TypeVar("C")  # Context type


@attrs.define(frozen=True, slots=True)
class Transition(Generic[S, E]):
    """
    Immutable record of a state transition.

    Used for audit logging and trace export.
    """

    from_state: S
    event_type: str
    to_state: S
    timestamp: datetime
    event_data: Dict[str, Any] = attrs.Factory(dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.from_state.name,
            "event_type": self.event_type,
            "to_state": self.to_state.name,
            "timestamp": self.timestamp.isoformat(),
            "event_data": self.event_data,
        }


InvariantFn = Callable[[S, Any], bool]

TransitionEntry = Tuple[S, Callable[[Any, Any], Any]]


@attrs.define
class StateMachineBase(ABC, Generic[S, E, C]):
    """
    Base state machine with invariant hooks.

    Usage:
        class MyStateMachine(StateMachineBase[MyState, MyEvent, MyContext]):
            def initial_state(self) -> MyState:
                return MyState.INITIAL

            def transition_table(self) -> Dict[Tuple[MyState, type], TransitionEntry]:
                return {
                    (MyState.INITIAL, StartEvent): (
                        MyState.STARTED,
                        self._handle_start
                    ),
                }

            @staticmethod
            def _handle_start(event: StartEvent, ctx: MyContext) -> MyContext:
                return attrs.evolve(ctx, started=True)
    """

    _state: S = attrs.field(alias="_state", kw_only=True)
    _context: C = attrs.field(alias="_context")
    _history: List[Transition[S, E]] = attrs.field(factory=list, alias="_history")
    _invariants: List[Tuple[str, InvariantFn]] = attrs.field(factory=list, alias="_invariants")
    _logger: Any = attrs.field(factory=lambda: structlog.get_logger(), alias="_logger")

    @_state.default
    def _start_state(self) -> S:
        return self.initial_state()

    @abstractmethod
    def initial_state(self) -> S:
        """Return the initial state for this state machine."""
        ...

    @abstractmethod
    def transition_table(
        self,
    ) -> Dict[Tuple[S, type], TransitionEntry]:
        """
        Return the transition table.

        Maps (current_state, event_type) to (next_state, context_updater).
        """
        ...

    @property
    def state(self) -> S:
        return self._state

    @property
    def context(self) -> C:
        return self._context

    @property
    def is_terminal(self) -> bool:
        """True when no transition leaves the current state."""
        return not any(state == self._state for state, _ in self.transition_table())

    def process_event(self, event: E) -> Result[S, str]:
        """
        Process an event and transition to the next state.

        Returns:
            Success(new_state) if transition succeeded
            Failure(error_message) if no transition is defined or the
            context update failed

        Raises:
            InvariantViolation: If any invariant fails after transition
        """
        event_type = type(event)
        key = (self._state, event_type)

        table = self.transition_table()
        if key not in table:
            error_msg = f"No transition for state {self._state.name} with event {event_type.__name__}"
            self._logger.warning(
                "invalid_transition",
                current_state=self._state.name,
                event_type=event_type.__name__,
            )
            return Failure(error_msg)

        next_state, context_updater = table[key]

        try:
            new_context = context_updater(event, self._context)
        except Exception as e:
            error_msg = f"Context update failed: {e}"
            self._logger.error(
                "context_update_failed",
                error=str(e),
                current_state=self._state.name,
                event_type=event_type.__name__,
            )
            return Failure(error_msg)

        # Invariants are checked before the transition is committed
        for name, invariant in self._invariants:
            if not invariant(next_state, new_context):
                self._logger.error(
                    "invariant_violated",
                    invariant=name,
                    from_state=self._state.name,
                    to_state=next_state.name,
                )
                raise InvariantViolation(f"Invariant '{name}' violated")

        self._history.append(
            Transition(
                from_state=self._state,
                event_type=event_type.__name__,
                to_state=next_state,
                timestamp=datetime.now(timezone.utc),
                event_data=self._snapshot_event(event),
            )
        )

        self._logger.debug(
            "state_transition",
            from_state=self._state.name,
            to_state=next_state.name,
            event_type=event_type.__name__,
        )

        self._state = next_state
        self._context = new_context

        return Success(next_state)

    def add_invariant(self, name: str, invariant: InvariantFn) -> None:
        """
        Register an invariant to be checked at each transition.

        Args:
            name: Human-readable name for error messages
            invariant: Function (state, context) -> bool
        """
        self._invariants.append((name, invariant))

    @property
    def started_in(self) -> S:
        """State the machine was constructed in."""
        return self._history[0].from_state if self._history else self._state

    def get_trace(self) -> List[Transition[S, E]]:
        """Return a copy of the transition history."""
        return list(self._history)

    def export_trace_json(self) -> str:
        """Export trace as JSON string."""
        return json.dumps(
            {
                "initial_state": self.started_in.name,
                "final_state": self._state.name,
                "transitions": [t.to_dict() for t in self._history],
            },
            indent=2,
        )

    def _snapshot_event(self, event: E) -> Dict[str, Any]:
        """Create a serializable snapshot of the event."""
        if attrs.has(type(event)):
            return attrs.asdict(
                event,
                filter=lambda attr, value: attr.repr and not attr.name.startswith("_"),
                value_serializer=self._serialize_value,
            )
        return {"type": type(event).__name__}

    @staticmethod
    def _serialize_value(
        inst: type, field: attrs.Attribute, value: Any  # noqa: ARG004
    ) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.name
        return value


# =============================================================================
# VERIFICATION HELPERS
# =============================================================================


def verify_trace(
    trace: List[Transition],
    allowed_transitions: Dict[Tuple[str, str], str],
) -> List[str]:
    """
    Check a recorded trace against a table of allowed transitions.

    Args:
        trace: List of transitions to verify
        allowed_transitions: Dict mapping (from_state, event) to to_state

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    for i, t in enumerate(trace):
        key = (t.from_state.name, t.event_type)
        if key not in allowed_transitions:
            errors.append(
                f"Transition {i}: Invalid transition {t.from_state.name} "
                f"--[{t.event_type}]--> {t.to_state.name}"
            )
        elif allowed_transitions[key] != t.to_state.name:
            errors.append(
                f"Transition {i}: Expected {t.from_state.name} "
                f"--[{t.event_type}]--> {allowed_transitions[key]}, "
                f"got {t.to_state.name}"
            )

    return errors
