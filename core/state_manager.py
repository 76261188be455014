"""
Session lifecycle state tracking with an explicit transition table
"""

import time
from enum import Enum
from typing import Dict, Any, Optional, Callable, List
from datetime import datetime

from events import event_bus as default_event_bus, EventBus, EventTypes
from core.logging_config import get_logger


class SessionState(Enum):
    """Lifecycle states of the chat session"""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    SENDING = "sending"


class StateTransition:
    """Represents a state transition"""
    def __init__(self, from_state: SessionState, to_state: SessionState, reason: str = ""):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        self.timestamp = time.time()
        self.datetime = datetime.now()

    def __str__(self):
        return f"{self.from_state.value} → {self.to_state.value} ({self.reason})"


class StateManager:
    """Tracks the session state and rejects transitions outside the table"""

    # Errors are carried by the conversation store while READY, never as a state
    VALID_TRANSITIONS = {
        SessionState.UNINITIALIZED: [SessionState.INITIALIZING],
        SessionState.INITIALIZING: [SessionState.READY, SessionState.UNINITIALIZED],
        SessionState.READY: [SessionState.SENDING],
        SessionState.SENDING: [SessionState.READY],
    }

    def __init__(self, bus: Optional[EventBus] = None, max_history: int = 100):
        self.logger = get_logger(__name__)
        self.bus = bus or default_event_bus
        self.current_state = SessionState.UNINITIALIZED

        self.transitions: List[StateTransition] = []
        self.max_history = max_history

        self.state_listeners: List[Callable[[SessionState, SessionState], None]] = []

        self.state_start_time = time.time()
        self.state_durations: Dict[SessionState, float] = {state: 0.0 for state in SessionState}

    def get_state(self) -> SessionState:
        """Get current state"""
        return self.current_state

    def transition_to(self, new_state: SessionState, reason: str = "") -> bool:
        """
        Transition to a new state

        Args:
            new_state: Target state
            reason: Reason for transition

        Returns:
            True if transition successful, False if invalid
        """
        if not self._is_valid_transition(self.current_state, new_state):
            self.logger.warning(f"Invalid state transition: {self.current_state.value} → {new_state.value}")
            return False

        self.state_durations[self.current_state] += time.time() - self.state_start_time

        transition = StateTransition(self.current_state, new_state, reason)
        self.transitions.append(transition)
        if len(self.transitions) > self.max_history:
            self.transitions = self.transitions[-self.max_history:]

        old_state = self.current_state
        self.current_state = new_state
        self.state_start_time = time.time()

        self.logger.debug(f"State transition: {transition}")

        self.bus.emit(EventTypes.STATE_TRANSITION, {
            "from_state": old_state.value,
            "to_state": new_state.value,
            "reason": reason
        }, source="state_manager")

        self._notify_listeners(old_state, new_state)

        return True

    def add_listener(self, listener: Callable[[SessionState, SessionState], None]):
        """Add state change listener"""
        self.state_listeners.append(listener)

    def remove_listener(self, listener: Callable[[SessionState, SessionState], None]):
        """Remove state change listener"""
        if listener in self.state_listeners:
            self.state_listeners.remove(listener)

    def _is_valid_transition(self, from_state: SessionState, to_state: SessionState) -> bool:
        return to_state in self.VALID_TRANSITIONS.get(from_state, [])

    def _notify_listeners(self, old_state: SessionState, new_state: SessionState):
        for listener in list(self.state_listeners):
            try:
                listener(old_state, new_state)
            except Exception:
                self.logger.exception("Error in state listener")

    def is_operational(self) -> bool:
        """True once a session exists (READY or SENDING)"""
        return self.current_state in (SessionState.READY, SessionState.SENDING)

    def get_state_duration(self) -> float:
        """Get duration in current state (seconds)"""
        return time.time() - self.state_start_time

    def get_transition_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get recent state transitions"""
        recent = self.transitions[-limit:] if self.transitions else []
        return [
            {
                "from": t.from_state.value,
                "to": t.to_state.value,
                "reason": t.reason,
                "timestamp": t.timestamp,
                "datetime": t.datetime.isoformat()
            }
            for t in recent
        ]

    def get_stats(self) -> Dict[str, Any]:
        """Get state manager statistics"""
        return {
            "current_state": self.current_state.value,
            "state_duration": self.get_state_duration(),
            "transition_count": len(self.transitions),
            "time_in_state": {
                state.value: duration + (self.get_state_duration() if state == self.current_state else 0.0)
                for state, duration in self.state_durations.items()
            },
            "is_operational": self.is_operational(),
        }
