"""
Session manager: owns the conversation lifecycle and every chat request to the service
"""

from typing import Any, Dict, Optional, Tuple

from client.exceptions import SessionClientError
from config import MESSAGES
from core.connectivity import ConnectivityMonitor
from core.logging_config import get_logger, log_error_with_context, set_log_session
from core.state_manager import SessionState, StateManager
from events import event_bus as default_event_bus, EventBus, EventTypes
from .models import ConversationMetadata, Message, MessageType, Sender, Session
from .store import ConversationStore


class SessionManager:
    """Orchestrates session creation, message exchange and failure reporting

    The manager is the only writer of its ConversationStore. Sends are gated
    by can_send; a blocked send is a silent no-op. A user message is appended
    as soon as it is sent and is never removed, even when the request fails.
    """

    def __init__(self,
                 client,
                 connectivity: ConnectivityMonitor,
                 store: Optional[ConversationStore] = None,
                 bus: Optional[EventBus] = None,
                 state_manager: Optional[StateManager] = None):
        """
        Args:
            client: SessionClient (or any object with the same coroutine methods)
            connectivity: Source of the online/offline signal
            store: State container; a fresh one is created when omitted
            bus: Event bus for observers (defaults to the global bus)
            state_manager: Lifecycle tracker; a fresh one is created when omitted
        """
        self.logger = get_logger(__name__)
        self.client = client
        self.connectivity = connectivity
        self.bus = bus or default_event_bus
        self.store = store or ConversationStore(bus=self.bus)
        self.state_manager = state_manager or StateManager(bus=self.bus)

        self._input_text = ""
        self._sending = False

        # Stats
        self.exchanges_completed = 0
        self.safety_violations = 0
        self.send_failures = 0
        self.consecutive_failures = 0

        self._unsubscribe_connectivity = connectivity.subscribe(self._on_connectivity_change)

    # ------------------------------------------------------------------
    # Read-only view

    @property
    def state(self) -> SessionState:
        return self.state_manager.get_state()

    @property
    def session(self) -> Optional[Session]:
        return self.store.session

    @property
    def session_id(self) -> Optional[str]:
        return self.store.session.id if self.store.session else None

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.store.messages

    @property
    def metadata(self) -> Optional[ConversationMetadata]:
        return self.store.metadata

    @property
    def error(self) -> Optional[str]:
        return self.store.error

    @property
    def input_text(self) -> str:
        return self._input_text

    @property
    def is_sending(self) -> bool:
        return self._sending

    @property
    def can_send(self) -> bool:
        """Gating predicate for dispatching the current input"""
        return (
            bool(self._input_text.strip())
            and self.store.session is not None
            and not self._sending
            and self.connectivity.is_online
        )

    # ------------------------------------------------------------------
    # Operations

    def set_input(self, text: str):
        """Replace the composer buffer"""
        self._input_text = text or ""

    async def initialize(self) -> bool:
        """
        Create the remote session.

        Failure is logged and announced on the bus, never shown as a banner,
        and is not retried here.

        Returns:
            True if a session was established by this call
        """
        if self.state != SessionState.UNINITIALIZED:
            self.logger.warning(f"Session initialization ignored in state {self.state.value}")
            return False

        self.state_manager.transition_to(SessionState.INITIALIZING, "Creating session")
        self.bus.emit(EventTypes.SESSION_INITIALIZING, {}, source="session_manager")

        try:
            created = await self.client.create_session()
        except SessionClientError as e:
            self.logger.error(f"Failed to initialize conversation: {e.message}", extra={"extra_data": {
                "network_failure": e.network_failure,
                "status": e.status,
            }})
            self._abort_initialization(e.message, e.network_failure)
            return False
        except Exception as e:
            log_error_with_context(self.logger, e, "initialize")
            self._abort_initialization(str(e), network_failure=False)
            return False

        session = Session(id=created.session_id)
        self.store.set_session(session)
        set_log_session(session.id)
        self.store.set_metadata(ConversationMetadata.from_dict(created.initial_metadata))
        self.store.append_message(created.welcome_message)

        self.state_manager.transition_to(SessionState.READY, "Session created")
        self.bus.emit(EventTypes.SESSION_CREATED, {"session_id": session.id}, source="session_manager")
        self.logger.info(f"Conversation session {session.id} ready")
        return True

    async def send_message(self, text: Optional[str] = None) -> bool:
        """
        Send the composer buffer (or text, which replaces the buffer first).

        Returns:
            True if a request was dispatched, False if the send was gated
        """
        if text is not None:
            self.set_input(text)

        if not self.can_send:
            self.logger.debug("Send blocked by gating predicate", extra={"extra_data": self._gate_snapshot()})
            return False

        self._sending = True
        content = self._input_text
        session_id = self.session_id
        self.state_manager.transition_to(SessionState.SENDING, "User message sent")

        self.store.append_message(Message.create(Sender.USER, content))
        self._input_text = ""
        self.store.clear_error()
        self.bus.emit(EventTypes.MESSAGE_SEND_START, {"session_id": session_id}, source="session_manager")

        try:
            reply = await self.client.send_message(session_id, content)
        except SessionClientError as e:
            if e.network_failure:
                self._record_failure(MESSAGES["connection_error"], network_failure=True)
            else:
                self._record_failure(e.server_message or MESSAGES["generic_error"], network_failure=False,
                                     status=e.status)
        except Exception as e:
            log_error_with_context(self.logger, e, "send_message", session_id=session_id)
            self._record_failure(MESSAGES["connection_error"], network_failure=True)
        else:
            self._apply_reply(reply)
        finally:
            self._sending = False
            self.state_manager.transition_to(SessionState.READY, "Response settled")

        return True

    def dismiss_error(self):
        """Hide the error banner"""
        self.store.clear_error()

    # ------------------------------------------------------------------
    # Internals

    def _abort_initialization(self, reason: str, network_failure: bool):
        self.state_manager.transition_to(SessionState.UNINITIALIZED, "Session creation failed")
        self.bus.emit(EventTypes.SESSION_INIT_FAILED, {
            "reason": reason,
            "network_failure": network_failure,
        }, source="session_manager")

    def _apply_reply(self, reply):
        self.store.append_message(reply.assistant_message)

        if reply.safety_violation:
            # Progress must not advance on a safety-blocked turn
            self.safety_violations += 1
            self.bus.emit(EventTypes.MESSAGE_SAFETY_NOTICE, {
                "content": reply.assistant_message.content,
            }, source="session_manager")
        else:
            self.store.merge_metadata(reply.metadata_delta)

        self.exchanges_completed += 1
        self.consecutive_failures = 0
        self.bus.emit(EventTypes.MESSAGE_SEND_COMPLETE, {
            "safety_violation": reply.safety_violation,
        }, source="session_manager")

    def _record_failure(self, error_text: str, network_failure: bool, status: Optional[int] = None):
        self.send_failures += 1
        self.consecutive_failures += 1

        self.store.append_message(Message.create(Sender.ASSISTANT, error_text, MessageType.ERROR))
        self.store.set_error(error_text)

        self.logger.warning(f"Message exchange failed: {error_text}", extra={"extra_data": {
            "network_failure": network_failure,
            "status": status,
            "consecutive_failures": self.consecutive_failures,
        }})
        self.bus.emit(EventTypes.MESSAGE_SEND_FAILED, {
            "error": error_text,
            "network_failure": network_failure,
            "status": status,
        }, source="session_manager")

    def _on_connectivity_change(self, online: bool):
        if online:
            if self.store.error == MESSAGES["offline_notice"]:
                self.store.clear_error()
            self.bus.emit(EventTypes.CONNECTIVITY_RESTORED, {}, source="session_manager")
        else:
            self.store.set_error(MESSAGES["offline_notice"])
            self.bus.emit(EventTypes.CONNECTIVITY_LOST, {}, source="session_manager")

    def _gate_snapshot(self) -> Dict[str, Any]:
        return {
            "has_input": bool(self._input_text.strip()),
            "has_session": self.store.session is not None,
            "sending": self._sending,
            "online": self.connectivity.is_online,
        }

    def get_stats(self) -> Dict[str, Any]:
        """Get session manager statistics"""
        return {
            "state": self.state.value,
            "session_id": self.session_id,
            "exchanges_completed": self.exchanges_completed,
            "safety_violations": self.safety_violations,
            "send_failures": self.send_failures,
            "consecutive_failures": self.consecutive_failures,
            **self.store.get_stats(),
        }

    def shutdown(self):
        """Detach from the connectivity monitor"""
        self._unsubscribe_connectivity()
