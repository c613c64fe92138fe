"""
Local signing agent (PeerAuth / zkTLS) detection and availability wait.

The agent is reached through a host: whatever environment injects it (a
browser bridge, a local daemon connection, or the in-process
LocalAgentHost). Hosts announce a late-arriving agent with the
``zktls#initialized`` notification.
"""
import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

from .constants import AGENT_INITIALIZED_EVENT

logger = logging.getLogger(__name__)


class SigningAgent(Protocol):
    """Notarization agent API"""

    def request_connection(self) -> bool:
        ...

    def generate_proof(self, intent_hash: str, original_index: int, platform: str) -> Dict[str, Any]:
        """Returns at least ``{"proofId": ...}``"""
        ...

    def fetch_proof_by_id(self, proof_id: str) -> Dict[str, Any]:
        """Returns at least ``{"notaryRequest": {...}}``"""
        ...


class AgentHost(Protocol):
    """Environment that may carry a signing agent"""

    def get_agent(self) -> Optional[SigningAgent]:
        ...

    def add_listener(self, event: str, callback: Callable[[], None]) -> None:
        ...

    def remove_listener(self, event: str, callback: Callable[[], None]) -> None:
        ...


class AgentState(str, Enum):
    ABSENT = "absent"
    INSTALLED_DISCONNECTED = "installed_disconnected"
    INSTALLED_READY = "installed_ready"


def detect_agent(host: Optional[AgentHost]) -> AgentState:
    """
    Report the signing agent's state.

    An installed agent counts as ready only if it reports a "connected"
    status; agents without a status call, or whose status call fails,
    are treated as installed but disconnected.
    """
    if host is None:
        return AgentState.ABSENT
    agent = host.get_agent()
    if agent is None:
        return AgentState.ABSENT
    check = getattr(agent, "check_connection_status", None)
    if check is None:
        return AgentState.INSTALLED_DISCONNECTED
    try:
        status = check()
    except Exception as e:
        logger.debug(f"Agent connection status check failed: {e}")
        return AgentState.INSTALLED_DISCONNECTED
    return AgentState.INSTALLED_READY if status == "connected" else AgentState.INSTALLED_DISCONNECTED


class LocalAgentHost:
    """In-process host; install() announces the agent to waiting listeners."""

    def __init__(self, agent: Optional[SigningAgent] = None):
        self._agent = agent
        self._listeners: Dict[str, List[Callable[[], None]]] = {}
        self._lock = threading.RLock()

    def get_agent(self) -> Optional[SigningAgent]:
        return self._agent

    def install(self, agent: SigningAgent) -> None:
        with self._lock:
            self._agent = agent
            callbacks = list(self._listeners.get(AGENT_INITIALIZED_EVENT, []))
        for callback in callbacks:
            callback()

    def add_listener(self, event: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Callable[[], None]) -> None:
        with self._lock:
            callbacks = self._listeners.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def listener_count(self, event: str = AGENT_INITIALIZED_EVENT) -> int:
        with self._lock:
            return len(self._listeners.get(event, []))


class ExtensionAvailabilityWaiter:
    """Bounded wait for the signing agent to appear."""

    def __init__(self, host: Optional[AgentHost], logger: Optional[logging.Logger] = None):
        self.host = host
        self.logger = logger or logging.getLogger(__name__)

    def wait(self, timeout_ms: int = 3000, poll_interval_ms: int = 100) -> bool:
        """
        Block until the agent is available or the timeout elapses.

        Never raises. Returns immediately when there is no host or the agent
        is already present. Otherwise the host's initialization notification
        races periodic polling; the listener is detached before returning.

        Args:
            timeout_ms: Upper bound on the wait in milliseconds
            poll_interval_ms: Polling period in milliseconds

        Returns:
            True if the agent is available on return
        """
        if self.host is None:
            return False
        try:
            if self.host.get_agent() is not None:
                return True
        except Exception as e:
            self.logger.debug(f"Agent lookup failed: {e}")
            return False

        signalled = threading.Event()
        listener = signalled.set
        attached = False
        try:
            self.host.add_listener(AGENT_INITIALIZED_EVENT, listener)
            attached = True
        except Exception as e:
            self.logger.debug(f"Could not listen for agent initialization: {e}")

        deadline = time.monotonic() + max(timeout_ms, 0) / 1000.0
        interval = max(poll_interval_ms, 1) / 1000.0
        try:
            while True:
                if self._agent_present():
                    return True
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self.logger.debug(f"Signing agent not available after {timeout_ms}ms")
                    return False
                if signalled.wait(min(interval, remaining)):
                    return self._agent_present()
        finally:
            if attached:
                try:
                    self.host.remove_listener(AGENT_INITIALIZED_EVENT, listener)
                except Exception as e:
                    self.logger.debug(f"Could not detach agent listener: {e}")

    def _agent_present(self) -> bool:
        try:
            return self.host.get_agent() is not None
        except Exception:
            return False


def wait_for_agent(host: Optional[AgentHost], timeout_ms: int = 3000, poll_interval_ms: int = 100) -> bool:
    """Shortcut for ExtensionAvailabilityWaiter(host).wait(...)."""
    return ExtensionAvailabilityWaiter(host).wait(timeout_ms, poll_interval_ms)
