"""
Relay result data models.

These models describe how far a single upload got on its way to the
printer, and what the printer answered when asked to start the job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional


class RelayState(Enum):
    """
    State of a single upload request.

    Lifecycle:
        RECEIVED -> EXTRACTED -> UPLOADED_TO_DEVICE
            -> (AWAITING_DEVICE_READY -> COMMANDS_SENT) -> COMPLETED
        Any non-terminal state -> FAILED
    """

    RECEIVED = "received"
    """Request arrived, nothing parsed yet."""

    EXTRACTED = "extracted"
    """File and print flag taken from the OctoPrint form."""

    UPLOADED_TO_DEVICE = "uploaded_to_device"
    """Device accepted the HTTP upload."""

    AWAITING_DEVICE_READY = "awaiting_device_ready"
    """Waiting for the device to persist the file before starting."""

    COMMANDS_SENT = "commands_sent"
    """M23/M24 written to the command port."""

    COMPLETED = "completed"
    """Request finished successfully."""

    FAILED = "failed"
    """Request failed; see RelayResult.failure."""

    @property
    def is_terminal(self) -> bool:
        return self in (RelayState.COMPLETED, RelayState.FAILED)


@dataclass
class JobStartResult:
    """
    Response captured from the device's command port after M23/M24.

    The text is best-effort: it may hold only part of what the device
    sent for the two commands.
    """

    filename: str
    """File that was selected and started."""

    response: str
    """Raw response text, decoded leniently."""

    bytes_received: int = 0
    """Number of raw bytes read from the socket."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "response": self.response,
            "bytes_received": self.bytes_received,
        }


@dataclass
class RelayResult:
    """
    Outcome of relaying one upload to the device.

    Built and mutated only by the request thread that owns it.
    """

    request_id: str
    """Unique request identifier (UUID)."""

    filename: str
    """Name of the relayed file."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """When relaying started."""

    state: RelayState = RelayState.RECEIVED
    """Current state."""

    history: List[RelayState] = field(default_factory=lambda: [RelayState.RECEIVED])
    """Every state entered, in order."""

    job_start: Optional[JobStartResult] = None
    """Device response to the print-start commands, if printing was requested."""

    failure: Optional[str] = None
    """Error kind when state is FAILED."""

    def advance(self, state: RelayState) -> None:
        """
        Move to ``state``.

        Raises:
            RuntimeError: If the current state is already terminal
        """
        if self.state.is_terminal:
            raise RuntimeError(f"relay {self.request_id} already {self.state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, kind: str) -> None:
        """Move to FAILED, recording the error kind."""
        self.advance(RelayState.FAILED)
        self.failure = kind

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "request_id": self.request_id,
            "filename": self.filename,
            "started_at": self.started_at.isoformat(),
            "state": self.state.value,
            "history": [s.value for s in self.history],
            "job_start": self.job_start.to_dict() if self.job_start else None,
            "failure": self.failure,
        }
