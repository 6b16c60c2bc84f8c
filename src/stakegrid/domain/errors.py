"""Exception taxonomy for protocol operations.

* :class:`PreconditionViolation` rejects an operation before anything is
  mutated.  The caller may retry once the blocking condition clears.
* :class:`ExternalTransferFailure` is raised when the token ledger refuses a
  debit or credit; the operation leaves no trace.
* :class:`InvariantViolation` signals a broken programming contract and is
  never expected in a healthy world.
"""

from __future__ import annotations


class ProtocolError(Exception):
    """Base class for every error raised by the protocol."""


class PreconditionViolation(ProtocolError, ValueError):
    """An operation's preconditions do not hold."""


class UnknownAgentError(PreconditionViolation):
    """The referenced agent is not part of the roster."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"unknown agent {agent_id!r}")
        self.agent_id = agent_id


class ExternalTransferFailure(ProtocolError, RuntimeError):
    """The token ledger rejected a transfer."""


class InvariantViolation(ProtocolError, RuntimeError):
    """Internal accounting reached a state that must never occur."""
