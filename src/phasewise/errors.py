"""Error taxonomy for phasewise.

``ValidationError`` and ``StateConflict`` mean the caller's request or view of
state is wrong; they are never retried. ``TransientPersistenceError`` wraps
store failures and is the only error the auto-save path retries.
"""

CONFLICT_MESSAGE = "couldn't complete that action, state may have changed"


class PhasewiseError(Exception):
    """Base class for all phasewise errors."""

    status_code = 500


class ValidationError(PhasewiseError):
    """Malformed input such as out-of-range slot coordinates."""

    status_code = 422


class ReorderRejected(ValidationError):
    """Attempt to move the active or an already-passed exercise."""


class StateConflict(PhasewiseError):
    """The requested transition is not allowed from the current state."""

    status_code = 409

    @property
    def user_message(self) -> str:
        return CONFLICT_MESSAGE


class AlreadyInProgress(StateConflict):
    """A non-terminal session already exists for the template."""

    def __init__(self, message: str, session_id: int | None = None):
        super().__init__(message)
        self.session_id = session_id


class SessionAlreadyFinalized(StateConflict):
    """The session is completed or abandoned."""


class SwapRejected(StateConflict):
    """The two slots cannot exchange templates."""


class AlreadyCompleted(StateConflict):
    """The focus target already has a completed session."""


class PhaseLocked(StateConflict):
    """The phase has not been unlocked yet."""


class PhaseIncomplete(StateConflict):
    """Not enough of the phase was completed to pass reassessment."""


class ReassessmentNotPending(StateConflict):
    """No reassessment is waiting for this athlete."""


class ProgramPaused(StateConflict):
    """The program is paused and cannot move until it is resumed."""


class NotPaused(StateConflict):
    """Resume was requested for a program that is not paused."""


class NotFound(PhasewiseError):
    """Unknown template, session or program."""

    status_code = 404


class TransientPersistenceError(PhasewiseError):
    """The store failed to read or write; the operation may succeed later."""

    status_code = 503
