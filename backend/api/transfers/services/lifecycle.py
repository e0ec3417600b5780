"""Transfer lifecycle state machine.

Used only to validate a status change before the session service persists
it; it performs no writes and has no callbacks.
"""

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from api.transfers.dto.transfer import TransferStatus
from errors import NotOpenError


class TransferLifecycleSM(StateMachine):
    """open -> closed | cancelled. Both terminal states are final."""

    open = State("open", initial=True, value=TransferStatus.OPEN.value)
    closed = State("closed", final=True, value=TransferStatus.CLOSED.value)
    cancelled = State("cancelled", final=True, value=TransferStatus.CANCELLED.value)

    complete = open.to(closed)
    cancel = open.to(cancelled)


def next_status(transfer_id: str, current: TransferStatus, event: str) -> TransferStatus:
    """Apply ``event`` ("complete" or "cancel") to ``current``.

    Raises NotOpenError when the transition is illegal.
    """
    sm = TransferLifecycleSM(start_value=current.value)
    try:
        sm.send(event)
    except TransitionNotAllowed as e:
        raise NotOpenError(transfer_id, current.value) from e
    return TransferStatus(sm.current_state.value)
