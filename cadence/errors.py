"""Error taxonomy for the cadence scheduler.

Validation errors are raised before any write happens. Persistence errors wrap
storage failures and are safe to retry from the top of the operation.
"""


class CadenceError(Exception):
    """Base exception for all scheduler errors."""

    pass


class ValidationError(CadenceError):
    """Raised when caller input is rejected before persistence."""

    pass


class HabitCapacityError(ValidationError):
    """Raised when a selection would push a user past the habit ceiling."""

    def __init__(self, limit: int, current: int):
        self.limit = limit
        self.current = current
        super().__init__(
            f"You can have a maximum of {limit} habits. "
            f"{current} already in use; consider removing an existing habit first."
        )


class ActiveEnrollmentExistsError(ValidationError):
    """Raised when starting a challenge while another enrollment is active."""

    def __init__(self, user_id: str, challenge_slug: str):
        self.user_id = user_id
        self.challenge_slug = challenge_slug
        super().__init__(f"User {user_id} already has an active enrollment in '{challenge_slug}'")


class NotFoundError(CadenceError):
    """Raised when a required enrollment or challenge does not exist."""

    pass


class TerminalStateError(CadenceError):
    """Raised when an enrollment in a terminal state is asked to transition."""

    def __init__(self, enrollment_id: str, status: str, action: str):
        self.enrollment_id = enrollment_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} enrollment {enrollment_id}: status is '{status}'")


class PersistenceError(CadenceError):
    """Raised when a read or write against the store fails.

    The operation may be retried in full; earlier steps are not rolled back.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")
