"""Error kinds raised by the progress engine and the mutation coordinator."""


class StudyTrackerError(Exception):
    """Base class for all study tracker errors."""


class ValidationError(StudyTrackerError):
    """Malformed topic hierarchy or invalid topic fields."""


class MutationError(StudyTrackerError):
    """A topic write was rejected or never reached the store.

    Both subclasses trigger the same rollback; ``user_message`` keeps them
    apart for whoever shows the failure to the student.
    """

    user_message = "Could not save your change."


class ConflictError(MutationError):
    user_message = "This topic was changed elsewhere. Reload and try again."


class TransportError(MutationError):
    user_message = "Network issue. Your change was not saved."
