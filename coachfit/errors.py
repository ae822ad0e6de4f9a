"""Exceptions raised by the insight engine and its collaborators."""


class InsightError(Exception):
    """Base class for coachfit errors."""


class CollaboratorUnavailable(InsightError):
    """The external coaching-text service could not produce a response.

    Raised for missing credentials, client/transport errors and empty
    responses alike. The composer treats all of them the same way: the
    numeric report is still returned, without coaching text.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause
