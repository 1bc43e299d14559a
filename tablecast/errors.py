"""Error taxonomy for the scoring core"""


class TablecastError(Exception):
    """Base class for errors raised by the scoring core"""


class FetchError(TablecastError):
    """Standings or results source unreachable, or returned unusable data.

    Raised before anything is written; the previous scores stay in place
    until the next refresh cycle.
    """


class ScoringError(TablecastError):
    """Malformed prediction data for a single participant"""

    def __init__(self, message, participant_id=None):
        super().__init__(message)
        self.participant_id = participant_id


class PersistenceError(TablecastError):
    """Writing one participant's scores failed"""

    def __init__(self, message, participant_id=None):
        super().__init__(message)
        self.participant_id = participant_id
