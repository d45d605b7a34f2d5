"""
HarScout error types.

Raised inside the aggregator, disambiguator and executor; the service layer
turns them into result objects so public operations never raise for bad input.
"""


class HarScoutError(Exception):
    """Base class for HarScout failures."""

    kind = 'error'


class SessionNotFoundError(HarScoutError):
    """Operation on a session id with no active state."""

    kind = 'session_not_found'

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class InvalidEntryError(HarScoutError):
    """Trace entry is missing its request sub-object or is not a mapping."""

    kind = 'invalid_entry'


class DisambiguatorError(HarScoutError):
    """Transport or parse failure from the disambiguation oracle."""

    kind = 'disambiguator_failure'


class NetworkError(HarScoutError):
    """Live request execution failed at the transport level."""

    kind = 'network_error'
