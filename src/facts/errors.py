"""Exceptions raised by the fact pipeline."""


class ExtractionError(Exception):
    """The extraction oracle failed or returned output that is not a JSON array.

    Distinct from an empty result, which means the text held no facts.
    """

    def __init__(self, message: str, observation_id: int | None = None, response: str = ""):
        super().__init__(message)
        self.observation_id = observation_id
        self.response = response
