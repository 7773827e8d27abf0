"""Exceptions raised by the link engine."""


class LinkEngineError(Exception):
    """Base exception for link engine errors."""

    pass


class RetrievalError(LinkEngineError):
    """Candidate orders could not be read from the order store."""

    pass


class PersistError(LinkEngineError):
    """A link decision could not be written."""

    def __init__(self, message: str, batch_id: str | None = None):
        super().__init__(message)
        self.batch_id = batch_id


class BatchNotFoundError(LinkEngineError):
    """No production batch with the given ID."""

    def __init__(self, batch_id: str):
        super().__init__(f"Batch not found: {batch_id}")
        self.batch_id = batch_id
