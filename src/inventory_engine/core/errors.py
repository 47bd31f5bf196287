"""Typed errors raised by the inventory engine."""


class EngineError(Exception):
    """Base class for every failure surfaced by the engine."""


class EngineInputError(EngineError):
    """A required input collection was missing or of the wrong shape.

    Raised before any stage runs, so a caller never receives a
    half-reconciled inventory.
    """

    def __init__(self, stage: str, input_name: str, detail: str = ""):
        self.stage = stage
        self.input_name = input_name
        self.detail = detail
        message = f"{stage}: invalid input '{input_name}'"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    def __reduce__(self):
        # Keep the structured fields when crossing a process boundary
        return (self.__class__, (self.stage, self.input_name, self.detail))


class WorkerError(EngineError):
    """The background worker failed before producing a result."""

    def __init__(self, request: str, cause: str):
        self.request = request
        self.cause = cause
        super().__init__(f"worker failed while computing '{request}': {cause}")

    def __reduce__(self):
        return (self.__class__, (self.request, self.cause))
