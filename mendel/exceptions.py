"""
Error kinds raised by the simulation engine

Every error carries its kind (the class name) and a context dict so that
callers can report failures as structured values.
"""

from typing import Any, Dict


class MendelError(Exception):
    """Base class for all simulation errors"""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "context": dict(self.context),
        }


class InvalidOutcomeSpace(MendelError):
    """Empty outcome space, non-positive weight or duplicate label"""
    pass


class InvalidTrialCount(MendelError):
    """Trial count is not a positive integer"""
    pass


class EvaluationError(MendelError):
    """An evaluation rule could not classify a tuple of draws"""
    pass


class ExhaustedRetries(MendelError):
    """Skip-and-continue could not collect enough valid trials within budget"""
    pass


class ConfigurationError(MendelError):
    """Invalid random range or unrecognized option"""
    pass
