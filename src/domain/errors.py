from __future__ import annotations


class EngineError(Exception):
    """Base class for every error raised by the recurrence engine."""

    code = "engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class InvalidInput(EngineError, ValueError):
    """Malformed or out-of-range argument. Nothing was applied."""

    code = "invalid_input"

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field

    def to_dict(self) -> dict[str, str]:
        payload = super().to_dict()
        payload["field"] = self.field
        return payload


class Conflict(EngineError):
    """Valid input that is illegal against the entity's current state."""

    code = "conflict"


class UnsupportedFrequency(EngineError):
    """A frequency without a calendar interval reached a path that needs one."""

    code = "unsupported_frequency"

    def __init__(self, frequency: object, operation: str = ""):
        suffix = f" (operation={operation})" if operation else ""
        super().__init__(f"Frequency has no interval: {frequency!r}{suffix}")
        self.frequency = frequency


class NotFound(EngineError, LookupError):
    code = "not_found"

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id
