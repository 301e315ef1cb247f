from __future__ import annotations


class SchedulingError(Exception):
    """Base for every error the scheduling core reports to its caller.

    `code` is machine-checkable; `message` is safe to show to the user.
    """

    status_code = 500

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(SchedulingError):
    status_code = 400


class ConflictError(SchedulingError):
    status_code = 409

    def __init__(self, code: str, message: str, *, rule: str | None = None, name: str | None = None) -> None:
        super().__init__(code, message)
        self.rule = rule
        self.name = name

    def to_dict(self) -> dict:
        out = super().to_dict()
        if self.rule is not None:
            out["rule"] = self.rule
        if self.name is not None:
            out["name"] = self.name
        return out


class NotFoundError(SchedulingError):
    status_code = 404


class DependencyError(SchedulingError):
    status_code = 409


class StorageError(SchedulingError):
    status_code = 500

    def __init__(self, message: str = "Database operation failed.") -> None:
        super().__init__("DATABASE_ERROR", message)
