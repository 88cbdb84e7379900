from __future__ import annotations


class ServiceError(Exception):
    """Error raised by the service layer and rendered by the API.

    ``kind`` is a stable tag clients can switch on; ``message`` is shown to
    the user as-is.
    """

    kind = "ServiceError"
    default_message = "Service error"
    default_status = 400

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        self.status_code = status_code or self.default_status
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind}


class InvalidInput(ServiceError):
    kind = "InvalidInput"
    default_message = "username must not be empty"


class NotFound(ServiceError):
    kind = "NotFound"
    default_message = "User does not exist"
    default_status = 404


class AlreadyBanned(ServiceError):
    kind = "AlreadyBanned"
    default_message = "Already in seal list"


class AllAlreadyBanned(ServiceError):
    kind = "AllAlreadyBanned"
    default_message = "All ips already in seal list"


class SealViolation(ServiceError):
    """Base for rule violations that bulk sealing reports after the fact.

    ``results`` holds the per-address outcomes of the pass that produced the
    violation, since other addresses may have been sealed in that pass.
    """

    def __init__(self, message: str | None = None, results: list | None = None):
        super().__init__(message)
        self.results = results

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.results is not None:
            data["results"] = self.results
        return data


class LocalAddress(SealViolation):
    kind = "LocalAddress"
    default_message = "Cannot seal a local address"


class SelfSeal(SealViolation):
    kind = "SelfSeal"
    default_message = "Cannot seal your own address"


class FetchFailed(ServiceError):
    kind = "FetchFailed"
    default_message = "Token request failed"
    default_status = 502


class CollaboratorUnavailable(ServiceError):
    kind = "CollaboratorUnavailable"
    default_message = "Backing service unavailable"
    default_status = 503


class Unauthorized(ServiceError):
    kind = "Unauthorized"
    default_message = "Invalid token"
    default_status = 401


class UploadRejected(ServiceError):
    kind = "UploadRejected"
    default_message = "Upload rejected"
