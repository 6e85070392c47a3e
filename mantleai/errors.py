from typing import Any, Dict, List, Optional, Union


class ServiceError(Exception):
    """Base class for failures that map onto an HTTP error response."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Union[str, List[str]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequest(ServiceError):
    status_code = 400


class SourceNotFound(ServiceError):
    status_code = 404

    def __init__(self, message: str, explorer_url: Optional[str] = None) -> None:
        super().__init__(message)
        self.explorer_url = explorer_url

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.explorer_url:
            body["explorerUrl"] = self.explorer_url
        return body


class ChainUnavailable(ServiceError):
    status_code = 500


class LanguageModelError(ServiceError):
    status_code = 500


class ResponseParseError(ServiceError):
    status_code = 500

    def __init__(self, reason: str) -> None:
        super().__init__("Invalid analysis format", details=reason)


class CompilationFailed(ServiceError):
    status_code = 400


class StorageError(ServiceError):
    status_code = 500
