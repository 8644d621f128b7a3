"""
Error Catalog Module

Structured failure catalog with error codes and metadata.

Features:
- Canonical error codes (MSW-XXXX format)
- Error categories (validation, resource, system, external)
- JSON error envelope (code, message, category, request id)
- HTTP status code mapping

Client-facing messages are always the generic catalog message. The internal
cause travels on the exception (``detail``) and is only written to the log.

Usage:
    from multiswagger.core.errors import SpecNotFoundError, SpecFetchError

    raise SpecNotFoundError(detail=f"API not found: {name}")
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    VALIDATION = "validation"            # Bad client input
    AUTHORIZATION = "authorization"      # Request not permitted
    RESOURCE = "resource"                # Resource not found
    SYSTEM = "system"                    # Internal failures
    EXTERNAL = "external"                # Spec source / proxy target failures


@dataclass(frozen=True)
class ErrorDefinition:
    """Definition of an error in the catalog."""
    code: str                    # e.g., "MSW-2001"
    message: str                 # Generic client-facing message
    category: ErrorCategory
    http_status: int
    description: str = ""


# =============================================================================
# Error Catalog (Canonical Error Definitions)
# =============================================================================

ERROR_CATALOG: Dict[str, ErrorDefinition] = {
    # 1000-1999: Validation Errors
    "MSW-1001": ErrorDefinition(
        code="MSW-1001",
        message="proxyUrl query parameter is required for all requests",
        category=ErrorCategory.VALIDATION,
        http_status=400,
        description="Proxy requests must name their target in the proxyUrl query parameter",
    ),
    "MSW-1002": ErrorDefinition(
        code="MSW-1002",
        message="proxyUrl must be an absolute http(s) URL",
        category=ErrorCategory.VALIDATION,
        http_status=400,
    ),

    # 2000-2999: Resource Errors
    "MSW-2001": ErrorDefinition(
        code="MSW-2001",
        message="API not found",
        category=ErrorCategory.RESOURCE,
        http_status=404,
        description="No API with this name is currently registered",
    ),
    "MSW-2002": ErrorDefinition(
        code="MSW-2002",
        message="Static file not found",
        category=ErrorCategory.RESOURCE,
        http_status=404,
    ),

    # 3000-3999: Authorization Errors
    "MSW-3001": ErrorDefinition(
        code="MSW-3001",
        message="Proxy target is not allowed",
        category=ErrorCategory.AUTHORIZATION,
        http_status=403,
        description="The proxy target host is not in PROXY_ALLOWED_HOSTS",
    ),

    # 5000-5999: System Errors
    "MSW-5001": ErrorDefinition(
        code="MSW-5001",
        message="Internal server error",
        category=ErrorCategory.SYSTEM,
        http_status=500,
    ),

    # 6000-6999: External Service Errors
    "MSW-6001": ErrorDefinition(
        code="MSW-6001",
        message="Failed to fetch spec",
        category=ErrorCategory.EXTERNAL,
        http_status=502,
        description="The spec source could not be reached or answered with a non-2xx status",
    ),
    "MSW-6002": ErrorDefinition(
        code="MSW-6002",
        message="Failed to decode spec",
        category=ErrorCategory.EXTERNAL,
        http_status=502,
        description="The spec source did not return a JSON object",
    ),
    "MSW-6003": ErrorDefinition(
        code="MSW-6003",
        message="Failed to forward request",
        category=ErrorCategory.EXTERNAL,
        http_status=502,
        description="The proxy target could not be reached",
    ),
}


# =============================================================================
# Exception Classes
# =============================================================================

class MultiSwaggerError(Exception):
    """Base exception for portal errors.

    ``message`` is what the client sees, ``detail`` is what the log sees.
    """

    code = "MSW-5001"

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[str] = None,
    ):
        if code:
            self.code = code
        self.definition = ERROR_CATALOG.get(self.code)
        if self.definition:
            self.message = self.definition.message
            self.http_status = self.definition.http_status
            self.category = self.definition.category
        else:
            self.message = f"Unknown error: {self.code}"
            self.http_status = 500
            self.category = ErrorCategory.SYSTEM
        self.detail = detail or self.message
        super().__init__(self.detail)

    def to_response(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        """Convert to API error response."""
        response: Dict[str, Any] = {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
            },
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }
        if request_id:
            response["request_id"] = request_id
        return response


class BadRequestError(MultiSwaggerError):
    """Validation errors (1000 series)."""
    code = "MSW-1001"


class ProxyTargetMissingError(BadRequestError):
    code = "MSW-1001"


class ProxyTargetInvalidError(BadRequestError):
    code = "MSW-1002"


class NotFoundError(MultiSwaggerError):
    """Resource not found errors (2000 series)."""
    code = "MSW-2001"


class SpecNotFoundError(NotFoundError):
    code = "MSW-2001"


class StaticFileNotFoundError(NotFoundError):
    code = "MSW-2002"


class ProxyTargetForbiddenError(MultiSwaggerError):
    code = "MSW-3001"


class InternalError(MultiSwaggerError):
    """Response construction / writing failures."""
    code = "MSW-5001"


class ExternalServiceError(MultiSwaggerError):
    """Raised when a spec source or proxy target fails."""
    code = "MSW-6001"


class SpecFetchError(ExternalServiceError):
    code = "MSW-6001"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None, **kwargs):
        self.status_code = status_code
        super().__init__(detail, **kwargs)


class SpecDecodeError(ExternalServiceError):
    code = "MSW-6002"


class ProxyError(ExternalServiceError):
    code = "MSW-6003"

