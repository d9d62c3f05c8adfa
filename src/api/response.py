"""HTTP-shaped response returned by the request handlers."""

import json
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ApiResponse:
    """Status code, JSON body and headers of a handled request."""

    status_code: int
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def json(cls, status_code: int, body: Any, headers: Optional[dict[str, str]] = None) -> "ApiResponse":
        return cls(status_code, body, {"Content-Type": "application/json", **(headers or {})})

    @classmethod
    def error(cls, status_code: int, message: str, **extra: Any) -> "ApiResponse":
        return cls.json(status_code, {"error": message, **extra})

    @classmethod
    def empty(cls, status_code: int) -> "ApiResponse":
        return cls(status_code)

    def to_lambda(self) -> dict[str, Any]:
        """Render as an API Gateway proxy response."""
        return {
            "statusCode": self.status_code,
            "headers": self.headers,
            "body": json.dumps(self.body, default=str) if self.body is not None else "",
        }
