"""
Minimal HTTP response value returned by the failure handlers.

Frameworks that need their own response type plug in a custom failure
handler instead.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Union


class Response:
    """
    HTTP response with a buffered body.

    Args:
        content: Response body (bytes, str, dict/list)
        status: HTTP status code
        headers: Response headers (names are lower-cased)
        media_type: Content-Type override
        encoding: Text encoding (default utf-8)
    """

    def __init__(
        self,
        content: Union[bytes, str, Mapping, list] = b"",
        status: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        media_type: Optional[str] = None,
        *,
        encoding: str = "utf-8",
    ):
        self.status = status
        self._content = content
        self.encoding = encoding

        self._headers: Dict[str, str] = {}
        if headers:
            for key, value in headers.items():
                self._headers[key.lower()] = value

        if media_type:
            self._headers["content-type"] = media_type
        elif "content-type" not in self._headers:
            self._headers["content-type"] = self._detect_media_type(content)

    @property
    def headers(self) -> Dict[str, str]:
        """Get response headers."""
        return self._headers

    @property
    def body(self) -> bytes:
        """Encoded response body."""
        return self._encode_body(self._content)

    def _detect_media_type(self, content: Any) -> str:
        if isinstance(content, (dict, list)):
            return "application/json; charset=utf-8"
        elif isinstance(content, str):
            return "text/plain; charset=utf-8"
        return "application/octet-stream"

    def _encode_body(self, content: Any) -> bytes:
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode(self.encoding)
        if isinstance(content, (dict, list)):
            return json.dumps(content).encode(self.encoding)
        raise TypeError(f"Cannot encode response body of type {type(content).__name__}")

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def json(
        cls,
        obj: Any,
        status: int = 200,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "Response":
        """Create JSON response."""
        return cls(
            content=json.dumps(obj),
            status=status,
            headers=headers,
            media_type="application/json; charset=utf-8",
        )

    @classmethod
    def text(cls, content: str, status: int = 200, **kwargs) -> "Response":
        """Create plain text response."""
        return cls(
            content=content,
            status=status,
            media_type="text/plain",
            **kwargs
        )

    def __repr__(self) -> str:
        return f"Response(status={self.status}, content-type={self._headers.get('content-type')!r})"
