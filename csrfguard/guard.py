"""
CSRF Guard - Synchronizer token middleware.

Issues a ``(name, value)`` token pair on every request and verifies the pair
echoed back in the body of state-changing requests (POST, PUT, DELETE, PATCH).

Token Lifecycle:
    1. Resolve token storage (explicit storage, else the request session).
    2. For state-changing methods, validate the submitted pair. On failure,
       mint a fresh pair and hand over to the failure handler; the wrapped
       handler is not called.
    3. Issue a token: a new pair every request, or in persistent token mode
       the newest stored pair (minted only when storage is empty).
    4. Evict the oldest tokens beyond ``storage_limit``.
    5. Expose the pair as ``request.state["<prefix>_name"]`` and
       ``request.state["<prefix>_value"]`` and call the next handler.

A failed check always rotates the token, even in persistent token mode.

All middleware follow the async signature:
    async def __call__(self, request, ctx, next) -> Response
"""

from __future__ import annotations

import hmac
import inspect
import logging
from contextvars import ContextVar
from typing import Any, FrozenSet, Optional, Tuple

from .config import GuardConfig
from .eviction import enforce_limit
from .faults import CSRFViolationFault, SessionUnavailableFault
from .response import Response
from .storage import SessionStorage, TokenStorage, as_storage
from .tokens import TokenPair, create_name, create_value
from .types import FailureHandler, Handler, ParsedBody, RequestLike

logger = logging.getLogger("csrfguard.guard")


# ═══════════════════════════════════════════════════════════════════════════════
#  Failure handlers
# ═══════════════════════════════════════════════════════════════════════════════

async def default_failure_handler(request: RequestLike, ctx: Any, next_handler: Handler) -> Response:
    """Reject with a plain-text 400 response."""
    return Response.text("Failed CSRF check!", status=400)


async def json_failure_handler(request: RequestLike, ctx: Any, next_handler: Handler) -> Response:
    """Reject with a 400 JSON error body carrying the fault code."""
    fault = CSRFViolationFault()
    return Response.json(
        {
            "error": {
                "code": fault.code,
                "message": fault.message,
                "domain": fault.domain.value,
            }
        },
        status=400,
        headers={"x-fault-code": fault.code},
    )


# ═══════════════════════════════════════════════════════════════════════════════
#  Guard
# ═══════════════════════════════════════════════════════════════════════════════

class Guard:
    """
    CSRF protection middleware (synchronizer token pattern).

    Args:
        prefix: Namespace for body fields, request state keys and the session
            bucket. Trailing underscores are trimmed.
        storage: Token storage; a ``TokenStorage`` or a mutable mapping used
            by reference. When omitted, tokens live in ``session[prefix]`` of
            the session found in ``request.state["session"]`` or ``ctx.session``.
        failure_handler: ``(request, ctx, next_handler) -> Response`` called
            when validation fails (sync or async). Defaults to a plain-text
            400 response.
        storage_limit: Maximum retained tokens; ``<= 0`` disables eviction.
        strength: Bytes of randomness per token value (minimum 16).
        persistent_token_mode: Keep one token per session instead of rotating
            it on every request.

    Raises:
        CSRFConfigFault: Invalid configuration (e.g. strength below 16)

    Example::

        guard = Guard(prefix="csrf", storage_limit=100)
        app.middleware_stack.add(guard, scope="global", priority=20, name="csrf")

        # Forms echo back both fields:
        # <input type="hidden" name="csrf_name" value="...">
        # <input type="hidden" name="csrf_value" value="...">
    """

    VALIDATED_METHODS: FrozenSet[str] = frozenset({"POST", "PUT", "DELETE", "PATCH"})
    _BODY_STATE_KEYS: Tuple[str, ...] = ("parsed_body", "form_data", "body")

    def __init__(
        self,
        prefix: str = "csrf",
        storage: Any = None,
        failure_handler: Optional[FailureHandler] = None,
        storage_limit: int = 200,
        strength: int = 16,
        persistent_token_mode: bool = False,
    ):
        config = GuardConfig(
            prefix=prefix,
            storage_limit=storage_limit,
            strength=strength,
            persistent_token_mode=persistent_token_mode,
        )
        self._prefix = config.prefix
        self._strength = config.strength
        self._storage: Optional[TokenStorage] = as_storage(storage) if storage is not None else None
        self._storage_limit = config.storage_limit
        self._persistent_token_mode = config.persistent_token_mode
        self._failure_handler: FailureHandler = failure_handler or default_failure_handler

        # Per-request state; each asyncio task sees its own values
        self._key_pair: ContextVar[Optional[TokenPair]] = ContextVar(
            f"csrf_key_pair_{self._prefix}", default=None
        )
        self._bound_storage: ContextVar[Optional[TokenStorage]] = ContextVar(
            f"csrf_storage_{self._prefix}", default=None
        )

    @classmethod
    def from_config(
        cls,
        config: GuardConfig,
        storage: Any = None,
        failure_handler: Optional[FailureHandler] = None,
    ) -> "Guard":
        """Build a guard from a loaded ``GuardConfig``."""
        return cls(storage=storage, failure_handler=failure_handler, **config.to_dict())

    # ── Settings ─────────────────────────────────────────────────────────

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def strength(self) -> int:
        return self._strength

    @property
    def token_name_key(self) -> str:
        return f"{self._prefix}_name"

    @property
    def token_value_key(self) -> str:
        return f"{self._prefix}_value"

    @property
    def persistent_token_mode(self) -> bool:
        return self._persistent_token_mode

    @persistent_token_mode.setter
    def persistent_token_mode(self, enabled: bool) -> None:
        self._persistent_token_mode = bool(enabled)

    @property
    def storage_limit(self) -> int:
        return self._storage_limit

    @storage_limit.setter
    def storage_limit(self, limit: int) -> None:
        self._storage_limit = int(limit)

    @property
    def failure_handler(self) -> FailureHandler:
        return self._failure_handler

    @failure_handler.setter
    def failure_handler(self, handler: Optional[FailureHandler]) -> None:
        self._failure_handler = handler or default_failure_handler

    # ── Current key pair ─────────────────────────────────────────────────

    @property
    def token_name(self) -> Optional[str]:
        """Name of the pair issued or loaded in the current request, if any."""
        pair = self._key_pair.get()
        return pair.name if pair else None

    @property
    def token_value(self) -> Optional[str]:
        """Value of the pair issued or loaded in the current request, if any."""
        pair = self._key_pair.get()
        return pair.value if pair else None

    # ── Main Handler ─────────────────────────────────────────────────────

    async def __call__(self, request: RequestLike, ctx: Any, next_handler: Handler) -> Any:
        self._key_pair.set(None)
        storage = self.validate_storage(request, ctx)

        if request.method.upper() in self.VALIDATED_METHODS:
            name, value = self._submitted_pair(request)
            if name is None or value is None:
                reason = "token fields missing"
            elif not self.validate_token(name, value):
                reason = "token mismatch"
            else:
                reason = None

            if reason is not None:
                # validate_token may have consumed the submitted pair
                request = self.generate_new_token(request)
                enforce_limit(storage, self._storage_limit)
                logger.warning(
                    "CSRF check failed (%s) for %s %s",
                    reason, request.method, getattr(request, "path", ""),
                )
                result = self._failure_handler(request, ctx, next_handler)
                if inspect.isawaitable(result):
                    result = await result
                return result

        if not self._persistent_token_mode or not self._load_last_key_pair(storage):
            request = self.generate_new_token(request)
        else:
            request = self._attach_request_attributes(request, self._key_pair.get())
            logger.debug("Reusing persistent CSRF token %s", self.token_name)

        enforce_limit(storage, self._storage_limit)

        return await next_handler(request, ctx)

    async def process(self, request: RequestLike, ctx: Any, next_handler: Handler) -> Any:
        """Same as calling the guard."""
        return await self(request, ctx, next_handler)

    # ── Storage ──────────────────────────────────────────────────────────

    def validate_storage(self, request: Optional[RequestLike] = None, ctx: Any = None) -> TokenStorage:
        """
        Resolve the token storage for the current request.

        Explicit storage wins; otherwise the session in
        ``request.state["session"]`` (or ``ctx.session``) provides the
        ``session[prefix]`` bucket. The result is bound to the current
        context for ``validate_token`` and ``generate_token``.

        Raises:
            SessionUnavailableFault: No explicit storage and no session
        """
        if self._storage is not None:
            storage = self._storage
        else:
            session = None
            state = getattr(request, "state", None)
            if state is not None:
                session = state.get("session")
            if session is None and ctx is not None:
                session = getattr(ctx, "session", None)
            if session is None:
                logger.error(
                    "CSRF guard %r has no storage and the request carries no session",
                    self._prefix,
                )
                raise SessionUnavailableFault(self._prefix)
            storage = SessionStorage(session, self._prefix)

        self._bound_storage.set(storage)
        return storage

    def _current_storage(self) -> TokenStorage:
        storage = self._bound_storage.get()
        if storage is not None:
            return storage
        if self._storage is not None:
            return self._storage
        raise SessionUnavailableFault(self._prefix)

    # ── Token Generation ─────────────────────────────────────────────────

    def generate_token(self) -> TokenPair:
        """Mint, store and remember a new token pair."""
        pair = TokenPair(name=create_name(self._prefix), value=create_value(self._strength))
        self._current_storage().set(pair.name, pair.value)
        self._key_pair.set(pair)
        logger.debug("Issued CSRF token %s", pair.name)
        return pair

    def generate_new_token(self, request: RequestLike) -> Any:
        """Mint a new pair and attach it to ``request.state``."""
        pair = self.generate_token()
        return self._attach_request_attributes(request, pair)

    # ── Validation ───────────────────────────────────────────────────────

    def validate_token(self, name: str, value: str) -> bool:
        """
        Check a submitted pair against storage.

        Outside persistent token mode the stored entry for ``name`` is
        deleted whatever the outcome, so a pair can be tried only once.
        """
        storage = self._current_storage()
        token = storage.get(name)
        result = (
            isinstance(token, str)
            and isinstance(value, str)
            and hmac.compare_digest(token.encode("utf-8"), value.encode("utf-8"))
        )

        if not self._persistent_token_mode:
            storage.remove(name)

        return result

    # ── Helpers ──────────────────────────────────────────────────────────

    def _submitted_pair(self, request: RequestLike) -> Tuple[Optional[str], Optional[str]]:
        body = self._parsed_body(request)
        name = body.get(self.token_name_key)
        value = body.get(self.token_value_key)
        if not isinstance(name, str) or not name:
            name = None
        if not isinstance(value, str) or not value:
            value = None
        return name, value

    def _parsed_body(self, request: RequestLike) -> ParsedBody:
        """Parsed request body as stored by the body parser, else empty."""
        state = getattr(request, "state", None) or {}
        for key in self._BODY_STATE_KEYS:
            body = state.get(key)
            if body is not None and hasattr(body, "get") and not isinstance(body, (str, bytes)):
                return body
        body = getattr(request, "parsed_body", None)
        if body is not None and hasattr(body, "get"):
            return body
        return {}

    def _load_last_key_pair(self, storage: TokenStorage) -> bool:
        """Load the newest stored pair as the current pair."""
        name = storage.newest_key()
        value = storage.get(name) if name is not None else None
        if name is None or not isinstance(value, str):
            self._key_pair.set(None)
            return False
        self._key_pair.set(TokenPair(name=name, value=value))
        return True

    def _attach_request_attributes(self, request: RequestLike, pair: TokenPair) -> Any:
        request.state.update(pair.as_dict(self._prefix))
        return request

    def __repr__(self) -> str:
        return (
            f"Guard(prefix={self._prefix!r}, storage_limit={self._storage_limit}, "
            f"strength={self._strength}, persistent_token_mode={self._persistent_token_mode})"
        )
