"""OAuth 2.0 Device Authorization Grant against GitHub.

The engine requests a device/user code pair, hands the user code to an
observer for display, then polls the token endpoint until GitHub reports a
terminal outcome or the device code's lifetime elapses::

    idle -> code_requested -> polling -> success | denied | expired | error

Polling honours GitHub's ``slow_down`` signal by raising the interval, never
lowering it.
"""

from __future__ import annotations

import enum
import typing as typ

import httpx
import msgspec

from ghaction.common.clock import Clock, SystemClock, check_cancelled
from ghaction.logging import get_logger, log_debug, log_info

from .errors import (
    AccessDeniedError,
    AuthNetworkError,
    DeviceCodeExpiredError,
    DeviceCodeRequestFailedError,
    InvalidTokenResponseError,
    TokenRequestFailedError,
)
from .models import CredentialRecord, DeviceCodeResponse, TokenKind, TokenResponse

if typ.TYPE_CHECKING:
    import asyncio

    from .config import AuthConfig
    from .protocol import DeviceFlowObserver

logger = get_logger(__name__)

DEVICE_CODE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
SLOW_DOWN_FALLBACK_INTERVAL_S = 10

_HTTP_SUCCESS_MIN = 200
_HTTP_SUCCESS_MAX = 299


class DeviceFlowState(enum.StrEnum):
    """Lifecycle of a single device-flow attempt."""

    IDLE = "idle"
    CODE_REQUESTED = "code_requested"
    POLLING = "polling"
    SUCCESS = "success"
    DENIED = "denied"
    EXPIRED = "expired"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` for states that end the flow."""
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        DeviceFlowState.SUCCESS,
        DeviceFlowState.DENIED,
        DeviceFlowState.EXPIRED,
        DeviceFlowState.ERROR,
    }
)


class DeviceFlowEngine:
    """Drive one device-flow attempt.

    Parameters
    ----------
    config
        Client id, scopes and OAuth endpoints.
    http_client
        Client used for the OAuth requests. The engine never closes it.
    clock
        Time source for sleeps, deadlines and record timestamps.

    """

    def __init__(
        self,
        config: AuthConfig,
        http_client: httpx.AsyncClient,
        *,
        clock: Clock | None = None,
    ) -> None:
        """Bind the engine to its configuration and transport."""
        self._config = config
        self._client = http_client
        self._clock = clock or SystemClock()
        self._state = DeviceFlowState.IDLE
        self._poll_count = 0

    @property
    def state(self) -> DeviceFlowState:
        """Current state of the flow."""
        return self._state

    @property
    def poll_count(self) -> int:
        """Number of token requests issued so far."""
        return self._poll_count

    def _transition(self, state: DeviceFlowState) -> None:
        log_debug(logger, "Device flow %s -> %s", self._state, state)
        self._state = state

    async def _post_form(self, url: str, data: dict[str, str]) -> httpx.Response:
        try:
            return await self._client.post(
                url,
                data=data,
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as exc:
            self._transition(DeviceFlowState.ERROR)
            raise AuthNetworkError.from_exception(exc) from exc

    async def run(
        self,
        observer: DeviceFlowObserver | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> CredentialRecord:
        """Request a code, notify ``observer`` and poll until a terminal state.

        Raises
        ------
        DeviceCodeRequestFailedError
            If GitHub refuses to issue a device code.
        DeviceCodeExpiredError
            If the code expires before the user authorises.
        AccessDeniedError
            If the user declines.
        TokenRequestFailedError
            For any other OAuth error code.
        InvalidTokenResponseError
            If a response carries neither a token nor an error.
        AuthNetworkError
            If a request fails below HTTP.

        """
        code = await self.request_device_code()
        if observer is not None:
            observer.on_user_code(code.user_code, code.verification_uri)
        return await self.poll_for_token(code, cancel_event=cancel_event)

    async def request_device_code(self) -> DeviceCodeResponse:
        """Ask GitHub for a device code and user code."""
        response = await self._post_form(
            self._config.device_code_url,
            {"client_id": self._config.client_id, "scope": self._config.scope},
        )
        if not _HTTP_SUCCESS_MIN <= response.status_code <= _HTTP_SUCCESS_MAX:
            self._transition(DeviceFlowState.ERROR)
            raise DeviceCodeRequestFailedError.http_error(response.status_code)

        try:
            upstream = msgspec.json.decode(response.content, type=TokenResponse)
            if upstream.error:
                self._transition(DeviceFlowState.ERROR)
                raise DeviceCodeRequestFailedError.upstream_error(
                    upstream.error, upstream.error_description
                )
            code = msgspec.json.decode(response.content, type=DeviceCodeResponse)
        except msgspec.DecodeError as exc:
            self._transition(DeviceFlowState.ERROR)
            raise DeviceCodeRequestFailedError.malformed() from exc

        self._transition(DeviceFlowState.CODE_REQUESTED)
        log_info(
            logger,
            "Device code issued; expires_in=%ds interval=%ds",
            code.expires_in,
            code.interval,
        )
        return code

    async def poll_for_token(
        self,
        code: DeviceCodeResponse,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> CredentialRecord:
        """Poll the token endpoint until authorisation completes.

        The deadline is fixed at entry from ``code.expires_in``. Each
        iteration sleeps for the current interval, honours ``cancel_event``,
        then issues one token request.
        """
        deadline = self._clock.monotonic() + code.expires_in
        interval = float(code.interval)
        self._transition(DeviceFlowState.POLLING)

        while self._clock.monotonic() < deadline:
            await self._clock.sleep(interval)
            check_cancelled(cancel_event)

            token = await self._request_token(code.device_code)
            if token.error is None:
                return self._complete(token)

            if token.error == "authorization_pending":
                continue
            if token.error == "slow_down":
                requested = token.interval or SLOW_DOWN_FALLBACK_INTERVAL_S
                interval = max(interval, float(requested))
                log_debug(logger, "Device flow slow_down; interval=%.0fs", interval)
                continue
            self._fail(token)

        self._transition(DeviceFlowState.EXPIRED)
        raise DeviceCodeExpiredError

    async def _request_token(self, device_code: str) -> TokenResponse:
        self._poll_count += 1
        response = await self._post_form(
            self._config.token_url,
            {
                "client_id": self._config.client_id,
                "device_code": device_code,
                "grant_type": DEVICE_CODE_GRANT_TYPE,
            },
        )
        try:
            return msgspec.json.decode(response.content, type=TokenResponse)
        except msgspec.DecodeError as exc:
            self._transition(DeviceFlowState.ERROR)
            raise InvalidTokenResponseError from exc

    def _complete(self, token: TokenResponse) -> CredentialRecord:
        if not token.access_token:
            self._transition(DeviceFlowState.ERROR)
            raise InvalidTokenResponseError

        self._transition(DeviceFlowState.SUCCESS)
        # GitHub OAuth app tokens do not expire unless revoked.
        return CredentialRecord(
            access_token=token.access_token,
            token_kind=TokenKind.OAUTH,
            scope=token.scope,
            created_at=self._clock.now(),
        )

    def _fail(self, token: TokenResponse) -> typ.NoReturn:
        error = token.error or ""
        if error == "expired_token":
            self._transition(DeviceFlowState.EXPIRED)
            raise DeviceCodeExpiredError
        if error == "access_denied":
            self._transition(DeviceFlowState.DENIED)
            raise AccessDeniedError
        self._transition(DeviceFlowState.ERROR)
        raise TokenRequestFailedError(error, token.error_description)
