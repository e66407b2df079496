"""Credential Resolver — turns a raw API key into a usable sdk credential.

Invariants:
    - Order: decode claims -> expiry check -> key_type switch
    - An sdk token is returned unchanged and never triggers an exchange
    - A generator token triggers exactly one exchange, never retried here
    - Every failure is a ClientError; exchange failures are generation_failed

Design Decisions:
    - Clock injected (time.time by default): expiry is testable at the boundary
    - Pure decoding lives in core/credentials.py; this class only adds the exchange IO
"""

import logging
import time
from typing import Callable

from verifyflow.core.credentials import Credential, decode_claims, is_expired
from verifyflow.core.domain_types import KeyType
from verifyflow.core.errors import (
    ClientError,
    ClientErrorCode,
    ErrorContext,
    VerificationError,
)
from verifyflow.core.gateway_protocols import ApiGateway

logger = logging.getLogger(__name__)

_STAGE = "resolve_credential"


class CredentialResolver:
    """Validates an API key and exchanges generator keys for sdk keys."""

    def __init__(self, gateway: ApiGateway, clock: Callable[[], float] = time.time):
        self.gateway = gateway
        self.clock = clock

    async def resolve(self, raw_token: str) -> Credential:
        """Resolve `raw_token` into a credential usable for validation calls.

        Raises:
            ClientError: invalid_jwt_format, missing_expiration, missing_key_type,
                expired_key, invalid_key_type or generation_failed.
        """
        try:
            claims = decode_claims(raw_token)
        except ClientError as e:
            e.context.stage = _STAGE
            raise

        if is_expired(claims.exp, self.clock()):
            raise ClientError(
                ClientErrorCode.EXPIRED_KEY, claims.exp, ErrorContext(stage=_STAGE),
            )

        if claims.key_type == KeyType.SDK.value:
            return Credential(raw_token, KeyType.SDK, claims.exp)
        if claims.key_type == KeyType.GENERATOR.value:
            return await self._exchange(raw_token)
        raise ClientError(
            ClientErrorCode.INVALID_KEY_TYPE, claims.key_type, ErrorContext(stage=_STAGE),
        )

    async def _exchange(self, generator_token: str) -> Credential:
        logger.info("Exchanging generator key for sdk key", extra={"stage": _STAGE})
        try:
            response = await self.gateway.exchange_credential(generator_token)
        except VerificationError as e:
            if e.code == ClientErrorCode.GENERATION_FAILED.value:
                raise
            raise ClientError(
                ClientErrorCode.GENERATION_FAILED, e.message, ErrorContext(stage=_STAGE),
            ) from e
        # Expiry of the issued key is the server's concern; it is used immediately
        return Credential(response.api_key, KeyType.SDK, None)
