"""Message signing across inconsistent ``personal_sign`` conventions.

Wallets disagree on whether ``personal_sign`` takes ``[message, address]`` or
``[address, message]`` and on whether the message must be hex encoded.  The
adapter walks a fixed list of four parameter shapes until one produces a
signature.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from . import metrics as sdk_metrics
from .addresses import to_hex_utf8
from .context import SessionContext
from .errors import NoWalletProvider, SignatureFailed
from .wallet import NativeSigner, WalletTransport, WalletVendor, capabilities_for

logger = logging.getLogger(__name__)


def build_personal_sign_attempts(message: str, address: str) -> list[list[str]]:
    """Return the four ``personal_sign`` parameter shapes in try order."""

    msg = str(message or "")
    wallet = str(address or "")
    hex_message = to_hex_utf8(msg)
    return [
        [hex_message, wallet],
        [msg, wallet],
        [wallet, hex_message],
        [wallet, msg],
    ]


def _is_signature(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


class SigningAdapter:
    def __init__(
        self,
        transport: WalletTransport | None = None,
        *,
        vendor: WalletVendor | str | None = None,
        context: SessionContext | None = None,
    ) -> None:
        self._transport = transport
        self._vendor = vendor
        self._context = context

    @classmethod
    def from_context(cls, context: SessionContext) -> "SigningAdapter":
        return cls(context=context)

    @property
    def transport(self) -> WalletTransport | None:
        if self._transport is not None:
            return self._transport
        return self._context.transport if self._context is not None else None

    @property
    def vendor(self) -> WalletVendor:
        if self._vendor is not None:
            return WalletVendor.parse(self._vendor)
        if self._context is not None and self._context.vendor is not None:
            return self._context.vendor
        return WalletVendor.GENERIC

    async def iter_signatures(self, message: str, address: str) -> AsyncIterator[str]:
        """Yield every signature the wallet produces, one per accepted shape.

        Errors from individual shapes are recorded and skipped.  When the
        generator is exhausted without yielding, :class:`SignatureFailed` is
        raised carrying the last error.
        """

        transport = self.transport
        if transport is None:
            raise NoWalletProvider("Wallet provider unavailable for signing.")

        last_error: BaseException | None = None
        attempts = 0
        produced = False

        if capabilities_for(self.vendor).native_sign and isinstance(transport, NativeSigner):
            attempts += 1
            try:
                signature = await transport.sign_message(message, address)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.debug("native sign failed: %s", exc)
                sdk_metrics.observe_signing_attempt("error")
                last_error = exc
            else:
                if _is_signature(signature):
                    sdk_metrics.observe_signing_attempt("success")
                    produced = True
                    yield signature
                else:
                    sdk_metrics.observe_signing_attempt("empty")

        for index, params in enumerate(build_personal_sign_attempts(message, address), start=1):
            attempts += 1
            try:
                signature = await transport.request("personal_sign", params)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.debug("personal_sign shape %d failed: %s", index, exc)
                sdk_metrics.observe_signing_attempt("error")
                last_error = exc
                continue
            if not _is_signature(signature):
                logger.debug("personal_sign shape %d returned no signature", index)
                sdk_metrics.observe_signing_attempt("empty")
                continue
            logger.debug("personal_sign shape %d produced a signature", index)
            sdk_metrics.observe_signing_attempt("success")
            produced = True
            yield signature

        if not produced:
            text = str(last_error) if last_error is not None and str(last_error) else "Wallet signature failed."
            raise SignatureFailed(text, last_error=last_error, attempts=attempts)

    async def sign(self, message: str, address: str) -> str:
        """Return the first signature any shape produces."""

        signatures = self.iter_signatures(message, address)
        try:
            async for signature in signatures:
                return signature
        finally:
            await signatures.aclose()
        raise SignatureFailed("Wallet signature failed.")  # pragma: no cover - generator raises


__all__ = ["SigningAdapter", "build_personal_sign_attempts"]
