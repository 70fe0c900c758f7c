"""
Request routing and provider fallback.

Decides, per request, which providers to call, with which prompt and which
key, and whether the device quota applies.

Routing Order:
1. Validate    - text must be non-empty after trimming
2. Authorize   - caller key: no quota; no key: device id + quota check
3. Invoke      - providers in configured order until one succeeds
4. Commit      - free-tier successes charge the device exactly once
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..log import get_logger
from ..sdk.base import ProviderClient, ProviderError
from .prompts import Mode, select_prompt
from .quota import QuotaTracker

logger = get_logger(__name__)

UNAVAILABLE_MESSAGE = "AI service is unavailable right now. Please try again later."


class ProviderSlot(Enum):
    """Which position in the provider list served the request."""
    PRIMARY = "primary"
    SECONDARY = "secondary"


class GatewayError(Exception):
    """Error surfaced to the HTTP caller."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(GatewayError):
    status_code = 400


class Unauthorized(GatewayError):
    status_code = 401


class TooManyRequests(GatewayError):
    status_code = 429


class AllProvidersFailed(GatewayError):
    """Every provider failed or none had a usable key."""
    status_code = 502

    def __init__(self, message: str, failures: Sequence[Tuple[str, ProviderError]] = ()):
        super().__init__(message)
        self.failures = list(failures)


@dataclass(frozen=True)
class GenerationRequest:
    """One inbound /refine or /chat call."""
    text: str
    mode: Mode
    credential: Optional[str] = None
    device_id: Optional[str] = None

    @property
    def is_free_tier(self) -> bool:
        return not self.credential


@dataclass(frozen=True)
class GenerationResult:
    """Generated text plus which provider produced it."""
    text: str
    provider_used: ProviderSlot
    provider_name: str
    notification: Optional[str] = None


class RequestRouter:
    """Routes generation requests across an ordered list of providers."""

    def __init__(
        self,
        providers: Sequence[ProviderClient],
        quota: QuotaTracker,
        shared_keys_for_credentialed: bool = True
    ):
        """Initialize the router.

        Args:
            providers: Adapters in fallback order; the first one is the primary
            quota: Tracker consulted for callers without a credential
            shared_keys_for_credentialed: Whether callers with their own key may
                fall back to providers using the operator's shared keys

        Raises:
            ValueError: If no provider is given
        """
        if not providers:
            raise ValueError("at least one provider is required")

        self.providers = list(providers)
        self.quota = quota
        self.shared_keys_for_credentialed = shared_keys_for_credentialed

    def route(self, request: GenerationRequest) -> GenerationResult:
        """Serve one request.

        Args:
            request: Inbound request

        Returns:
            GenerationResult from the first provider that succeeded

        Raises:
            BadRequest: If the text is empty after trimming
            Unauthorized: If there is no credential and no device id
            TooManyRequests: If the device's free-tier quota is spent
            AllProvidersFailed: If no provider produced text
        """
        text = (request.text or "").strip()
        if not text:
            raise BadRequest("Missing 'text' in body")

        free_tier = request.is_free_tier
        device_id = (request.device_id or "").strip()

        if free_tier:
            if not device_id:
                raise Unauthorized("Missing X-Device-Id header. Add your own API key or send a device id.")
            if not self.quota.check_and_reserve(device_id):
                raise TooManyRequests(
                    f"Daily free limit of {self.quota.daily_limit} requests reached. "
                    "Add your own API key for unlimited use."
                )

        prompt = select_prompt(request.mode, text)
        plan = self._plan(request.credential)

        failures: List[Tuple[str, ProviderError]] = []
        for index, provider, api_key in plan:
            try:
                generated = provider.generate(prompt, api_key)
            except ProviderError as e:
                logger.warning(
                    "event=route.provider_failed | provider=%s kind=%s status=%s free_tier=%s",
                    provider.name, e.kind.value, e.status_code, free_tier
                )
                failures.append((provider.name, e))
                continue

            if free_tier:
                self.quota.commit(device_id)

            slot = ProviderSlot.PRIMARY if index == 0 else ProviderSlot.SECONDARY
            notification = None
            if slot == ProviderSlot.SECONDARY:
                notification = (
                    f"Primary AI provider is unavailable right now; "
                    f"this reply came from the backup provider ({provider.name})."
                )
            logger.info(
                "event=route.success | mode=%s provider=%s slot=%s free_tier=%s",
                request.mode.value, provider.name, slot.value, free_tier
            )
            return GenerationResult(
                text=generated,
                provider_used=slot,
                provider_name=provider.name,
                notification=notification,
            )

        if not plan:
            logger.error("event=route.no_provider | free_tier=%s (no shared keys configured)", free_tier)
        raise AllProvidersFailed(UNAVAILABLE_MESSAGE, failures)

    def _plan(self, credential: Optional[str]) -> List[Tuple[int, ProviderClient, str]]:
        """Pair each usable provider with the key it will be called with.

        The caller's credential is only valid for the primary provider.
        Providers with no key to use are left out.
        """
        plan = []
        for index, provider in enumerate(self.providers):
            if credential:
                if index == 0:
                    key = credential
                elif self.shared_keys_for_credentialed:
                    key = provider.shared_key
                else:
                    key = None
            else:
                key = provider.shared_key

            if not key:
                logger.debug("event=route.skip_provider | provider=%s reason=no_key", provider.name)
                continue
            plan.append((index, provider, key))
        return plan
