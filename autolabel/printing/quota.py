"""Usage quota gate consulted before a print job starts."""

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import requests

from autolabel.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaDecision:
    """Answer of a quota gate.

    Attributes:
        allowed: Whether the labels may be printed.
        reason: Human-readable explanation when denied.
        remaining: Labels left in the period (-1 = unlimited).
        limit: Labels per period (-1 = unlimited).
    """

    allowed: bool
    reason: str | None = None
    remaining: int | None = None
    limit: int | None = None


@runtime_checkable
class QuotaGate(Protocol):
    """Opaque decision function over the licensing/usage system."""

    def validate(self, count: int) -> QuotaDecision:
        """Check whether ``count`` more labels may be printed."""
        ...


class UnlimitedQuota:
    """Gate used when no quota service is configured."""

    def validate(self, count: int) -> QuotaDecision:
        return QuotaDecision(allowed=True, remaining=-1, limit=-1)


class HttpQuotaGate:
    """Quota gate backed by a remote licensing service.

    POSTs ``{"count": n}`` and expects ``allowed``, ``reason``, ``remaining``
    and ``limit`` in the JSON answer. An unreachable service denies.
    """

    def __init__(self, url: str, api_key: str = "", timeout: int = 10):
        """Initialize the gate.

        Args:
            url: Validation endpoint.
            api_key: Sent as ``X-API-Key``.
            timeout: Request timeout in seconds.
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    @property
    def _headers(self) -> dict:
        return {"X-API-Key": self.api_key} if self.api_key else {}

    def validate(self, count: int) -> QuotaDecision:
        try:
            response = requests.post(
                self.url,
                headers=self._headers,
                json={"count": count},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Quota service unreachable: {e}")
            return QuotaDecision(allowed=False, reason=f"Quota service unreachable: {e}")

        if response.status_code != 200:
            logger.warning(f"Quota check failed: {response.status_code}")
            return QuotaDecision(
                allowed=False, reason=f"Quota service returned {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError:
            return QuotaDecision(allowed=False, reason="Quota service returned invalid JSON")
        if not isinstance(data, dict):
            return QuotaDecision(allowed=False, reason="Quota service returned invalid JSON")

        decision = QuotaDecision(
            allowed=bool(data.get("allowed", False)),
            reason=data.get("reason"),
            remaining=data.get("remaining"),
            limit=data.get("limit"),
        )
        logger.info(
            f"Quota check for {count} label(s): allowed={decision.allowed}, "
            f"remaining={decision.remaining}"
        )
        return decision


def get_quota_gate(settings: Settings | None = None) -> QuotaGate:
    """Factory function for the configured quota gate.

    Args:
        settings: Settings (defaults to cached settings).

    Returns:
        QuotaGate: HTTP gate if a quota URL is set, else unlimited.
    """
    settings = settings or get_settings()
    if settings.quota_url:
        return HttpQuotaGate(settings.quota_url, settings.quota_api_key)
    return UnlimitedQuota()
