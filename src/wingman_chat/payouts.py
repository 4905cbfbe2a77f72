"""Referral earnings and payout requests through the payment processor.

This sits beside the chat engine: typed response models, the fee preview
shown before a payout is requested, and a thin client over the referral and
Stripe Connect endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .api import ApiTransport, error_message
from .exceptions import PayoutError

LOGGER = logging.getLogger(__name__)

FEE_PERCENT = Decimal("2.9")
FIXED_FEE = Decimal("0.30")
_CENTS = Decimal("0.01")


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ConnectStatus(str, Enum):
    NOT_CONNECTED = "not_connected"
    PENDING = "pending"
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ReferralItem(_WireModel):
    email: str
    date: str
    status: str = "pending"
    earned: float = 0.0
    name: str | None = None
    user_id: str | None = Field(default=None, alias="userId")


class ReferralStats(_WireModel):
    referral_code: str = Field(default="", alias="referralCode")
    total_referrals: int = Field(default=0, alias="totalReferrals")
    active_referrals: int = Field(default=0, alias="activeReferrals")
    total_earned: float = Field(default=0.0, alias="totalEarned")
    available_balance: float = Field(default=0.0, alias="availableBalance")
    recent_referrals: list[ReferralItem] = Field(default_factory=list, alias="recentReferrals")


class Payout(_WireModel):
    id: str
    amount: float
    status: PayoutStatus = PayoutStatus.PENDING
    created_at: str = Field(default="", alias="createdAt")
    completed_at: str | None = Field(default=None, alias="completedAt")
    currency: str = "usd"
    destination: str = ""
    transfer_id: str | None = Field(default=None, alias="transferId")
    fee: float | None = None
    net_amount: float | None = Field(default=None, alias="netAmount")
    error: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ConnectRequirements(_WireModel):
    currently_due: list[str] = Field(default_factory=list)
    pending_verification: list[str] = Field(default_factory=list)


class StripeConnectAccount(_WireModel):
    id: str = ""
    status: ConnectStatus = ConnectStatus.NOT_CONNECTED
    payouts_enabled: bool = Field(default=False, alias="payoutsEnabled")
    requirements: ConnectRequirements | None = None


class PayoutHistory(_WireModel):
    payouts: list[Payout] = Field(default_factory=list)
    available_balance: float = Field(default=0.0, alias="availableBalance")
    minimum_payout_amount: float | None = Field(default=None, alias="minimumPayoutAmount")


@dataclass(frozen=True)
class PayoutQuote:
    """Fee preview for a requested amount."""

    amount: Decimal
    fee: Decimal
    net_amount: Decimal


def _to_decimal(value: float | str | Decimal) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount {value!r}") from exc


def compute_payout_fee(amount: float | str | Decimal) -> PayoutQuote:
    """Apply 2.9% + $0.30, never charging more than the amount itself."""
    value = _to_decimal(amount)
    if value <= 0:
        zero = Decimal("0.00")
        return PayoutQuote(amount=value.quantize(_CENTS), fee=zero, net_amount=zero)
    fee = min(value * FEE_PERCENT / Decimal(100) + FIXED_FEE, value)
    fee = fee.quantize(_CENTS, rounding=ROUND_HALF_UP)
    amount_cents = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    return PayoutQuote(amount=amount_cents, fee=fee, net_amount=amount_cents - fee)


def format_currency(value: float | Decimal, currency: str = "USD") -> str:
    symbol = "$" if currency.upper() == "USD" else f"{currency.upper()} "
    return f"{symbol}{Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP):,}"


def validate_payout_amount(
    raw_amount: str | float | None,
    available_balance: float,
    minimum_payout: float,
) -> str | None:
    """Return a user-facing reason the amount cannot be requested, or None."""
    if raw_amount is None or (isinstance(raw_amount, str) and not raw_amount.strip()):
        return "Please enter a valid payout amount"
    try:
        amount = _to_decimal(raw_amount)
    except ValueError:
        return "Please enter a valid payout amount"
    if not amount.is_finite() or amount <= 0:
        return "Please enter a valid payout amount"
    if amount > _to_decimal(available_balance):
        return "Amount exceeds available balance"
    if amount < _to_decimal(minimum_payout):
        return f"Minimum payout amount is {format_currency(minimum_payout)}"
    return None


class PayoutsClient:
    """Client for referral stats, Stripe Connect onboarding, and payouts."""

    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    async def _get_json(self, method: str, path: str, default: str, **kwargs: Any) -> dict[str, Any]:
        response = await self.transport.request(
            method, path, error_cls=PayoutError, idempotent=method == "GET", **kwargs
        )
        if not response.is_success:
            raise PayoutError(error_message(response, default))
        try:
            body = response.json()
        except ValueError as exc:
            raise PayoutError(f"{default}: invalid JSON response") from exc
        if not isinstance(body, dict):
            raise PayoutError(f"{default}: unexpected response shape")
        return body

    async def get_referral_stats(self) -> ReferralStats:
        body = await self._get_json("GET", "/referrals/stats", "Failed to load referral stats")
        try:
            return ReferralStats.model_validate(body)
        except ValidationError as exc:
            raise PayoutError(f"Failed to load referral stats: {exc}") from exc

    async def get_connect_status(self) -> StripeConnectAccount | None:
        """Return the connected account, or None when none is linked yet."""
        body = await self._get_json(
            "GET", "/stripe/status", "Failed to fetch payment account status"
        )
        account = body.get("account")
        if not body.get("success") or not isinstance(account, dict):
            return None
        try:
            return StripeConnectAccount.model_validate(account)
        except ValidationError as exc:
            raise PayoutError(f"Failed to fetch payment account status: {exc}") from exc

    async def start_onboarding(self, email: str, return_url: str) -> str:
        """Begin Stripe Connect onboarding and return the hosted onboarding URL."""
        body = await self._get_json(
            "POST",
            "/stripe/onboard",
            "Failed to initialize Stripe onboarding",
            json={"email": email, "return_url": return_url},
        )
        url = body.get("url") or body.get("onboardingUrl")
        if not isinstance(url, str) or not url:
            raise PayoutError("Failed to initialize Stripe onboarding: no URL returned")
        return url

    async def request_payout(self, amount: float, *, instant: bool = False) -> Payout:
        body = await self._get_json(
            "POST",
            "/stripe/payouts/request",
            "Failed to request payout",
            json={"amount": amount, "instant": instant},
        )
        payout = body.get("payout")
        if not body.get("success") or not isinstance(payout, dict):
            raise PayoutError(error_message_from(body, "Failed to request payout"))
        LOGGER.info(
            "payouts.requested",
            extra={"event": "payouts.requested", "amount": amount, "instant": instant},
        )
        try:
            return Payout.model_validate(payout)
        except ValidationError as exc:
            raise PayoutError(f"Failed to request payout: {exc}") from exc

    async def list_payouts(self) -> PayoutHistory:
        body = await self._get_json("GET", "/stripe/payouts", "Failed to fetch payout history")
        try:
            return PayoutHistory.model_validate(body)
        except ValidationError as exc:
            raise PayoutError(f"Failed to fetch payout history: {exc}") from exc


def error_message_from(body: dict[str, Any], default: str) -> str:
    for key in ("error", "message"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default
