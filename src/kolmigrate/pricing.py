"""
Customer pricing configuration and quotation coefficients.

Customers keep an ordered list of time-windowed pricing configurations per
platform. A migrated project must carry the discount and quotation
coefficient that applied in its own fiscal period, so the coefficient is
recomputed from the selected configuration rather than copied from the
customer's current value.

Selection rules, in order:
    1. WINDOW: first configuration whose ``[validFrom, validTo]`` contains
       the project's ``YYYY-MM-01`` period key
    2. PERMANENT: first configuration flagged ``isPermanent``
    3. FIRST_AVAILABLE: the first configuration listed
    4. NONE: the customer has no configurations

The tier that fired is returned with the result so callers can audit
degraded selections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from kolmigrate.models import PricingFallbackTier
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_CUSTOMER_ID,
    ATTR_PRICING_FALLBACK_TIER,
)
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)

BASE_AMOUNT = 1000.0
"""Notional amount the coefficient is computed on."""

COEFFICIENT_QUANTUM = Decimal("0.00001")
"""Coefficients are rounded half-up to 5 decimal places."""

DEFAULT_PRICING_MODEL = "framework"

SERVICE_FEE_BEFORE_DISCOUNT = "beforeDiscount"
TAX_EXCLUDES_SERVICE_FEE = "excludeServiceFee"


class PricingConfig(BaseModel):
    """
    One time-windowed pricing configuration of a customer.

    Attributes:
        valid_from: First day of the window (``YYYY-MM-DD``), inclusive.
        valid_to: Last day of the window (``YYYY-MM-DD``), inclusive.
        is_permanent: Applies when no window matches.
        discount_rate: Multiplier applied to the price (0.8 means 80%).
        platform_fee_rate: Platform fee as a fraction of the base.
        includes_platform_fee: Discount applies to base plus fee when True.
        service_fee_rate: Service fee as a fraction.
        service_fee_base: ``beforeDiscount`` or ``afterDiscount``.
        includes_tax: Whether tax is added.
        tax_rate: Tax as a fraction.
        tax_calculation_base: ``excludeServiceFee`` or ``includeServiceFee``.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    valid_from: str | None = Field(default=None, alias="validFrom")
    valid_to: str | None = Field(default=None, alias="validTo")
    is_permanent: bool = Field(default=False, alias="isPermanent")
    discount_rate: float | None = Field(default=None, alias="discountRate")
    platform_fee_rate: float | None = Field(default=None, alias="platformFeeRate")
    includes_platform_fee: bool = Field(default=False, alias="includesPlatformFee")
    service_fee_rate: float | None = Field(default=None, alias="serviceFeeRate")
    service_fee_base: str | None = Field(default=None, alias="serviceFeeBase")
    includes_tax: bool = Field(default=False, alias="includesTax")
    tax_rate: float | None = Field(default=None, alias="taxRate")
    tax_calculation_base: str | None = Field(default=None, alias="taxCalculationBase")

    @field_validator("valid_from", "valid_to", mode="before")
    @classmethod
    def _date_key(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        if isinstance(value, (datetime, date)):
            return value.strftime("%Y-%m-%d")
        return str(value)[:10]

    @field_validator("is_permanent", "includes_platform_fee", "includes_tax", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return bool(value)

    def covers(self, period_key: str) -> bool:
        """
        Check whether the validity window contains a period key.

        A window needs both bounds; ``YYYY-MM-DD`` strings compare correctly
        as text.
        """
        if self.valid_from is None or self.valid_to is None:
            return False
        return self.valid_from <= period_key <= self.valid_to


@dataclass(frozen=True)
class CustomerPricing:
    """A customer's pricing model and configurations for one platform."""

    pricing_model: str = DEFAULT_PRICING_MODEL
    configs: tuple[PricingConfig, ...] = ()


@dataclass(frozen=True)
class PricingResolution:
    """
    The pricing that applies to one project.

    Attributes:
        config: The selected configuration, None when the customer has none.
        discount_rate: The configuration's discount rate, if any.
        quotation_coefficient: Coefficient derived from the configuration.
        pricing_model: Customer pricing model (``framework`` by default).
        fallback_tier: Which selection rule produced ``config``.
    """

    config: PricingConfig | None
    discount_rate: float | None
    quotation_coefficient: float | None
    pricing_model: str = DEFAULT_PRICING_MODEL
    fallback_tier: PricingFallbackTier = PricingFallbackTier.NONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "config": self.config.model_dump(by_alias=True) if self.config else None,
            "discountRate": self.discount_rate,
            "quotationCoefficient": self.quotation_coefficient,
            "pricingModel": self.pricing_model,
            "fallbackTier": self.fallback_tier.value,
        }


def calculate_quotation_coefficient(config: PricingConfig | None) -> float | None:
    """
    Derive the quotation coefficient of a pricing configuration.

    Starting from a notional base of 1000: add the platform fee, apply the
    discount (to base plus fee, or to base only when the fee is not
    included), add a service fee on the pre- or post-discount amount, add
    tax on the discounted amount with or without the service fee, and
    divide the total by the base.

    Args:
        config: The configuration, or None

    Returns:
        The coefficient rounded half-up to 5 decimals, None without a config

    Example:
        >>> calculate_quotation_coefficient(PricingConfig(discountRate=0.8))
        0.8
        >>> calculate_quotation_coefficient(
        ...     PricingConfig(discountRate=0.8, platformFeeRate=0.05, includesPlatformFee=True)
        ... )
        0.84
    """
    if config is None:
        return None

    platform_fee = BASE_AMOUNT * (config.platform_fee_rate or 0)
    discount_rate = config.discount_rate or 1.0

    if config.includes_platform_fee:
        discounted = (BASE_AMOUNT + platform_fee) * discount_rate
    else:
        discounted = BASE_AMOUNT * discount_rate + platform_fee

    service_fee_rate = config.service_fee_rate or 0
    if config.service_fee_base == SERVICE_FEE_BEFORE_DISCOUNT:
        service_fee = (BASE_AMOUNT + platform_fee) * service_fee_rate
    else:
        service_fee = discounted * service_fee_rate

    tax = 0.0
    if config.includes_tax and config.tax_rate:
        if config.tax_calculation_base == TAX_EXCLUDES_SERVICE_FEE:
            tax = discounted * config.tax_rate
        else:
            tax = (discounted + service_fee) * config.tax_rate

    total = discounted + service_fee + tax
    coefficient = Decimal(repr(total / BASE_AMOUNT)).quantize(
        COEFFICIENT_QUANTUM, rounding=ROUND_HALF_UP
    )
    return float(coefficient)


def period_key(financial_year: int | None, financial_month: int | None) -> str | None:
    """Build the ``YYYY-MM-01`` key for a fiscal period."""
    if financial_year is None or financial_month is None:
        return None
    return f"{financial_year:04d}-{financial_month:02d}-01"


def select_pricing_config(
    configs: list[PricingConfig] | tuple[PricingConfig, ...],
    financial_year: int | None,
    financial_month: int | None,
) -> tuple[PricingConfig | None, PricingFallbackTier]:
    """
    Select the configuration that applies to a fiscal period.

    Args:
        configs: The customer's configurations, in stored order
        financial_year: Project fiscal year
        financial_month: Project fiscal month

    Returns:
        Tuple of (selected config or None, tier that selected it)
    """
    if not configs:
        return None, PricingFallbackTier.NONE

    key = period_key(financial_year, financial_month)
    if key is not None:
        for config in configs:
            if config.covers(key):
                return config, PricingFallbackTier.WINDOW

    for config in configs:
        if config.is_permanent:
            return config, PricingFallbackTier.PERMANENT

    return configs[0], PricingFallbackTier.FIRST_AVAILABLE


@runtime_checkable
class CustomerConfigReader(Protocol):
    """Source of customer pricing configurations."""

    async def get_pricing(self, customer_id: str) -> CustomerPricing | None:
        """
        Load a customer's pricing for the configured platform.

        Returns:
            The pricing, or None when the customer or platform entry is absent
        """
        ...


class TargetCustomerConfigReader:
    """
    Reads pricing from the target ``customers`` collection.

    Configurations live at
    ``businessStrategies.talentProcurement.platformPricingConfigs.<platform>``
    of the customer whose ``code`` matches.
    """

    def __init__(self, session: MigrationSession) -> None:
        self._session = session

    async def get_pricing(self, customer_id: str) -> CustomerPricing | None:
        customer = await self._session.target_collection(Collections.CUSTOMERS).find_one(
            {"code": customer_id}
        )
        if customer is None:
            logger.warning("Customer %s not found in target database", customer_id)
            return None

        procurement = (customer.get("businessStrategies") or {}).get("talentProcurement") or {}
        platform_entry = (procurement.get("platformPricingConfigs") or {}).get(
            self._session.config.platform
        )
        if not platform_entry:
            return None

        configs: list[PricingConfig] = []
        for index, raw in enumerate(platform_entry.get("configs") or []):
            try:
                configs.append(PricingConfig.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "Skipping unreadable pricing config %d of customer %s: %s",
                    index,
                    customer_id,
                    e,
                )

        return CustomerPricing(
            pricing_model=platform_entry.get("pricingModel") or DEFAULT_PRICING_MODEL,
            configs=tuple(configs),
        )


class PricingConfigResolver:
    """
    Resolves the pricing that applies to a project's fiscal period.

    Example:
        >>> resolver = PricingConfigResolver(TargetCustomerConfigReader(session))
        >>> resolution = await resolver.resolve("CUS20250001", 2025, 3)
        >>> resolution.fallback_tier
        <PricingFallbackTier.WINDOW: 'window'>
    """

    def __init__(
        self,
        reader: CustomerConfigReader,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            reader: Source of customer configurations
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._reader = reader

    async def resolve(
        self,
        customer_id: str,
        financial_year: int | None,
        financial_month: int | None,
    ) -> PricingResolution:
        """
        Select the customer's configuration for a period and derive its values.

        Args:
            customer_id: Customer code
            financial_year: Project fiscal year
            financial_month: Project fiscal month

        Returns:
            PricingResolution; all values None with tier NONE when the
            customer has no configurations
        """
        with self._tracer.span(
            "kolmigrate.pricing_resolver.resolve",
            {ATTR_CUSTOMER_ID: customer_id},
        ) as span:
            pricing = await self._reader.get_pricing(customer_id)
            if pricing is None:
                pricing = CustomerPricing()

            config, tier = select_pricing_config(pricing.configs, financial_year, financial_month)

            if span:
                span.set_attribute(ATTR_PRICING_FALLBACK_TIER, tier.value)

            if tier.is_degraded:
                logger.warning(
                    "Pricing for customer %s period %s-%s fell back to tier %s",
                    customer_id,
                    financial_year,
                    financial_month,
                    tier.value,
                )

            return PricingResolution(
                config=config,
                discount_rate=config.discount_rate if config else None,
                quotation_coefficient=calculate_quotation_coefficient(config),
                pricing_model=pricing.pricing_model,
                fallback_tier=tier,
            )


__all__ = [
    "BASE_AMOUNT",
    "DEFAULT_PRICING_MODEL",
    "PricingConfig",
    "CustomerPricing",
    "PricingResolution",
    "calculate_quotation_coefficient",
    "period_key",
    "select_pricing_config",
    "CustomerConfigReader",
    "TargetCustomerConfigReader",
    "PricingConfigResolver",
]
