"""
Unit tests for customer pricing resolution.

Tests for:
- PricingConfig parsing and window coverage
- calculate_quotation_coefficient() formula branches
- select_pricing_config() fallback tiers
- TargetCustomerConfigReader
- PricingConfigResolver
"""

from __future__ import annotations

from datetime import date

import pytest

from kolmigrate.models import PricingFallbackTier
from kolmigrate.observability import MockTracer
from kolmigrate.pricing import (
    CustomerConfigReader,
    CustomerPricing,
    PricingConfig,
    PricingConfigResolver,
    PricingResolution,
    TargetCustomerConfigReader,
    calculate_quotation_coefficient,
    period_key,
    select_pricing_config,
)
from kolmigrate.session import MigrationSession
from tests.fixtures import customer, pricing_config, seed_target


class StaticReader:
    """CustomerConfigReader returning fixed pricing."""

    def __init__(self, pricing: CustomerPricing | None) -> None:
        self.pricing = pricing
        self.calls: list[str] = []

    async def get_pricing(self, customer_id: str) -> CustomerPricing | None:
        self.calls.append(customer_id)
        return self.pricing


class TestPricingConfig:
    """Tests for PricingConfig."""

    def test_parses_aliases(self) -> None:
        """Test camelCase keys populate the model."""
        config = PricingConfig.model_validate(pricing_config(isPermanent=1))

        assert config.valid_from == "2025-01-01"
        assert config.discount_rate == 0.8
        assert config.platform_fee_rate == 0.05
        assert config.is_permanent is True

    def test_normalizes_dates(self) -> None:
        """Test date objects and timestamps reduce to YYYY-MM-DD."""
        config = PricingConfig.model_validate(
            {"validFrom": date(2025, 1, 1), "validTo": "2025-06-30T23:59:59Z"}
        )
        assert config.valid_from == "2025-01-01"
        assert config.valid_to == "2025-06-30"

    def test_covers_inclusive_window(self) -> None:
        """Test both bounds are inclusive."""
        config = PricingConfig.model_validate(pricing_config())

        assert config.covers("2025-01-01")
        assert config.covers("2025-06-30")
        assert not config.covers("2025-07-01")

    def test_open_window_covers_nothing(self) -> None:
        """Test a window with a missing bound never matches."""
        config = PricingConfig.model_validate(pricing_config(validTo=None))
        assert not config.covers("2025-03-01")


class TestQuotationCoefficient:
    """Tests for calculate_quotation_coefficient."""

    def test_no_config(self) -> None:
        """Test None yields None."""
        assert calculate_quotation_coefficient(None) is None

    def test_discount_only(self) -> None:
        """Test a bare discount rate is the coefficient."""
        assert calculate_quotation_coefficient(PricingConfig(discountRate=0.8)) == 0.8

    def test_missing_discount_means_full_price(self) -> None:
        """Test a missing discount rate counts as 1.0."""
        assert calculate_quotation_coefficient(PricingConfig()) == 1.0

    def test_platform_fee_excluded_from_discount(self) -> None:
        """Test the fee is added after discounting the base."""
        config = PricingConfig(discountRate=0.8, platformFeeRate=0.05)
        # 1000 * 0.8 + 50
        assert calculate_quotation_coefficient(config) == 0.85

    def test_platform_fee_included_in_discount(self) -> None:
        """Test the discount applies to base plus fee."""
        config = PricingConfig(discountRate=0.8, platformFeeRate=0.05, includesPlatformFee=True)
        # (1000 + 50) * 0.8
        assert calculate_quotation_coefficient(config) == 0.84

    def test_service_fee_after_discount(self) -> None:
        """Test the service fee defaults to the discounted amount."""
        config = PricingConfig(discountRate=0.8, serviceFeeRate=0.1)
        # 800 + 80
        assert calculate_quotation_coefficient(config) == 0.88

    def test_service_fee_before_discount(self) -> None:
        """Test the service fee on the undiscounted base plus fee."""
        config = PricingConfig(
            discountRate=0.8,
            platformFeeRate=0.05,
            serviceFeeRate=0.1,
            serviceFeeBase="beforeDiscount",
        )
        # 850 + 105
        assert calculate_quotation_coefficient(config) == 0.955

    def test_tax_including_service_fee(self) -> None:
        """Test tax on discounted amount plus service fee."""
        config = PricingConfig(
            discountRate=0.8, serviceFeeRate=0.1, includesTax=True, taxRate=0.06
        )
        # 800 + 80 + 880 * 0.06
        assert calculate_quotation_coefficient(config) == 0.9328

    def test_tax_excluding_service_fee(self) -> None:
        """Test tax on the discounted amount only."""
        config = PricingConfig(
            discountRate=0.8,
            serviceFeeRate=0.1,
            includesTax=True,
            taxRate=0.06,
            taxCalculationBase="excludeServiceFee",
        )
        # 800 + 80 + 800 * 0.06
        assert calculate_quotation_coefficient(config) == 0.928

    def test_tax_ignored_without_flag(self) -> None:
        """Test a tax rate without includesTax has no effect."""
        config = PricingConfig(discountRate=0.8, taxRate=0.06)
        assert calculate_quotation_coefficient(config) == 0.8

    def test_rounds_half_up_to_five_places(self) -> None:
        """Test the coefficient keeps five decimals."""
        config = PricingConfig(discountRate=0.123456)
        assert calculate_quotation_coefficient(config) == 0.12346

    def test_monotonic_in_discount_rate(self) -> None:
        """Test the coefficient grows with the discount rate when the fee is excluded."""
        coefficients = [
            calculate_quotation_coefficient(PricingConfig(discountRate=rate, platformFeeRate=0.05))
            for rate in (0.6, 0.7, 0.8, 0.9)
        ]
        assert coefficients == sorted(coefficients)
        assert len(set(coefficients)) == len(coefficients)


class TestSelectPricingConfig:
    """Tests for select_pricing_config fallback tiers."""

    def test_period_key(self) -> None:
        """Test fiscal periods map to the first day of the month."""
        assert period_key(2025, 3) == "2025-03-01"
        assert period_key(2025, None) is None

    def test_no_configs(self) -> None:
        """Test an empty list selects nothing."""
        assert select_pricing_config([], 2025, 3) == (None, PricingFallbackTier.NONE)

    def test_window_match_wins(self) -> None:
        """Test the first config whose window covers the period is chosen."""
        permanent = PricingConfig(isPermanent=True, discountRate=0.9)
        march = PricingConfig.model_validate(pricing_config(discountRate=0.7))

        config, tier = select_pricing_config([permanent, march], 2025, 3)

        assert config is march
        assert tier is PricingFallbackTier.WINDOW

    def test_permanent_fallback(self) -> None:
        """Test a permanent config applies when no window matches."""
        march = PricingConfig.model_validate(pricing_config())
        permanent = PricingConfig(isPermanent=True, discountRate=0.9)

        config, tier = select_pricing_config([march, permanent], 2025, 9)

        assert config is permanent
        assert tier is PricingFallbackTier.PERMANENT

    def test_first_available_fallback(self) -> None:
        """Test the first config applies when nothing else matches."""
        first = PricingConfig.model_validate(pricing_config(discountRate=0.7))
        second = PricingConfig.model_validate(pricing_config(discountRate=0.6))

        config, tier = select_pricing_config([first, second], 2026, 1)

        assert config is first
        assert tier is PricingFallbackTier.FIRST_AVAILABLE

    def test_unknown_period_skips_windows(self) -> None:
        """Test a project without a period falls through to the permanent config."""
        windowed = PricingConfig.model_validate(pricing_config())
        permanent = PricingConfig(isPermanent=True)

        _, tier = select_pricing_config([windowed, permanent], None, 3)

        assert tier is PricingFallbackTier.PERMANENT


class TestTargetCustomerConfigReader:
    """Tests for TargetCustomerConfigReader."""

    def test_implements_protocol(self, session: MigrationSession) -> None:
        """Test the reader satisfies CustomerConfigReader."""
        assert isinstance(TargetCustomerConfigReader(session), CustomerConfigReader)

    async def test_reads_platform_configs(self, session: MigrationSession) -> None:
        """Test configs and pricing model are read from the customer."""
        await seed_target(session, customers=[customer(pricing_model="project")])

        pricing = await TargetCustomerConfigReader(session).get_pricing("CUS20250001")

        assert pricing is not None
        assert pricing.pricing_model == "project"
        assert [c.discount_rate for c in pricing.configs] == [0.8]

    async def test_default_pricing_model(self, session: MigrationSession) -> None:
        """Test a missing pricing model defaults to framework."""
        await seed_target(session, customers=[customer(pricing_model=None)])

        pricing = await TargetCustomerConfigReader(session).get_pricing("CUS20250001")

        assert pricing is not None
        assert pricing.pricing_model == "framework"

    async def test_unknown_customer(self, session: MigrationSession) -> None:
        """Test an unknown customer yields None."""
        assert await TargetCustomerConfigReader(session).get_pricing("CUS404") is None

    async def test_other_platform_only(self, session: MigrationSession) -> None:
        """Test a customer without an entry for the platform yields None."""
        await seed_target(session, customers=[customer(platform="xiaohongshu")])
        assert await TargetCustomerConfigReader(session).get_pricing("CUS20250001") is None

    async def test_skips_unreadable_configs(self, session: MigrationSession) -> None:
        """Test configs that fail validation are skipped."""
        await seed_target(
            session,
            customers=[customer(configs=[{"discountRate": "lots"}, pricing_config()])],
        )

        pricing = await TargetCustomerConfigReader(session).get_pricing("CUS20250001")

        assert pricing is not None
        assert len(pricing.configs) == 1


class TestPricingConfigResolver:
    """Tests for PricingConfigResolver."""

    async def test_resolves_window_config(self) -> None:
        """Test discount and coefficient come from the matching config."""
        reader = StaticReader(
            CustomerPricing(configs=(PricingConfig.model_validate(pricing_config()),))
        )
        resolver = PricingConfigResolver(reader, enable_tracing=False)

        resolution = await resolver.resolve("CUS20250001", 2025, 3)

        assert reader.calls == ["CUS20250001"]
        assert resolution.discount_rate == 0.8
        assert resolution.quotation_coefficient == 0.85
        assert resolution.pricing_model == "framework"
        assert resolution.fallback_tier is PricingFallbackTier.WINDOW

    async def test_missing_customer_resolves_to_none_tier(self) -> None:
        """Test a missing customer yields null values and tier NONE."""
        resolver = PricingConfigResolver(StaticReader(None), enable_tracing=False)

        resolution = await resolver.resolve("CUS404", 2025, 3)

        assert resolution.config is None
        assert resolution.discount_rate is None
        assert resolution.quotation_coefficient is None
        assert resolution.fallback_tier is PricingFallbackTier.NONE

    async def test_degraded_tier_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test falling back to the first config logs a warning."""
        reader = StaticReader(
            CustomerPricing(configs=(PricingConfig.model_validate(pricing_config()),))
        )
        resolver = PricingConfigResolver(reader, enable_tracing=False)

        with caplog.at_level("WARNING", logger="kolmigrate.pricing"):
            resolution = await resolver.resolve("CUS20250001", 2026, 1)

        assert resolution.fallback_tier is PricingFallbackTier.FIRST_AVAILABLE
        assert "first_available" in caplog.text

    async def test_records_span(self) -> None:
        """Test resolution is traced with the customer id."""
        tracer = MockTracer()
        resolver = PricingConfigResolver(StaticReader(None), tracer=tracer)

        await resolver.resolve("CUS20250001", 2025, 3)

        assert tracer.span_names == ["kolmigrate.pricing_resolver.resolve"]
        assert tracer.spans[0][1] == {"kolmigrate.customer.id": "CUS20250001"}

    def test_resolution_to_dict(self) -> None:
        """Test the resolution serializes with camelCase keys."""
        resolution = PricingResolution(
            config=None,
            discount_rate=0.8,
            quotation_coefficient=0.85,
            fallback_tier=PricingFallbackTier.PERMANENT,
        )

        assert resolution.to_dict() == {
            "config": None,
            "discountRate": 0.8,
            "quotationCoefficient": 0.85,
            "pricingModel": "framework",
            "fallbackTier": "permanent",
        }
