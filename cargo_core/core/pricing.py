"""Deterministic tiered pricing of rate cards."""

from functools import reduce
from typing import List, Optional, Sequence, Union

from cargo_core.config.logging_config import get_logger
from cargo_core.config.settings import get_settings
from cargo_core.exceptions import (
    NoMatchingServiceLevelError,
    NoRateCardsAvailableError,
)
from cargo_core.models.quote_models import PriceBreakdown, PricedQuote, PricingOptions
from cargo_core.models.schema import ServiceLevel, Tariff
from cargo_core.models.utils import find_tier, round_money

logger = get_logger(__name__)


class PricingEngine:
    """Price rate cards for a billable weight.

    Pure and stateless apart from the default options, so a single engine can
    be shared between requests.

    Pricing steps for one card:
        1. weight charge = billable kg x tier price per kg
        2. percentage base = base fee + weight charge
        3. fuel = base x fuel% / 100
        4. remote = base x remote% / 100 when the destination is remote
        5. subtotal = base fee + weight + fuel + remote
        6. subtotal is raised to the card's minimum charge if below it
        7. VAT on the subtotal when enabled
        8. every money field is rounded half away from zero
    """

    def __init__(self, options: Optional[PricingOptions] = None):
        """Initialize the engine.

        Args:
            options: Default pricing options. If None, they are taken from the settings.
        """
        if options is None:
            settings = get_settings()
            options = PricingOptions(
                apply_vat=settings.vat_apply,
                vat_pct=settings.vat_pct,
                money_rounding_decimals=settings.money_rounding_decimals,
                currency_fallback=settings.default_currency,
            )
        self.options = options

    def price_with_tariff(
        self,
        tariff: Tariff,
        billable_weight_kg: float,
        options: Optional[PricingOptions] = None
    ) -> PricedQuote:
        """Price a single rate card.

        Args:
            tariff: Rate card to price
            billable_weight_kg: Billable weight in kg
            options: Per-call options (defaults to the engine options)

        Returns:
            PricedQuote with the rounded breakdown and the chosen tier

        Raises:
            NoTierFoundError: If the card has no tiers
        """
        opts = options or self.options
        tier = find_tier(tariff.tiers, billable_weight_kg)

        base = tariff.base_fee
        weight = billable_weight_kg * tier.price_per_kg

        percentage_base = base + weight
        fuel = percentage_base * tariff.fuel_surcharge_pct / 100
        remote = percentage_base * tariff.remote_area_surcharge_pct / 100 if opts.is_remote else 0.0

        subtotal = base + weight + fuel + remote

        minimum_charge_applied = False
        if subtotal < tariff.min_charge:
            subtotal = tariff.min_charge
            minimum_charge_applied = True

        vat = subtotal * opts.vat_pct / 100 if opts.apply_vat else 0.0
        total = subtotal + vat

        decimals = opts.money_rounding_decimals
        breakdown = PriceBreakdown(
            base=round_money(base, decimals),
            weight=round_money(weight, decimals),
            fuel=round_money(fuel, decimals),
            remote=round_money(remote, decimals),
            subtotal_before_vat=round_money(subtotal, decimals),
            vat=round_money(vat, decimals),
            total=round_money(total, decimals),
        )

        return PricedQuote(
            currency=tariff.currency or opts.currency_fallback,
            total=breakdown.total,
            breakdown=breakdown,
            tier=tier,
            service_level=tariff.service_level,
            origin_zone=tariff.origin_zone,
            destination_zone=tariff.destination_zone,
            transit_days=tariff.transit_days,
            notes=tariff.notes or "",
            minimum_charge_applied=minimum_charge_applied,
        )

    def select_cheapest(
        self,
        candidates: Sequence[Tariff],
        billable_weight_kg: float,
        options: Optional[PricingOptions] = None,
        service_level: Optional[Union[ServiceLevel, str]] = None
    ) -> PricedQuote:
        """Price every candidate and return the cheapest quote.

        Ties on the rounded total keep the first candidate in list order.

        Args:
            candidates: Candidate rate cards
            billable_weight_kg: Billable weight in kg
            options: Per-call options (defaults to the engine options)
            service_level: Restrict candidates to this level (case-insensitive)

        Returns:
            The cheapest PricedQuote

        Raises:
            NoRateCardsAvailableError: If ``candidates`` is empty
            NoMatchingServiceLevelError: If the service level filter leaves nothing
        """
        if not candidates:
            raise NoRateCardsAvailableError()

        filtered: List[Tariff] = list(candidates)
        if service_level:
            wanted = str(getattr(service_level, "value", service_level)).strip().lower()
            filtered = [c for c in candidates if c.service_level.value == wanted]
            if not filtered:
                raise NoMatchingServiceLevelError(wanted)

        quotes = [self.price_with_tariff(c, billable_weight_kg, options) for c in filtered]
        best = reduce(lambda current, q: q if q.total < current.total else current, quotes)

        logger.debug(
            f"Priced {len(quotes)} candidate(s) at {billable_weight_kg} kg, "
            f"cheapest {best.service_level.value} {best.total} {best.currency}"
        )
        return best
