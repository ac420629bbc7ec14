"""Quote orchestrator - LangGraph-based workflow."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TypedDict, Union

from langgraph.graph import StateGraph, START, END

from cargo_core.config.logging_config import get_logger
from cargo_core.config.settings import Settings, get_settings
from cargo_core.core.dataset_loader import RateCardLoader
from cargo_core.core.eta import TransitTable, calculate_eta
from cargo_core.core.pricing import PricingEngine
from cargo_core.core.repositories import InMemoryRateRepository, RateRepository
from cargo_core.core.weight import compute_billable_weight
from cargo_core.core.zones import ZoneResolver
from cargo_core.exceptions import NoRatesForLaneError
from cargo_core.models.quote_models import (
    PricedQuote,
    Quote,
    QuoteRequest,
    WeightBreakdown,
    parse_quote_request,
)
from cargo_core.models.schema import Tariff

logger = get_logger(__name__)


class QuoteWorkflowState(TypedDict, total=False):
    """State shared between LangGraph nodes.

    Attributes:
        request: Validated quote request
        now: Quote instant (validity date for rate cards and ETA start)
        origin_zone: Resolved origin zone (Node 1a)
        destination_zone: Resolved destination zone (Node 1a)
        is_remote: Whether the destination is a remote area (Node 1a)
        weight: Actual/volumetric/billable weight (Node 1b)
        candidates: Active rate cards for the lane (Node 2)
        priced: Cheapest (or forced level) priced quote (Node 3)
        quote: Final quote with transit days and ETA (Node 4)
    """
    # Input
    request: QuoteRequest
    now: datetime

    # Node 1a: Zone resolution
    origin_zone: str
    destination_zone: str
    is_remote: bool

    # Node 1b: Billable weight
    weight: WeightBreakdown

    # Node 2: Rate lookup
    candidates: List[Tariff]

    # Node 3: Pricing
    priced: PricedQuote

    # Node 4: Delivery estimate
    quote: Quote


class QuoteWorkflow:
    """Quote orchestrator using LangGraph.

    The workflow consists of 5 nodes:
    1a. Resolve Zones: origin/destination zones and the destination remote flag
    1b. Compute Weight: billable weight (runs in parallel with 1a)
    2. Fetch Rates: active rate cards for the zone pair at the quote instant
    3. Price: cheapest card, or the requested service level
    4. Estimate Delivery: transit days (card, else lane table, else 0) and ETA

    Workflow structure:
    - START → Node 1a and Node 1b (parallel execution)
    - Node 1a + Node 1b → Node 2 (waits for both)
    - Node 2 → Node 3 → Node 4 → END

    Errors raised by a node (for example ``NoRatesForLaneError``) propagate
    unchanged out of ``quote``.
    """

    def __init__(
        self,
        rate_repository: Optional[RateRepository] = None,
        zone_resolver: Optional[ZoneResolver] = None,
        pricing_engine: Optional[PricingEngine] = None,
        transit_table: Optional[TransitTable] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize workflow.

        Args:
            rate_repository: Source of rate cards (default: cards from the configured JSON file)
            zone_resolver: Zone resolver (default: configured zone table)
            pricing_engine: Pricing engine (default: options from settings)
            transit_table: Lane transit-day fallback table
            settings: Settings instance (default: global settings)
        """
        self.settings = settings or get_settings()
        self.rate_repository = rate_repository
        self.zone_resolver = zone_resolver or ZoneResolver()
        self.pricing_engine = pricing_engine or PricingEngine()
        self.transit_table = transit_table or TransitTable()

        self.graph = None
        self._initialized = False

    def initialize(self):
        """Load rate cards if none were injected and build the LangGraph workflow.

        This method is idempotent - calling it multiple times has no effect.
        """
        if self._initialized:
            return

        logger.info("Initializing Quote Workflow (LangGraph)...")
        if self.rate_repository is None:
            logger.info("Loading rate cards...")
            self.rate_repository = InMemoryRateRepository(RateCardLoader.load_default())

        graph = StateGraph(QuoteWorkflowState)

        graph.add_node("resolve_zones", self._resolve_zones_node)
        graph.add_node("compute_weight", self._compute_weight_node)
        graph.add_node("fetch_rates", self._fetch_rates_node)
        graph.add_node("price", self._price_node)
        graph.add_node("estimate_delivery", self._estimate_delivery_node)

        # START → Node 1a and Node 1b in PARALLEL
        graph.add_edge(START, "resolve_zones")
        graph.add_edge(START, "compute_weight")

        # Node 2 waits for both
        graph.add_edge(["resolve_zones", "compute_weight"], "fetch_rates")
        graph.add_edge("fetch_rates", "price")
        graph.add_edge("price", "estimate_delivery")
        graph.add_edge("estimate_delivery", END)

        self.graph = graph.compile()
        logger.info("Quote workflow ready")

        self._initialized = True

    # Node 1a: Zones
    def _resolve_zones_node(self, state: QuoteWorkflowState) -> Dict[str, Any]:
        request = state["request"]
        origin_zone = self.zone_resolver.resolve_zone(request.origin)
        destination_zone = self.zone_resolver.resolve_zone(request.destination)
        is_remote = self.zone_resolver.is_remote_area(request.destination)
        logger.debug(f"Zones: {origin_zone}->{destination_zone}, remote={is_remote}")
        return {
            "origin_zone": origin_zone,
            "destination_zone": destination_zone,
            "is_remote": is_remote,
        }

    # Node 1b: Weight
    def _compute_weight_node(self, state: QuoteWorkflowState) -> Dict[str, Any]:
        request = state["request"]
        weight = compute_billable_weight(
            request.weight_kg,
            request.dimensions_cm,
            request.quantity,
            volumetric_divisor=self.settings.volumetric_divisor,
            round_step_kg=self.settings.rounding_step_kg,
        )
        logger.debug(
            f"Weight: actual={weight.actual_total_kg} volumetric={weight.volumetric_kg} "
            f"billable={weight.billable_kg}"
        )
        return {"weight": weight}

    # Node 2: Rates
    def _fetch_rates_node(self, state: QuoteWorkflowState) -> Dict[str, Any]:
        origin_zone = state["origin_zone"]
        destination_zone = state["destination_zone"]
        candidates = self.rate_repository.find_active(
            origin_zone, destination_zone, as_of=state["now"]
        )
        if not candidates:
            logger.info(f"No rates for lane {origin_zone}->{destination_zone}")
            raise NoRatesForLaneError(origin_zone, destination_zone)
        return {"candidates": candidates}

    # Node 3: Pricing
    def _price_node(self, state: QuoteWorkflowState) -> Dict[str, Any]:
        request = state["request"]
        options = self.pricing_engine.options.model_copy(update={"is_remote": state["is_remote"]})
        priced = self.pricing_engine.select_cheapest(
            state["candidates"],
            state["weight"].billable_kg,
            options,
            service_level=request.service_level,
        )
        return {"priced": priced}

    # Node 4: Delivery estimate
    def _estimate_delivery_node(self, state: QuoteWorkflowState) -> Dict[str, Any]:
        request = state["request"]
        priced = state["priced"]
        weight = state["weight"]

        transit_days = priced.transit_days
        if transit_days is None:
            transit_days = self.transit_table.lookup(
                priced.origin_zone, priced.destination_zone, priced.service_level
            )
        if transit_days is None:
            transit_days = 0

        eta = calculate_eta(
            state["now"],
            transit_days,
            business_days_only=self.settings.business_days_only,
            holidays=self.settings.get_local_holidays(),
            ship_cutoff_hour_local=self.settings.ship_cutoff_hour,
            weekend_days=self.settings.weekend_days,
            tz=self.settings.local_timezone,
        )

        quote = Quote(
            currency=priced.currency,
            total=priced.total,
            breakdown=priced.breakdown,
            actual_weight_kg=weight.actual_total_kg,
            volumetric_weight_kg=weight.volumetric_kg,
            billable_weight_kg=weight.billable_kg,
            service_level=priced.service_level,
            origin=request.origin,
            destination=request.destination,
            origin_zone=state["origin_zone"],
            destination_zone=state["destination_zone"],
            is_remote=state["is_remote"],
            transit_days=transit_days,
            eta=eta,
            notes=priced.notes,
            minimum_charge_applied=priced.minimum_charge_applied,
            quoted_at=state["now"],
        )
        return {"quote": quote}

    def quote(
        self,
        request: Union[QuoteRequest, Dict[str, Any]],
        now: Optional[datetime] = None
    ) -> Quote:
        """
        Price a request through the LangGraph workflow.

        Args:
            request: Validated request, or a raw payload to validate
            now: Quote instant (defaults to the current UTC time)

        Returns:
            Quote with price breakdown, weights, zones and ETA

        Raises:
            InvalidInputError: If a raw payload fails validation
            NoRatesForLaneError: If no rate card serves the resolved lane
            NoMatchingServiceLevelError: If the lane does not sell the requested level
        """
        if not self._initialized:
            self.initialize()

        if not isinstance(request, QuoteRequest):
            request = parse_quote_request(request)
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        logger.info(
            f"Quoting {request.origin.country}->{request.destination.country} "
            f"({request.quantity} x {request.weight} {request.weight_unit})"
        )

        initial_state: QuoteWorkflowState = {"request": request, "now": now}
        result = self.graph.invoke(initial_state)

        quote = result["quote"]
        logger.info(f"Quote complete: {quote.total:.2f} {quote.currency} ({quote.service_level.value})")
        return quote
