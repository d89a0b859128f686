from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Tuple

from ..const import (
    ALTERNATIVE_MIN_SEPARATION,
    HOURS_PER_DAY,
    LABEL_ALTERNATIVE,
    LABEL_CHEAPEST,
    LABEL_NIGHT,
    NIGHT_START_LIMIT,
)


@dataclass(frozen=True)
class PricePoint:
    hour: int  # 0..23
    price: float  # €/kWh
    date: date

    @property
    def display_hour(self) -> str:
        return f"{self.hour:02d}:00"


@dataclass(frozen=True)
class ChargingOption:
    start_hour: int
    end_hour: int  # exclusive, may run past the end of the day
    avg_price: float
    total_cost: float
    label: str
    is_nightly: Optional[bool] = None

    @property
    def duration_hours(self) -> int:
        return self.end_hour - self.start_hour

    def display_window(self, horizon: int = HOURS_PER_DAY) -> str:
        return f"{self.start_hour % horizon:02d}:00–{self.end_hour % horizon:02d}:00"


@dataclass(frozen=True)
class EnergyDemand:
    kwh_needed: float
    hours_needed: float
    slots_needed: int


@dataclass(frozen=True)
class PlannerInputs:
    battery_capacity_kwh: float
    start_soc_pct: float
    target_soc_pct: float
    charger_power_kw: float


@dataclass(frozen=True)
class PlannerOutputs:
    demand: EnergyDemand
    options: Tuple[ChargingOption, ...]

    @property
    def best(self) -> Optional[ChargingOption]:
        return self.options[0] if self.options else None


@dataclass(frozen=True)
class SessionEstimate:
    energy_kwh: float
    cost: float
    duration_hours: float
    duration_text: str


def compute_demand(
    battery_capacity_kwh: float,
    start_pct: float,
    end_pct: float,
    power_kw: float,
) -> EnergyDemand:
    """
    Energy and whole-hour slots needed to go from start_pct to end_pct.

    - end_pct below start_pct is clamped up to start_pct (zero demand)
    - negative capacity counts as an empty battery
    - power <= 0 means no feasible charging time: 0 hours, 0 slots
    """
    end_pct = max(start_pct, end_pct)
    capacity = max(0.0, battery_capacity_kwh)
    kwh_needed = capacity * (end_pct - start_pct) / 100

    hours_needed = kwh_needed / power_kw if power_kw > 0 else 0.0
    return EnergyDemand(
        kwh_needed=kwh_needed,
        hours_needed=hours_needed,
        slots_needed=math.ceil(hours_needed),
    )


def _window_average(prices: Sequence[PricePoint], start: int, slots: int) -> float:
    return sum(p.price for p in prices[start:start + slots]) / slots


def _cheapest_start(
    prices: Sequence[PricePoint],
    slots: int,
    last_start: int,
    excluded: Sequence[int] = (),
) -> Optional[Tuple[int, float]]:
    best = None  # (start_idx, avg)
    for i in range(0, last_start + 1):
        if any(abs(i - e) < ALTERNATIVE_MIN_SEPARATION for e in excluded):
            continue
        avg = _window_average(prices, i, slots)
        # strict < keeps the earliest start on ties
        if best is None or avg < best[1]:
            best = (i, avg)
    return best


def _option(start: int, avg: float, slots: int, kwh_needed: float, label: str,
            is_nightly: Optional[bool] = None) -> ChargingOption:
    return ChargingOption(
        start_hour=start,
        end_hour=start + slots,
        avg_price=avg,
        total_cost=avg * kwh_needed,
        label=label,
        is_nightly=is_nightly,
    )


def optimize(
    prices: Sequence[PricePoint],
    slots_needed: int,
    kwh_needed: float,
    night_limit: int = NIGHT_START_LIMIT,
) -> Tuple[ChargingOption, ...]:
    """
    Rank up to three contiguous charging windows of slots_needed hours.

    cheapest:    lowest average price anywhere in the day
    night:       lowest average among windows starting by night_limit,
                 only when it starts elsewhere than the cheapest one
    alternative: lowest average among starts at least 2 hours away from
                 the options above

    Windows never extend past the end of the price sequence. Results are
    sorted by total cost; equal costs keep discovery order.
    """
    horizon = len(prices)
    if slots_needed <= 0 or slots_needed > horizon or kwh_needed <= 0:
        return ()

    last_start = horizon - slots_needed
    options: List[ChargingOption] = []

    cheapest = _cheapest_start(prices, slots_needed, last_start)
    if cheapest is None:
        return ()
    best_start, best_avg = cheapest
    options.append(_option(best_start, best_avg, slots_needed, kwh_needed, LABEL_CHEAPEST))

    excluded = [best_start]
    night = _cheapest_start(prices, slots_needed, min(night_limit, last_start))
    if night is not None and night[0] != best_start:
        night_start, night_avg = night
        options.append(_option(night_start, night_avg, slots_needed, kwh_needed, LABEL_NIGHT, True))
        excluded.append(night_start)

    alternative = _cheapest_start(prices, slots_needed, last_start, excluded)
    if alternative is not None:
        alt_start, alt_avg = alternative
        options.append(_option(alt_start, alt_avg, slots_needed, kwh_needed, LABEL_ALTERNATIVE))

    # sorted() is stable
    return tuple(sorted(options, key=lambda o: o.total_cost))


def plan_charging(prices: Sequence[PricePoint], inputs: PlannerInputs) -> PlannerOutputs:
    demand = compute_demand(
        inputs.battery_capacity_kwh,
        inputs.start_soc_pct,
        inputs.target_soc_pct,
        inputs.charger_power_kw,
    )
    options = optimize(prices, demand.slots_needed, demand.kwh_needed)
    return PlannerOutputs(demand=demand, options=options)


def _format_duration(hours: float) -> str:
    whole = int(hours)
    minutes = round((hours - whole) * 60)
    if minutes == 60:
        whole += 1
        minutes = 0
    return f"{whole}h {minutes}m"


def estimate_session(inputs: PlannerInputs, price_per_kwh: float) -> SessionEstimate:
    """Cost and duration of one charge at a single flat price."""
    demand = compute_demand(
        inputs.battery_capacity_kwh,
        inputs.start_soc_pct,
        inputs.target_soc_pct,
        inputs.charger_power_kw,
    )
    return SessionEstimate(
        energy_kwh=demand.kwh_needed,
        cost=demand.kwh_needed * max(0.0, price_per_kwh),
        duration_hours=demand.hours_needed,
        duration_text=_format_duration(demand.hours_needed),
    )
