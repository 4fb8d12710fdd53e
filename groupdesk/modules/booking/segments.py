"""Itinerary planning around the hub airport, plus intake normalisation helpers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from groupdesk.models.enums import RoutingType

DEFAULT_HUB = "CMB"

POS_CODES: tuple[str, ...] = ("LK", "BD", "AE", "MV", "IN", "SG", "KUL", "LK-CC")
POS_ALIASES: dict[str, str] = {"BG": "BD"}

SPECIAL_REQUIREMENTS: tuple[str, ...] = ("WHEELCHAIR", "SERVICE_HUB", "MEALS", "FIRTSSHIELD")
SPECIAL_REQUIREMENT_ALIASES: dict[str, str] = {"INSURANCE": "FIRTSSHIELD"}


@dataclass
class SegmentPlan:
    from_airport: str
    to_airport: str
    travel_date: date | None = None
    extras: dict = field(default_factory=dict)


def _legs(origin: str, destination: str, routing: RoutingType, hub: str) -> list[tuple[str, str]]:
    touches_hub = hub in (origin, destination)
    if routing == RoutingType.ONE_WAY:
        if touches_hub:
            return [(origin, destination)]
        return [(origin, hub), (hub, destination)]
    if touches_hub:
        return [(origin, destination), (destination, origin)]
    return [(origin, hub), (hub, destination), (destination, hub), (hub, origin)]


def replan(
    from_airport: str | None,
    to_airport: str | None,
    routing: RoutingType,
    previous: Sequence[SegmentPlan] = (),
    hub: str = DEFAULT_HUB,
) -> list[SegmentPlan]:
    """Rebuild the legs for an endpoint pair and routing.

    Dates and extras of ``previous`` carry over by position; legs beyond the
    new plan are dropped and new legs start blank. Blank or equal endpoints
    give one placeholder leg, which intake validation rejects on submit.
    """
    origin = (from_airport or "").strip().upper()
    destination = (to_airport or "").strip().upper()
    hub = hub.upper()
    if not origin or not destination or origin == destination:
        return [SegmentPlan(origin, destination)]

    plan = []
    for index, (leg_from, leg_to) in enumerate(_legs(origin, destination, routing, hub)):
        kept = previous[index] if index < len(previous) else None
        plan.append(
            SegmentPlan(
                from_airport=leg_from,
                to_airport=leg_to,
                travel_date=kept.travel_date if kept else None,
                extras=dict(kept.extras) if kept else {},
            )
        )
    return plan


def effective_routing(
    from_airport: str | None, to_airport: str | None, routing: RoutingType, hub: str = DEFAULT_HUB
) -> RoutingType:
    """Non-hub to non-hub itineraries are always flown as MULTICITY."""
    origin = (from_airport or "").strip().upper()
    destination = (to_airport or "").strip().upper()
    if origin and destination and hub.upper() not in (origin, destination):
        return RoutingType.MULTICITY
    return routing


def normalize_pos(code: str | None) -> str | None:
    if not code:
        return None
    code = code.strip().upper()
    return POS_ALIASES.get(code, code)


def normalize_special_requirement(tag: str) -> str:
    tag = tag.strip().upper()
    return SPECIAL_REQUIREMENT_ALIASES.get(tag, tag)
