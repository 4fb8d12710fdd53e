"""Group request intake: normalise a submitted request and enforce the booking rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from groupdesk.exceptions import ValidationException
from groupdesk.models.enums import RequestCategory, RoutingType
from groupdesk.modules.booking.schemas import GroupRequestCreate
from groupdesk.modules.booking.segments import (
    DEFAULT_HUB,
    POS_CODES,
    SPECIAL_REQUIREMENTS,
    SegmentPlan,
    effective_routing,
    normalize_pos,
    normalize_special_requirement,
    replan,
)

PARTNER_CATEGORIES = {
    RequestCategory.GSA,
    RequestCategory.CUSTOMER_CARE,
    RequestCategory.AGENT,
}


@dataclass
class PreparedRequest:
    fields: dict
    segments: list[SegmentPlan] = field(default_factory=list)


def _normalize_extras(extras: dict) -> dict:
    extras = dict(extras or {})
    tags = extras.get("special_requirements")
    if tags:
        normalized: list[str] = []
        for tag in tags:
            value = normalize_special_requirement(str(tag))
            if value and value not in normalized:
                normalized.append(value)
        extras["special_requirements"] = normalized
    return extras


def unknown_special_requirements(tags: list[str]) -> list[str]:
    """Normalised tags that are not in the special-requirement catalogue."""
    return [tag for tag in tags if tag not in SPECIAL_REQUIREMENTS]


def prepare_group_request(
    data: GroupRequestCreate,
    today: date,
    hub: str = DEFAULT_HUB,
    min_group_size: int = 10,
    max_infants: int = 4,
) -> PreparedRequest:
    """Validate ``data`` and return model fields plus the canonical legs.

    All rule violations are collected and raised together as one
    ValidationException.
    """
    errors: list[dict] = []
    origin = data.from_airport.strip().upper()
    destination = data.to_airport.strip().upper()

    if origin == destination:
        errors.append({"field": "to_airport", "message": "must differ from from_airport"})
    if data.pax_adult + data.pax_child < min_group_size:
        errors.append({
            "field": "pax_adult",
            "message": f"minimum group size is {min_group_size} (adults + children)",
        })
    if data.pax_infant > max_infants:
        errors.append({"field": "pax_infant", "message": f"at most {max_infants} infants"})
    if data.category in PARTNER_CATEGORIES and not (data.partner_id or "").strip():
        errors.append({"field": "partner_id", "message": f"required for {data.category.value}"})

    submitted = [
        SegmentPlan(
            from_airport=s.from_airport.upper(),
            to_airport=s.to_airport.upper(),
            travel_date=s.travel_date,
            extras=_normalize_extras(s.extras),
        )
        for s in data.segments
    ]
    pos_code = normalize_pos(data.pos_code)
    if pos_code is not None and pos_code not in POS_CODES:
        errors.append({"field": "pos_code", "message": f"unknown point of sale {pos_code}"})
    for position, plan in enumerate(submitted, start=1):
        unknown = unknown_special_requirements(plan.extras.get("special_requirements") or [])
        if unknown:
            errors.append({
                "field": f"segments.{position}.special_requirements",
                "message": f"unknown: {', '.join(unknown)}",
            })

    segments = replan(origin, destination, data.routing, submitted, hub=hub)

    if any(s.travel_date is None for s in segments):
        errors.append({"field": "segments", "message": "every segment needs a date"})
    if data.routing == RoutingType.RETURN and len(segments) < 2:
        errors.append({"field": "segments", "message": "a return trip needs at least two segments"})

    if errors:
        raise ValidationException("Group request is invalid", details=errors)

    fields = {
        "salutation": data.salutation,
        "first_name": data.first_name.strip(),
        "last_name": data.last_name.strip(),
        "contact_email": data.contact_email,
        "contact_number": data.contact_number,
        "agent_name": data.agent_name,
        "from_airport": origin,
        "to_airport": destination,
        "route": f"{origin}-{destination}",
        "routing": effective_routing(origin, destination, data.routing, hub=hub),
        "pax_adult": data.pax_adult,
        "pax_child": data.pax_child,
        "pax_infant": data.pax_infant,
        "pax_count": data.pax_adult + data.pax_child + data.pax_infant,
        "request_date": today,
        "departure_date": segments[0].travel_date,
        "return_date": segments[-1].travel_date if data.routing == RoutingType.RETURN else None,
        "category": data.category,
        "pos_code": pos_code,
        "currency": data.currency.upper(),
        "group_type": data.group_type,
        "flight_number": data.flight_number,
        "special_request": data.special_request,
        "partner_id": (data.partner_id or "").strip() or None,
    }
    return PreparedRequest(fields=fields, segments=segments)
