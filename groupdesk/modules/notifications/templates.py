"""Plain-text bodies for agent e-mails."""

from __future__ import annotations


def _greeting(payload: dict) -> str:
    name = payload.get("contact_name") or payload.get("agent_name") or "Sir/Madam"
    return f"Dear {name},"


def quotation_email(payload: dict) -> tuple[str, str]:
    subject = payload.get("subject") or f"Group fare quotation for {payload.get('route', '')}".strip()
    lines = [
        _greeting(payload),
        "",
        f"Please find our group fare quotation for {payload.get('route', 'your request')}.",
        f"Total fare: {payload.get('total_fare')} {payload.get('currency')}",
        f"Valid until: {payload.get('expiry_date')}",
    ]
    if payload.get("note"):
        lines.append(f"Note: {payload['note']}")
    lines += ["", "Kind regards,", "Group Desk"]
    return subject, "\n".join(lines)


def pnr_email(payload: dict) -> tuple[str, str]:
    subject = f"PNR {payload.get('pnr_code')} issued for {payload.get('route', 'your group')}"
    body = "\n".join([
        _greeting(payload),
        "",
        f"The booking for your group ({payload.get('route', '')}) has been issued.",
        f"PNR: {payload.get('pnr_code')}",
        "",
        "Kind regards,",
        "Group Desk",
    ])
    return subject, body


def segments_email(payload: dict) -> tuple[str, str]:
    subject = f"Itinerary update for {payload.get('route', 'your group')}"
    lines = [_greeting(payload), "", "The itinerary for your group has been updated:", ""]
    for segment in payload.get("segments", []):
        extras = segment.get("extras") or {}
        line = (
            f"{segment.get('position')}. {segment.get('from_airport')} -> "
            f"{segment.get('to_airport')} on {segment.get('travel_date') or 'TBA'}"
        )
        proposed = " ".join(
            str(extras[key]) for key in ("proposed_date", "proposed_time") if extras.get(key)
        )
        if proposed:
            line += f" (proposed {proposed})"
        if extras.get("offered_baggage_kg"):
            line += f", baggage {extras['offered_baggage_kg']} kg"
        if extras.get("note"):
            line += f", {extras['note']}"
        lines.append(line)
    lines += ["", "Kind regards,", "Group Desk"]
    return subject, "\n".join(lines)
