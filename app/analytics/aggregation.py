"""
Aggregations over analytics event rows.

Everything here is a pure function of the events passed in: no database
access and no side effects. The service layer loads rows and hands them
over; tests can feed unsaved model instances directly.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from app.analytics.events import BookingStep, EventCategory

TOP_PAGES_LIMIT = 10

# Interactions count double when ranking designs
INTERACTION_WEIGHT = 2

FUNNEL_STEPS: List[str] = [step.value for step in BookingStep]


class EventRow(Protocol):
    """Shape of an analytics event row (the ORM model satisfies it)."""

    timestamp: datetime
    user_id: Optional[str]
    session_id: Optional[str]
    category: str
    action: str
    path: Optional[str]
    device_type: Optional[str]
    attributes: Dict[str, Any]


def _percent(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def count_by(events: Iterable[EventRow], attr: str) -> Dict[str, int]:
    """Count events per non-empty value of `attr`, in first-seen order."""
    counts: Dict[str, int] = {}
    for event in events:
        key = getattr(event, attr)
        if key:
            counts[key] = counts.get(key, 0) + 1
    return counts


def top_pages(events: Iterable[EventRow], limit: int = TOP_PAGES_LIMIT) -> List[Dict[str, Any]]:
    """Most viewed paths. Ties keep first-seen order (sorted() is stable)."""
    page_views = [
        e for e in events
        if e.category == EventCategory.PAGE_VIEW.value and e.path
    ]
    counts = count_by(page_views, "path")
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"path": path, "count": count} for path, count in ranked[:limit]]


def conversion_rate(events: Sequence[EventRow]) -> float:
    """Unique converting users / unique users, as a percentage."""
    users = {e.user_id for e in events if e.user_id}
    converters = {
        e.user_id for e in events
        if e.user_id and e.category == EventCategory.CONVERSION.value
    }
    return _percent(len(converters), len(users))


def group_by_session(events: Iterable[EventRow]) -> Dict[str, List[EventRow]]:
    sessions: Dict[str, List[EventRow]] = defaultdict(list)
    for event in events:
        if event.session_id:
            sessions[event.session_id].append(event)
    return dict(sessions)


def session_metrics(events: Sequence[EventRow]) -> Dict[str, float]:
    """
    Average session duration (seconds) and bounce rate.

    Single-event sessions add 0 to the duration total but still count in
    the denominator. A bounce is a session with exactly one page view.
    """
    sessions = group_by_session(events)
    if not sessions:
        return {
            "total_sessions": 0,
            "average_session_duration": 0.0,
            "bounce_rate": 0.0,
        }

    total_duration = 0.0
    bounces = 0
    for session_events in sessions.values():
        if len(session_events) > 1:
            timestamps = [e.timestamp for e in session_events]
            total_duration += (max(timestamps) - min(timestamps)).total_seconds()

        page_views = sum(
            1 for e in session_events if e.category == EventCategory.PAGE_VIEW.value
        )
        if page_views == 1:
            bounces += 1

    return {
        "total_sessions": len(sessions),
        "average_session_duration": total_duration / len(sessions),
        "bounce_rate": _percent(bounces, len(sessions)),
    }


def summarize_events(events: Sequence[EventRow]) -> Dict[str, Any]:
    """Dashboard summary for one date range."""
    sessions = session_metrics(events)
    return {
        "total_events": len(events),
        "events_by_category": count_by(events, "category"),
        "events_by_action": count_by(events, "action"),
        "top_pages": top_pages(events),
        "device_breakdown": count_by(events, "device_type"),
        "conversion_rate": conversion_rate(events),
        "average_session_duration": sessions["average_session_duration"],
        "bounce_rate": sessions["bounce_rate"],
    }


def _count_designs(events: Iterable[EventRow]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for event in events:
        design_id = (event.attributes or {}).get("designId")
        if design_id:
            counts[design_id] = counts.get(design_id, 0) + 1
    return counts


def score_designs(
    view_events: Iterable[EventRow],
    interaction_events: Iterable[EventRow],
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """
    Rank designs by views + 2 * interactions.
    Designs with interactions but no views still rank, with views = 0.
    """
    views = _count_designs(view_events)
    interactions = _count_designs(interaction_events)

    scores: List[Dict[str, Any]] = []
    for design_id in list(views) + [d for d in interactions if d not in views]:
        design_views = views.get(design_id, 0)
        design_interactions = interactions.get(design_id, 0)
        scores.append({
            "design_id": design_id,
            "views": design_views,
            "interactions": design_interactions,
            "score": design_views + design_interactions * INTERACTION_WEIGHT,
        })

    scores.sort(key=lambda s: s["score"], reverse=True)
    return scores[:limit]


def booking_funnel(events: Sequence[EventRow]) -> Dict[str, Any]:
    """
    Booking funnel over booking-category events.

    Step counts are global, not per session. Step timings average only
    over sessions that recorded both steps of a pair; when a session
    repeats a step its latest timestamp is used.
    """
    booking_events = [e for e in events if e.category == EventCategory.BOOKING.value]

    step_counts = {step: 0 for step in FUNNEL_STEPS}
    for event in booking_events:
        if event.action in step_counts:
            step_counts[event.action] += 1

    pairs = list(zip(FUNNEL_STEPS, FUNNEL_STEPS[1:]))

    conversion_rates = {
        f"{current}_to_{following}": _percent(step_counts[following], step_counts[current])
        for current, following in pairs
    }

    # session -> step -> timestamp
    session_steps: Dict[str, Dict[str, datetime]] = defaultdict(dict)
    for event in sorted(booking_events, key=lambda e: e.timestamp):
        if event.session_id:
            session_steps[event.session_id][event.action] = event.timestamp

    totals: Dict[str, float] = {}
    samples: Dict[str, int] = {}
    for steps in session_steps.values():
        for current, following in pairs:
            if current in steps and following in steps:
                key = f"{current}_to_{following}"
                elapsed = (steps[following] - steps[current]).total_seconds()
                totals[key] = totals.get(key, 0.0) + elapsed
                samples[key] = samples.get(key, 0) + 1

    step_timings = {key: totals[key] / samples[key] for key in totals}

    start_count = step_counts[BookingStep.START.value]
    complete_count = step_counts[BookingStep.COMPLETE.value]

    return {
        "step_counts": step_counts,
        "conversion_rates": conversion_rates,
        "overall_completion_rate": _percent(complete_count, start_count),
        "step_timings": step_timings,
        "total_bookings": complete_count,
        "abandonment_rate": _percent(step_counts[BookingStep.ABANDON.value], start_count),
    }
