"""
Tests for the pure analytics aggregations.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.analytics import aggregation

T0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_event(category, action="view", session_id=None, user_id=None, path=None,
               device_type=None, seconds=0, **attributes):
    return SimpleNamespace(
        timestamp=T0 + timedelta(seconds=seconds),
        user_id=user_id,
        session_id=session_id,
        category=category,
        action=action,
        path=path,
        device_type=device_type,
        attributes=attributes,
    )


def test_summary_of_no_events():
    summary = aggregation.summarize_events([])

    assert summary == {
        "total_events": 0,
        "events_by_category": {},
        "events_by_action": {},
        "top_pages": [],
        "device_breakdown": {},
        "conversion_rate": 0.0,
        "average_session_duration": 0.0,
        "bounce_rate": 0.0,
    }


def test_top_pages_ordering_and_limit():
    events = (
        [make_event("page_view", path="/contact")]
        + [make_event("page_view", path="/gallery") for _ in range(3)]
        + [make_event("interaction", action="click", path="/gallery")]
    )

    pages = aggregation.top_pages(events)

    assert pages == [
        {"path": "/gallery", "count": 3},
        {"path": "/contact", "count": 1},
    ]
    assert len(aggregation.top_pages(events, limit=1)) == 1


def test_conversion_rate_counts_unique_users():
    events = [
        make_event("page_view", user_id="u1"),
        make_event("page_view", user_id="u2"),
        make_event("conversion", action="signup", user_id="u1"),
        make_event("conversion", action="purchase", user_id="u1"),
    ]

    assert aggregation.conversion_rate(events) == 50.0


def test_conversion_rate_zero_without_user_ids():
    events = [make_event("conversion", action="signup", session_id="s1")]

    assert aggregation.conversion_rate(events) == 0.0


def test_lone_page_view_session_is_bounce():
    events = [
        make_event("page_view", session_id="bounce"),
        make_event("page_view", session_id="engaged", seconds=0),
        make_event("interaction", action="click", session_id="engaged", seconds=30),
        make_event("page_view", session_id="engaged", seconds=90),
    ]

    metrics = aggregation.session_metrics(events)

    assert metrics["total_sessions"] == 2
    assert metrics["bounce_rate"] == 50.0
    # 90s for "engaged", 0s for "bounce", averaged over both sessions
    assert metrics["average_session_duration"] == 45.0


def test_events_without_session_are_ignored_for_sessions():
    metrics = aggregation.session_metrics([make_event("page_view")])

    assert metrics == {
        "total_sessions": 0,
        "average_session_duration": 0.0,
        "bounce_rate": 0.0,
    }


def test_design_score_weights():
    views = [make_event("gallery", designId="d1"), make_event("gallery", designId="d1")]
    interactions = [make_event("gallery", action="favorite", designId="d2")]

    ranked = aggregation.score_designs(views, interactions)

    assert ranked == [
        {"design_id": "d1", "views": 2, "interactions": 0, "score": 2},
        {"design_id": "d2", "views": 0, "interactions": 1, "score": 2},
    ]


def test_design_score_is_monotonic():
    views = [make_event("gallery", designId="d1")]
    interactions = [make_event("gallery", action="share", designId="d1")]
    base = aggregation.score_designs(views, interactions)[0]["score"]

    more_views = views + [make_event("gallery", designId="d1")]
    assert aggregation.score_designs(more_views, interactions)[0]["score"] == base + 1

    more_interactions = interactions + [make_event("gallery", action="zoom", designId="d1")]
    assert aggregation.score_designs(views, more_interactions)[0]["score"] == base + 2


def test_design_events_without_design_id_are_skipped():
    ranked = aggregation.score_designs([make_event("gallery")], [])

    assert ranked == []


def test_funnel_rates():
    events = []
    for i in range(4):
        events.append(make_event("booking", action="start", session_id=f"s{i}"))
    for i in range(2):
        events.append(make_event("booking", action="select_service", session_id=f"s{i}"))
    events.append(make_event("booking", action="abandon", session_id="s3"))

    funnel = aggregation.booking_funnel(events)

    assert funnel["step_counts"]["start"] == 4
    assert funnel["conversion_rates"]["start_to_select_service"] == 50.0
    # no select_date events at all
    assert funnel["conversion_rates"]["select_date_to_enter_details"] == 0.0
    assert funnel["abandonment_rate"] == 25.0
    assert funnel["overall_completion_rate"] == 0.0
    assert funnel["total_bookings"] == 0


def test_funnel_rate_is_100_when_counts_match():
    events = [
        make_event("booking", action="payment", session_id="s1"),
        make_event("booking", action="complete", session_id="s1", seconds=5),
    ]

    funnel = aggregation.booking_funnel(events)

    assert funnel["conversion_rates"]["payment_to_complete"] == 100.0
    assert funnel["step_timings"] == {"payment_to_complete": 5.0}


def test_funnel_timings_skip_missing_steps():
    events = [
        make_event("booking", action="start", session_id="s1", seconds=0),
        make_event("booking", action="complete", session_id="s1", seconds=120),
    ]

    funnel = aggregation.booking_funnel(events)

    assert "start_to_select_service" not in funnel["step_timings"]
    assert funnel["step_timings"] == {}
    assert funnel["overall_completion_rate"] == 100.0
    assert funnel["total_bookings"] == 1


def test_funnel_timings_average_over_sessions_with_both_steps():
    events = [
        make_event("booking", action="start", session_id="s1", seconds=0),
        make_event("booking", action="select_service", session_id="s1", seconds=10),
        make_event("booking", action="start", session_id="s2", seconds=0),
        make_event("booking", action="select_service", session_id="s2", seconds=30),
        make_event("booking", action="start", session_id="s3", seconds=0),
    ]

    funnel = aggregation.booking_funnel(events)

    assert funnel["step_timings"]["start_to_select_service"] == 20.0


def test_funnel_ignores_other_categories():
    events = [
        make_event("page_view", action="view", session_id="s1"),
        make_event("booking", action="start", session_id="s1"),
    ]

    funnel = aggregation.booking_funnel(events)

    assert sum(funnel["step_counts"].values()) == 1
