"""
Gamify — Rule-Driven Metrics & Achievements for a Learning Platform
====================================================================
Records learner progress against configurable metrics (points, streaks,
...), unlocks achievements when a metric reaches a threshold, and scores
quiz attempts from a weighted formula.  Events carry typed payloads;
rules written as JSON-logic decide which metrics an event moves.

Package layout::

    gamify/
    ├── config.py           # YAML → typed Python config
    ├── constants.py        # Shared defaults (scoring weights, report modes)
    ├── errors.py           # Error taxonomy → HTTP status codes
    ├── database/
    │   ├── engine.py       # SQLAlchemy engine, session, async helper
    │   ├── models.py       # All ORM models
    │   └── seed.py         # Default settings seeder
    ├── engine/
    │   ├── events.py       # Trigger envelopes + response dataclasses
    │   ├── schema.py       # Payload type tags + payload checks
    │   ├── logic.py        # Pluggable rule-logic evaluator
    │   ├── metrics.py      # Increment resolution
    │   ├── achievements.py # Threshold qualification
    │   └── scoring.py      # Quiz attempt scoring formula
    ├── services/
    │   ├── trigger_service.py  # Event + metric triggers (one transaction)
    │   ├── event_service.py    # Event CRUD, cascading delete
    │   ├── rule_service.py     # Rule CRUD + logic smoke test
    │   ├── metric_service.py   # Metric + user metric CRUD
    │   ├── achievement_service.py  # Achievement CRUD + user unlocks
    │   ├── scoring_service.py  # Weights store + attempt scoring
    │   └── crud.py             # Shared row helpers
    └── api/
        ├── main.py         # FastAPI app
        └── routes/         # Engine, layer, metric and scoring endpoints
"""

__version__ = "0.1.0"
