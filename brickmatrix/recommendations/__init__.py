"""
Property recommendation engine.

Responsibilities:
- Parse loosely-shaped filter payloads into validated filters.
- Fan out to the upstream data sources and keep whatever succeeds.
- Generate a candidate pool and diversify it by builder and segment.
- Score candidates on five weighted factors and map scores to actions.
- Cache identical requests for a short TTL.
"""
