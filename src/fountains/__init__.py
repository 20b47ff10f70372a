"""
Fountain data acquisition and caching pipeline.

Modules:
    overpass    — Query OpenStreetMap (Overpass API) for drinking-water nodes
    cache       — Persist the last fetched fountain set with a 24h validity window
    repository  — Cache-first fetch, refresh and CRUD over the cached set
    view        — Distance, filter and sort the collection for display
    geo         — Great-circle distance and formatting
    config      — Environment-driven settings
    errors      — Error taxonomy
"""
