"""Registry — the remote catalogue of published blocks.

The registry layer provides:
- Data models for one fetched snapshot (global and per-author maps)
- Deserialization with structural validation
- The HTTP fetcher that retrieves a snapshot from the API
"""
