"""
Integration tests.

Several CacheManager instances, and the assembled application, wired to one
shared in-memory Redis:
- Cross-instance reads through the distributed tier
- Staleness of backfilled local copies after another instance invalidates
- Write-triggered invalidation reaching both tiers over HTTP

No Redis server is needed; the shared FakeRedis stands in for it.
"""
