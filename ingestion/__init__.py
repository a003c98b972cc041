"""
Import pipeline components for gomafia.pro.

This package contains everything needed to mirror the gomafia.pro site
into the local database:

Modules:
    browser: Shared HTTP session that loads and parses pages
    rate_limiter: Minimum interval between outbound requests
    retry: Backoff policy and transient error classification
    pagination: Paginated listing traversal
    validation: Validation metrics for one run
    checkpoint: Resume position persistence
    skipped: Ledger of work items that failed after retries
    integrity: Post-import referential checks
    orchestrator: Runs the phases and owns run bookkeeping
    scheduler: APScheduler integration for periodic incremental imports

Subpackages:
    scrapers: Page parsers for each gomafia.pro view
    loaders: Idempotent upserts keyed by gomafia ids
    phases: The seven import phases, in dependency order

Architecture:
    Phases run in a fixed order:

    1. PLAYERS, CLUBS, TOURNAMENTS - paginated listings
    2. GAMES - per tournament game protocols
    3. PLAYER_TOURNAMENT_HISTORY - per tournament results
    4. PLAYER_YEAR_STATS - per player yearly stats
    5. STATISTICS - role statistics aggregated from participations

    Each phase processes its work items in batches and saves a checkpoint
    after every batch, so an interrupted run resumes where it stopped.

Example:
    orchestrator = ImportOrchestrator()
    result = await orchestrator.run(SyncType.FULL)

    print(f"Validation rate {result['validation']['validation_rate']}%")
"""

__all__ = [
    "BrowserSession",
    "RateLimiter",
    "RetryManager",
    "ImportOrchestrator",
    "ImportScheduler",
]
