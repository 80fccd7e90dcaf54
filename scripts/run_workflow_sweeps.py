"""Run the SLA and reminder sweeps over pending approvals.

Usage:
    uv run python -m scripts.run_workflow_sweeps [sla|reminders]
If no sweep is named, runs the SLA sweep then the reminder sweep.
Requires Postgres (DATABASE_URL). Schedule it (e.g. cron, every 15 minutes);
running it twice for the same moment is harmless.
"""

import asyncio
import sys

import app.infrastructure.persistence.database as database
from app.api.v1.dependencies import build_sweeps
from app.core.config import get_settings
from app.core.lifespan import start_telemetry, stop_telemetry
from app.shared.context import clear_current_user
from app.shared.telemetry.logging import setup_logging
from app.shared.utils.datetime import utc_now

SWEEPS = ("sla", "reminders")


async def main() -> None:
    """Run each requested sweep in its own transaction, acting as SYSTEM."""
    setup_logging()
    settings = get_settings()
    start_telemetry(settings)
    database._ensure_engine()
    if database.AsyncSessionLocal is None:
        print("AsyncSessionLocal not configured", file=sys.stderr)
        sys.exit(1)
    requested = sys.argv[1:] or list(SWEEPS)
    unknown = [s for s in requested if s not in SWEEPS]
    if unknown:
        print(f"Unknown sweep(s): {', '.join(unknown)}", file=sys.stderr)
        sys.exit(2)

    clear_current_user()
    now = utc_now()
    try:
        for name in requested:
            async with database.AsyncSessionLocal() as session:
                async with session.begin():
                    sla, reminders = build_sweeps(session)
                    sweep = sla if name == "sla" else reminders
                    result = await sweep.run(now)
            print(
                f"{name}: scanned={result.scanned} reminded={result.reminded} "
                f"warned={result.warned} escalated={result.escalated} "
                f"missing_backup={result.missing_backup} failures={len(result.failures)}"
            )
    finally:
        stop_telemetry()
        await database.dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
