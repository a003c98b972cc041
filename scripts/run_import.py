"""
Script to run the gomafia.pro import from the command line
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import engine
from core.exceptions import ImportConflictError, PipelineError
from core.logging import setup_logging
from ingestion.orchestrator import ImportOrchestrator
from models.base import SyncType

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import gomafia.pro data into the local database")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SyncType],
        default=SyncType.FULL.value,
        help="FULL re-imports everything, INCREMENTAL only recent pages and tournaments",
    )
    parser.add_argument(
        "--no-resume",
        dest="resume",
        action="store_false",
        help="Ignore a saved checkpoint and start from the first phase",
    )
    return parser.parse_args(argv)


async def run_import(mode: SyncType, resume: bool) -> int:
    """Run one import and return the process exit code"""
    orchestrator = ImportOrchestrator()
    
    try:
        result = await orchestrator.run(mode, resume=resume)
    except ImportConflictError as e:
        logger.error(f"Import not started: {e.message}")
        return 1
    except PipelineError as e:
        logger.error(f"Import failed: {e.message}")
        return 1
    finally:
        await engine.dispose()
    
    validation = result["validation"]
    logger.info(
        f"Import {result['sync_log_id']} {result['status']}: "
        f"{validation['valid_records']} valid, {validation['invalid_records']} invalid, "
        f"{validation['duplicates_skipped']} duplicates, rate {validation['validation_rate']}%"
    )
    if result["failed_phases"]:
        logger.warning(f"Failed phases: {', '.join(result['failed_phases'])}")
    if not validation["meets_threshold"]:
        logger.warning("Validation rate is below the configured threshold")
    
    return 0 if result["status"] == "COMPLETED" else 1


def main(argv=None) -> int:
    setup_logging()
    args = parse_args(argv)
    return asyncio.run(run_import(SyncType(args.mode), args.resume))


if __name__ == "__main__":
    sys.exit(main())
