#!/usr/bin/env python3
"""
Wallet Rewards Backend Runner
=============================

Run the API server or a one-off reconciliation sweep.

Usage:
    python run_app.py                    # Run the API (dev mode, auto-reload)
    python run_app.py --mode prod        # Production mode
    python run_app.py --mock             # In-memory ledger, no database
    python run_app.py --port 8001        # Custom port
    python run_app.py --sweep tweets     # Run the tweet sweep once and exit
    python run_app.py --sweep discord    # Run the Discord membership sweep once and exit
"""

import argparse
import asyncio
import json
import os
import sys

def run_api(host: str, port: int, reload: bool):
    """Run the FastAPI application"""
    import uvicorn

    print(f"Starting Wallet Rewards API on {host}:{port}")
    print(f"API Docs: http://localhost:{port}/api/docs")
    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )

async def run_sweep(kind: str, timeout: float = None) -> dict:
    """Run one reconciliation sweep against the configured database"""
    from app.core.database import worker_session_factory, init_db, create_worker_engine
    from app.core.logging import setup_logging
    from app.repositories import SqlAlchemyLedgerStore
    from app.services.reconciliation import ReconciliationService

    setup_logging()
    engine = create_worker_engine()
    try:
        await init_db(engine)
    finally:
        await engine.dispose()

    async with worker_session_factory() as session_factory:
        service = ReconciliationService(SqlAlchemyLedgerStore(session_factory))
        if kind == "discord":
            summary = await service.reconcile_all_memberships(timeout=timeout)
        else:
            summary = await service.reconcile_all_active_tweets(timeout=timeout)
    return summary.model_dump()

def main():
    parser = argparse.ArgumentParser(
        description="Wallet Rewards Backend Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mode",
        choices=["dev", "prod"],
        default="dev",
        help="Server mode (default: dev)"
    )
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    parser.add_argument("--mock", action="store_true", help="Use the in-memory ledger store")
    parser.add_argument(
        "--sweep",
        choices=["tweets", "discord"],
        help="Run one reconciliation sweep and exit"
    )
    parser.add_argument("--timeout", type=float, default=None, help="Sweep timeout in seconds")

    args = parser.parse_args()

    # Settings are read at import time, so set this before importing the app
    if args.mock:
        os.environ["REWARDS_MOCK"] = "true"

    if args.sweep:
        result = asyncio.run(run_sweep(args.sweep, args.timeout))
        print(json.dumps(result, indent=2))
        return 0

    reload = not args.no_reload and args.mode != "prod"
    run_api(args.host, args.port, reload)
    return 0

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)
