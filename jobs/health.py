"""
Health endpoints of the scheduler process.

Routes:
    /health           scheduler state and registered jobs
    /readiness        200 once the daily job is scheduled
    /liveness         always 200 while the process serves requests
    /payouts/status   payout status snapshot (admin bearer token)
"""

import asyncio
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal

from aiohttp import web
from loguru import logger

from jobs.scheduler import PayoutScheduler
from yieldledger.services.payout.status import PayoutStatusService
from yieldledger.utils.exceptions import AuthorizationError
from yieldledger.utils.security import PrincipalResolver


SCHEDULER_KEY = web.AppKey("scheduler", PayoutScheduler)
STATUS_SERVICE_KEY = web.AppKey("status_service", PayoutStatusService)
RESOLVER_KEY = web.AppKey("resolver", PrincipalResolver)


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _job_entry(job) -> dict:
    return {
        "id": job.id,
        "name": job.name,
        "next_run_time": _jsonable(job.next_run_time),
    }


async def health_handler(request: web.Request) -> web.Response:
    """Scheduler state, dispatch mode and registered jobs."""
    payout_scheduler = request.app[SCHEDULER_KEY]
    try:
        jobs = [_job_entry(job) for job in payout_scheduler.scheduler.get_jobs()]
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return web.json_response({"status": "unhealthy", "error": str(e)}, status=503)

    running = payout_scheduler.running
    settings = payout_scheduler.settings
    return web.json_response(
        {
            "status": "healthy" if running else "stopped",
            "scheduler_running": running,
            "dispatch": settings.payout_dispatch,
            "timezone": settings.payout_timezone,
            "jobs_count": len(jobs),
            "jobs": jobs,
        }
    )


async def readiness_handler(request: web.Request) -> web.Response:
    ready = request.app[SCHEDULER_KEY].running
    return web.json_response(
        {"status": "ready" if ready else "not_ready", "ready": ready},
        status=200 if ready else 503,
    )


async def liveness_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "alive", "alive": True})


def _bearer_token(request: web.Request) -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def payout_status_handler(request: web.Request) -> web.Response:
    """Current payout status snapshot, admins only."""
    try:
        request.app[RESOLVER_KEY].resolve_admin(_bearer_token(request))
    except AuthorizationError:
        return web.json_response(
            {"success": False, "error": "Admin access required"}, status=403
        )

    next_run = request.app[SCHEDULER_KEY].next_run_time()
    try:
        status = await request.app[STATUS_SERVICE_KEY].status(next_run=next_run)
    except Exception as e:
        logger.error(f"Payout status failed: {e}")
        return web.json_response(
            {"success": False, "error": "Payout status unavailable"}, status=503
        )
    return web.json_response({"success": True, "data": _jsonable(asdict(status))})


def create_health_app(
    scheduler: PayoutScheduler,
    status_service: PayoutStatusService,
    resolver: PrincipalResolver | None = None,
) -> web.Application:
    """
    Build the health application around explicit dependencies.

    ``resolver`` defaults to one built from the scheduler settings.
    """
    app = web.Application()
    app[SCHEDULER_KEY] = scheduler
    app[STATUS_SERVICE_KEY] = status_service
    app[RESOLVER_KEY] = resolver or PrincipalResolver(scheduler.settings)
    app.add_routes(
        [
            web.get("/health", health_handler),
            web.get("/readiness", readiness_handler),
            web.get("/liveness", liveness_handler),
            web.get("/payouts/status", payout_status_handler),
        ]
    )
    return app


async def start_health_server(
    app: web.Application,
    host: str = "0.0.0.0",
    port: int = 8081,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Serve ``app`` on ``host:port``.

    Returns:
        Tuple of (AppRunner, TCPSite); pass the runner to ``stop_health_server``
    """
    runner = web.AppRunner(app, access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Health server listening on http://{host}:{port} (/health, /payouts/status)")
    return runner, site


async def stop_health_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """Clean up the runner, giving up after ``timeout`` seconds."""
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Health server cleanup timed out after {timeout}s")
        return
    logger.info("Health server stopped")
