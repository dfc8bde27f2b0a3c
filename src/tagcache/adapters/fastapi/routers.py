"""FastAPI adapter – cache operations router (stats, stats reset, health)."""
from datetime import UTC, datetime
from typing import Any

from tagcache.application.cache import CacheManager, CacheService
from tagcache.observability.health import CacheHealthCheck, HealthRegistry


def _require_fastapi() -> None:
    try:
        import fastapi  # noqa: F401
    except ImportError as exc:
        raise ImportError(
            "Install 'tagcache[fastapi]' to use the FastAPI adapter"
        ) from exc


def _performance(hit_rate: float) -> dict[str, Any]:
    return {
        "hit_rate": round(hit_rate, 2),
        "hit_rate_percentage": round(hit_rate * 100),
        "status": CacheManager.status_for(hit_rate),
        "excellent": hit_rate > 0.8,
        "good": hit_rate > 0.6,
        "needs_improvement": hit_rate < 0.4,
    }


def cache_router(
    cache: CacheService,
    prefix: str = "/cache",
    tags: list[str] | None = None,
) -> Any:
    """Return a router exposing the cache's operational endpoints.

    ``GET  {prefix}/stats``   counters, hit rate, status band, recommendations
    ``POST {prefix}/stats``   ``{"action": "reset"}`` zeroes the counters
    ``GET  {prefix}/health``  backend connectivity (503 when unreachable)
    """
    _require_fastapi()
    from fastapi import APIRouter, Body  # type: ignore[import-untyped]
    from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

    router = APIRouter(prefix=prefix, tags=tags or ["cache"])
    manager = CacheManager(cache)
    registry = HealthRegistry()
    registry.register(CacheHealthCheck(cache))

    @router.get("/stats")
    async def stats() -> dict[str, Any]:
        report = manager.performance_report()
        return {
            "success": True,
            "data": {
                "stats": report.stats.to_dict(),
                "performance": _performance(report.hit_rate),
                "recommendations": report.recommendations,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        }

    @router.post("/stats")
    async def reset_stats(payload: dict[str, Any] = Body(default_factory=dict)) -> Any:
        if payload.get("action") != "reset":
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": "Invalid action", "available_actions": ["reset"]},
            )
        cache.reset_stats()
        return {"success": True, "message": "Cache statistics reset successfully"}

    @router.get("/health")
    async def health() -> Any:
        report = await registry.run_all()
        hit_rate = cache.get_hit_rate()
        return JSONResponse(
            status_code=200 if report.overall else 503,
            content={
                "success": report.overall,
                "data": {
                    **report.to_dict(),
                    "cache": {
                        "stats": cache.get_stats().to_dict(),
                        "performance": _performance(hit_rate),
                    },
                    "timestamp": datetime.now(UTC).isoformat(),
                },
            },
        )

    return router


__all__ = ["cache_router"]
