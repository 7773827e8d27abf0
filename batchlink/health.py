"""Health check endpoints."""

import asyncio
from typing import Any

import asyncpg

from .config import settings


async def check_postgresql() -> dict[str, Any]:
    """Check PostgreSQL connectivity and that the link tables exist."""
    try:
        conn = await asyncio.wait_for(
            asyncpg.connect(
                host=settings.postgres_host,
                port=settings.postgres_port,
                user=settings.postgres_user,
                password=settings.postgres_password,
                database=settings.postgres_db,
            ),
            timeout=5.0,
        )
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}

    try:
        schema_ready = await conn.fetchval(
            "SELECT to_regclass('delivery_orders') IS NOT NULL "
            "AND to_regclass('production_batches') IS NOT NULL"
        )
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
    finally:
        await conn.close()

    if not schema_ready:
        return {"status": "unhealthy", "error": "link tables missing"}
    return {"status": "healthy"}


async def get_health_status() -> dict[str, Any]:
    """Get overall health status."""
    postgres = await check_postgresql()

    return {
        "status": "healthy" if postgres.get("status") == "healthy" else "degraded",
        "services": {
            "postgresql": postgres,
        },
    }
