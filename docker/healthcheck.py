#!/usr/bin/env python3
"""Container health check: relay, chat UI, database and provider configuration."""
import argparse
import asyncio
import sys
import httpx
from src.config.settings import settings
from src.core.services.db_service import get_db_service
from src.utils.logging import logger

async def ping_database() -> bool:
    db_service = get_db_service()
    try:
        return await db_service.check_health()
    finally:
        await db_service.close()

def check_database() -> bool:
    try:
        return asyncio.run(ping_database())
    except Exception as e:
        logger.error(f"Database healthcheck failed: {e}")
        return False

def check_http(url: str) -> bool:
    try:
        return httpx.get(url, timeout=5).status_code == 200
    except httpx.HTTPError as e:
        logger.error(f"Healthcheck for {url} failed: {e}")
        return False

def check_provider_config() -> bool:
    if not settings.LLM_API_KEY:
        logger.error("LLM_API_KEY is not set; chat requests will be rejected")
        return False
    return True

def main():
    parser = argparse.ArgumentParser(description="Lingua chat relay health check")
    parser.add_argument("--relay-port", type=int, default=8000)
    parser.add_argument("--ui-port", type=int, default=8501)
    parser.add_argument("--skip-ui", action="store_true")
    args = parser.parse_args()

    checks = {
        "Relay": check_http(f"http://localhost:{args.relay_port}/docs"),
        "Database": check_database(),
        "Provider": check_provider_config(),
    }
    if not args.skip_ui:
        checks["UI"] = check_http(f"http://localhost:{args.ui_port}")

    for service, status in checks.items():
        logger.info(f"{service} health check: {'PASSED' if status else 'FAILED'}")

    failed = [svc for svc, status in checks.items() if not status]
    if failed:
        logger.error(f"Health check failed for services: {', '.join(failed)}")
        sys.exit(1)
    sys.exit(0)

if __name__ == "__main__":
    main()
