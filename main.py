"""
main.py: Server launcher and entry point.

Run this file to start the facility booking API:

    python main.py

This file does NOT contain application logic. See app.py for the FastAPI
application, service wiring, and startup sequence.

Direct uvicorn usage:
    uvicorn app:app --reload
"""

from __future__ import annotations

import uvicorn

from facility_booking.utils.config import get_settings


def main() -> None:
    """Start the booking API server."""
    settings = get_settings()
    base_url = f"http://{settings.server_host}:{settings.server_port}"
    print("=" * 60)
    print(f"  {settings.app_name} {settings.app_version}")
    print("=" * 60)
    print(f"  Server   : {base_url}")
    print(f"  API docs : {base_url}/docs")
    print(f"  Database : {settings.database_path}")
    print(f"  Auth     : {'enabled' if settings.admin_token else 'disabled (no ADMIN_TOKEN)'}")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    # Blocks until CTRL+C
    uvicorn.run(
        "app:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
