#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the configured profile store is reachable.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from app.core.config import get_settings
from app.core.errors import StoreUnavailableError
from app.db import build_store


def main():
    settings = get_settings()
    print("=" * 50)
    print("RCSSA MATCH - CONNECTION CHECK")
    print("=" * 50)

    print(f"\n[1] Backend: {settings.store_backend}")
    if settings.store_backend == "mongo":
        print(f"    URI: {settings.mongodb_uri}")
        print(f"    Database: {settings.mongodb_db}")
    elif settings.store_backend == "postgres":
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")

    store = build_store(settings)

    print("\n[2] Opening store (indexes / tables)...")
    try:
        store.open()
        print("    ✅ Store: READY")
    except StoreUnavailableError as e:
        print(f"    ❌ Store: FAILED ({e})")

    print("\n[3] Health check...")
    if store.health_check():
        print("    ✅ Store: CONNECTED")
    else:
        print("    ❌ Store: DISCONNECTED")

    store.close()
    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
