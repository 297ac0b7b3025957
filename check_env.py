#!/usr/bin/env python3
"""Report which FLEETOPS_ settings are configured and write a template .env if missing."""

from pathlib import Path
import sys

TEMPLATE = """# Google Routes API (optional; without it routing falls back to straight-line estimates)
FLEETOPS_ROUTES_API_KEY=

# Supabase (optional; without it counters and missions stay in memory)
FLEETOPS_SUPABASE_URL=https://your-project-id.supabase.co
FLEETOPS_SUPABASE_KEY=your-service-role-key-here

# Default organization cost rates
# FLEETOPS_FUEL_PRICE_PER_LITER=1.789
# FLEETOPS_DRIVER_HOURLY_COST=30

# CORS, JSON array or comma-separated
# FLEETOPS_FRONTEND_ALLOWED_ORIGINS=http://localhost:5173,http://127.0.0.1:5173
"""


def _mask(value: str) -> str:
    return value[:12] + "..." if len(value) > 12 else value


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"Created template .env at {env_file}; fill in your keys and rerun.")
        return

    sys.path.insert(0, str(project_root / "src"))
    from fleetops.config import settings

    checks = {
        "FLEETOPS_ROUTES_API_KEY": settings.routes_api_key,
        "FLEETOPS_SUPABASE_URL": settings.supabase_url,
        "FLEETOPS_SUPABASE_KEY": settings.supabase_key,
    }
    for name, value in checks.items():
        if value:
            print(f"OK       {name} = {_mask(value)}")
        else:
            print(f"MISSING  {name}")

    print()
    print(f"Routing: {'Google Routes API' if settings.routes_api_key else 'straight-line estimates only'}")
    print(f"Storage: {'Supabase' if settings.supabase_url and settings.supabase_key else 'in-memory'}")


if __name__ == "__main__":
    main()
