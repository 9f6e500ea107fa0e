"""Apply every SQL file under backend/migrations in name order.

Usage: python scripts/apply_migrations.py [migration_filename ...]
"""

import asyncio
import os
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(BACKEND_ROOT))

# Manually load .env if it exists
env_path = BACKEND_ROOT / ".env"
if env_path.exists():
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())

from app.infra.postgres import close_pool, get_pool  # noqa: E402

MIGRATION_DIR = BACKEND_ROOT / "migrations"


async def main(selected: list[str]) -> int:
    files = sorted(path for path in MIGRATION_DIR.glob("*.sql"))
    if selected:
        files = [path for path in files if path.name in selected]
        missing = set(selected) - {path.name for path in files}
        if missing:
            print(f"Migration file not found: {', '.join(sorted(missing))}")
            return 1

    pool = await get_pool()
    try:
        async with pool.acquire() as conn:
            for path in files:
                print(f"Executing {path.name}...")
                async with conn.transaction():
                    await conn.execute(path.read_text())
                print(f"Finished {path.name}")
    finally:
        await close_pool()
    return 0


if __name__ == "__main__":
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    sys.exit(asyncio.run(main(sys.argv[1:])))
