"""Apply pending SQL migrations from backend/migrations in version order."""

from __future__ import annotations

import asyncio
import os
import pathlib
import sys

# Ensure backend path is in sys.path
BACKEND_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.append(str(BACKEND_ROOT))

from app.infra.postgres import close_pool, get_pool  # noqa: E402

MIGRATIONS_DIR = pathlib.Path(os.environ.get("MIGRATIONS_DIR", BACKEND_ROOT / "migrations"))


async def main() -> int:
    paths = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not paths:
        print("no migration files found")
        return 1

    pool = await get_pool()
    try:
        async with pool.acquire() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version TEXT PRIMARY KEY,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
            applied = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}
            for path in paths:
                version = path.name.split("_", 1)[0]
                if version in applied:
                    continue
                async with conn.transaction():
                    await conn.execute(path.read_text())
                    await conn.execute(
                        "INSERT INTO schema_migrations (version) VALUES ($1) ON CONFLICT (version) DO NOTHING",
                        version,
                    )
                print(f"Applied {path.name}")
    finally:
        await close_pool()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
