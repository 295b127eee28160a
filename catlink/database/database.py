# catlink/database/database.py
import asyncpg
import logging
from pathlib import Path
from typing import Iterable, List, Optional
from ..config import Config

MIGRATIONS_PATH = Path(__file__).parent / "migrations"

def pending_migrations(applied: Iterable[str], path: Path = MIGRATIONS_PATH) -> List[Path]:
    """فایل‌های migration اجرانشده به ترتیب نام"""
    done = set(applied)
    return [migration for migration in sorted(path.glob("*.sql")) if migration.name not in done]

class Database:
    """مدیریت pool ارتباط با دیتابیس دسته‌بندی‌ها و موجودی"""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn or Config.DATABASE_URL
        self.pool: Optional[asyncpg.Pool] = None
        self.logger = logging.getLogger(__name__)

    async def connect(self):
        """ایجاد pool و اجرای migrations"""
        if not self.dsn:
            raise ValueError("No DATABASE_URL set in environment")

        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=Config.DB_POOL_MIN_SIZE,
                max_size=Config.DB_POOL_MAX_SIZE,
                command_timeout=Config.COLLABORATOR_TIMEOUT,
            )
            async with self.pool.acquire() as conn:
                applied = await self.run_migrations(conn)
            self.logger.info(f"Database connection established ({len(applied)} migration(s) applied)")
        except Exception as e:
            self.logger.error(f"Database connection failed: {e}")
            raise

    async def close(self):
        """بستن pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("Database connection closed")

    async def run_migrations(self, conn, path: Path = MIGRATIONS_PATH) -> List[str]:
        """اجرای migrationهای جدید، هر فایل در تراکنش خودش"""
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_migrations (
                name VARCHAR(255) PRIMARY KEY,
                applied_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
            )
        """)
        rows = await conn.fetch("SELECT name FROM schema_migrations")

        applied = []
        for migration in pending_migrations((row['name'] for row in rows), path):
            try:
                async with conn.transaction():
                    await conn.execute(migration.read_text())
                    await conn.execute(
                        "INSERT INTO schema_migrations (name) VALUES ($1)", migration.name
                    )
            except Exception as e:
                self.logger.error(f"Migration {migration.name} failed: {e}")
                raise
            self.logger.info(f"Migration {migration.name} applied")
            applied.append(migration.name)
        return applied
