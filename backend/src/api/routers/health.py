"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_async_session


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

MIGRATION_VERSION_TABLE = "alembic_version"


class HealthResponse(BaseModel):
    """
    Health check response.

    `schema_revision` is the alembic revision stamped on the database, or None when
    the schema was created without migrations.
    """

    status: str
    database: str
    dialect: str
    schema_revision: str | None = None


async def _schema_revision(db: AsyncSession) -> str | None:
    connection = await db.connection()
    has_version_table = await connection.run_sync(
        lambda sync_conn: inspect(sync_conn).has_table(MIGRATION_VERSION_TABLE),
    )
    if not has_version_table:
        return None
    return await db.scalar(text(f"SELECT version_num FROM {MIGRATION_VERSION_TABLE}"))


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """Check database connectivity and report which schema revision is deployed."""
    dialect = db.get_bind().dialect.name
    revision = None
    try:
        await db.execute(text("SELECT 1"))
        revision = await _schema_revision(db)
    except SQLAlchemyError:
        logger.exception("Database health check failed (%s)", dialect)
        return HealthResponse(status="degraded", database="unhealthy", dialect=dialect)

    if revision is None:
        logger.debug("No %s table; schema is unversioned", MIGRATION_VERSION_TABLE)
    return HealthResponse(
        status="healthy",
        database="healthy",
        dialect=dialect,
        schema_revision=revision,
    )
