"""FastAPI dependency injection for database access and the caller identity."""

from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.core.logging import user_id_ctx
from profitdesk.services.coordinator import ConsistencyCoordinator


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory.

    Args:
        request: FastAPI request containing app state.

    Yields:
        AsyncSession for database operations with automatic commit/rollback.
    """
    async with request.app.state.async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_coordinator(request: Request) -> ConsistencyCoordinator:
    """Coordinator bound to the app's session factory.

    Compound writes open their own transaction instead of sharing the
    request-scoped session.
    """
    return ConsistencyCoordinator(request.app.state.async_session)


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> int:
    """Resolve the authenticated user from the gateway-supplied header.

    Raises:
        HTTPException: 401 if the header is missing or not a positive integer.
    """
    if x_user_id is None or not x_user_id.strip().isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    user_id = int(x_user_id.strip())
    if user_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    user_id_ctx.set(user_id)
    return user_id
