"""FastAPI dependencies for leaderboards."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import LeaderboardService


async def get_leaderboard_service(request: Request) -> LeaderboardService:
    """Get leaderboard service from app state.

    Raises:
        HTTPException 503: If the service was not initialized
    """
    app_state = request.app.state
    if not getattr(app_state, "leaderboard_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Leaderboard service not available",
        )
    return app_state.leaderboard_service


LeaderboardServiceDep = Annotated[LeaderboardService, Depends(get_leaderboard_service)]
