"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from water_tracker.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/sweep", dependencies=[Depends(require_admin)])
async def run_sweep(request: Request) -> dict[str, object]:
    """Run one reminder sweep, for deployments driven by an external cron."""
    container: AppContainer = request.app.state.container
    report = await container.sweep_driver.tick()
    return {"report": asdict(report)}


@router.get("/users/{user_id}", dependencies=[Depends(require_admin)])
async def user_detail(user_id: str, request: Request) -> dict[str, object]:
    """Return a user's stored record."""
    container: AppContainer = request.app.state.container
    user = container.user_service.get(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"user": asdict(user)}
