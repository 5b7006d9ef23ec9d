from __future__ import annotations

from typing import Dict, Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bankrewards_api.db.session import get_session


router = APIRouter(prefix="/health")


class ComponentStatus(BaseModel):
    status: Literal["ready", "disabled", "error"]
    detail: str | None = Field(default=None, description="Human readable status detail")


class ReadinessPayload(BaseModel):
    status: Literal["ready", "error"]
    components: Dict[str, ComponentStatus]


@router.get("/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ReadinessPayload:
    components: Dict[str, ComponentStatus] = {}
    status: Literal["ready", "error"] = "ready"

    if request.app.state.repository_backend == "sql":
        try:
            await session.execute(text("SELECT 1"))
        except SQLAlchemyError as error:
            components["database"] = ComponentStatus(status="error", detail=f"Database unreachable ({error})")
            status = "error"
        else:
            components["database"] = ComponentStatus(status="ready")
    else:
        components["database"] = ComponentStatus(
            status="disabled",
            detail="In-memory repository configured",
        )

    return ReadinessPayload(status=status, components=components)
