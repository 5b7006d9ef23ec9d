"""Observability endpoints exposing in-process loyalty counters."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from bankrewards_api.api.dependencies.security import require_admin_api_key
from bankrewards_api.observability.loyalty import get_loyalty_store


router = APIRouter(prefix="/observability", tags=["Observability"])


@router.get(
    "/loyalty",
    dependencies=[Depends(require_admin_api_key)],
    summary="Loyalty ledger observability snapshot",
)
async def get_loyalty_snapshot() -> dict[str, object]:
    """Earn, redeem and rejection counters since process start."""
    return get_loyalty_store().snapshot().as_dict()


def _format_metric(name: str, description: str, value: int, labels: dict[str, str] | None = None) -> list[str]:
    label_fragment = ""
    if labels:
        label_fragment = "{" + ",".join(f'{key}="{val}"' for key, val in sorted(labels.items())) + "}"
    return [
        f"# HELP {name} {description}",
        f"# TYPE {name} counter",
        f"{name}{label_fragment} {value}",
    ]


@router.get(
    "/prometheus",
    response_class=PlainTextResponse,
    dependencies=[Depends(require_admin_api_key)],
    summary="Loyalty counters in Prometheus text format",
)
async def get_prometheus_metrics() -> PlainTextResponse:
    snapshot = get_loyalty_store().snapshot()
    lines: list[str] = []
    lines += _format_metric(
        "bankrewards_earn_transactions_total",
        "Completed earn transactions",
        snapshot.earn.get("transactions", 0),
    )
    lines += _format_metric("bankrewards_points_earned_total", "Points credited", snapshot.earn.get("points", 0))
    lines += _format_metric(
        "bankrewards_redeem_transactions_total",
        "Completed redemptions",
        snapshot.redeem.get("transactions", 0),
    )
    lines += _format_metric("bankrewards_points_redeemed_total", "Points debited", snapshot.redeem.get("points", 0))
    for code, count in sorted(snapshot.rejections.items()):
        lines += _format_metric(
            "bankrewards_rejections_total",
            "Rejected earn and redeem requests",
            count,
            {"reason": code},
        )
    return PlainTextResponse("\n".join(lines) + "\n")
