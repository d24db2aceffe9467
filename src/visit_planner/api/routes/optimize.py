"""Optimization endpoints."""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from ...schemas.optimize import OptimizeRequest, OptimizeResponse
from ...services.outputs.schedule_formatter import result_to_csv, result_to_json
from ...services.routing.service import optimize_appointments, run_optimization

router = APIRouter(prefix="/optimize", tags=["optimize"])

logger = logging.getLogger(__name__)


@router.post("", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest) -> OptimizeResponse:
    try:
        return optimize_appointments(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to optimize route",
        ) from exc


@router.post("/export", status_code=status.HTTP_200_OK)
def export(
    payload: OptimizeRequest,
    format: Literal["json", "csv"] = Query(default="json", description="Output format"),
):
    """Run the optimizer and return the schedule as JSON or CSV."""
    try:
        result = run_optimization(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error exporting route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to optimize route",
        ) from exc

    if format == "csv":
        return PlainTextResponse(result_to_csv(result), media_type="text/csv")
    return result_to_json(result)
