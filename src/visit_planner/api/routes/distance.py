"""Distance lookup endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.optimize import DistanceMatrixRequest, DistanceMatrixResponse, DistanceRequest, DistanceResponse
from ...services.routing.service import distance_between, distance_matrix

router = APIRouter(tags=["distance"])

logger = logging.getLogger(__name__)


@router.post("/distance", response_model=DistanceResponse, status_code=status.HTTP_200_OK)
def distance(payload: DistanceRequest) -> DistanceResponse:
    try:
        return distance_between(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error calculating distance: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate distance",
        ) from exc


@router.post("/distance-matrix", response_model=DistanceMatrixResponse, status_code=status.HTTP_200_OK)
def matrix(payload: DistanceMatrixRequest) -> DistanceMatrixResponse:
    try:
        return distance_matrix(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error calculating distance matrix: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate distance matrix",
        ) from exc
