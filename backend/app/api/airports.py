import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List

from app.api.deps import get_current_user_id, get_search_gateway
from app.schemas import AirportResponse
from app.services.amadeus_client import SearchProviderError
from app.services.flight_search import FlightSearchGateway

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/search", response_model=List[AirportResponse])
async def search_airports(
    q: str = Query(..., min_length=2),
    user_id: str = Depends(get_current_user_id),
    gateway: FlightSearchGateway = Depends(get_search_gateway),
):
    try:
        return await gateway.search_airports(q)
    except SearchProviderError as e:
        logger.error(f"Amadeus airport search failed for '{q}': {e}")
        raise HTTPException(
            status_code=502,
            detail="Failed to search airports from external provider",
        )
