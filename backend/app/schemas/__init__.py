from app.schemas.alert import AlertCreate, AlertUpdate, AlertResponse
from app.schemas.price import (
    PriceRecordResponse,
    PriceHistoryResponse,
    DailyLowestPoint,
    DailyLowestResponse,
)
from app.schemas.airport import AirportResponse
