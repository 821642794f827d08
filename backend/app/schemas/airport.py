from pydantic import BaseModel


class AirportResponse(BaseModel):
    name: str
    iata_code: str
    city_name: str
    country_code: str = ""

    class Config:
        from_attributes = True
