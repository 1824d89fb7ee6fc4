from typing import Literal

from travelai.schemas.common import CamelModel


class Location(CamelModel):
    code: str
    name: str
    city_name: str = ""
    country_code: str = ""
    type: Literal["AIRPORT", "CITY"] = "AIRPORT"
