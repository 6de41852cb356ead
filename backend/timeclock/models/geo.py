from pydantic import BaseModel
from typing import List, Optional

class Coordinate(BaseModel):
    lat: float
    lng: float

class SiteEvaluation(BaseModel):
    site_id: Optional[str] = None
    name: str
    address: Optional[str] = None
    coordinates: Coordinate
    radius_meters: float
    distance_meters: float
    in_range: bool

    @property
    def status(self) -> str:
        return "IN_RANGE" if self.in_range else "OUT_OF_RANGE"

class GeoEvaluationResult(BaseModel):
    observed: Coordinate
    sites: List[SiteEvaluation] = []  # ascending by distance
    closest_site: Optional[SiteEvaluation] = None
    any_in_range: bool = False
    candidate_count: int = 0

    @property
    def in_range_sites(self) -> List[SiteEvaluation]:
        return [site for site in self.sites if site.in_range]
