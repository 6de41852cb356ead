import logging
import math
from typing import Iterable, Optional

from timeclock.models.geo import Coordinate, GeoEvaluationResult, SiteEvaluation
from timeclock.models.location import WorkSite
from timeclock.services.exceptions import InvalidCoordinate

logger = logging.getLogger(__name__)

# Radius of earth in meters
EARTH_RADIUS_METERS = 6371000


def validate_coordinate(coord: Coordinate) -> Coordinate:
    """Raise InvalidCoordinate unless lat/lng are finite and within range."""
    lat, lng = coord.lat, coord.lng

    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        raise InvalidCoordinate("Coordinates must be numeric", {"lat": lat, "lng": lng})

    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidCoordinate("Coordinates must be finite numbers", {"lat": lat, "lng": lng})

    if not -90 <= lat <= 90:
        raise InvalidCoordinate(f"Latitude {lat} is outside [-90, 90]", {"lat": lat})

    if not -180 <= lng <= 180:
        raise InvalidCoordinate(f"Longitude {lng} is outside [-180, 180]", {"lng": lng})

    return coord


def calculate_distance(coord1: Coordinate, coord2: Coordinate) -> float:
    """
    Calculate the great circle distance between two points on earth in meters
    using the Haversine formula.

    Args:
        coord1: first point, degrees
        coord2: second point, degrees

    Returns:
        Distance in meters
    """
    # Convert latitude and longitude from degrees to radians
    phi1, phi2 = math.radians(coord1.lat), math.radians(coord2.lat)
    dphi = math.radians(coord2.lat - coord1.lat)
    dlambda = math.radians(coord2.lng - coord1.lng)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # Rounding can push a a hair above 1 for near-antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def evaluate_site(observed: Coordinate, site: WorkSite) -> SiteEvaluation:
    distance = calculate_distance(observed, site.coordinates)
    return SiteEvaluation(
        site_id=site.id,
        name=site.name,
        address=site.address,
        coordinates=site.coordinates,
        radius_meters=site.radius_meters,
        distance_meters=distance,
        in_range=distance <= site.radius_meters,
    )


def evaluate(observed: Coordinate, sites: Iterable[WorkSite]) -> GeoEvaluationResult:
    """
    Classify an observed position against a set of work sites.

    Sites come back sorted by ascending distance; ties keep input order.
    An empty site list is a valid configuration and yields
    ``any_in_range=False`` with no closest site.

    Raises:
        InvalidCoordinate: if the observed position is malformed
    """
    validate_coordinate(observed)

    evaluations = sorted(
        (evaluate_site(observed, site) for site in sites),
        key=lambda evaluation: evaluation.distance_meters,
    )

    closest: Optional[SiteEvaluation] = evaluations[0] if evaluations else None

    logger.debug(
        "Evaluated %d sites for (%s, %s); closest=%s",
        len(evaluations), observed.lat, observed.lng,
        closest.name if closest else None,
    )

    return GeoEvaluationResult(
        observed=observed,
        sites=evaluations,
        closest_site=closest,
        any_in_range=any(evaluation.in_range for evaluation in evaluations),
        candidate_count=len(evaluations),
    )
