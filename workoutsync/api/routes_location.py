"""
Routes de localisation.

`POST /api/location/detect` exécute le service de localisation pour l'utilisateur connecté, à partir
de l'état de géolocalisation rapporté par le navigateur (permission, position, erreur). La réponse
est toujours une enveloppe succès/erreur (statut 200), comme le service.
"""

from fastapi import APIRouter, Query

from workoutsync.api.deps import current_user_dep, get_location_service
from workoutsync.api.schemas import (
    DistanceResponse,
    LocationDetectRequest,
    LocationDetectResponse,
)
from workoutsync.apigw.errors import ErrorCodes, bad_request
from workoutsync.domain.entities import UserProfile
from workoutsync.domain.validation import validate_coordinates
from workoutsync.services.location import ReportedPositionLocator, get_distance

router = APIRouter(prefix="/api/location", tags=["location"])


@router.post("/detect", response_model=LocationDetectResponse)
async def detect_location(p: LocationDetectRequest, user: UserProfile = current_user_dep):
    """Position courante: cache de l'utilisateur d'abord, sinon position rapportée + géocodage."""
    locator = ReportedPositionLocator(
        coordinates=p.coordinates,
        permission=p.permission,
        error=p.error,
        reported_at=p.reported_at,
        available=p.available,
    )
    result = await get_location_service(user.id, locator).get_location_with_fallback()
    if not result.success:
        return LocationDetectResponse(
            success=False,
            error=result.error,
            retryable=result.error_info.retryable if result.error_info else None,
        )
    return LocationDetectResponse(
        success=True,
        latitude=result.data.coordinates.latitude,
        longitude=result.data.coordinates.longitude,
        name=result.data.name,
        source=result.data.source,
    )


@router.delete("/cache")
def clear_location_cache(user: UserProfile = current_user_dep):
    """Oublie la dernière position de l'utilisateur: la prochaine détection interroge l'appareil."""
    get_location_service(user.id, ReportedPositionLocator()).clear_cache()
    return {"ok": True}


@router.get("/distance", response_model=DistanceResponse)
def distance(
    lat1: float = Query(...),
    lng1: float = Query(...),
    lat2: float = Query(...),
    lng2: float = Query(...),
):
    """Distance orthodromique (km) entre deux points."""
    for lat, lng in ((lat1, lng1), (lat2, lng2)):
        check = validate_coordinates(lat, lng)
        if not check.valid:
            raise bad_request(check.message, code=ErrorCodes.INVALID_COORDINATES)
    return DistanceResponse(distance_km=get_distance(lat1, lng1, lat2, lng2))
