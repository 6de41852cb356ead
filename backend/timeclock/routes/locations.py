from fastapi import APIRouter, HTTPException, Depends, Query, Response
from typing import Optional, List
from timeclock.models.geo import Coordinate
from timeclock.models.location import Location, LocationCreate, LocationUpdate, LocationVerifyRequest
from timeclock.db import get_db
from timeclock.services.geo_service import evaluate, validate_coordinate
from timeclock.services.clock_service import get_location_events
from timeclock.services.location_service import list_active_sites, make_qr_token, summarize_location_activity
from timeclock.utils.auth import get_current_user, require_admin, require_manager_or_admin
from timeclock.utils.logger import log_event, EventTypes
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime, timedelta
from io import BytesIO
import qrcode

router = APIRouter()

def _object_id(location_id: str) -> ObjectId:
    try:
        return ObjectId(location_id)
    except InvalidId:
        raise HTTPException(400, "Invalid location ID format")

def _site_payload(site) -> dict:
    return {
        "id": site.site_id,
        "name": site.name,
        "address": site.address,
        "latitude": site.coordinates.lat,
        "longitude": site.coordinates.lng,
        "radius": site.radius_meters,
        "distance": round(site.distance_meters),
        "inRange": site.in_range,
        "status": site.status
    }

@router.get("/", response_model=List[Location])
async def list_locations(
    is_active: Optional[bool] = Query(None),
    current_user: dict = Depends(get_current_user)
):
    """Get the organization's workplace locations"""
    db = get_db()

    filter_dict = {"organization_id": current_user["organization_id"]}
    if is_active is not None:
        filter_dict["is_active"] = is_active

    locations = await db["locations"].find(filter_dict).sort("name", 1).to_list(None)

    location_list = []
    for location_doc in locations:
        location_doc["_id"] = str(location_doc["_id"])
        location_list.append(Location(**location_doc))

    return location_list

@router.post("/", response_model=Location, status_code=201)
async def create_location(
    location_data: LocationCreate,
    current_user: dict = Depends(require_manager_or_admin)
):
    """Create a new workplace location (Admin/Manager only)"""
    db = get_db()
    organization_id = current_user["organization_id"]

    existing_location = await db["locations"].find_one({
        "organization_id": organization_id,
        "name": location_data.name,
        "is_active": True
    })
    if existing_location:
        raise HTTPException(400, f"Location with name '{location_data.name}' already exists")

    location_dict = location_data.dict()
    location_dict.update({
        "organization_id": organization_id,
        "is_active": True,
        "created_by": str(current_user["_id"]),
        "created_at": datetime.utcnow()
    })

    result = await db["locations"].insert_one(location_dict)
    new_location = await db["locations"].find_one({"_id": result.inserted_id})
    new_location["_id"] = str(new_location["_id"])

    await log_event(EventTypes.LOCATION_CREATED, {
        "location_id": str(result.inserted_id),
        "name": location_data.name
    }, user_id=str(current_user["_id"]), organization_id=organization_id)

    return Location(**new_location)

@router.post("/verify", response_model=dict)
async def verify_location(
    body: LocationVerifyRequest,
    current_user: dict = Depends(get_current_user)
):
    """Check the caller's position against every active location ("test my location")"""
    user_location = {"latitude": body.latitude, "longitude": body.longitude}
    observed = Coordinate(lat=body.latitude, lng=body.longitude)
    # Raises InvalidCoordinate, rendered as a 400 by the error handler
    validate_coordinate(observed)

    organization_id = current_user["organization_id"]
    sites = await list_active_sites(organization_id)

    if not sites:
        return {
            "isValid": False,
            "error": "No work locations configured",
            "locations": [],
            "userLocation": user_location
        }

    result = evaluate(observed, sites)

    locations = [_site_payload(site) for site in result.sites]
    in_range = [loc for loc in locations if loc["inRange"]]
    closest = locations[0]

    await log_event(EventTypes.LOCATION_VERIFIED, {
        "closest_location_id": closest["id"],
        "distance": closest["distance"],
        "in_range": result.any_in_range
    }, user_id=str(current_user["_id"]), organization_id=organization_id)

    return {
        "isValid": result.any_in_range,
        "userLocation": user_location,
        "locations": locations,
        "inRangeLocations": in_range,
        "closestLocation": closest,
        "summary": {
            "totalLocations": result.candidate_count,
            "inRangeCount": len(in_range),
            "closestDistance": closest["distance"],
            "canClockIn": result.any_in_range
        }
    }

@router.get("/{location_id}", response_model=Location)
async def get_location(
    location_id: str,
    current_user: dict = Depends(get_current_user)
):
    """Get a specific workplace location"""
    db = get_db()

    location = await db["locations"].find_one({
        "_id": _object_id(location_id),
        "organization_id": current_user["organization_id"]
    })
    if not location:
        raise HTTPException(404, "Location not found")

    location["_id"] = str(location["_id"])
    return Location(**location)

@router.put("/{location_id}", response_model=Location)
async def update_location(
    location_id: str,
    location_update: LocationUpdate,
    current_user: dict = Depends(require_manager_or_admin)
):
    """Update a workplace location (Admin/Manager only)"""
    db = get_db()
    organization_id = current_user["organization_id"]
    oid = _object_id(location_id)

    existing_location = await db["locations"].find_one({"_id": oid, "organization_id": organization_id})
    if not existing_location:
        raise HTTPException(404, "Location not found")

    update_dict = location_update.dict(exclude_unset=True)
    if update_dict:
        update_dict["updated_at"] = datetime.utcnow()

        # Check for duplicate names if name is being updated
        if "name" in update_dict:
            duplicate_check = await db["locations"].find_one({
                "_id": {"$ne": oid},
                "organization_id": organization_id,
                "name": update_dict["name"],
                "is_active": True
            })
            if duplicate_check:
                raise HTTPException(400, f"Location with name '{update_dict['name']}' already exists")

        await db["locations"].update_one({"_id": oid}, {"$set": update_dict})

    updated_location = await db["locations"].find_one({"_id": oid})
    updated_location["_id"] = str(updated_location["_id"])

    await log_event(EventTypes.LOCATION_UPDATED, {
        "location_id": location_id,
        "changes": sorted(update_dict)
    }, user_id=str(current_user["_id"]), organization_id=organization_id)

    return Location(**updated_location)

@router.delete("/{location_id}", status_code=204)
async def delete_location(
    location_id: str,
    current_user: dict = Depends(require_admin)
):
    """Deactivate a workplace location (Administrator only)"""
    db = get_db()
    organization_id = current_user["organization_id"]
    oid = _object_id(location_id)

    existing_location = await db["locations"].find_one({"_id": oid, "organization_id": organization_id})
    if not existing_location:
        raise HTTPException(404, "Location not found")

    # Soft delete so historical clock events keep their location
    await db["locations"].update_one(
        {"_id": oid},
        {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
    )

    await log_event(EventTypes.LOCATION_DELETED, {
        "location_id": location_id,
        "name": existing_location["name"]
    }, user_id=str(current_user["_id"]), organization_id=organization_id)

@router.post("/{location_id}/qr-code", response_model=dict)
async def generate_location_qr_code(
    location_id: str,
    current_user: dict = Depends(require_manager_or_admin)
):
    """Issue a new QR code token for a location, replacing the previous one (Admin/Manager only)"""
    db = get_db()
    organization_id = current_user["organization_id"]
    oid = _object_id(location_id)

    existing_location = await db["locations"].find_one({"_id": oid, "organization_id": organization_id})
    if not existing_location:
        raise HTTPException(404, "Location not found")

    now = datetime.utcnow()
    qr_code = make_qr_token(location_id, now)
    await db["locations"].update_one({"_id": oid}, {"$set": {"qr_code": qr_code, "updated_at": now}})

    updated_location = await db["locations"].find_one({"_id": oid})
    updated_location["_id"] = str(updated_location["_id"])

    await log_event(EventTypes.LOCATION_QR_GENERATED, {
        "location_id": location_id,
        "name": existing_location["name"]
    }, user_id=str(current_user["_id"]), organization_id=organization_id)

    return {"success": True, "qrCode": qr_code, "location": Location(**updated_location).dict()}

@router.get("/{location_id}/qr-code")
async def get_location_qr_code(
    location_id: str,
    current_user: dict = Depends(get_current_user)
):
    """PNG image of the location's current QR code"""
    db = get_db()

    location = await db["locations"].find_one({
        "_id": _object_id(location_id),
        "organization_id": current_user["organization_id"]
    })
    if not location:
        raise HTTPException(404, "Location not found")
    if not location.get("qr_code"):
        raise HTTPException(404, "No QR code generated for this location")

    img = qrcode.make(location["qr_code"])
    buf = BytesIO()
    img.save(buf)

    return Response(content=buf.getvalue(), media_type="image/png")

@router.get("/{location_id}/analytics", response_model=dict)
async def get_location_analytics(
    location_id: str,
    days: int = Query(30, ge=1, le=365),
    current_user: dict = Depends(require_manager_or_admin)
):
    """Clock activity at a location over the last `days` days (Admin/Manager only)"""
    db = get_db()
    organization_id = current_user["organization_id"]

    location = await db["locations"].find_one({"_id": _object_id(location_id), "organization_id": organization_id})
    if not location:
        raise HTTPException(404, "Location not found")

    since = datetime.utcnow() - timedelta(days=days)
    events = await get_location_events(organization_id, location_id, since)

    analytics = summarize_location_activity(location_id, events, days)
    return {"success": True, "analytics": analytics.dict()}
