from fastapi import APIRouter, Body, Query, Request

import app_service as svc
from api import parse_timestamp, to_rfc3339
from pricing import normalize_area_code


router = APIRouter(prefix="/api")


def get_price_service(request: Request) -> svc.PriceService:
    return request.app.state.price_service


@router.get("/areas")
def get_areas():
    return {"areas": svc.area_codes()}


@router.get("/version")
def get_version():
    return {"version": svc.APP_VERSION}


@router.get("/cache-status")
def get_cache_status(request: Request):
    return get_price_service(request).cache_status()


@router.get("/price")
def get_price(request: Request, area: str = Query(...), at: str = Query(default=None)):
    service = get_price_service(request)
    timestamp = parse_timestamp(at, service.tzinfo)
    price = service.current_price(area, timestamp)
    return {"area": normalize_area_code(area), "price": svc.price_to_dict(price)}


@router.get("/check")
def check_price(
    request: Request,
    area: str = Query(...),
    max_price: float = Query(...),
    at: str = Query(default=None),
):
    service = get_price_service(request)
    timestamp = parse_timestamp(at, service.tzinfo)
    check = service.check_price(area, max_price, timestamp)
    return {
        "area": check.area_code,
        "max_price": check.max_price,
        "price": svc.price_to_dict(check.price),
        "is_right": check.is_right,
    }


@router.get("/schedule")
def get_schedule(request: Request, area: str = Query(...)):
    schedule = get_price_service(request).schedule(area)
    return {
        "area": normalize_area_code(area),
        "valid": schedule.is_valid(),
        "prices": [svc.price_to_dict(price) for price in schedule],
    }


@router.post("/prices/refresh")
def refresh_prices(request: Request, payload: dict = Body(...)):
    service = get_price_service(request)
    area = normalize_area_code(payload.get("area"))
    schedule = service.refresh(area)
    write_error = service.last_write_error(area)
    return {
        "status": "ok",
        "area": area,
        "count": len(schedule),
        "valid": schedule.is_valid(),
        "expires_at": to_rfc3339(schedule.prices[-1].end) if len(schedule) else None,
        "persisted": write_error is None,
    }
