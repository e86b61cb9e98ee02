from datetime import time
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from urban_transit.database import get_db
from urban_transit.auth.dependencies import require_admin
from urban_transit.auth.schemas import MessageResponse
from urban_transit.enums import TransportType
from urban_transit.pagination import PagedResponse
from urban_transit.routes.schemas import (
    RouteCreate, RouteUpdate, RouteStatusUpdate, RouteResponse,
    RouteUsageResponse, TransportTypeCountResponse
)
from urban_transit.routes.service import RouteService

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])

# ================================
# Public route browsing
# ================================
@router.get("", response_model=List[RouteResponse])
def list_routes(db: Session = Depends(get_db)):
    """All active routes sorted by name"""
    return RouteService.list_active_routes(db)

@router.get("/paged", response_model=PagedResponse[RouteResponse])
def list_routes_paged(page: int = Query(0, ge=0), size: int = Query(20, ge=1), db: Session = Depends(get_db)):
    return RouteService.list_active_routes_paged(db, page, size)

@router.get("/search", response_model=List[RouteResponse])
def search_routes(term: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return RouteService.search_routes(db, term)

@router.get("/search/advanced", response_model=PagedResponse[RouteResponse])
def advanced_search(
    term: Optional[str] = None,
    transport_type: Optional[TransportType] = None,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1),
    db: Session = Depends(get_db)
):
    """Search by name/description and transport type"""
    return RouteService.advanced_search(db, term, transport_type, page, size)

@router.get("/transport/{transport_type}", response_model=List[RouteResponse])
def routes_by_transport_type(transport_type: TransportType, db: Session = Depends(get_db)):
    return RouteService.routes_by_transport_type(db, transport_type)

@router.get("/stop/{stop_name}", response_model=List[RouteResponse])
def routes_by_stop(stop_name: str, db: Session = Depends(get_db)):
    """Routes serving a stop"""
    return RouteService.routes_by_stop(db, stop_name)

@router.get("/operating", response_model=List[RouteResponse])
def routes_operating_at(at: time = Query(..., description="Time of day, HH:MM"), db: Session = Depends(get_db)):
    return RouteService.routes_operating_at(db, at)

@router.get("/name/{route_name}", response_model=RouteResponse)
def get_route_by_name(route_name: str, db: Session = Depends(get_db)):
    return RouteService.get_route_by_name(db, route_name)

@router.get("/{route_id}", response_model=RouteResponse)
def get_route(route_id: int, db: Session = Depends(get_db)):
    return RouteService.get_route(db, route_id)

# ================================
# Admin route management
# ================================
@admin_router.get("", response_model=PagedResponse[RouteResponse])
def list_all_routes(page: int = Query(0, ge=0), size: int = Query(20, ge=1), db: Session = Depends(get_db)):
    """All routes including inactive ones"""
    return RouteService.list_all_routes(db, page, size)

@admin_router.post("", response_model=RouteResponse, status_code=status.HTTP_201_CREATED)
def create_route(request: RouteCreate, db: Session = Depends(get_db)):
    return RouteService.create_route(db, request)

@admin_router.get("/popular", response_model=List[RouteUsageResponse])
def popular_routes(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return RouteService.popular_routes(db, limit)

@admin_router.get("/underutilized", response_model=List[RouteUsageResponse])
def underutilized_routes(threshold: int = Query(10, ge=0), db: Session = Depends(get_db)):
    return RouteService.underutilized_routes(db, threshold)

@admin_router.get("/count-by-transport", response_model=TransportTypeCountResponse)
def count_by_transport_type(db: Session = Depends(get_db)):
    return TransportTypeCountResponse(counts=RouteService.count_by_transport_type(db))

@admin_router.get("/{route_id}", response_model=RouteResponse)
def get_any_route(route_id: int, db: Session = Depends(get_db)):
    return RouteService.get_any_route(db, route_id)

@admin_router.put("/{route_id}", response_model=RouteResponse)
def update_route(route_id: int, request: RouteUpdate, db: Session = Depends(get_db)):
    return RouteService.update_route(db, route_id, request)

@admin_router.put("/{route_id}/status", response_model=RouteResponse)
def set_route_status(route_id: int, request: RouteStatusUpdate, db: Session = Depends(get_db)):
    return RouteService.set_route_status(db, route_id, request.active)

@admin_router.delete("/{route_id}", response_model=MessageResponse)
def delete_route(route_id: int, db: Session = Depends(get_db)):
    RouteService.delete_route(db, route_id)
    return MessageResponse(message="Route deleted successfully")
