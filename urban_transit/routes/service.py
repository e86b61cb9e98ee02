from datetime import time
from typing import List, Optional

from loguru import logger
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from urban_transit.enums import TransportType
from urban_transit.exceptions import NotFound, Conflict
from urban_transit.models import Route, RouteStop, TicketUsage
from urban_transit.pagination import PagedResponse, paginate
from urban_transit.routes.schemas import (
    RouteCreate, RouteUpdate, RouteResponse, RouteSummaryResponse, RouteUsageResponse
)
from urban_transit.routes.validation import validate_stops, validate_route_name, operates_at

def to_response(route: Route) -> RouteResponse:
    return RouteResponse.model_validate(route)

def to_summary(route: Route) -> RouteSummaryResponse:
    return RouteSummaryResponse.model_validate(route)

class RouteService:
    # ================================
    # Lookups
    # ================================
    @staticmethod
    def active_routes_query(db: Session):
        return db.query(Route).filter(Route.active.is_(True))
    
    @staticmethod
    def get_active_route(db: Session, route_id: Optional[int]) -> Optional[Route]:
        """Active route by id, None when missing or inactive"""
        if route_id is None:
            return None
        return RouteService.active_routes_query(db).filter(Route.id == route_id).first()
    
    @staticmethod
    def get_route(db: Session, route_id: int) -> Route:
        route = RouteService.get_active_route(db, route_id)
        if route is None:
            raise NotFound(f"Route {route_id} not found")
        return route
    
    @staticmethod
    def get_any_route(db: Session, route_id: int) -> Route:
        """Admin lookup that also returns inactive routes"""
        route = db.query(Route).filter(Route.id == route_id).first()
        if route is None:
            raise NotFound(f"Route {route_id} not found")
        return route
    
    @staticmethod
    def get_route_by_name(db: Session, route_name: str) -> Route:
        route = RouteService.active_routes_query(db).filter(
            func.lower(Route.route_name) == route_name.strip().lower()
        ).first()
        if route is None:
            raise NotFound(f"Route '{route_name}' not found")
        return route
    
    @staticmethod
    def list_active_routes(db: Session) -> List[Route]:
        return RouteService.active_routes_query(db).order_by(Route.route_name).all()
    
    @staticmethod
    def list_active_routes_paged(db: Session, page: int, size: int) -> PagedResponse:
        query = RouteService.active_routes_query(db).order_by(Route.route_name)
        return paginate(query, page, size, to_response)
    
    @staticmethod
    def search_routes(db: Session, term: str) -> List[Route]:
        """Match the term against route name or description"""
        pattern = f"%{term.strip().lower()}%"
        return RouteService.active_routes_query(db).filter(
            or_(func.lower(Route.route_name).like(pattern), func.lower(Route.description).like(pattern))
        ).order_by(Route.route_name).all()
    
    @staticmethod
    def advanced_search(
        db: Session,
        term: Optional[str],
        transport_type: Optional[TransportType],
        page: int,
        size: int
    ) -> PagedResponse:
        query = RouteService.active_routes_query(db)
        if term and term.strip():
            pattern = f"%{term.strip().lower()}%"
            query = query.filter(
                or_(func.lower(Route.route_name).like(pattern), func.lower(Route.description).like(pattern))
            )
        if transport_type is not None:
            query = query.filter(Route.transport_type == transport_type)
        return paginate(query.order_by(Route.route_name), page, size, to_response)
    
    @staticmethod
    def routes_by_transport_type(db: Session, transport_type: TransportType) -> List[Route]:
        return RouteService.active_routes_query(db).filter(
            Route.transport_type == transport_type
        ).order_by(Route.route_name).all()
    
    @staticmethod
    def routes_by_stop(db: Session, stop_name: str) -> List[Route]:
        return RouteService.active_routes_query(db).filter(
            Route.route_stops.any(func.lower(RouteStop.stop_name) == stop_name.strip().lower())
        ).order_by(Route.route_name).all()
    
    @staticmethod
    def routes_operating_at(db: Session, at: time) -> List[Route]:
        routes = RouteService.list_active_routes(db)
        return [r for r in routes if operates_at(r.operating_start_time, r.operating_end_time, at)]
    
    # ================================
    # Admin operations
    # ================================
    @staticmethod
    def _name_taken(db: Session, route_name: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Route).filter(func.lower(Route.route_name) == route_name.lower())
        if exclude_id is not None:
            query = query.filter(Route.id != exclude_id)
        return query.first() is not None
    
    @staticmethod
    def create_route(db: Session, request: RouteCreate) -> Route:
        route_name = validate_route_name(request.route_name)
        if RouteService._name_taken(db, route_name):
            raise Conflict(f"Route with name '{route_name}' already exists")
        
        route = Route(
            route_name=route_name,
            description=request.description,
            transport_type=request.transport_type,
            operating_start_time=request.operating_start_time,
            operating_end_time=request.operating_end_time,
            active=True
        )
        route.stops = validate_stops(request.stops)
        db.add(route)
        db.commit()
        db.refresh(route)
        logger.info("Route created: {} ({})", route.route_name, route.transport_type.value)
        return route
    
    @staticmethod
    def update_route(db: Session, route_id: int, request: RouteUpdate) -> Route:
        route = RouteService.get_any_route(db, route_id)
        update_data = request.dict(exclude_unset=True)
        
        if "route_name" in update_data:
            route_name = validate_route_name(update_data.pop("route_name"))
            if RouteService._name_taken(db, route_name, exclude_id=route.id):
                raise Conflict(f"Route with name '{route_name}' already exists")
            route.route_name = route_name
        
        if "stops" in update_data:
            route.stops = validate_stops(update_data.pop("stops"))
        
        for field, value in update_data.items():
            if field == "transport_type" and value is None:
                continue
            if field == "active" and value is None:
                continue
            setattr(route, field, value)
        
        db.commit()
        db.refresh(route)
        logger.info("Route updated: {}", route.route_name)
        return route
    
    @staticmethod
    def delete_route(db: Session, route_id: int) -> None:
        """Soft delete, the route stays referenced by past usage"""
        route = RouteService.get_any_route(db, route_id)
        route.active = False
        db.commit()
        logger.info("Route deactivated: {}", route.route_name)
    
    @staticmethod
    def set_route_status(db: Session, route_id: int, active: bool) -> Route:
        route = RouteService.get_any_route(db, route_id)
        route.active = active
        db.commit()
        db.refresh(route)
        logger.info("Route {} status set to {}", route.route_name, "active" if active else "inactive")
        return route
    
    @staticmethod
    def list_all_routes(db: Session, page: int, size: int) -> PagedResponse:
        query = db.query(Route).order_by(Route.route_name)
        return paginate(query, page, size, to_response)
    
    @staticmethod
    def count_by_transport_type(db: Session) -> dict:
        rows = RouteService.active_routes_query(db).with_entities(
            Route.transport_type, func.count(Route.id)
        ).group_by(Route.transport_type).all()
        counts = {t: 0 for t in TransportType}
        for transport_type, count in rows:
            counts[TransportType(transport_type)] = count
        return counts
    
    @staticmethod
    def routes_with_usage(db: Session):
        """(route, usage count) for every active route, busiest first"""
        usage_count = func.count(TicketUsage.id)
        return db.query(Route, usage_count).outerjoin(
            TicketUsage, TicketUsage.route_id == Route.id
        ).filter(Route.active.is_(True)).group_by(Route.id).order_by(
            usage_count.desc(), Route.route_name
        ).all()
    
    @staticmethod
    def popular_routes(db: Session, limit: int = 10) -> List[RouteUsageResponse]:
        rows = RouteService.routes_with_usage(db)[:limit]
        return [RouteUsageResponse(route=to_summary(r), usage_count=c) for r, c in rows]
    
    @staticmethod
    def underutilized_routes(db: Session, threshold: int = 10) -> List[RouteUsageResponse]:
        rows = [(r, c) for r, c in RouteService.routes_with_usage(db) if c < threshold]
        rows.sort(key=lambda row: (row[1], row[0].route_name))
        return [RouteUsageResponse(route=to_summary(r), usage_count=c) for r, c in rows]
