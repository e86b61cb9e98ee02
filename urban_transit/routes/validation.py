from typing import List, Optional
from datetime import time
from urban_transit.exceptions import InvalidRequest

MAX_STOP_NAME_LENGTH = 100

def validate_stops(stops: Optional[List[str]]) -> List[str]:
    """
    Check a route's stop list and return it trimmed.

    A route needs at least two stops, none of them blank or longer than
    MAX_STOP_NAME_LENGTH, and no stop may appear twice (compared without
    case and surrounding whitespace).
    """
    if not stops or len(stops) < 2:
        raise InvalidRequest("Route must have at least 2 stops")
    
    cleaned = []
    seen = set()
    for index, stop in enumerate(stops):
        name = (stop or "").strip()
        if not name:
            raise InvalidRequest(f"Stop {index + 1} must not be blank")
        if len(name) > MAX_STOP_NAME_LENGTH:
            raise InvalidRequest(f"Stop name '{name[:20]}...' exceeds {MAX_STOP_NAME_LENGTH} characters")
        key = name.lower()
        if key in seen:
            raise InvalidRequest(f"Duplicate stop '{name}' in route")
        seen.add(key)
        cleaned.append(name)
    return cleaned

def validate_route_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidRequest("Route name is required")
    if len(name) > 50:
        raise InvalidRequest("Route name must be at most 50 characters")
    return name

def operates_at(start: Optional[time], end: Optional[time], at: time) -> bool:
    """Routes without hours run all day; end before start wraps past midnight"""
    if start is None or end is None:
        return True
    if start <= end:
        return start <= at <= end
    return at >= start or at <= end
