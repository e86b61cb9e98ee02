from pydantic import BaseModel, Field
from typing import List, Optional, Dict
from datetime import datetime, time
from urban_transit.enums import TransportType

class RouteCreate(BaseModel):
    route_name: str = Field(..., max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    transport_type: TransportType
    stops: List[str]
    operating_start_time: Optional[time] = None
    operating_end_time: Optional[time] = None

class RouteUpdate(BaseModel):
    route_name: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    transport_type: Optional[TransportType] = None
    stops: Optional[List[str]] = None
    operating_start_time: Optional[time] = None
    operating_end_time: Optional[time] = None
    active: Optional[bool] = None

class RouteStatusUpdate(BaseModel):
    active: bool

class RouteResponse(BaseModel):
    id: int
    route_name: str
    description: Optional[str] = None
    transport_type: TransportType
    stops: List[str]
    stop_count: int
    operating_start_time: Optional[time] = None
    operating_end_time: Optional[time] = None
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class RouteSummaryResponse(BaseModel):
    id: int
    route_name: str
    transport_type: TransportType
    stop_count: int
    active: bool
    
    class Config:
        from_attributes = True

class RouteUsageResponse(BaseModel):
    route: RouteSummaryResponse
    usage_count: int

class TransportTypeCountResponse(BaseModel):
    counts: Dict[TransportType, int]
