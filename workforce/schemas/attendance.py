"""
Attendance and geofence schemas. Datetimes are serialized in the configured local zone.
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from workforce.utils.datetime_utils import iso_local


class CoordinateRequest(BaseModel):
    """Schema for check-in / check-out request"""
    latitude: float = Field(..., ge=-90, le=90, description="GPS latitude")
    longitude: float = Field(..., ge=-180, le=180, description="GPS longitude")


class GeofenceOut(BaseModel):
    status: str
    zone_id: Optional[int] = None
    zone_name: Optional[str] = None
    distance_meters: Optional[float] = None


class DurationOut(BaseModel):
    minutes: int
    hours: float


class AttendanceOut(BaseModel):
    id: int
    user_id: int
    work_date: date
    check_in_at: datetime
    check_in_lat: float
    check_in_lng: float
    check_in_status: str
    check_in_zone_id: Optional[int] = None
    check_in_distance_m: Optional[float] = None
    check_out_at: Optional[datetime] = None
    check_out_lat: Optional[float] = None
    check_out_lng: Optional[float] = None
    check_out_status: Optional[str] = None
    check_out_zone_id: Optional[int] = None
    check_out_distance_m: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("check_in_at", "check_out_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class CheckInResponse(BaseModel):
    message: str
    attendance: AttendanceOut
    geofence: GeofenceOut


class CheckOutResponse(BaseModel):
    message: str
    attendance: AttendanceOut
    geofence: GeofenceOut
    duration: DurationOut


class AttendanceStats(BaseModel):
    total_days: int
    complete_days: int
    inside_checkins: int
    outside_checkins: int


class AttendanceStatusResponse(BaseModel):
    today: Optional[AttendanceOut] = None
    stats: AttendanceStats


class AttendanceHistoryResponse(BaseModel):
    records: List[AttendanceOut]
    days: int


class GeofenceZoneCreate(BaseModel):
    name: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_meters: float = Field(..., gt=0)
    branch_id: Optional[int] = None
    description: Optional[str] = None


class GeofenceZoneUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius_meters: Optional[float] = Field(None, gt=0)
    branch_id: Optional[int] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class GeofenceZoneOut(BaseModel):
    id: int
    company_id: Optional[int] = None
    branch_id: Optional[int] = None
    name: str
    latitude: float
    longitude: float
    radius_meters: float
    description: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
