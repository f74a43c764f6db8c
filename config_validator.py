"""Request validation for the explorer endpoints using Pydantic (v2)"""
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, Field, field_validator, model_validator
from shapely.errors import ShapelyError
from shapely.geometry import shape

from models import BoundaryType


def _parse_bbox(v: Union[str, List[float], tuple]) -> List[float]:
    if isinstance(v, str):
        parts = [p.strip() for p in v.split(',')]
    else:
        parts = list(v)
    if len(parts) != 4:
        raise ValueError('bbox must have four values: west,south,east,north')
    try:
        return [float(p) for p in parts]
    except (TypeError, ValueError):
        raise ValueError(f"bbox values must be numbers: {v}")


class BoundaryQuery(BaseModel):
    type: BoundaryType = 'state'
    bbox: List[float]
    zoom: float = Field(ge=0, le=24)
    clear_existing: bool = True

    @field_validator('bbox', mode='before')
    @classmethod
    def validate_bbox(cls, v):
        west, south, east, north = _parse_bbox(v)
        for lng in (west, east):
            if not -180 <= lng <= 180:
                raise ValueError(f"Longitude out of range: {lng}")
        for lat in (south, north):
            if not -90 <= lat <= 90:
                raise ValueError(f"Latitude out of range: {lat}")
        if south > north:
            raise ValueError('bbox south cannot be greater than north')
        # west > east is allowed: the viewport crosses the antimeridian
        return [west, south, east, north]


class BoundaryTypeChange(BoundaryQuery):
    boundary_type: BoundaryType

    @model_validator(mode='after')
    def _sync_type(self):
        self.type = self.boundary_type
        return self


class PointQuery(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius: Optional[float] = Field(None, gt=0)


class BoundaryClick(BaseModel):
    uuid: str = Field(min_length=1)
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class CensusQuery(BaseModel):
    type: BoundaryType
    uuid: str = Field(min_length=1)


class PolygonQuery(BaseModel):
    geometry: Dict[str, Any]

    @field_validator('geometry')
    @classmethod
    def validate_geometry(cls, v: Dict[str, Any]):
        if v.get('type') not in ('Polygon', 'MultiPolygon'):
            raise ValueError(f"Geometry must be a Polygon or MultiPolygon, got {v.get('type')}")
        try:
            geom = shape(v)
        except (ShapelyError, ValueError, TypeError, AttributeError, IndexError, KeyError) as e:
            raise ValueError(f"Malformed geometry: {e}")
        if geom.is_empty:
            raise ValueError('Geometry is empty')
        if not geom.is_valid:
            raise ValueError('Geometry is not a valid polygon (self-intersecting or unclosed)')
        return v


class DrawingModeChange(BaseModel):
    # Missing means toggle
    active: Optional[bool] = None
