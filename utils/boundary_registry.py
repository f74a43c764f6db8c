"""Deduplicating store for boundary features loaded across viewport fetches"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from shapely.errors import ShapelyError
from shapely.geometry import shape

from models import Feature
from utils.boundary_colors import colors_at

logger = logging.getLogger(__name__)


def label_point(geometry: Dict[str, Any]) -> Optional[tuple]:
    """(lat, lng) of a point guaranteed to lie inside the geometry, for labels."""
    try:
        point = shape(geometry).representative_point()
    except (ShapelyError, ValueError, TypeError, AttributeError, KeyError) as e:
        logger.debug(f"No label point for geometry: {e}")
        return None
    if point.is_empty:
        return None
    return (point.y, point.x)


class BoundaryRegistry:
    """Features keyed by uuid in insertion order.

    A feature keeps the color it was given when first seen, so panning
    back and forth never recolors anything. Colors cycle through the
    palette of the boundary type by registration order.
    """

    def __init__(self):
        self._features: Dict[str, Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, uuid: str) -> bool:
        return uuid in self._features

    def get(self, uuid: str) -> Optional[Dict[str, Any]]:
        return self._features.get(uuid)

    def features(self) -> List[Dict[str, Any]]:
        return list(self._features.values())

    def reset(self):
        self._features = {}

    def merge(self, features: Iterable[Feature], boundary_type: str) -> List[Dict[str, Any]]:
        """Register new features and return every input feature in its stored form."""
        processed = []
        for feature in features:
            uuid = feature.uuid
            existing = self._features.get(uuid)
            if existing is not None:
                processed.append(existing)
                continue

            color, hover_color = colors_at(boundary_type, len(self._features))
            properties = feature.properties.model_dump(exclude_none=True)
            properties.update({
                'boundaryType': boundary_type,
                'color': color,
                'hoverColor': hover_color,
            })
            point = label_point(feature.geometry)
            if point:
                properties['label_lat'], properties['label_lng'] = point

            stored = {
                'type': 'Feature',
                'geometry': feature.geometry,
                'properties': properties,
            }
            self._features[uuid] = stored
            processed.append(stored)
        return processed
