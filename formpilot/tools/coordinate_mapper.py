"""Maps raster-space boxes onto PDF page space."""
from typing import Optional, Tuple

from formpilot.errors import InvalidGeometry
from formpilot.models import BoundingBox


class CoordinateMapper:
    """
    Converts points from source-raster pixel space into target page space.

    Raster coordinates grow downward from the top-left corner, page
    coordinates grow upward from the bottom-left corner, so the vertical
    axis is inverted after scaling.
    """

    def map(
        self,
        box: BoundingBox,
        source_width: float,
        source_height: float,
        target_width: float,
        target_height: float
    ) -> Tuple[float, float]:
        """
        Map the origin of ``box`` into target space.

        Args:
            box: Box (or point) in source space, only ``x`` and ``y`` are used
            source_width: Declared width of the source raster
            source_height: Declared height of the source raster
            target_width: Width of the target page
            target_height: Height of the target page

        Returns:
            (x, y) in target page space

        Raises:
            InvalidGeometry: if a source dimension is zero or negative
        """
        if not source_width or not source_height or source_width <= 0 or source_height <= 0:
            raise InvalidGeometry(
                f"Source dimensions must be positive, got {source_width}x{source_height}"
            )

        scale_x = target_width / source_width
        scale_y = target_height / source_height

        return box.x * scale_x, target_height - box.y * scale_y

    def map_or_identity(
        self,
        box: BoundingBox,
        source_width: Optional[float],
        source_height: Optional[float],
        target_width: float,
        target_height: float
    ) -> Tuple[float, float]:
        """Map ``box``, using the target's own dimensions when the source size is unknown."""
        return self.map(
            box,
            source_width or target_width,
            source_height or target_height,
            target_width,
            target_height,
        )
