"""Image to colored point cloud conversion with PLY export."""
from pixelcloud.model.color import ColorMode, RGB
from pixelcloud.model.io import export_ply, parse_ply, save_ply
from pixelcloud.model.point_cloud import Point, PointCloud
from pixelcloud.model.raster import Raster
from pixelcloud.model.sampling import ConfigurationError, SamplingConfig, sample

__all__ = [
    "ColorMode",
    "ConfigurationError",
    "Point",
    "PointCloud",
    "RGB",
    "Raster",
    "SamplingConfig",
    "export_ply",
    "parse_ply",
    "sample",
    "save_ply",
]
