"""Level manifest export."""

from wattbeat.io.exporter import GeometryExporter

__all__ = ["GeometryExporter"]
