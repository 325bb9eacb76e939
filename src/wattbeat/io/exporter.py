"""
Level manifest serialization.

Exports generated geometry to JSON or NumPy archives so an out-of-process
renderer can draw the tunnel without re-running generation.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from wattbeat.core.geometry import LevelGeometry


@dataclass
class ManifestMetadata:
    """Metadata header for a level manifest."""

    content_hash: str
    difficulty: str
    n_columns: int
    height: float
    stats: dict[str, Any]
    version: str = "v1"
    schema_version: str = "1.0"


class GeometryExporter:
    """Exports LevelGeometry to manifest formats."""

    COLUMN_FIELDS = ("top_y", "bot_y", "orig_top_y", "orig_bot_y", "danger")

    def __init__(self, precision: int = 2):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
        """
        self.precision = precision

    def _round(self, value: float) -> float:
        return round(float(value), self.precision)

    def _round_array(self, values: np.ndarray) -> list[float]:
        return np.round(values.astype(np.float64), self.precision).tolist()

    def build_manifest(
        self,
        geometry: LevelGeometry,
        content_hash: str,
        version: str = "v1",
    ) -> dict[str, Any]:
        """
        Build the complete manifest dictionary.

        Args:
            geometry: Generated level.
            content_hash: Hash identifying the level's parameters.
            version: Algorithm version the level was built with.

        Returns:
            Manifest dictionary ready for serialization.
        """
        stats = {
            key: (value if isinstance(value, int) else self._round(value))
            for key, value in geometry.stats.to_dict().items()
        }
        metadata = ManifestMetadata(
            content_hash=content_hash,
            difficulty=geometry.difficulty.name.lower(),
            n_columns=geometry.n_columns,
            height=self._round(geometry.height),
            stats=stats,
            version=version,
        )

        return {
            "metadata": {
                "hash": metadata.content_hash,
                "difficulty": metadata.difficulty,
                "n_columns": metadata.n_columns,
                "height": metadata.height,
                "stats": metadata.stats,
                "version": metadata.version,
                "schema_version": metadata.schema_version,
            },
            "columns": {
                name: self._round_array(getattr(geometry, name))
                for name in self.COLUMN_FIELDS
            },
        }

    def export_json(
        self,
        geometry: LevelGeometry,
        content_hash: str,
        output_path: Union[str, Path],
        indent: int | None = None,
    ) -> Path:
        """Write the manifest as JSON and return the path."""
        manifest = self.build_manifest(geometry, content_hash)
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=indent)

        return output_path

    def export_numpy(
        self,
        geometry: LevelGeometry,
        content_hash: str,
        output_path: Union[str, Path],
    ) -> Path:
        """Write full-precision arrays as a compressed .npz archive."""
        output_path = Path(output_path)

        np.savez_compressed(
            output_path,
            top_y=geometry.top_y,
            bot_y=geometry.bot_y,
            orig_top_y=geometry.orig_top_y,
            orig_bot_y=geometry.orig_bot_y,
            danger=geometry.danger,
            height=geometry.height,
            difficulty=int(geometry.difficulty),
            content_hash=content_hash,
        )

        return output_path

    def to_dict(self, geometry: LevelGeometry, content_hash: str) -> dict[str, Any]:
        """Return the manifest as a dictionary (for in-memory use)."""
        return self.build_manifest(geometry, content_hash)
