"""
Layered Hillside Demo

This script demonstrates using STRATA to build a layered mesh whose top
surface follows a digital elevation model.

Usage:
    python layered_hillside.py

The script will:
1. Write a synthetic hillside DEM as a GeoTIFF
2. Generate a 2D quad surface mesh with gmsh
3. Extrude it into 8 layers of 5 m
4. Map the DEM onto the top layer
"""

import logging
from pathlib import Path

import numpy as np
import rasterio
from rasterio.transform import from_origin

from strata import MeshBuilder


OUTPUT_DIR = Path(__file__).parent


def write_hillside_dem(path: Path, width: int = 60, height: int = 40) -> None:
    """Write a smooth hill with a NoData corner to a GeoTIFF, 25 m cells."""
    x, y = np.meshgrid(np.arange(width), np.arange(height))
    z = 100.0 + 30.0 * np.exp(-((x - 30) ** 2 + (y - 20) ** 2) / 200.0)
    z[:3, :3] = -9999

    profile = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": 1,
        "dtype": "float32",
        "transform": from_origin(0.0, height * 25.0, 25.0, 25.0),
        "nodata": -9999,
    }
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(z.astype(np.float32), 1)


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    dem_path = OUTPUT_DIR / "hillside_dem.tif"
    write_hillside_dem(dem_path)

    # Domain slightly inside the raster extent (1500 m x 1000 m)
    polygon = [(10, 10), (1490, 10), (1490, 990), (10, 990)]

    mesh = (
        MeshBuilder(polygon)
        .set_horizontal_resolution(50)
        .use_quads()
        .set_layers(n_layers=8, thickness=5.0)
        .add_layer_raster(0, dem_path)
        .build(name="hillside")
    )

    coords = mesh.coords
    print(f"\nMesh generated successfully:")
    print(f"  Number of elements: {mesh.n_elements}")
    print(f"  Number of nodes: {mesh.n_nodes}")
    print(f"  X range: [{coords[:, 0].min():.0f}, {coords[:, 0].max():.0f}] m")
    print(f"  Y range: [{coords[:, 1].min():.0f}, {coords[:, 1].max():.0f}] m")
    print(f"  Z range: [{coords[:, 2].min():.1f}, {coords[:, 2].max():.1f}] m")

    return mesh


if __name__ == "__main__":
    main()
