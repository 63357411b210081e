#!/usr/bin/env python3
"""
QGIS Terrain MCP Server - exposes the QGIS processing service as MCP tools
"""

import json
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from .config import ConnectorConfig
from .connector import QgisConnector, create_connector

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ENV_LOG_FILE = "QGIS_MCP_LOG_FILE"

# Must run before FastMCP() below, which installs its own root handler otherwise.
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger("QgisTerrainMCPServer")


def configure_logging(log_file: str | None = None):
    """Also write logs to ``log_file`` when one is given."""
    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


@asynccontextmanager
async def server_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Create the connector on startup and close it on shutdown"""
    logger.info("QgisTerrainMCPServer starting up")
    connector = create_connector(ConnectorConfig.from_env())
    try:
        if await connector.health_check():
            logger.info(f"QGIS service at {connector.config.base_url} is healthy")
        else:
            logger.warning(f"QGIS service at {connector.config.base_url} is not responding")
            logger.warning("Tools will keep retrying once the service comes up")

        yield {"connector": connector}
    finally:
        logger.info("Closing QGIS connector on shutdown")
        await connector.aclose()
        logger.info("QgisTerrainMCPServer shut down")


mcp = FastMCP(
    "Qgis_terrain_mcp",
    instructions="Terrain analysis on a QGIS processing service through the Model Context Protocol",
    lifespan=server_lifespan,
)


def get_connector(ctx: Context) -> QgisConnector:
    """Return the connector created by the server lifespan."""
    return ctx.request_context.lifespan_context["connector"]


@mcp.tool()
async def health_check(ctx: Context) -> str:
    """Check whether the QGIS processing service is up"""
    healthy = await get_connector(ctx).health_check()
    return json.dumps({"healthy": healthy}, indent=2)


@mcp.tool()
async def list_algorithms(ctx: Context) -> str:
    """List the processing algorithms the QGIS service offers.

    Each entry has id, name, group, description and parameters.
    """
    algorithms = await get_connector(ctx).list_algorithms()
    return json.dumps(algorithms, indent=2)


@mcp.tool()
async def run_algorithm(ctx: Context, algorithm: str, parameters: dict | None = None) -> str:
    """Run any QGIS processing algorithm by identifier (e.g. "native:buffer")."""
    result = await get_connector(ctx).run_algorithm(algorithm, parameters or {})
    return json.dumps(result, indent=2)


@mcp.tool()
async def process(ctx: Context, algorithm: str, parameters: dict) -> str:
    """Call a terrain analysis endpoint of the service by name (e.g. "runoff_analysis").

    File paths in parameters must be absolute.
    """
    result = await get_connector(ctx).process(algorithm, parameters)
    return json.dumps(result, indent=2)


@mcp.tool()
async def slope_analysis(
    ctx: Context,
    dem_path: str,
    output_path: str,
    output_format: str | None = None,
    slope_units: str | None = None,
    class_ranges: list[float] | None = None,
    class_labels: list[str] | None = None,
    stormwater_suitability: bool | None = None,
) -> str:
    """Calculate slope from a DEM and classify it for stormwater management suitability."""
    params = {
        "dem_path": dem_path,
        "output_path": output_path,
        "output_format": output_format,
        "slope_units": slope_units,
        "class_ranges": class_ranges,
        "class_labels": class_labels,
        "stormwater_suitability": stormwater_suitability,
    }
    result = await get_connector(ctx).slope_analysis(params)
    return json.dumps(result, indent=2)


@mcp.tool()
async def flow_path_analysis(
    ctx: Context,
    dem_path: str,
    output_path: str,
    pour_points: list[list[float]],
    output_format: str | None = None,
) -> str:
    """Trace flow paths downhill from one or more [x, y] pour points."""
    params = {
        "dem_path": dem_path,
        "output_path": output_path,
        "pour_points": pour_points,
        "output_format": output_format,
    }
    result = await get_connector(ctx).flow_path_analysis(params)
    return json.dumps(result, indent=2)


@mcp.tool()
async def watershed_analysis(
    ctx: Context,
    dem_path: str,
    output_path: str,
    pour_points: list[list[float]],
    snap_distance: float | None = None,
    min_basin_size: float | None = None,
    output_format: str | None = None,
) -> str:
    """Delineate watersheds above [x, y] pour points on a DEM."""
    params = {
        "dem_path": dem_path,
        "output_path": output_path,
        "pour_points": pour_points,
        "snap_distance": snap_distance,
        "min_basin_size": min_basin_size,
        "output_format": output_format,
    }
    result = await get_connector(ctx).watershed_analysis(params)
    return json.dumps(result, indent=2)


@mcp.tool()
async def aspect_analysis(
    ctx: Context,
    dem_path: str,
    output_path: str,
    categories: int | None = None,
    include_flat: bool | None = None,
    category_labels: list[str] | None = None,
    output_format: str | None = None,
) -> str:
    """Calculate aspect (slope direction) from a DEM, binned into compass categories."""
    params = {
        "dem_path": dem_path,
        "output_path": output_path,
        "categories": categories,
        "include_flat": include_flat,
        "category_labels": category_labels,
        "output_format": output_format,
    }
    result = await get_connector(ctx).aspect_analysis(params)
    return json.dumps(result, indent=2)


@mcp.tool()
async def viewshed_analysis(
    ctx: Context,
    dem_path: str,
    output_path: str,
    observer_points: list[dict[str, Any]],
    radius: float | None = None,
    observer_height: float | None = None,
    output_format: str | None = None,
) -> str:
    """Compute the area visible from observer points ({x, y, height?}) on a DEM."""
    params = {
        "dem_path": dem_path,
        "output_path": output_path,
        "observer_points": observer_points,
        "radius": radius,
        "observer_height": observer_height,
        "output_format": output_format,
    }
    result = await get_connector(ctx).viewshed_analysis(params)
    return json.dumps(result, indent=2)


def main():
    """Run the MCP server"""
    configure_logging(os.environ.get(ENV_LOG_FILE))
    mcp.run()


if __name__ == "__main__":
    main()
