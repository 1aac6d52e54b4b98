"""
mcp-pptmaker MCP server
=======================

Expose Marp markdown to PowerPoint conversion as an MCP tool over stdio.

Tools exposed
-------------

1. generate_pptx(markdown: str)
   - Convert Marp markdown (front-matter may pick a theme) to a .pptx file and
     return a short-lived HTTP download link for it.

The download endpoint binds lazily on the first successful conversion. See
``pptmaker.config`` for the ``PPTMAKER_*`` environment variables.

Run with::

    mcp-pptmaker
    python -m pptmaker
"""

import logging
import sys
from typing import Annotated

import anyio
from mcp.server.fastmcp import FastMCP
from pydantic import Field

from pptmaker import __version__
from pptmaker.config import Settings
from pptmaker.errors import ConfigError
from pptmaker.tools.generate_pptx import GeneratePptxTool
from pptmaker.tools.publisher import Publisher

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-pptmaker"


def build_server(settings: Settings) -> tuple[FastMCP, Publisher]:
    """Create the FastMCP server and the publisher backing its tool."""
    publisher = Publisher(settings)
    tool = GeneratePptxTool(publisher, marp_bin=settings.marp_bin)

    mcp = FastMCP(
        name=SERVER_NAME,
        instructions=(
            "Converts Marp markdown into a PowerPoint deck and returns a temporary "
            f"download link valid for {settings.ttl_seconds:.0f} seconds."
        ),
    )

    @mcp.tool()
    async def generate_pptx(
        markdown: Annotated[
            str,
            Field(
                min_length=1,
                description="Marp Markdown content with optional front-matter controlling theme",
            ),
        ],
    ) -> str:
        """Generate a PowerPoint (.pptx) from Marp markdown and return a download link."""
        # Marp runs in a worker thread so the stdio loop keeps serving requests
        return await anyio.to_thread.run_sync(tool.invoke, markdown)

    return mcp, publisher


def configure_logging(level: str) -> None:
    # stdout carries the MCP stream; logs go to stderr
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        configure_logging("INFO")
        logger.error("Invalid configuration: %s", e)
        sys.exit(2)

    configure_logging(settings.log_level)
    mcp, publisher = build_server(settings)
    logger.info("%s %s running (stdio) - tool: generate_pptx", SERVER_NAME, __version__)
    try:
        mcp.run()  # stdio transport by default
    finally:
        publisher.close()


if __name__ == "__main__":
    main()
