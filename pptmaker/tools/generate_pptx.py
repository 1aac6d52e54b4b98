# PowerPoint generation tool
# Converts Marp markdown with the Marp CLI and returns a download link

import json
import logging

from mcp.server.fastmcp.exceptions import ToolError

from pptmaker.config import PPTX_MIME_TYPE
from pptmaker.errors import PptmakerError
from pptmaker.tools.marp_converter import OUTPUT_NAME, convert_markdown
from pptmaker.tools.publisher import PublishedArtifact, Publisher

logger = logging.getLogger(__name__)


def format_result(artifact: PublishedArtifact) -> str:
    """Human-readable message followed by a machine-readable JSON block."""
    payload = {
        "url": artifact.url,
        "expiresAt": artifact.expires_at.isoformat(),
        "filename": artifact.filename,
        "mimeType": artifact.content_type,
    }
    return (
        f"Presentation generated: [{artifact.filename}]({artifact.url})\n\n"
        f"- Download URL: {artifact.url}\n"
        f"- Expires at: {payload['expiresAt']}\n"
        f"- Filename: {artifact.filename}\n"
        f"- MIME type: {artifact.content_type}\n\n"
        f"```json\n{json.dumps(payload, indent=2)}\n```"
    )


class GeneratePptxTool:
    def __init__(self, publisher: Publisher, marp_bin: str | None = None) -> None:
        self.publisher = publisher
        self.marp_bin = marp_bin

    def invoke(self, markdown: str) -> str:
        """Run the conversion and publish the result.

        Raises:
            ToolError: empty input, conversion failure, or publishing failure;
                FastMCP turns it into an error result carrying the message
        """
        if not markdown or not markdown.strip():
            raise ToolError("markdown cannot be empty")

        try:
            with convert_markdown(markdown, marp_bin=self.marp_bin) as output_path:
                artifact = self.publisher.publish(output_path, OUTPUT_NAME, PPTX_MIME_TYPE)
        except PptmakerError as e:
            logger.warning("generate_pptx failed: %s", e)
            raise ToolError(str(e)) from e

        return format_result(artifact)
