"""Local smoke test: convert a markdown file and print the result as JSON.

Usage::

    mcp-pptmaker-try [path/to/deck.md]

Defaults to ``samples/example.md`` under the current directory. No MCP server
or download endpoint is started.
"""

import base64
import json
import sys
from pathlib import Path

from pptmaker.config import PPTX_MIME_TYPE, Settings
from pptmaker.errors import PptmakerError
from pptmaker.tools.marp_converter import OUTPUT_NAME, convert_markdown

DEFAULT_SAMPLE = Path("samples") / "example.md"


def build_payload(markdown: str, marp_bin: str | None = None) -> dict:
    with convert_markdown(markdown, marp_bin=marp_bin) as output_path:
        data = output_path.read_bytes()
    return {
        "filename": OUTPUT_NAME,
        "mimeType": PPTX_MIME_TYPE,
        "base64": base64.b64encode(data).decode("ascii"),
    }


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    sample_path = Path(args[0]) if args else DEFAULT_SAMPLE

    try:
        settings = Settings.from_env()
        markdown = sample_path.read_text(encoding="utf-8")
        payload = build_payload(markdown, marp_bin=settings.marp_bin)
    except (OSError, PptmakerError) as e:
        print(str(e), file=sys.stderr)
        return 1

    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
