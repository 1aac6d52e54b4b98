# Best-effort filesystem cleanup shared by the store and the converter

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def remove_tree_quietly(target: Path | str | None) -> None:
    """Delete a directory tree, logging (never raising) on failure."""
    if target is None:
        return
    try:
        shutil.rmtree(target)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug("Could not remove %s: %s", target, e)
