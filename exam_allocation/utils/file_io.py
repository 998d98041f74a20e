import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


def load_json_file(filepath: Union[str, Path], entity_name: str = "JSON file") -> Optional[Any]:
    """Loads a JSON file, logging and returning None when it is missing or malformed."""
    path = Path(filepath)
    if not path.exists():
        logger.error("Cannot load %s. File not found at: %s", entity_name, path)
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error("Failed to decode %s from %s: %s", entity_name, path, e)
        return None
