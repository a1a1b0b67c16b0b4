"""Debug output for runs started with debug=True."""

import json
import logging
from datetime import datetime
from typing import Any

logger = logging.getLogger("agentswarm")


def _to_jsonable(data: Any) -> Any:
    if hasattr(data, "to_dict"):
        return data.to_dict()
    if isinstance(data, (list, tuple)):
        return [_to_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {str(k): _to_jsonable(v) for k, v in data.items()}
    return data


def debug_print(debug: bool, message: str, data: Any = None) -> None:
    """
    Log a timestamped debug line, with data pretty-printed as JSON.

    With debug off the line still goes to the DEBUG level, so it can be
    switched on through logging configuration instead of per run.
    """
    level = logging.INFO if debug else logging.DEBUG
    if not logger.isEnabledFor(level):
        return
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    data_string = ""
    if data is not None:
        data_string = json.dumps(_to_jsonable(data), indent=2, default=str)
    logger.log(level, f"[{timestamp}] {message} {data_string}".rstrip())
