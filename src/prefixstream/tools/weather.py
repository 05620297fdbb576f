"""Demo weather function the stream can ask the client to run."""

from __future__ import annotations

import logging
from typing import Any, Dict

from prefixstream.log_utils import log_event

logger = logging.getLogger(__name__)


async def get_current_weather(latitude: float, longitude: float) -> Dict[str, Any]:
    """Return canned weather for a coordinate pair."""

    log_event(logger, "tool.weather.called", latitude=latitude, longitude=longitude)
    return {
        "content": {
            "temperature": 72,
            "conditions": "Sunny",
            "location": f"{latitude}, {longitude}",
        },
        "error": None,
    }
