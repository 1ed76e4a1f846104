"""get_council_approval_timeline: council statistics with a delay-risk tier."""
from __future__ import annotations

from datetime import date
from typing import Any

from ..knowledge.councils import calculate_delay_risk, get_council_data, risk_tier
from .base import ToolDefinition

UNKNOWN_AVERAGE_DAYS = 60
UNKNOWN_STATUTORY_TARGET = 40


def get_council_approval_timeline(params: dict[str, Any]) -> dict[str, Any]:
    name = str(params["council_name"])
    council = get_council_data(name)

    if council is None:
        average, target = UNKNOWN_AVERAGE_DAYS, UNKNOWN_STATUTORY_TARGET
        result: dict[str, Any] = {
            "council": name,
            "data_available": False,
            "average_days": average,
            "statutory_target": target,
            "delay_ratio": round(average / target, 3),
            "risk_level": "MEDIUM",
            "recommendation": "No historical data available - allow standard buffer",
        }
    else:
        ratio = council.delay_ratio
        risk_level, recommendation = risk_tier(ratio)
        result = {
            "council": council.name,
            "data_available": True,
            "state": council.state,
            "average_days": council.average_days,
            "statutory_target": council.statutory_target,
            "delay_ratio": round(ratio, 3),
            "risk_level": risk_level,
            "recommendation": recommendation,
            "performance_rating": council.performance_rating,
            "common_delays": list(council.common_delays),
            "peak_periods": list(council.peak_periods),
            "fast_track_available": council.fast_track_available,
            "notes": council.notes,
        }

    if params.get("project_type"):
        result["project_type"] = params["project_type"]

    lodgement = params.get("lodgement_date")
    required_by = params.get("required_approval_date")
    if lodgement and required_by:
        result["delay_risk"] = calculate_delay_risk(
            name,
            date.fromisoformat(str(lodgement)[:10]),
            date.fromisoformat(str(required_by)[:10]),
        )

    return result


GET_COUNCIL_APPROVAL_TIMELINE = ToolDefinition(
    name="get_council_approval_timeline",
    description=(
        "Gets historical approval timeframes for an Australian council or authority "
        "and rates the delay risk (LOW, MEDIUM, HIGH, EXTREME) from the ratio of "
        "average approval days to the statutory target."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "council_name": {
                "type": "string",
                "description": "Council name, e.g. Georges River or City of Sydney",
            },
            "project_type": {
                "type": "string",
                "description": "Development type (informational)",
            },
            "lodgement_date": {
                "type": "string",
                "description": "Planned lodgement date (ISO format)",
            },
            "required_approval_date": {
                "type": "string",
                "description": "Date approval is needed by (ISO format)",
            },
        },
        "required": ["council_name"],
    },
    handler=get_council_approval_timeline,
)

TOOLS = [GET_COUNCIL_APPROVAL_TIMELINE]
