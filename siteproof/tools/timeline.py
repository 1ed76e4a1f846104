"""predict_project_timeline: approval prediction plus critical path."""
from __future__ import annotations

from dataclasses import asdict
from typing import Any

from ..analysis.timeline import TimelineAnalyzer
from ..models import ProjectPhase
from .base import ToolDefinition


def predict_project_timeline(params: dict[str, Any]) -> dict[str, Any]:
    analyzer = TimelineAnalyzer()
    prediction = analyzer.predict_approval_timeline(
        str(params["council"]),
        "construction",
        str(params["project_complexity"]),
        {
            "heritage": params.get("has_heritage"),
            "environmental": params.get("has_environmental"),
            "traffic_impact": params.get("has_traffic_impact"),
            "public_objections": params.get("has_public_objections"),
            "height": params.get("building_height"),
        },
    )

    phases = [
        ProjectPhase.from_dict({"id": raw.get("name"), **raw})
        for raw in params.get("construction_phases") or []
    ]
    cpm = analyzer.critical_path(phases)

    return {
        "approval_timeline": {
            "predicted_days": prediction.predicted_days,
            "best_case": prediction.best_case,
            "worst_case": prediction.worst_case,
            "confidence": prediction.confidence,
            "factors": [asdict(factor) for factor in prediction.factors],
        },
        "construction_duration": cpm.project_duration,
        "total_project_duration": prediction.predicted_days + cpm.project_duration,
        "critical_path": cpm.critical_path,
        "phase_float": {phase_id: s.slack for phase_id, s in cpm.schedule.items()},
        "strategies": prediction.strategies,
    }


PREDICT_PROJECT_TIMELINE = ToolDefinition(
    name="predict_project_timeline",
    description=(
        "Predict project timeline including council approvals. Analyzes phases, "
        "dependencies, and approval requirements. Returns approval range, "
        "construction duration and the critical path."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "council": {"type": "string", "description": "Council name for approval timeline"},
            "project_complexity": {
                "type": "string",
                "enum": ["simple", "moderate", "complex"],
            },
            "has_heritage": {"type": "boolean", "description": "Heritage considerations required"},
            "has_environmental": {
                "type": "boolean",
                "description": "Environmental assessment required",
            },
            "has_traffic_impact": {
                "type": "boolean",
                "description": "Traffic impact assessment required",
            },
            "has_public_objections": {
                "type": "boolean",
                "description": "Public objections expected",
            },
            "building_height": {"type": "number", "description": "Building height in metres"},
            "construction_phases": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "duration_days": {"type": "number"},
                        "dependencies": {"type": "array", "items": {"type": "string"}},
                    },
                },
            },
        },
        "required": ["council", "project_complexity"],
    },
    handler=predict_project_timeline,
)

TOOLS = [PREDICT_PROJECT_TIMELINE]
