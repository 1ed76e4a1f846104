"""Field inspection tools: risk matrix, test validation, defects, materials and checklists."""
from __future__ import annotations

from typing import Any

from .base import ToolDefinition

# (lowest score, level), highest first; anything lower is negligible
RISK_LEVELS = ((20, "extreme"), (15, "high"), (10, "medium"), (5, "low"))

DEFECT_SEVERITIES = ("critical", "major", "moderate", "minor")

DEFAULT_WASTAGE_PERCENTAGE = 10.0

BASE_CHECKLISTS = {
    "pre-pour": [
        "Formwork secure and aligned",
        "Reinforcement in place and tied",
        "Cover to reinforcement correct",
        "Concrete ordered and confirmed",
        "Weather conditions suitable",
    ],
    "pre-slab": [
        "Compaction tested and approved",
        "Levels checked and correct",
        "Moisture barrier installed",
        "Mesh in place with correct overlap",
        "Edge forms secure",
    ],
    "safety": [
        "PPE available and worn",
        "Barriers and signage in place",
        "Emergency procedures understood",
        "Equipment inspected",
        "Hazards identified and controlled",
    ],
}
GENERAL_CHECKLIST = ["General inspection required"]


def risk_level(score: float) -> str:
    for lowest, level in RISK_LEVELS:
        if score >= lowest:
            return level
    return "negligible"


def _rating(hazard: dict[str, Any], key: str) -> int:
    value = int(hazard.get(key, 1))
    if not 1 <= value <= 5:
        raise ValueError(f"Hazard {key} must be between 1 and 5, got {value}")
    return value


def assess_risk(params: dict[str, Any]) -> dict[str, Any]:
    """
    Score each hazard on a 5x5 severity x likelihood matrix.

    The overall risk is the level of the highest-scoring hazard; with no
    hazards it is negligible.
    """
    hazards = []
    for hazard in params["hazards"]:
        severity = _rating(hazard, "severity")
        likelihood = _rating(hazard, "likelihood")
        score = severity * likelihood
        hazards.append(
            {**hazard, "severity": severity, "likelihood": likelihood,
             "risk_score": score, "risk_level": risk_level(score)}
        )

    max_score = max((hazard["risk_score"] for hazard in hazards), default=0)
    return {
        "activity_type": params["activity_type"],
        "overall_risk": risk_level(max_score),
        "max_risk_score": max_score,
        "hazards": hazards,
        "recommended_controls": list(params.get("control_measures") or []),
        "workers_on_site": params.get("workers_on_site"),
    }


def validate_test_results(params: dict[str, Any]) -> dict[str, Any]:
    specifications = params["specifications"]
    minimum = specifications.get("minimum")
    maximum = specifications.get("maximum")
    target = specifications.get("target")

    validated = []
    for result in params["results"]:
        value = float(result["value"])
        passes = (minimum is None or value >= minimum) and (maximum is None or value <= maximum)
        validated.append(
            {
                **result,
                "passes": passes,
                "deviation": round(value - target, 2) if target is not None else None,
            }
        )

    passed = sum(1 for result in validated if result["passes"])
    return {
        "test_type": params["test_type"],
        "standard": params.get("standard"),
        "all_pass": passed == len(validated),
        "results": validated,
        "summary": f"{passed}/{len(validated)} tests passed",
    }


def identify_defects(params: dict[str, Any]) -> dict[str, Any]:
    """Group observations by severity; any critical defect needs immediate action."""
    by_priority: dict[str, list[dict[str, Any]]] = {severity: [] for severity in DEFECT_SEVERITIES}
    defects = []
    for observation in params["observations"]:
        severity = str(observation.get("severity", "")).lower()
        if severity not in by_priority:
            severity = "moderate"
        defect = {
            **observation,
            "location": observation.get("location") or params["inspection_area"],
            "severity": severity,
        }
        by_priority[severity].append(defect)
        defects.append(defect)

    return {
        "inspection_area": params["inspection_area"],
        "total_defects": len(defects),
        "defects": defects,
        "defects_by_priority": by_priority,
        "requires_immediate_action": bool(by_priority["critical"]),
        "expected_standard": params.get("expected_standard"),
    }


def calculate_material_requirements(params: dict[str, Any]) -> dict[str, Any]:
    dimensions = params["dimensions"]
    wastage_percentage = float(params.get("wastage_percentage", DEFAULT_WASTAGE_PERCENTAGE))
    if wastage_percentage < 0:
        raise ValueError("wastage_percentage cannot be negative")

    if dimensions.get("volume"):
        volume = float(dimensions["volume"])
    elif dimensions.get("length") and dimensions.get("width") and dimensions.get("depth"):
        volume = float(dimensions["length"]) * float(dimensions["width"]) * float(dimensions["depth"])
    elif dimensions.get("area") and dimensions.get("depth"):
        volume = float(dimensions["area"]) * float(dimensions["depth"])
    else:
        volume = 0.0

    wastage = volume * wastage_percentage / 100
    return {
        "work_type": params["work_type"],
        "material_type": params["material_type"],
        "base_volume": round(volume, 3),
        "wastage_percentage": wastage_percentage,
        "wastage": round(wastage, 3),
        "total_required": round(volume + wastage, 3),
        "unit": "m³",
    }


def generate_checklist(params: dict[str, Any]) -> dict[str, Any]:
    checklist_type = str(params["checklist_type"])
    items = [*BASE_CHECKLISTS.get(checklist_type, GENERAL_CHECKLIST), *(params.get("custom_items") or [])]
    return {
        "checklist_type": checklist_type,
        "work_type": params["work_type"],
        "standards": list(params.get("standards") or []),
        "items": [
            {"id": f"check-{index}", "description": item, "checked": False, "notes": ""}
            for index, item in enumerate(items)
        ],
    }


ASSESS_RISK = ToolDefinition(
    name="assess_risk",
    description=(
        "Assess construction risks with a 5x5 severity x likelihood matrix. "
        "Scores each hazard (20+ extreme, 15+ high, 10+ medium, 5+ low) and "
        "returns the overall risk from the highest score."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "activity_type": {"type": "string", "description": "Type of construction activity"},
            "hazards": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "type": {"type": "string"},
                        "severity": {"type": "number", "minimum": 1, "maximum": 5},
                        "likelihood": {"type": "number", "minimum": 1, "maximum": 5},
                    },
                },
            },
            "control_measures": {"type": "array", "items": {"type": "string"}},
            "weather_conditions": {"type": "object"},
            "workers_on_site": {"type": "number"},
        },
        "required": ["activity_type", "hazards"],
    },
    handler=assess_risk,
)

VALIDATE_TEST_RESULTS = ToolDefinition(
    name="validate_test_results",
    description=(
        "Validate construction test results against specification limits. "
        "Checks each result against the minimum and maximum, reports deviation "
        "from the target and summarises how many tests passed."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "test_type": {
                "type": "string",
                "enum": ["compaction", "slump", "concrete_strength", "soil_bearing", "moisture_content"],
            },
            "results": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "location": {"type": "string"},
                        "value": {"type": "number"},
                        "unit": {"type": "string"},
                        "date": {"type": "string"},
                    },
                },
            },
            "specifications": {
                "type": "object",
                "properties": {
                    "minimum": {"type": "number"},
                    "maximum": {"type": "number"},
                    "target": {"type": "number"},
                },
            },
            "standard": {"type": "string"},
        },
        "required": ["test_type", "results", "specifications"],
    },
    handler=validate_test_results,
)

IDENTIFY_DEFECTS = ToolDefinition(
    name="identify_defects",
    description=(
        "Identify and classify construction defects by severity. Groups "
        "observations into critical, major, moderate and minor and flags "
        "whether immediate action is required."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "inspection_area": {"type": "string", "description": "Area being inspected"},
            "observations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "description": {"type": "string"},
                        "location": {"type": "string"},
                        "severity": {"type": "string", "enum": list(DEFECT_SEVERITIES)},
                    },
                },
            },
            "expected_standard": {"type": "string", "description": "Expected quality standard"},
        },
        "required": ["inspection_area", "observations"],
    },
    handler=identify_defects,
)

CALCULATE_MATERIAL_REQUIREMENTS = ToolDefinition(
    name="calculate_material_requirements",
    description=(
        "Calculate material volume for construction work from a volume, "
        "length x width x depth, or area x depth, plus a wastage allowance "
        "(default 10%)."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "work_type": {"type": "string", "description": "Type of construction work"},
            "dimensions": {
                "type": "object",
                "properties": {
                    "length": {"type": "number", "description": "m"},
                    "width": {"type": "number", "description": "m"},
                    "depth": {"type": "number", "description": "m"},
                    "area": {"type": "number", "description": "m²"},
                    "volume": {"type": "number", "description": "m³"},
                },
            },
            "material_type": {"type": "string", "description": "Type of material"},
            "wastage_percentage": {"type": "number", "description": "Expected wastage percentage"},
        },
        "required": ["work_type", "dimensions", "material_type"],
    },
    handler=calculate_material_requirements,
)

GENERATE_CHECKLIST = ToolDefinition(
    name="generate_checklist",
    description=(
        "Generate an inspection or quality checklist (pre-pour, pre-slab, "
        "safety and others) with any custom items appended."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "checklist_type": {
                "type": "string",
                "enum": ["pre-pour", "pre-slab", "final_inspection", "safety", "quality"],
            },
            "work_type": {"type": "string", "description": "Type of work being checked"},
            "standards": {"type": "array", "items": {"type": "string"}},
            "custom_items": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["checklist_type", "work_type"],
    },
    handler=generate_checklist,
)

TOOLS = [
    ASSESS_RISK,
    VALIDATE_TEST_RESULTS,
    IDENTIFY_DEFECTS,
    CALCULATE_MATERIAL_REQUIREMENTS,
    GENERATE_CHECKLIST,
]
