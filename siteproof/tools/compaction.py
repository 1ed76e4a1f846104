"""check_compaction_compliance: field density against AS 3798."""
from __future__ import annotations

from typing import Any

from ..knowledge import standards as kb
from .base import ToolDefinition


def check_compaction_compliance(params: dict[str, Any]) -> dict[str, Any]:
    """
    Compare achieved density ratio to the required percentage of MDD.

    Pass/fail uses the unrounded ratio; achieved_percentage is reported to
    one decimal place. A deficit is only present on failure.
    """
    dry_density = float(params["dry_density"])
    max_dry_density = float(params["max_dry_density"])
    if max_dry_density <= 0:
        raise ValueError("max_dry_density must be greater than zero")

    supervision_level = str(params.get("supervision_level") or "level_1")
    if params.get("required_percentage") is not None:
        required = float(params["required_percentage"])
        # only the test method and frequency come from the level here
        known_level = supervision_level if supervision_level in kb.SUPERVISION_LEVELS else "level_1"
        requirements = kb.get_compaction_requirements(known_level)
    else:
        requirements = kb.get_compaction_requirements(supervision_level)
        required = kb.required_compaction_percentage(supervision_level)

    achieved = dry_density / max_dry_density * 100
    passes = achieved >= required

    result: dict[str, Any] = {
        "dry_density": dry_density,
        "max_dry_density": max_dry_density,
        "achieved_percentage": round(achieved, 1),
        "required_percentage": required,
        "supervision_level": supervision_level,
        "passes": passes,
        "status": "PASS" if passes else "FAIL",
        "standard_reference": "AS 3798",
        "test_method": requirements["test_method"],
        "test_frequency": requirements["test_frequency"],
    }

    if passes:
        result["recommendations"] = [
            "Compaction meets requirements - proceed to next layer",
            f"Continue testing at {requirements['test_frequency']}",
        ]
        return result

    deficit = round(required - achieved, 2)
    result["deficit"] = deficit
    recommendations = [
        f"Additional compaction required - {deficit:g}% below {required:g}% of MDD",
        "Apply additional roller passes and retest",
        "Check moisture content is within -2% to +2% of OMC",
    ]
    if deficit > 3:
        recommendations.append("Consider removing and replacing the layer if retest fails")
    material = params.get("material_type")
    if material == "clay":
        recommendations.append("Verify clay moisture conditioning before re-compaction")
    result["recommendations"] = recommendations
    return result


CHECK_COMPACTION_COMPLIANCE = ToolDefinition(
    name="check_compaction_compliance",
    description=(
        "Checks whether a field dry density meets the AS 3798 compaction requirement. "
        "Computes achieved percentage of Maximum Dry Density and compares it to the "
        "required percentage (from input or the supervision level)."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "dry_density": {
                "type": "number",
                "description": "Field dry density (kN/m³ or t/m³)",
            },
            "max_dry_density": {
                "type": "number",
                "description": "Maximum dry density from the laboratory test, same units",
            },
            "required_percentage": {
                "type": "number",
                "description": "Required percentage of MDD; defaults from supervision level",
            },
            "supervision_level": {
                "type": "string",
                "enum": list(kb.SUPERVISION_LEVELS),
                "description": "AS 3798 supervision level",
            },
            "material_type": {
                "type": "string",
                "enum": ["clay", "sand", "rock", "mixed"],
            },
        },
        "required": ["dry_density", "max_dry_density"],
    },
    handler=check_compaction_compliance,
)

TOOLS = [CHECK_COMPACTION_COMPLIANCE]
