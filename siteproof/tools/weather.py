"""Weather tools: restriction checks, go/no-go decisions and concrete curing."""
from __future__ import annotations

from datetime import date
from typing import Any

from ..analysis.weather import WeatherAnalyzer
from ..knowledge.weather_rules import can_work_proceed, get_weather_restrictions
from ..models import InspectionData
from .base import ToolDefinition

DELAY_COST_IMPACT = {
    "daily_delay_cost": 5000,
    "crew_standby": 2500,
    "equipment_idle": 1500,
}


def _today() -> date:
    return date.today()


def check_weather_restrictions(params: dict[str, Any]) -> dict[str, Any]:
    work_type = str(params["work_type"])
    material = params.get("material")
    rule = get_weather_restrictions(work_type, material)

    if rule is None:
        return {
            "work_type": work_type,
            "can_proceed": True,
            "message": "No specific weather restrictions found",
            "recommendations": ["Monitor conditions", "Use standard safety procedures"],
        }

    assessment = can_work_proceed(
        work_type,
        temperature=params.get("temperature"),
        rainfall_24hr=params.get("rainfall_24hr"),
        rainfall_7day=params.get("rainfall_7day"),
        wind_speed=params.get("wind_speed"),
        humidity=params.get("humidity"),
        material=material,
    )

    drying_status = None
    last_rain = params.get("last_rain_date")
    if last_rain and rule.drying_days is not None:
        # rain dated in the future counts as falling today
        days_since = max(0, (_today() - date.fromisoformat(str(last_rain)[:10])).days)
        drying_status = {
            "days_since_rain": days_since,
            "required_drying_days": rule.drying_days,
            "is_dry_enough": days_since >= rule.drying_days,
            "days_remaining": max(0, rule.drying_days - days_since),
        }

    alerts = [f"❌ {warning}" for warning in assessment.warnings]
    if drying_status and not drying_status["is_dry_enough"]:
        alerts.append(
            f"❌ {drying_status['days_remaining']} more drying days needed since last rain"
        )

    if assessment.can_proceed:
        recommendations = [
            "Work can proceed with standard precautions",
            "Monitor conditions throughout the day",
        ]
    else:
        recommendations = ["Postpone work until conditions improve", *assessment.warnings]

    return {
        "work_type": work_type,
        "material": material,
        "can_proceed": assessment.can_proceed,
        "risk_level": "LOW" if assessment.can_proceed else "HIGH",
        "warnings": assessment.warnings,
        "restrictions": assessment.restrictions,
        "alerts": alerts,
        "drying_status": drying_status,
        "recommendations": recommendations,
        "cost_impact": None if assessment.can_proceed else dict(DELAY_COST_IMPACT),
    }


def make_weather_decision(params: dict[str, Any]) -> dict[str, Any]:
    inspection = InspectionData.from_dict(
        {
            "type": params["work_type"],
            "location": "Weather Check Location",
            "material": params.get("material"),
            "weather": {
                "conditions": params["current_conditions"],
                "temperature": params["temperature"],
                "recent_rainfall": params.get("recent_rainfall"),
            },
        }
    )
    analysis = WeatherAnalyzer().analyze_weather_impact(inspection)
    return {
        "decision": "proceed" if analysis.can_proceed else "postpone",
        "restrictions": analysis.restrictions,
        "warnings": analysis.warnings,
        "recommendations": analysis.recommendations,
        "drying_time_required": analysis.drying_time_required,
        "drying_status": analysis.drying_status,
    }


def get_curing_requirements(params: dict[str, Any]) -> dict[str, Any]:
    temperature = float(params["temperature"])
    concrete_type = str(params["concrete_type"])
    exposure = str(params.get("exposure_condition") or "protected")

    curing_days = 7
    method = "wet curing or curing compound"
    special: list[str] = []

    if temperature < 10:
        curing_days = 14
        method = "insulated curing, maintain minimum 10°C"
        special.extend(["Use accelerators in mix", "Provide heating if below 5°C"])
    elif temperature > 30:
        curing_days = 14
        method = "continuous wet curing"
        special.extend(
            ["Wet cure every 3 hours", "Use retarders in mix", "Shade concrete from direct sun"]
        )

    if concrete_type == "high_strength":
        curing_days = max(curing_days, 14)
        special.append("Maintain moisture for full curing period")
    elif concrete_type == "mass_pour":
        special.extend(
            ["Monitor temperature differential < 20°C", "Consider cooling pipes if needed"]
        )

    if exposure in ("marine", "aggressive"):
        curing_days = max(curing_days, 14)
        special.append("Extended curing for durability")

    return {
        "temperature": temperature,
        "concrete_type": concrete_type,
        "exposure_condition": exposure,
        "minimum_curing_days": curing_days,
        "curing_method": method,
        "special_requirements": special,
        "critical_period": "First 72 hours",
        "strength_development": {"3_days": "40%", "7_days": "70%", "28_days": "100%"},
    }


CHECK_WEATHER_RESTRICTIONS = ToolDefinition(
    name="check_weather_restrictions",
    description=(
        "Checks weather restrictions and determines if construction work can proceed "
        "safely. Compares temperature, rainfall, wind and humidity to the limits for "
        "the work type and material, and reports drying time since last rain."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "work_type": {
                "type": "string",
                "enum": ["earthworks", "concrete", "asphalt", "spray_seal", "steel_fixing", "drainage"],
                "description": "Type of construction work",
            },
            "material": {
                "type": "string",
                "description": "Material type (e.g., clay, sand, standard, high_strength)",
            },
            "temperature": {"type": "number", "description": "Current temperature in Celsius"},
            "rainfall_24hr": {"type": "number", "description": "Rainfall in last 24 hours (mm)"},
            "rainfall_7day": {"type": "number", "description": "Rainfall in last 7 days (mm)"},
            "wind_speed": {"type": "number", "description": "Wind speed in km/h"},
            "humidity": {"type": "number", "description": "Relative humidity percentage"},
            "last_rain_date": {
                "type": "string",
                "description": "Date of last significant rainfall (ISO format)",
            },
        },
        "required": ["work_type"],
    },
    handler=check_weather_restrictions,
)

MAKE_WEATHER_DECISION = ToolDefinition(
    name="make_weather_decision",
    description=(
        "Make a go/no-go decision based on weather conditions. Analyzes current "
        "conditions and recent rainfall against work requirements. Returns decision, "
        "restrictions and mitigation measures."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "work_type": {
                "type": "string",
                "enum": ["earthworks", "concrete", "drainage", "asphalt"],
            },
            "current_conditions": {
                "type": "string",
                "enum": ["sunny", "cloudy", "rainy", "wet", "stormy"],
            },
            "temperature": {"type": "number", "description": "Temperature in Celsius"},
            "material": {"type": "string", "description": "Material being used"},
            "recent_rainfall": {
                "type": "object",
                "properties": {
                    "amount": {"type": "number", "description": "mm of rain"},
                    "days_ago": {"type": "number", "description": "Days since rainfall"},
                },
            },
        },
        "required": ["work_type", "current_conditions", "temperature"],
    },
    handler=make_weather_decision,
)

GET_CURING_REQUIREMENTS = ToolDefinition(
    name="get_curing_requirements",
    description=(
        "Get concrete curing requirements based on temperature. Returns curing time, "
        "methods, and special considerations. Use for planning concrete placement "
        "and protection."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "temperature": {"type": "number", "description": "Ambient temperature in Celsius"},
            "concrete_type": {
                "type": "string",
                "enum": ["standard", "high_strength", "mass_pour"],
            },
            "exposure_condition": {
                "type": "string",
                "enum": ["protected", "exposed", "marine", "aggressive"],
            },
        },
        "required": ["temperature", "concrete_type"],
    },
    handler=get_curing_requirements,
)

TOOLS = [CHECK_WEATHER_RESTRICTIONS, MAKE_WEATHER_DECISION, GET_CURING_REQUIREMENTS]
