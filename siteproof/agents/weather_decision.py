"""
Weather decision engine: go/no-go calls for weather-sensitive work.

The rule-based analysis always runs first. The model refines it in one
call without tools; if its answer cannot be parsed the rule-based
decision is returned instead.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from ..analysis.weather import WeatherAnalysis, WeatherAnalyzer
from ..conversation import ConversationDriver
from ..knowledge.weather_rules import get_weather_restrictions
from ..models import InspectionData, WeatherForecastDay
from ..personas import WEATHER_ASSESSOR_PROMPT, weather_decision_message
from ..shaping import WEATHER_DECISION_DEFAULTS, WeatherDecision, parse_or_default

LOGGER = logging.getLogger(__name__)

DECISIONS = ("proceed", "proceed_with_caution", "postpone", "cancel")

# Lower bound of each overall risk level, highest first
RISK_LEVELS = ((70, "critical"), (50, "high"), (30, "medium"))

COMMON_TRIGGERS = [
    {"condition": "Rain starts during work", "action": "Cover work area, secure materials"},
    {"condition": "Temperature exceeds 35°C", "action": "Implement heat stress protocols"},
    {"condition": "Wind speed >40km/h", "action": "Secure loose materials, suspend crane ops"},
]

# work type -> (preparations, equipment)
CONTINGENCY_BY_WORK_TYPE = {
    "concrete": (
        [
            "Check curing compound availability",
            "Prepare plastic sheeting for rain protection",
            "Verify backup pour schedule",
        ],
        ["Plastic sheeting (200m²)", "Curing compound sprayer", "Temperature monitoring equipment"],
    ),
    "earthworks": (
        [
            "Identify material stockpile coverage",
            "Check erosion control measures",
            "Plan truck routes for wet conditions",
        ],
        ["Tarps for stockpiles", "Silt fences", "Dewatering pumps"],
    ),
    "drainage": (
        [
            "Review trench shoring requirements",
            "Check dewatering capacity",
            "Identify safe egress points",
        ],
        ["Trench boxes", "Submersible pumps", "Safety barriers"],
    ),
}

COMMUNICATION_PLAN = [
    "Notify site supervisor of weather changes",
    "Update subcontractors 24hrs before weather events",
    "Document decisions in daily diary",
    "Photo record of protection measures",
]


@dataclass
class RiskFactor:
    factor: str
    severity: str  # medium | high
    impact: str
    likelihood: int  # %


@dataclass
class WeatherRiskAssessment:
    overall_risk: str  # low | medium | high | critical
    risk_factors: list[RiskFactor]
    total_risk_score: int


@dataclass
class ContingencyPlan:
    triggers: list[dict[str, str]]
    preparations: list[str] = field(default_factory=list)
    equipment: list[str] = field(default_factory=list)
    communication: list[str] = field(default_factory=list)


class WeatherDecisionEngine:
    def __init__(self, driver: ConversationDriver, analyzer: WeatherAnalyzer | None = None):
        self.driver = driver
        self.analyzer = analyzer or WeatherAnalyzer()

    def make_weather_decision(
        self,
        inspection: InspectionData,
        forecast: list[WeatherForecastDay] | None = None,
    ) -> WeatherDecision:
        """
        Decide whether the inspected work can go ahead.

        Args:
            inspection: Work type, material and current conditions
            forecast: Optional daily forecast, soonest first

        Returns:
            WeatherDecision with source "ai", or source "rules" when the
            model's answer held no usable JSON

        Raises:
            UpstreamError: If the API call fails
        """
        analysis = self.analyzer.analyze_weather_impact(inspection, forecast)
        message = weather_decision_message(
            self._inspection_summary(inspection),
            asdict(analysis),
            self._forecast_summary(forecast),
        )
        result = self.driver.run(
            message,
            system_prompt=WEATHER_ASSESSOR_PROMPT,
            temperature=self.driver.config.weather_temperature,
            use_tools=False,
        )

        shaped, parsed = parse_or_default(result.answer, WEATHER_DECISION_DEFAULTS)
        if not parsed:
            LOGGER.warning("Weather decision answer was not JSON; using rule-based decision")
            return self.make_rule_based_decision(analysis)

        if shaped["decision"] not in DECISIONS:
            LOGGER.warning("Unknown decision %r; using default", shaped["decision"])
            shaped["decision"] = WEATHER_DECISION_DEFAULTS["decision"]
        shaped["confidence"] = max(0, min(100, shaped["confidence"]))
        if not isinstance(shaped["optimal_window"], dict):
            shaped["optimal_window"] = None
        return WeatherDecision(**shaped, source="ai")

    @staticmethod
    def make_rule_based_decision(analysis: WeatherAnalysis) -> WeatherDecision:
        if not analysis.can_proceed:
            factors = list(analysis.restrictions)
            if analysis.drying_status:
                factors.append(analysis.drying_status)
            return WeatherDecision(
                decision="postpone",
                confidence=90,
                reasoning="Weather conditions do not meet minimum requirements",
                critical_factors=factors,
                mitigation_measures=list(analysis.recommendations),
                alternative_plans=[
                    "Wait for better conditions",
                    "Consider alternative materials",
                    "Reschedule work",
                ],
                source="rules",
            )

        if len(analysis.warnings) > 2 or analysis.drying_time_required:
            return WeatherDecision(
                decision="proceed_with_caution",
                confidence=60,
                reasoning="Proceed with additional precautions",
                critical_factors=list(analysis.warnings),
                mitigation_measures=list(analysis.recommendations),
                source="rules",
            )

        return WeatherDecision(
            decision="proceed",
            confidence=75,
            reasoning="Based on standard weather rules",
            source="rules",
        )

    @staticmethod
    def assess_weather_risks(
        inspection: InspectionData,
        forecast: list[WeatherForecastDay] | None = None,
    ) -> WeatherRiskAssessment:
        """Score current conditions, recent rain and the next 48 hours."""
        factors: list[RiskFactor] = []
        score = 0
        weather = inspection.weather

        if weather.conditions in ("rainy", "wet"):
            factors.append(
                RiskFactor(
                    "Active precipitation", "high",
                    "Work quality compromise, safety hazards", 100,
                )
            )
            score += 30

        rain = weather.recent_rainfall
        if rain and inspection.material == "clay" and rain.amount > 40 and rain.days_ago < 21:
            factors.append(
                RiskFactor(
                    "Insufficient drying time", "high",
                    "Compaction failure, settlement issues", 90,
                )
            )
            score += 35

        temperature = weather.temperature
        if temperature > 35 or temperature < 5:
            severe = temperature > 40 or temperature < 0
            factors.append(
                RiskFactor(
                    "Extreme temperature", "high" if severe else "medium",
                    "Material performance issues, worker safety", 100,
                )
            )
            score += 25 if severe else 15

        if forecast and any(day.rainfall > 25 for day in forecast[:2]):
            factors.append(
                RiskFactor(
                    "Incoming severe weather", "high",
                    "Work interruption, damage to incomplete work", 80,
                )
            )
            score += 20

        overall = next((level for bound, level in RISK_LEVELS if score >= bound), "low")
        return WeatherRiskAssessment(
            overall_risk=overall, risk_factors=factors, total_risk_score=min(100, score)
        )

    @staticmethod
    def generate_contingency_plan(work_type: str) -> ContingencyPlan:
        preparations, equipment = CONTINGENCY_BY_WORK_TYPE.get(work_type, ([], []))
        return ContingencyPlan(
            triggers=[dict(trigger) for trigger in COMMON_TRIGGERS],
            preparations=list(preparations),
            equipment=list(equipment),
            communication=list(COMMUNICATION_PLAN),
        )

    @staticmethod
    def _inspection_summary(inspection: InspectionData) -> dict[str, Any]:
        rain = inspection.weather.recent_rainfall
        rule = get_weather_restrictions(inspection.type, inspection.material)
        return {
            "type": inspection.type,
            "location": inspection.location,
            "material": inspection.material or "not specified",
            "date": inspection.date.isoformat(),
            "conditions": inspection.weather.conditions,
            "temperature": inspection.weather.temperature,
            "recent_rainfall": f"{rain.amount:g}mm {rain.days_ago} days ago" if rain else "None",
            "weather_restrictions": asdict(rule) if rule else {},
        }

    @staticmethod
    def _forecast_summary(
        forecast: list[WeatherForecastDay] | None,
    ) -> list[dict[str, Any]] | None:
        if not forecast:
            return None
        return [
            {
                "day": index + 1,
                "date": day.date.isoformat(),
                "conditions": day.conditions,
                "temperature": f"{day.temperature_min:g}-{day.temperature_max:g}°C",
                "rainfall_mm": day.rainfall,
            }
            for index, day in enumerate(forecast[:7])
        ]
