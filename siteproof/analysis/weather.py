"""
Weather impact analysis for construction activities.
Rule-based, no model calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ..knowledge.weather_rules import get_weather_restrictions, required_clay_drying_days
from ..models import InspectionData, WeatherConditions, WeatherForecastDay

WET_CONDITIONS = ("rainy", "wet")


@dataclass
class CriticalFactor:
    factor: str
    status: str  # pass | fail | warning
    detail: str


@dataclass
class WeatherAnalysis:
    can_proceed: bool = True
    restrictions: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    critical_factors: list[CriticalFactor] = field(default_factory=list)
    drying_time_required: int | None = None  # remaining days
    drying_status: str | None = None
    optimal_conditions: str | None = None


@dataclass
class WorkWindow:
    start: date
    end: date
    score: float


class WeatherAnalyzer:
    def analyze_weather_impact(
        self,
        inspection: InspectionData,
        forecast: list[WeatherForecastDay] | None = None,
    ) -> WeatherAnalysis:
        """
        Analyze current weather, recent rainfall and an optional forecast
        against the rules for the inspection's work type.

        Clay drying status is reported through drying_time_required and
        drying_status, not the restrictions list.
        """
        analysis = WeatherAnalysis()

        if get_weather_restrictions(inspection.type, inspection.material) is None:
            analysis.warnings.append("No specific weather restrictions found for this work type")
            return analysis

        if inspection.type == "earthworks":
            self._analyze_earthworks(inspection, analysis)
        elif inspection.type == "concrete":
            self._analyze_concrete(inspection, analysis)
        elif inspection.type == "drainage":
            self._analyze_drainage(inspection, analysis)

        if forecast:
            self._analyze_forecast(inspection, forecast, analysis)

        return analysis

    def _analyze_earthworks(self, inspection: InspectionData, analysis: WeatherAnalysis) -> None:
        material = inspection.material or "general"
        weather = inspection.weather

        if weather.conditions in WET_CONDITIONS:
            if material == "clay":
                analysis.can_proceed = False
                analysis.restrictions.append(
                    "Clay placement not permitted in rain or on saturated subgrade"
                )
                analysis.critical_factors.append(
                    CriticalFactor(
                        "Current Weather", "fail", "Rain/wet conditions prevent clay placement"
                    )
                )
            elif material == "sand":
                analysis.warnings.append("Sand placement may proceed with caution in light rain")
                analysis.critical_factors.append(
                    CriticalFactor(
                        "Current Weather", "warning", "Monitor moisture content during placement"
                    )
                )

        if weather.recent_rainfall and material == "clay":
            amount = weather.recent_rainfall.amount
            days_ago = weather.recent_rainfall.days_ago
            required_days = required_clay_drying_days(amount)

            if required_days > 0 and days_ago < required_days:
                remaining = required_days - days_ago
                analysis.can_proceed = False
                analysis.drying_time_required = remaining
                analysis.drying_status = (
                    f"Clay requires {remaining} more days of drying after {amount:g}mm rainfall"
                )
                analysis.critical_factors.append(
                    CriticalFactor(
                        "Drying Time", "fail", f"{days_ago}/{required_days} days completed"
                    )
                )
                analysis.recommendations.extend(
                    [
                        f"Wait {remaining} days or consider alternative materials",
                        "Perform moisture content testing before placement",
                    ]
                )

        if weather.temperature < -5 or weather.temperature > 40:
            analysis.warnings.append(
                f"Temperature {weather.temperature:g}°C outside optimal range (-5°C to 40°C)"
            )
            analysis.critical_factors.append(
                CriticalFactor(
                    "Temperature", "warning", f"{weather.temperature:g}°C may affect compaction"
                )
            )

    def _analyze_concrete(self, inspection: InspectionData, analysis: WeatherAnalysis) -> None:
        temp = inspection.weather.temperature

        if temp < 5:
            analysis.can_proceed = False
            analysis.restrictions.append("Concrete placement not permitted below 5°C")
            analysis.critical_factors.append(
                CriticalFactor("Temperature", "fail", f"{temp:g}°C below minimum requirement")
            )
        elif temp > 35:
            analysis.can_proceed = False
            analysis.restrictions.append("Concrete placement not recommended above 35°C")
            analysis.recommendations.extend(
                [
                    "Schedule pour for early morning",
                    "Use retarders and ice in mix water",
                    "Provide shade and windbreaks",
                ]
            )
            analysis.critical_factors.append(
                CriticalFactor("Temperature", "fail", f"{temp:g}°C exceeds maximum for placement")
            )
        elif temp < 10:
            analysis.warnings.append("Cold weather concreting procedures required")
            analysis.recommendations.extend(
                [
                    "Use accelerators in mix",
                    "Provide insulation/heating for curing",
                    "Extend curing period to 14-21 days",
                ]
            )
            analysis.critical_factors.append(
                CriticalFactor("Temperature", "warning", "Cold weather procedures required")
            )
        elif temp > 30:
            analysis.warnings.append("Hot weather concreting procedures required")
            analysis.recommendations.extend(
                [
                    "Wet cure every 3 hours",
                    "Use retarders in mix",
                    "Keep aggregates cool with water spray",
                ]
            )
            analysis.critical_factors.append(
                CriticalFactor("Temperature", "warning", "Hot weather procedures required")
            )

        if inspection.weather.conditions == "rainy":
            analysis.can_proceed = False
            analysis.restrictions.append("Concrete placement not permitted during rain")
            analysis.critical_factors.append(
                CriticalFactor("Rainfall", "fail", "Rain prevents concrete placement")
            )

        analysis.optimal_conditions = "Temperature 15-25°C, overcast, low wind"

    def _analyze_drainage(self, inspection: InspectionData, analysis: WeatherAnalysis) -> None:
        weather = inspection.weather

        if weather.conditions in WET_CONDITIONS:
            analysis.warnings.append("Trench collapse risk increased in wet conditions")
            analysis.recommendations.extend(
                [
                    "Install shoring before excavation",
                    "Pump out water continuously",
                    "Monitor trench walls for movement",
                ]
            )
            analysis.critical_factors.append(
                CriticalFactor(
                    "Trench Stability", "warning", "Wet conditions increase collapse risk"
                )
            )

        if weather.recent_rainfall and weather.recent_rainfall.amount > 25:
            analysis.warnings.append("Ground may be saturated - dewatering likely required")
            analysis.recommendations.extend(
                [
                    "Check water table level before excavation",
                    "Have dewatering equipment on standby",
                    "Consider postponing if water table is high",
                ]
            )
            analysis.critical_factors.append(
                CriticalFactor(
                    "Ground Conditions", "warning", "Recent rainfall may have raised water table"
                )
            )

    def _analyze_forecast(
        self,
        inspection: InspectionData,
        forecast: list[WeatherForecastDay],
        analysis: WeatherAnalysis,
    ) -> None:
        next_week = forecast[:7]

        if inspection.type == "concrete" and any(day.rainfall > 0 for day in next_week):
            # first 3 days are the critical curing window
            if any(day.rainfall > 5 for day in next_week[:3]):
                analysis.warnings.append("Rain forecast during critical curing period")
                analysis.recommendations.append("Prepare protective covers for fresh concrete")

        if inspection.type == "earthworks" and inspection.material == "clay":
            for offset, day in enumerate(next_week):
                if day.rainfall > 25:
                    analysis.warnings.append(
                        f"Significant rain ({day.rainfall:g}mm) forecast in {offset} days"
                    )
                    analysis.recommendations.extend(
                        [
                            "Complete and protect clay fills before rain",
                            "Prepare drainage and erosion control measures",
                        ]
                    )
                    break

        extreme_hot = next((day for day in next_week if day.temperature_max > 35), None)
        extreme_cold = next((day for day in next_week if day.temperature_min < 5), None)
        if extreme_hot:
            analysis.warnings.append(f"Extreme heat ({extreme_hot.temperature_max:g}°C) forecast")
        if extreme_cold:
            analysis.warnings.append(
                f"Low temperature ({extreme_cold.temperature_min:g}°C) forecast"
            )

    def generate_work_recommendations(
        self, work_type: str, weather: WeatherConditions
    ) -> list[str]:
        recommendations: list[str] = []

        if weather.temperature > 30:
            recommendations.extend(
                [
                    "Schedule work for early morning (before 10am)",
                    "Provide shade and rest areas for workers",
                    "Increase hydration breaks every hour",
                ]
            )
        elif weather.temperature < 10:
            recommendations.extend(
                [
                    "Allow extra time for equipment warm-up",
                    "Check material temperatures before use",
                    "Monitor for ice formation overnight",
                ]
            )

        if work_type == "earthworks":
            if weather.recent_rainfall and weather.recent_rainfall.amount > 10:
                recommendations.extend(
                    [
                        "Test moisture content before compaction",
                        "Have pumps ready for water removal",
                        "Check access roads for trafficability",
                    ]
                )
        elif work_type == "concrete":
            if weather.conditions == "sunny" and weather.temperature > 25:
                recommendations.extend(
                    [
                        "Dampen subgrade before pour",
                        "Have curing compound ready for immediate application",
                        "Order concrete with retarder admixture",
                    ]
                )
        elif work_type == "drainage":
            recommendations.extend(
                [
                    "Check weather forecast for next 48 hours",
                    "Have trench shields/shoring available",
                    "Prepare temporary drainage diversions",
                ]
            )

        return recommendations

    def find_optimal_work_window(
        self,
        work_type: str,
        material: str | None,
        forecast: list[WeatherForecastDay],
        duration_days: int = 1,
    ) -> WorkWindow | None:
        """Highest-scoring run of consecutive forecast days; earliest wins ties."""
        best: WorkWindow | None = None
        for start in range(len(forecast) - duration_days + 1):
            window = forecast[start:start + duration_days]
            score = self.score_work_window(work_type, material, window)
            if best is None or score > best.score:
                best = WorkWindow(start=window[0].date, end=window[-1].date, score=score)
        return best

    @staticmethod
    def score_work_window(
        work_type: str, material: str | None, window: list[WeatherForecastDay]
    ) -> float:
        score = 100.0
        for day in window:
            if day.rainfall > 0:
                score -= day.rainfall * 2

            if work_type == "concrete":
                if day.temperature_max > 35 or day.temperature_min < 5:
                    score -= 50
                elif day.temperature_max > 30 or day.temperature_min < 10:
                    score -= 20

            if day.wind_speed and day.wind_speed > 40:
                score -= 15

            if material == "clay" and day.rainfall > 10:
                score -= 30
        return max(0.0, score)
