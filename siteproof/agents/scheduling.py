"""
Schedule optimizer: model-suggested strategies applied to the critical path.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..analysis.timeline import ProjectTimeline, TimelineAnalyzer
from ..analysis.weather import WeatherAnalyzer
from ..conversation import ConversationDriver
from ..knowledge.councils import get_council_data
from ..models import PhaseRisk, ProjectPhase, WeatherForecastDay
from ..personas import SCHEDULER_PROMPT, schedule_optimization_message
from ..shaping import SCHEDULE_DEFAULTS, OptimizedSchedule, parse_or_default

LOGGER = logging.getLogger(__name__)

FAST_TRACK_FACTOR = 0.85
WEATHER_SENSITIVE_TYPES = ("earthworks", "concrete")
MIN_WINDOW_SCORE = 70

# Rough crew and plant needs by phase type
RESOURCE_NEEDS = {
    "construction": {"workers": 10, "equipment": 3},
    "inspection": {"inspectors": 2, "testing_equipment": 1},
    "documentation": {"admin": 1},
}


@dataclass
class ScheduleConstraints:
    must_start_after: date | None = None
    must_complete_before: date | None = None
    budget_limit: float | None = None
    resource_limit: int | None = None
    weather_sensitive: bool = False
    council_approval: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleConstraints:
        def as_date(value: Any) -> date | None:
            return date.fromisoformat(str(value)[:10]) if value else None

        return cls(
            must_start_after=as_date(data.get("must_start_after")),
            must_complete_before=as_date(data.get("must_complete_before")),
            budget_limit=data.get("budget_limit"),
            resource_limit=data.get("resource_limit"),
            weather_sensitive=bool(data.get("weather_sensitive", False)),
            council_approval=data.get("council_approval"),
        )


@dataclass
class ScheduleRequest:
    phases: list[ProjectPhase]
    constraints: ScheduleConstraints = field(default_factory=ScheduleConstraints)
    preferences: dict[str, Any] = field(default_factory=dict)
    weather_forecast: list[WeatherForecastDay] | None = None
    project_name: str = "Construction Project"

    @property
    def start_date(self) -> date | None:
        return self.constraints.must_start_after

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleRequest:
        forecast = data.get("weather_forecast")
        return cls(
            phases=[ProjectPhase.from_dict(phase) for phase in data.get("phases") or []],
            constraints=ScheduleConstraints.from_dict(data.get("constraints") or {}),
            preferences=dict(data.get("preferences") or {}),
            weather_forecast=[WeatherForecastDay.from_dict(d) for d in forecast] if forecast else None,
            project_name=str(data.get("project_name") or "Construction Project"),
        )

    def summary(self) -> dict[str, Any]:
        constraints = self.constraints
        return {
            "project_name": self.project_name,
            "phases": [
                {
                    "id": p.id,
                    "name": p.name,
                    "type": p.type,
                    "duration": p.duration,
                    "dependencies": p.dependencies,
                    "status": p.status,
                }
                for p in self.phases
            ],
            "constraints": {
                "must_start_after": constraints.must_start_after,
                "must_complete_before": constraints.must_complete_before,
                "budget_limit": constraints.budget_limit,
                "resource_limit": constraints.resource_limit,
                "weather_sensitive": constraints.weather_sensitive,
                "council_approval": constraints.council_approval,
            },
            "preferences": self.preferences,
        }


@dataclass
class ResourceAllocation:
    phase_id: str
    resources: list[dict[str, Any]] = field(default_factory=list)
    conflicts: list[dict[str, Any]] = field(default_factory=list)


class ScheduleOptimizer:
    def __init__(
        self,
        driver: ConversationDriver,
        timeline_analyzer: TimelineAnalyzer | None = None,
        weather_analyzer: WeatherAnalyzer | None = None,
    ):
        self.driver = driver
        self.timeline_analyzer = timeline_analyzer or TimelineAnalyzer()
        self.weather_analyzer = weather_analyzer or WeatherAnalyzer()

    def optimize_schedule(self, request: ScheduleRequest) -> OptimizedSchedule:
        """
        Optimize a project schedule with model-suggested strategies.

        A baseline critical path is computed and sent to the model, which
        answers with strategies in JSON. Recognised strategies are applied
        to a copy of the phases, council approval durations are replaced
        with the predicted figures, and the timeline is recomputed.

        Args:
            request: Phases, constraints, preferences and optional forecast

        Returns:
            OptimizedSchedule comparing baseline and optimized durations

        Raises:
            ValueError: If the phase dependencies contain a cycle
            UpstreamError: If the API call fails
        """
        phases = copy.deepcopy(request.phases)
        baseline = self._timeline(phases, request)

        result = self.driver.run(
            schedule_optimization_message(request.summary(), self._baseline_summary(baseline, request)),
            system_prompt=SCHEDULER_PROMPT,
            temperature=self.driver.config.schedule_temperature,
            use_tools=False,
        )
        shaped, parsed = parse_or_default(result.answer, SCHEDULE_DEFAULTS)
        if not parsed:
            LOGGER.warning("Schedule answer was not JSON; no strategies applied")

        strategies = [s for s in shaped["strategies"] if isinstance(s, dict)]
        improvements = self.apply_strategies(phases, strategies, shaped["recommended_sequence"])
        improvements.extend(self._weather_windows(phases, request))
        improvements.extend(self._council_adjustments(phases, request))

        optimized = self._timeline(phases, request)
        improvements.insert(
            0,
            f"Duration {baseline.total_duration} -> {optimized.total_duration} days; "
            f"risk score {baseline.risk_score:g} -> {optimized.risk_score:g}",
        )

        return OptimizedSchedule(
            original_duration=baseline.total_duration,
            optimized_duration=optimized.total_duration,
            time_saved=baseline.total_duration - optimized.total_duration,
            strategies=strategies,
            optimized_phases=optimized.phases,
            critical_path=optimized.critical_path,
            improvements=improvements,
            insights=[str(i) for i in shaped["insights"]],
            warnings=[str(w) for w in shaped["warnings"]] + self._deadline_warnings(optimized, request),
            estimated_savings=shaped["estimated_savings"],
            source="ai",
        )

    def rule_based_optimization(self, request: ScheduleRequest) -> OptimizedSchedule:
        """Local optimization from the timeline analyzer's parallel-work rules."""
        phases = copy.deepcopy(request.phases)
        baseline = self._timeline(phases, request)
        suggestions = self.timeline_analyzer.optimize_schedule(phases)
        improvements = self._council_adjustments(phases, request)
        optimized = self._timeline(phases, request)

        return OptimizedSchedule(
            original_duration=baseline.total_duration,
            optimized_duration=optimized.total_duration,
            time_saved=suggestions.saved_days,
            strategies=[
                {
                    "type": "parallel",
                    "description": suggestion,
                    "impact": "Potential time savings",
                    "confidence": 60,
                }
                for suggestion in suggestions.suggestions
            ],
            optimized_phases=optimized.phases,
            critical_path=optimized.critical_path,
            improvements=improvements,
            insights=list(suggestions.suggestions),
            warnings=self._deadline_warnings(optimized, request),
            estimated_savings={"days": suggestions.saved_days, "cost": 0},
            source="rules",
        )

    def apply_strategies(
        self,
        phases: list[ProjectPhase],
        strategies: list[dict[str, Any]],
        recommended_sequence: list[Any] | None = None,
    ) -> list[str]:
        """
        Apply strategies to phases in place.

        Returns:
            One line per strategy that changed something
        """
        by_id = {phase.id: phase for phase in phases}
        applied: list[str] = []

        for strategy in strategies:
            kind = str(strategy.get("type", "")).replace("-", "_")
            affected = [str(p) for p in strategy.get("affected_phases") or strategy.get("phases") or []]

            if kind == "parallel" and len(affected) >= 2:
                first, second = by_id.get(affected[0]), by_id.get(affected[1])
                if first and second and first.id in second.dependencies:
                    second.dependencies.remove(first.id)
                    applied.append(f"Run {second.name} in parallel with {first.name}")

            elif kind == "fast_track":
                for phase_id in affected:
                    phase = by_id.get(phase_id)
                    if phase is None:
                        continue
                    phase.duration = round(phase.duration * FAST_TRACK_FACTOR)
                    phase.risks.append(
                        PhaseRisk("Fast-tracking", 30, 5, "Increase supervision and quality checks")
                    )
                    applied.append(f"Fast-track {phase.name} to {phase.duration} days")

            elif kind in ("resequence", "sequence") and recommended_sequence:
                order = {str(phase_id): index for index, phase_id in enumerate(recommended_sequence)}
                phases.sort(key=lambda p: order.get(p.id, len(order)))
                applied.append("Phases resequenced: " + ", ".join(p.id for p in phases))

            elif kind == "buffer":
                for phase in phases:
                    if phase.critical:
                        phase.buffer = max(phase.buffer, round(phase.duration * 0.1))
                    else:
                        phase.buffer = round(phase.buffer * 0.5)
                applied.append("Buffers moved onto critical path phases")

            else:
                LOGGER.debug("Strategy %r not applied", kind)

        return applied

    def level_resources(
        self,
        phases: list[ProjectPhase],
        resource_constraints: dict[str, dict[str, float]],
    ) -> list[ResourceAllocation]:
        """
        Allocate crew and plant per phase against available quantities.

        Args:
            phases: Phases to allocate
            resource_constraints: resource type -> {"available": n, "cost": c}

        Returns:
            One allocation per phase; a conflict is recorded where demand
            exceeds availability
        """
        allocations = []
        for phase in phases:
            allocation = ResourceAllocation(phase_id=phase.id)
            for resource_type, quantity in RESOURCE_NEEDS.get(phase.type, {}).items():
                constraint = resource_constraints.get(resource_type)
                if not constraint:
                    continue
                available = constraint["available"]
                utilization = quantity / available * 100 if available else float("inf")
                allocation.resources.append(
                    {
                        "type": resource_type,
                        "quantity": min(quantity, available),
                        "utilization": round(utilization, 1),
                    }
                )
                if utilization > 100:
                    allocation.conflicts.append(
                        {"phase_id": phase.id, "resource_type": resource_type, "shortfall": quantity - available}
                    )
            allocations.append(allocation)
        return allocations

    def _timeline(self, phases: list[ProjectPhase], request: ScheduleRequest) -> ProjectTimeline:
        return self.timeline_analyzer.analyze_project_timeline(
            phases,
            request.constraints.council_approval,
            request.weather_forecast,
            start_date=request.start_date,
            project_name=request.project_name,
        )

    @staticmethod
    def _baseline_summary(baseline: ProjectTimeline, request: ScheduleRequest) -> dict[str, Any]:
        summary: dict[str, Any] = {
            "total_duration_days": baseline.total_duration,
            "critical_path": baseline.critical_path,
            "risk_score": baseline.risk_score,
            "total_float_days": baseline.total_float,
        }
        council_name = request.constraints.council_approval
        if council_name:
            council = get_council_data(council_name)
            summary["council"] = (
                {
                    "name": council.name,
                    "average_days": council.average_days,
                    "statutory_target": council.statutory_target,
                    "performance_rating": council.performance_rating,
                    "common_delays": list(council.common_delays),
                }
                if council
                else {}
            )
        if request.weather_forecast:
            summary["forecast_next_14_days"] = [
                f"{day.date:%b %d}: {day.conditions}, {day.rainfall:g}mm rain"
                for day in request.weather_forecast[:14]
            ]
        return summary

    def _weather_windows(self, phases: list[ProjectPhase], request: ScheduleRequest) -> list[str]:
        if not (request.weather_forecast and request.constraints.weather_sensitive):
            return []

        notes = []
        for phase in phases:
            work_type = next(
                (t for t in WEATHER_SENSITIVE_TYPES if t == phase.type or t in phase.name.lower()),
                None,
            )
            if work_type is None:
                continue
            window = self.weather_analyzer.find_optimal_work_window(
                work_type, None, request.weather_forecast, max(1, phase.duration)
            )
            if window and window.score > MIN_WINDOW_SCORE:
                notes.append(
                    f"Schedule {phase.name} in the {window.start.isoformat()} to "
                    f"{window.end.isoformat()} weather window (score {window.score:g})"
                )
        return notes

    def _council_adjustments(self, phases: list[ProjectPhase], request: ScheduleRequest) -> list[str]:
        council_name = request.constraints.council_approval
        if not council_name:
            return []

        notes = []
        for phase in phases:
            if phase.type != "approval":
                continue
            prediction = self.timeline_analyzer.predict_approval_timeline(
                council_name, "construction", "moderate"
            )
            if prediction.confidence > 60:
                phase.duration = prediction.predicted_days
                notes.append(f"{phase.name} set to predicted {prediction.predicted_days} days")
            else:
                phase.buffer = max(phase.buffer, round(prediction.predicted_days * 0.2))
                notes.append(
                    f"{phase.name}: low-confidence council prediction, "
                    f"{phase.buffer} day buffer added"
                )
        return notes

    @staticmethod
    def _deadline_warnings(timeline: ProjectTimeline, request: ScheduleRequest) -> list[str]:
        deadline = request.constraints.must_complete_before
        if deadline and timeline.end_date > deadline:
            return [
                f"Projected completion {timeline.end_date.isoformat()} is after the "
                f"required date {deadline.isoformat()}"
            ]
        return []
