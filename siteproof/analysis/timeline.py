"""
Project timeline analysis: council approval prediction and critical path.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Any

from ..knowledge.councils import get_council_data
from ..models import ProjectPhase, WeatherForecastDay

COMPLEXITY_MULTIPLIERS = {"simple": 0.7, "moderate": 1.0, "complex": 1.3}

CONFIDENCE_BY_RATING = {"GOOD": 80, "POOR": 50, "VERY_POOR": 30}
DEFAULT_CONFIDENCE = 70

# (flag, days added, factor label, strategy)
APPROVAL_FACTORS = (
    ("heritage", 25, "Heritage considerations", "Engage heritage consultant early"),
    ("environmental", 20, "Environmental assessment", "Complete environmental studies upfront"),
    ("traffic_impact", 15, "Traffic impact assessment", "Submit traffic report with application"),
    ("public_objections", 35, "Public objections expected", "Engage with neighbors before submission"),
)
HEIGHT_THRESHOLD = 20  # metres


@dataclass
class ApprovalFactor:
    factor: str
    impact: str  # positive | negative | neutral
    days: int


@dataclass
class ApprovalPrediction:
    council: str
    predicted_days: int
    best_case: int
    worst_case: int
    confidence: int
    factors: list[ApprovalFactor] = field(default_factory=list)
    strategies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ScheduledPhase:
    """CPM times for one phase, in days from project start."""
    phase: ProjectPhase
    early_start: int
    early_finish: int
    late_start: int
    late_finish: int

    @property
    def slack(self) -> int:
        return self.late_start - self.early_start

    @property
    def critical(self) -> bool:
        return self.slack == 0


@dataclass
class CriticalPathResult:
    schedule: dict[str, ScheduledPhase]
    critical_path: list[str]
    project_duration: int


@dataclass
class ProjectTimeline:
    project_name: str
    start_date: date
    end_date: date
    total_duration: int
    phases: list[dict[str, Any]]
    critical_path: list[str]
    total_float: int
    risk_score: float
    recommendations: list[str]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["start_date"] = self.start_date.isoformat()
        data["end_date"] = self.end_date.isoformat()
        return data


@dataclass
class ScheduleSuggestions:
    phases: list[ProjectPhase]
    saved_days: int
    suggestions: list[str]


class TimelineAnalyzer:
    def predict_approval_timeline(
        self,
        council_name: str,
        project_type: str = "residential",
        complexity: str = "moderate",
        additional_factors: dict[str, Any] | None = None,
    ) -> ApprovalPrediction:
        """
        Predict how long a council approval will take.

        Args:
            council_name: Council or authority name
            project_type: Kind of development (informational)
            complexity: simple, moderate or complex
            additional_factors: Optional flags heritage, environmental,
                traffic_impact, public_objections and a height in metres

        Returns:
            ApprovalPrediction with best/worst case and strategies
        """
        council = get_council_data(council_name)
        if council is None:
            return ApprovalPrediction(
                council=council_name,
                predicted_days=115,
                best_case=60,
                worst_case=200,
                confidence=40,
                strategies=[
                    "Contact council for specific timeframes",
                    "Consider pre-lodgement meeting",
                ],
            )

        predicted = float(council.average_days) * COMPLEXITY_MULTIPLIERS.get(complexity, 1.0)
        factors: list[ApprovalFactor] = []
        strategies: list[str] = []

        if complexity == "simple":
            factors.append(ApprovalFactor("Simple development", "positive", -30))
        elif complexity == "complex":
            factors.append(ApprovalFactor("Complex development", "negative", 45))

        extra = additional_factors or {}
        for flag, days, label, strategy in APPROVAL_FACTORS:
            if extra.get(flag):
                predicted += days
                factors.append(ApprovalFactor(label, "negative", days))
                strategies.append(strategy)

        height = extra.get("height")
        if height is not None and float(height) > HEIGHT_THRESHOLD:
            predicted += 30
            factors.append(ApprovalFactor("Height variation required", "negative", 30))
            strategies.append("Prepare shadow diagrams and view analysis")

        if council.performance_rating in ("POOR", "VERY_POOR"):
            strategies.extend(
                [
                    "Consider using private certifier where possible",
                    "Schedule pre-lodgement meeting with council",
                    "Submit comprehensive documentation to avoid RFI delays",
                ]
            )
        if council.fast_track_available:
            strategies.append("Check eligibility for fast-track assessment")

        return ApprovalPrediction(
            council=council.name,
            predicted_days=round(predicted),
            best_case=round(predicted * 0.6),
            worst_case=round(predicted * 1.8),
            confidence=CONFIDENCE_BY_RATING.get(council.performance_rating, DEFAULT_CONFIDENCE),
            factors=factors,
            strategies=strategies,
        )

    @staticmethod
    def topological_sort(phases: list[ProjectPhase]) -> list[ProjectPhase]:
        """
        Order phases so every phase follows its dependencies.

        Dependencies on unknown phase ids are ignored.

        Raises:
            ValueError: If the dependencies contain a cycle
        """
        by_id = {phase.id: phase for phase in phases}
        ordered: list[ProjectPhase] = []
        visited: set[str] = set()
        visiting: set[str] = set()

        def visit(phase: ProjectPhase) -> None:
            if phase.id in visited:
                return
            if phase.id in visiting:
                raise ValueError(f"Circular dependency detected at phase: {phase.id}")
            visiting.add(phase.id)
            for dep_id in phase.dependencies:
                if dep_id in by_id:
                    visit(by_id[dep_id])
            visiting.discard(phase.id)
            visited.add(phase.id)
            ordered.append(phase)

        for phase in phases:
            visit(phase)
        return ordered

    def critical_path(self, phases: list[ProjectPhase]) -> CriticalPathResult:
        """Forward and backward CPM passes over the phase graph."""
        if not phases:
            return CriticalPathResult(schedule={}, critical_path=[], project_duration=0)

        ordered = self.topological_sort(phases)
        early_finish: dict[str, int] = {}
        early_start: dict[str, int] = {}
        for phase in ordered:
            start = max((early_finish[d] for d in phase.dependencies if d in early_finish), default=0)
            early_start[phase.id] = start
            early_finish[phase.id] = start + phase.duration

        project_end = max(early_finish.values())
        successors: dict[str, list[str]] = {phase.id: [] for phase in phases}
        for phase in phases:
            for dep_id in phase.dependencies:
                if dep_id in successors:
                    successors[dep_id].append(phase.id)

        late_start: dict[str, int] = {}
        late_finish: dict[str, int] = {}
        for phase in reversed(ordered):
            finish = min((late_start[s] for s in successors[phase.id]), default=project_end)
            late_finish[phase.id] = finish
            late_start[phase.id] = finish - phase.duration

        schedule = {
            phase.id: ScheduledPhase(
                phase=phase,
                early_start=early_start[phase.id],
                early_finish=early_finish[phase.id],
                late_start=late_start[phase.id],
                late_finish=late_finish[phase.id],
            )
            for phase in phases
        }
        critical = [phase.id for phase in phases if schedule[phase.id].critical]
        return CriticalPathResult(
            schedule=schedule, critical_path=critical, project_duration=project_end
        )

    def analyze_project_timeline(
        self,
        phases: list[ProjectPhase],
        council_name: str | None = None,
        forecast: list[WeatherForecastDay] | None = None,
        start_date: date | None = None,
        project_name: str = "Construction Project",
    ) -> ProjectTimeline:
        cpm = self.critical_path(phases)
        start = start_date or date.today()
        for scheduled in cpm.schedule.values():
            scheduled.phase.critical = scheduled.critical

        total_float = sum(scheduled.slack for scheduled in cpm.schedule.values())
        risk_score = self.calculate_risk_score(phases, council_name)
        recommendations = self._timeline_recommendations(
            cpm, council_name, risk_score, forecast, start
        )

        phase_rows = []
        for phase in phases:
            scheduled = cpm.schedule[phase.id]
            phase_rows.append(
                {
                    "id": phase.id,
                    "name": phase.name,
                    "type": phase.type,
                    "duration": phase.duration,
                    "dependencies": list(phase.dependencies),
                    "status": phase.status,
                    "start_date": (start + timedelta(days=scheduled.early_start)).isoformat(),
                    "end_date": (start + timedelta(days=scheduled.early_finish)).isoformat(),
                    "float": scheduled.slack,
                    "critical_path": scheduled.critical,
                }
            )

        return ProjectTimeline(
            project_name=project_name,
            start_date=start,
            end_date=start + timedelta(days=cpm.project_duration),
            total_duration=cpm.project_duration,
            phases=phase_rows,
            critical_path=cpm.critical_path,
            total_float=total_float,
            risk_score=risk_score,
            recommendations=recommendations,
        )

    @staticmethod
    def calculate_risk_score(phases: list[ProjectPhase], council_name: str | None = None) -> float:
        """0-100 score from council performance, phase risks, delays and critical concentration."""
        score = 0.0
        council = get_council_data(council_name) if council_name else None
        if council is not None:
            if council.performance_rating == "POOR":
                score += 20
            elif council.performance_rating == "VERY_POOR":
                score += 35
            if council.average_days - council.statutory_target > 100:
                score += 15

        for phase in phases:
            for risk in phase.risks:
                score += (risk.probability / 100) * (risk.impact / 10) * 10
            if phase.status == "delayed":
                score += 10

        if phases and sum(1 for p in phases if p.critical) / len(phases) > 0.7:
            score += 15

        return round(min(100.0, score), 1)

    def _timeline_recommendations(
        self,
        cpm: CriticalPathResult,
        council_name: str | None,
        risk_score: float,
        forecast: list[WeatherForecastDay] | None,
        start: date,
    ) -> list[str]:
        recommendations: list[str] = []
        phases = [scheduled.phase for scheduled in cpm.schedule.values()]

        council = get_council_data(council_name) if council_name else None
        if council is not None:
            if council.average_days > council.statutory_target * 1.5:
                recommendations.extend(
                    [
                        f"Council approval typically takes {council.average_days} days "
                        f"({round(council.delay_ratio * 100)}% of statutory)",
                        "Consider private certification for building elements",
                        "Schedule pre-lodgement meeting to identify issues early",
                    ]
                )
            if council.common_delays:
                recommendations.append(
                    f"Prepare for typical delays: {', '.join(council.common_delays)}"
                )

        if risk_score > 60:
            recommendations.extend(
                [
                    "High risk project - increase contingency to 15-20%",
                    "Implement weekly risk review meetings",
                    "Develop detailed contingency plans for critical path activities",
                ]
            )

        if forecast:
            for scheduled in cpm.schedule.values():
                if scheduled.phase.type != "construction":
                    continue
                phase_start = start + timedelta(days=scheduled.early_start)
                phase_end = start + timedelta(days=scheduled.early_finish)
                wet_days = sum(
                    1 for day in forecast
                    if phase_start <= day.date <= phase_end and day.rainfall > 10
                )
                if wet_days > 3:
                    recommendations.append(
                        f"{scheduled.phase.name}: {wet_days} days of rain forecast - "
                        f"add {math.ceil(wet_days * 0.5)} buffer days"
                    )

        if phases and len(cpm.critical_path) > len(phases) * 0.6:
            recommendations.extend(
                [
                    "Limited schedule flexibility - consider parallel work streams",
                    "Focus resources on critical path activities",
                ]
            )

        total_duration = sum(phase.duration for phase in phases)
        total_buffer = sum(phase.buffer for phase in phases)
        if total_duration and total_buffer / total_duration < 0.1:
            recommendations.append("Insufficient schedule buffer - add 10-15% contingency")

        return recommendations

    def optimize_schedule(self, phases: list[ProjectPhase]) -> ScheduleSuggestions:
        """Rule-based suggestions for shortening the schedule."""
        suggestions: list[str] = []
        saved = 0.0

        for index, phase in enumerate(phases):
            for other in phases[index + 1:]:
                if (
                    other.type == phase.type
                    and phase.id not in other.dependencies
                    and other.id not in phase.dependencies
                ):
                    suggestions.append(f"{phase.name} could run in parallel with {other.name}")
                    saved += min(phase.duration, other.duration) * 0.5
                    break

        if sum(1 for phase in phases if phase.type == "approval") > 1:
            suggestions.append("Consider combining approval applications for efficiency")
            saved += 15

        cpm = self.critical_path(phases)
        construction = [s for s in cpm.schedule.values() if s.phase.type == "construction"]
        overlapping = [
            s for s in construction
            if any(
                o is not s and s.early_start < o.early_finish and o.early_start < s.early_finish
                for o in construction
            )
        ]
        if len(overlapping) > 2:
            suggestions.extend(
                [
                    "Resource conflict detected - consider staggering construction phases",
                    "Add 10% duration buffer for resource constraints",
                ]
            )

        return ScheduleSuggestions(phases=list(phases), saved_days=round(saved), suggestions=suggestions)

    @staticmethod
    def calculate_working_days(start: date, end: date) -> int:
        """Weekdays from start to end inclusive."""
        days = 0
        current = start
        while current <= end:
            if current.weekday() < 5:
                days += 1
            current += timedelta(days=1)
        return days
