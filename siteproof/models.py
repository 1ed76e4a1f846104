"""Data models shared by tools, analyzers and the conversation driver."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Literal

InspectionType = Literal["earthworks", "drainage", "concrete", "reinforcement", "asphalt"]
WeatherState = Literal["sunny", "cloudy", "rainy", "wet", "stormy"]


@dataclass
class ToolInvocation:
    """A tool call requested by the model."""
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolExecutionResult:
    """Outcome of executing one ToolInvocation."""
    tool_name: str
    input: dict[str, Any]
    output: Any
    success: bool
    execution_time: float = 0.0  # milliseconds
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolExecutionResult:
        return cls(
            tool_name=str(data["tool_name"]),
            input=dict(data.get("input") or {}),
            output=data.get("output"),
            success=bool(data.get("success", False)),
            execution_time=float(data.get("execution_time", 0.0) or 0.0),
            error=data.get("error"),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_json(cls, text: str) -> ToolExecutionResult:
        return cls.from_dict(json.loads(text))


@dataclass
class Rainfall:
    amount: float  # mm
    days_ago: int


@dataclass
class WeatherConditions:
    conditions: str = "sunny"
    temperature: float = 20.0
    recent_rainfall: Rainfall | None = None


@dataclass
class Measurements:
    """Site measurements; percentages are plain numbers (98 == 98%)."""
    compaction_density: float | None = None
    moisture_content: float | None = None
    optimum_moisture_content: float | None = None
    proctor_value: float | None = None
    depth: float | None = None  # mm
    thickness: float | None = None  # mm
    gradient: float | None = None  # %
    pipe_diameter: float | None = None  # mm
    cover_depth: float | None = None  # mm
    cover: float | None = None  # mm, concrete cover to reinforcement


@dataclass
class InspectionData:
    type: str
    location: str = "Unspecified"
    date: date = field(default_factory=date.today)
    weather: WeatherConditions = field(default_factory=WeatherConditions)
    measurements: Measurements | None = None
    material: str | None = None
    supervision_level: str = "level_1"
    site_class: str = "M"
    exposure_class: str = "A1"
    under_traffic: bool = True
    id: str | None = None
    notes: str | None = None
    non_conformances: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InspectionData:
        """Build from a loosely-shaped dict (tool input or JSON file)."""
        weather_raw = data.get("weather") or {}
        rainfall_raw = weather_raw.get("recent_rainfall") or data.get("recent_rainfall")
        rainfall = None
        if isinstance(rainfall_raw, dict) and rainfall_raw.get("amount") is not None:
            rainfall = Rainfall(
                amount=float(rainfall_raw["amount"]),
                days_ago=int(rainfall_raw.get("days_ago", 0) or 0),
            )
        weather = WeatherConditions(
            conditions=str(
                weather_raw.get("conditions") or data.get("current_conditions") or "sunny"
            ),
            temperature=float(
                weather_raw.get("temperature", data.get("temperature", 20.0))
            ),
            recent_rainfall=rainfall,
        )

        measurements = None
        measurements_raw = data.get("measurements")
        if isinstance(measurements_raw, dict):
            known = Measurements.__dataclass_fields__
            measurements = Measurements(
                **{
                    key: float(value)
                    for key, value in measurements_raw.items()
                    if key in known and value is not None
                }
            )

        inspection_date = data.get("date")
        if isinstance(inspection_date, str):
            inspection_date = date.fromisoformat(inspection_date[:10])
        elif not isinstance(inspection_date, date):
            inspection_date = date.today()

        return cls(
            type=str(data.get("type") or data.get("inspection_type") or data.get("work_type")),
            location=str(data.get("location") or "Unspecified"),
            date=inspection_date,
            weather=weather,
            measurements=measurements,
            material=data.get("material"),
            supervision_level=str(data.get("supervision_level") or "level_1"),
            site_class=str(data.get("site_class") or "M"),
            exposure_class=str(data.get("exposure_class") or "A1"),
            under_traffic=bool(data.get("under_traffic", True)),
            id=str(data["id"]) if data.get("id") is not None else None,
            notes=data.get("notes"),
            non_conformances=[
                nc for nc in data.get("non_conformances") or [] if isinstance(nc, dict)
            ],
        )


@dataclass
class WeatherForecastDay:
    date: date
    temperature_min: float
    temperature_max: float
    rainfall: float  # mm
    conditions: str = "sunny"
    wind_speed: float | None = None  # km/h

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WeatherForecastDay:
        temperature = data.get("temperature") or {}
        return cls(
            date=date.fromisoformat(str(data["date"])[:10]),
            temperature_min=float(temperature.get("min", data.get("temperature_min", 15))),
            temperature_max=float(temperature.get("max", data.get("temperature_max", 25))),
            rainfall=float(data.get("rainfall", 0) or 0),
            conditions=str(data.get("conditions") or "sunny"),
            wind_speed=data.get("wind_speed"),
        )


@dataclass
class PhaseRisk:
    type: str
    probability: float  # 0-100
    impact: float  # 0-10
    mitigation: str = ""


@dataclass
class ProjectPhase:
    id: str
    name: str
    duration: int  # days
    type: str = "construction"  # approval | construction | inspection | documentation
    dependencies: list[str] = field(default_factory=list)
    status: str = "pending"  # pending | in_progress | completed | delayed
    buffer: int = 0
    risks: list[PhaseRisk] = field(default_factory=list)
    critical: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectPhase:
        return cls(
            id=str(data.get("id") or data["name"]),
            name=str(data.get("name") or data["id"]),
            duration=int(data.get("duration", data.get("duration_days", 0)) or 0),
            type=str(data.get("type") or "construction"),
            dependencies=[str(dep) for dep in data.get("dependencies") or []],
            status=str(data.get("status") or "pending"),
            buffer=int(data.get("buffer", 0) or 0),
            risks=[PhaseRisk(**risk) for risk in data.get("risks") or []],
        )
