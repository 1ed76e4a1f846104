"""Weather limits and restrictions by work type and material."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Bounds:
    min: float | None = None
    max: float | None = None


@dataclass(frozen=True)
class WeatherRule:
    work_type: str
    material: str | None = None
    temperature: Bounds | None = None  # °C
    humidity: Bounds | None = None  # %
    max_rain_24hr: float | None = None  # mm
    max_rain_7day: float | None = None  # mm
    max_wind_speed: float | None = None  # km/h
    restrictions: tuple[str, ...] = field(default_factory=tuple)
    drying_days: int | None = None
    drying_note: str | None = None


WEATHER_RULES: tuple[WeatherRule, ...] = (
    WeatherRule(
        work_type="earthworks",
        material="clay",
        max_rain_24hr=10,
        max_rain_7day=50,
        restrictions=(
            "No compaction if moisture content > OMC + 2%",
            "No earthworks during active rainfall",
            "Requires moisture conditioning if too dry",
            "Protection of exposed surfaces required",
        ),
        drying_days=21,
        drying_note="Clay requires extensive drying period after significant rain",
    ),
    WeatherRule(
        work_type="earthworks",
        material="sand",
        max_rain_24hr=25,
        max_rain_7day=100,
        restrictions=(
            "No compaction during heavy rain",
            "Drainage must be maintained",
            "May require moisture addition in dry conditions",
        ),
        drying_days=2,
        drying_note="Sand drains quickly but may need re-compaction",
    ),
    WeatherRule(
        work_type="concrete",
        material="standard",
        temperature=Bounds(min=5, max=35),
        max_rain_24hr=5,
        max_wind_speed=40,
        restrictions=(
            "Hot weather concreting procedures above 30°C",
            "Cold weather procedures below 10°C",
            "No placement during rain without protection",
            "Rapid moisture loss protection in wind",
            "Curing compound required in hot/windy conditions",
        ),
    ),
    WeatherRule(
        work_type="concrete",
        material="high_strength",
        temperature=Bounds(min=10, max=30),
        humidity=Bounds(min=40, max=90),
        restrictions=(
            "Strict temperature control required",
            "Extended curing period mandatory",
            "Ice or chilled water may be required in hot weather",
            "Heating may be required in cold weather",
        ),
    ),
    WeatherRule(
        work_type="asphalt",
        material="dense_graded",
        temperature=Bounds(min=10, max=40),
        max_rain_24hr=0,
        restrictions=(
            "Surface must be dry",
            "No placement during rain",
            "Minimum air temperature 10°C and rising",
            "Mix temperature monitoring critical",
            "Reduced lift thickness in cold weather",
        ),
        drying_days=1,
        drying_note="Surface must be completely dry",
    ),
    WeatherRule(
        work_type="spray_seal",
        temperature=Bounds(min=15, max=35),
        max_rain_24hr=0,
        max_wind_speed=25,
        restrictions=(
            "No application if rain expected within 4 hours",
            "Surface must be completely dry",
            "Wind protection required for uniform application",
            "Temperature rising preferred",
        ),
    ),
    WeatherRule(
        work_type="steel_fixing",
        temperature=Bounds(max=40),
        max_wind_speed=60,
        restrictions=(
            "Stop work if wind affects crane operations",
            "Heat stress management above 35°C",
            "Lightning risk assessment required",
            "Wet weather PPE if working in rain",
        ),
    ),
    WeatherRule(
        work_type="drainage",
        max_rain_24hr=20,
        restrictions=(
            "Trenches must be dewatered",
            "Bedding material must not be saturated",
            "Pipe joints must be kept dry during installation",
            "Backfill at optimum moisture content",
        ),
        drying_days=1,
        drying_note="Trenches must be pumped dry",
    ),
)


@dataclass
class WorkabilityCheck:
    can_proceed: bool
    warnings: list[str]
    restrictions: list[str]


def get_weather_restrictions(work_type: str, material: str | None = None) -> WeatherRule | None:
    """First rule for the work type whose material matches (or that has no material)."""
    for rule in WEATHER_RULES:
        if rule.work_type != work_type:
            continue
        if not material or rule.material == material or rule.material is None:
            return rule
    return None


def can_work_proceed(
    work_type: str,
    *,
    temperature: float | None = None,
    rainfall_24hr: float | None = None,
    rainfall_7day: float | None = None,
    wind_speed: float | None = None,
    humidity: float | None = None,
    material: str | None = None,
) -> WorkabilityCheck:
    rule = get_weather_restrictions(work_type, material)
    if rule is None:
        return WorkabilityCheck(
            can_proceed=True,
            warnings=["No specific weather restrictions found for this work type"],
            restrictions=[],
        )

    warnings: list[str] = []

    if rule.temperature and temperature is not None:
        if rule.temperature.min is not None and temperature < rule.temperature.min:
            warnings.append(
                f"Temperature {temperature}°C is below minimum {rule.temperature.min:g}°C"
            )
        if rule.temperature.max is not None and temperature > rule.temperature.max:
            warnings.append(
                f"Temperature {temperature}°C exceeds maximum {rule.temperature.max:g}°C"
            )

    if rule.max_rain_24hr is not None and rainfall_24hr is not None:
        if rainfall_24hr > rule.max_rain_24hr:
            warnings.append(
                f"24hr rainfall {rainfall_24hr}mm exceeds maximum {rule.max_rain_24hr:g}mm"
            )
    if rule.max_rain_7day is not None and rainfall_7day is not None:
        if rainfall_7day > rule.max_rain_7day:
            warnings.append(
                f"7-day rainfall {rainfall_7day}mm exceeds maximum {rule.max_rain_7day:g}mm"
            )

    if rule.max_wind_speed is not None and wind_speed is not None:
        if wind_speed > rule.max_wind_speed:
            warnings.append(
                f"Wind speed {wind_speed}km/h exceeds maximum {rule.max_wind_speed:g}km/h"
            )

    if rule.humidity and humidity is not None:
        if rule.humidity.min is not None and humidity < rule.humidity.min:
            warnings.append(f"Humidity {humidity}% is below minimum {rule.humidity.min:g}%")
        if rule.humidity.max is not None and humidity > rule.humidity.max:
            warnings.append(f"Humidity {humidity}% exceeds maximum {rule.humidity.max:g}%")

    return WorkabilityCheck(
        can_proceed=not warnings,
        warnings=warnings,
        restrictions=list(rule.restrictions),
    )


def get_drying_time(work_type: str, material: str | None = None) -> int | None:
    rule = get_weather_restrictions(work_type, material)
    return rule.drying_days if rule else None


def get_weather_sensitive_work() -> list[str]:
    return list(dict.fromkeys(rule.work_type for rule in WEATHER_RULES))


def required_clay_drying_days(rainfall_mm: float) -> int:
    """Drying days clay needs after a rainfall event of the given size."""
    if rainfall_mm >= 40:
        return 21
    if rainfall_mm >= 25:
        return 14
    if rainfall_mm >= 10:
        return 7
    return 0
