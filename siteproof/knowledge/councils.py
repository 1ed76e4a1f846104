"""Council approval timeframes and performance data."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class CouncilData:
    name: str
    state: str
    average_days: int
    statutory_target: int
    performance_rating: str  # EXCELLENT | GOOD | AVERAGE | POOR | VERY_POOR
    common_delays: tuple[str, ...] = field(default_factory=tuple)
    peak_periods: tuple[str, ...] = field(default_factory=tuple)
    fast_track_available: bool = False
    notes: str | None = None

    @property
    def delay_ratio(self) -> float:
        return self.average_days / self.statutory_target


COUNCILS: tuple[CouncilData, ...] = (
    # NSW
    CouncilData(
        name="Georges River",
        state="NSW",
        average_days=259,
        statutory_target=40,
        performance_rating="VERY_POOR",
        common_delays=(
            "High volume of applications",
            "Complex environmental assessments",
            "Heritage considerations",
            "Traffic impact studies required",
        ),
        peak_periods=("March-May", "September-November"),
        notes="Consistently ranks among slowest councils in NSW",
    ),
    CouncilData(
        name="City of Sydney",
        state="NSW",
        average_days=95,
        statutory_target=40,
        performance_rating="POOR",
        common_delays=(
            "Design excellence requirements",
            "Heritage overlays",
            "Complex urban context",
            "Multiple referral authorities",
        ),
        peak_periods=("February-April", "August-October"),
        fast_track_available=True,
        notes="Fast-track available for complying development",
    ),
    CouncilData(
        name="Northern Beaches",
        state="NSW",
        average_days=145,
        statutory_target=40,
        performance_rating="POOR",
        common_delays=(
            "Bushfire assessments",
            "Coastal protection requirements",
            "Flora and fauna studies",
            "Geotechnical reports",
        ),
        peak_periods=("January-March", "September-November"),
    ),
    CouncilData(
        name="Blacktown",
        state="NSW",
        average_days=62,
        statutory_target=40,
        performance_rating="AVERAGE",
        common_delays=("Growth area infrastructure", "Flood studies", "Traffic generation"),
        peak_periods=("March-May", "October-December"),
        fast_track_available=True,
    ),
    # VIC
    CouncilData(
        name="City of Melbourne",
        state="VIC",
        average_days=78,
        statutory_target=60,
        performance_rating="AVERAGE",
        common_delays=(
            "Urban design requirements",
            "Wind impact studies",
            "Heritage assessments",
            "Public notification periods",
        ),
        peak_periods=("February-April", "July-September"),
        fast_track_available=True,
    ),
    CouncilData(
        name="City of Casey",
        state="VIC",
        average_days=58,
        statutory_target=60,
        performance_rating="GOOD",
        common_delays=("Growth area planning", "Infrastructure contributions", "Native vegetation"),
        peak_periods=("March-May", "September-November"),
        fast_track_available=True,
    ),
    # QLD
    CouncilData(
        name="Brisbane City",
        state="QLD",
        average_days=35,
        statutory_target=35,
        performance_rating="EXCELLENT",
        common_delays=(
            "Flood overlay assessments",
            "Character precinct requirements",
            "Transport assessments",
        ),
        peak_periods=("February-April", "October-December"),
        fast_track_available=True,
        notes="Generally efficient with good online systems",
    ),
    CouncilData(
        name="Gold Coast",
        state="QLD",
        average_days=42,
        statutory_target=35,
        performance_rating="GOOD",
        common_delays=("Coastal management", "Flood studies", "Tourism precinct requirements"),
        peak_periods=("January-March", "September-November"),
        fast_track_available=True,
    ),
    # WA
    CouncilData(
        name="City of Perth",
        state="WA",
        average_days=67,
        statutory_target=60,
        performance_rating="AVERAGE",
        common_delays=("Design review panel", "Heritage considerations", "Plot ratio bonuses"),
        peak_periods=("March-May", "August-October"),
    ),
    # State authorities
    CouncilData(
        name="NSW EPA",
        state="NSW",
        average_days=180,
        statutory_target=90,
        performance_rating="POOR",
        common_delays=(
            "Environmental impact statements",
            "Public consultation periods",
            "Technical assessments",
            "Conditions negotiation",
        ),
        peak_periods=("Year-round high volume",),
        notes="Environment Protection Authority - state significant developments",
    ),
    CouncilData(
        name="WA EPA",
        state="WA",
        average_days=840,
        statutory_target=130,
        performance_rating="VERY_POOR",
        common_delays=(
            "Environmental impact assessments",
            "Appeals process",
            "Public environmental review",
            "Ministerial approval required",
            "Native title considerations",
        ),
        peak_periods=("Year-round delays",),
        notes="Longest approval times in Australia for major projects",
    ),
)

# (upper bound on delay ratio, risk level, recommendation); evaluated in order
RISK_TIERS: tuple[tuple[float, str, str], ...] = (
    (1.2, "LOW", "Council generally meets targets - standard timeline acceptable"),
    (2.0, "MEDIUM", "Allow 50% buffer on statutory timeframe"),
    (4.0, "HIGH", "Significant delays expected - consider pre-lodgement meetings"),
    (float("inf"), "EXTREME", "Extreme delays common - explore alternative approval pathways"),
)


def get_council_data(council_name: str) -> CouncilData | None:
    wanted = council_name.strip().lower()
    for council in COUNCILS:
        if council.name.lower() == wanted:
            return council
    return None


def risk_tier(delay_ratio: float) -> tuple[str, str]:
    for upper, level, recommendation in RISK_TIERS:
        if delay_ratio <= upper:
            return level, recommendation
    raise ValueError(f"Invalid delay ratio: {delay_ratio}")


def get_council_approval_time(council_name: str) -> dict:
    """Average approval days with a rule-based risk tier."""
    council = get_council_data(council_name)
    if council is None:
        return {
            "council": council_name,
            "average_days": 60,
            "statutory_target": 40,
            "risk_level": "MEDIUM",
            "recommendation": "No historical data available - allow standard buffer",
        }

    risk_level, recommendation = risk_tier(council.delay_ratio)
    return {
        "council": council.name,
        "average_days": council.average_days,
        "statutory_target": council.statutory_target,
        "risk_level": risk_level,
        "recommendation": recommendation,
    }


def get_councils_by_performance(rating: str) -> list[CouncilData]:
    return [council for council in COUNCILS if council.performance_rating == rating]


def get_worst_councils(limit: int = 5) -> list[CouncilData]:
    return sorted(COUNCILS, key=lambda council: council.average_days, reverse=True)[:limit]


def get_best_councils(limit: int = 5) -> list[CouncilData]:
    return sorted(COUNCILS, key=lambda council: council.average_days)[:limit]


def calculate_delay_risk(
    council_name: str, lodgement_date: date, required_approval_date: date
) -> dict:
    """Compare the time available before a required approval date to the council average."""
    council = get_council_data(council_name)
    available_days = (required_approval_date - lodgement_date).days
    expected_days = council.average_days if council else 60
    buffer_days = available_days - expected_days

    if buffer_days < -30:
        risk_assessment = "CRITICAL - Approval highly unlikely by required date"
        success_probability = 0.1
    elif buffer_days < 0:
        risk_assessment = "HIGH - Approval unlikely without fast-tracking"
        success_probability = 0.3
    elif buffer_days < 30:
        risk_assessment = "MEDIUM - Limited buffer for delays"
        success_probability = 0.6
    elif buffer_days < 60:
        risk_assessment = "LOW - Reasonable buffer available"
        success_probability = 0.8
    else:
        risk_assessment = "MINIMAL - Ample time for approval"
        success_probability = 0.95

    return {
        "available_days": available_days,
        "expected_days": expected_days,
        "buffer_days": buffer_days,
        "risk_assessment": risk_assessment,
        "success_probability": success_probability,
    }
