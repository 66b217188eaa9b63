"""
Sprint Analytics

Working-day calendar, capacity, risk, burndown and trend analytics over
sprint snapshots.
"""

__version__ = "1.0.0"

from .errors import (
    AnalyticsError,
    ValidationError,
    NotFoundError,
    IncompleteSnapshotError,
    IntegrationError
)

from .models import (
    Sprint,
    SprintEvent,
    SprintSnapshot,
    SprintStatus,
    Task,
    TaskStatus,
    TaskPriority,
    TaskCategory,
    TeamMember,
    LeaveDay,
    Holiday,
    RiskAssessment,
    RiskFactor,
    Role
)

from .calendar import (
    HolidayCalendar,
    is_working_day,
    working_days_between,
    add_working_days,
    build_holiday_set,
    is_holiday
)

from .sprint_dates import SprintDateCalculator, SprintDates, calculate_sprint_dates

from .capacity import (
    CapacityCalculator,
    CapacityThresholds,
    CapacitySummary,
    CapacityStatus,
    MemberUtilization,
    UtilizationStatus,
    TeamCapacitySummary,
    calculate_team_capacity
)

from .risk import RiskClassifier, RiskSummary, analyze_sprint_risks

from .burndown import BurndownEngine, BurndownPoint, SprintBurndown, build_burndown

from .trends import (
    HistoricalTrendAggregator,
    TrendReport,
    VelocityStats,
    build_trend_report
)

from .metrics import SprintMetrics

from .schemas import parse_snapshot

from .config import EngineConfig

from .logging import configure_logging, get_logger

__all__ = [
    # Version
    "__version__",

    # Errors
    "AnalyticsError",
    "ValidationError",
    "NotFoundError",
    "IncompleteSnapshotError",
    "IntegrationError",

    # Models
    "Sprint",
    "SprintEvent",
    "SprintSnapshot",
    "SprintStatus",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "TaskCategory",
    "TeamMember",
    "LeaveDay",
    "Holiday",
    "RiskAssessment",
    "RiskFactor",
    "Role",

    # Calendar
    "HolidayCalendar",
    "is_working_day",
    "working_days_between",
    "add_working_days",
    "build_holiday_set",
    "is_holiday",

    # Sprint dates
    "SprintDateCalculator",
    "SprintDates",
    "calculate_sprint_dates",

    # Capacity
    "CapacityCalculator",
    "CapacityThresholds",
    "CapacitySummary",
    "CapacityStatus",
    "MemberUtilization",
    "UtilizationStatus",
    "TeamCapacitySummary",
    "calculate_team_capacity",

    # Risk
    "RiskClassifier",
    "RiskSummary",
    "analyze_sprint_risks",

    # Burndown
    "BurndownEngine",
    "BurndownPoint",
    "SprintBurndown",
    "build_burndown",

    # Trends
    "HistoricalTrendAggregator",
    "TrendReport",
    "VelocityStats",
    "build_trend_report",

    # Metrics
    "SprintMetrics",

    # Schemas
    "parse_snapshot",

    # Config and logging
    "EngineConfig",
    "configure_logging",
    "get_logger",
]
