"""
Task Risk Classifier

Classifies each task as ON_TRACK, AT_RISK or OFF_TRACK from its current
state. Rules are evaluated in order and the first match wins.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .logging import get_logger
from .models import RiskAssessment, RiskFactor, Task, TaskPriority, TaskStatus

logger = get_logger(__name__)

NOT_ANALYZED_REASON = "Not analyzed yet"

URGENT_PRIORITIES = (TaskPriority.HIGH, TaskPriority.CRITICAL)


def percent_complete(time_spent: float, story_points: float) -> float:
    """time_spent / story_points rounded half-up to 2 places, as a percentage."""
    if not story_points or story_points <= 0:
        return 0.0
    ratio = (Decimal(str(time_spent or 0)) / Decimal(str(story_points))).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    return float(ratio * 100)


@dataclass
class RiskSummary:
    """Per-factor counts over a list of tasks."""
    assessments: list[RiskAssessment] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.assessments)

    def count(self, factor: RiskFactor) -> int:
        return len([a for a in self.assessments if a.risk_factor == factor])

    @property
    def on_track(self) -> int:
        return self.count(RiskFactor.ON_TRACK)

    @property
    def at_risk(self) -> int:
        return self.count(RiskFactor.AT_RISK)

    @property
    def off_track(self) -> int:
        return self.count(RiskFactor.OFF_TRACK)

    @classmethod
    def from_tasks(cls, tasks: list[Task]) -> "RiskSummary":
        """Summarize the cached assessments; tasks never analyzed read as ON_TRACK."""
        assessments = [
            t.risk or RiskAssessment(task_id=t.id, risk_factor=RiskFactor.ON_TRACK, reason=NOT_ANALYZED_REASON)
            for t in tasks
        ]
        return cls(assessments=assessments)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "on_track": self.on_track,
            "at_risk": self.at_risk,
            "off_track": self.off_track,
            "tasks": [a.to_dict() for a in self.assessments],
        }


class RiskClassifier:
    """
    Derives a risk factor per task relative to `today`.

    Usage:
        classifier = RiskClassifier(today=date(2024, 1, 10))
        factor = classifier.classify(task)
        assessments = classifier.assess_sprint(tasks)
    """

    def __init__(self, today: Optional[date] = None):
        self.today = today or date.today()

    def _evaluate(self, task: Task) -> tuple[RiskFactor, str]:
        today = self.today

        if task.is_done:
            return RiskFactor.ON_TRACK, "Task is done"

        if task.due_date is not None and task.due_date < today:
            return RiskFactor.OFF_TRACK, f"Past due date {task.due_date.isoformat()}"

        # Progress against elapsed time
        if task.start_date is not None and task.due_date is not None:
            total_days = (task.due_date - task.start_date).days
            days_passed = (today - task.start_date).days
            days_remaining = (task.due_date - today).days

            if total_days > 0:
                percent_time_elapsed = days_passed / total_days * 100
                percent_work_completed = percent_complete(task.time_spent, task.story_points)

                if percent_time_elapsed > percent_work_completed + 20:
                    return RiskFactor.AT_RISK, (
                        f"{percent_time_elapsed:.0f}% of time elapsed but only "
                        f"{percent_work_completed:.0f}% of work completed"
                    )
                if days_remaining <= 2 and percent_work_completed < 50:
                    return RiskFactor.AT_RISK, (
                        f"Due in {days_remaining} days with {percent_work_completed:.0f}% completed"
                    )

        # Due soon with little progress
        if task.due_date is not None:
            days_until_due = (task.due_date - today).days
            if 0 <= days_until_due <= 2 and task.story_points > 0:
                completed = percent_complete(task.time_spent, task.story_points)
                if completed < 50:
                    return RiskFactor.AT_RISK, f"Due in {days_until_due} days with {completed:.0f}% completed"

        # Urgent work not started
        if task.status == TaskStatus.TODO and task.priority in URGENT_PRIORITIES and task.due_date is not None:
            days_until_due = (task.due_date - today).days
            if days_until_due <= 5:
                return RiskFactor.AT_RISK, (
                    f"{task.priority.value} priority task not started, due in {days_until_due} days"
                )

        return RiskFactor.ON_TRACK, "Task is progressing as expected"

    def classify(self, task: Task) -> RiskFactor:
        """Risk factor only."""
        return self._evaluate(task)[0]

    def assess(self, task: Task) -> RiskAssessment:
        """Risk factor with a reason and a computation timestamp."""
        factor, reason = self._evaluate(task)
        return RiskAssessment(task_id=task.id, risk_factor=factor, reason=reason)

    def assess_sprint(self, tasks: list[Task]) -> list[RiskAssessment]:
        """
        Recompute every task's assessment and overwrite its cached `risk`.

        Concurrent runs over the same tasks race; the last writer wins.
        """
        assessments = []
        for task in tasks:
            assessment = self.assess(task)
            task.risk = assessment
            assessments.append(assessment)

        summary = RiskSummary(assessments)
        logger.info(
            "sprint_risks_analyzed",
            tasks=summary.total,
            on_track=summary.on_track,
            at_risk=summary.at_risk,
            off_track=summary.off_track,
        )
        return assessments


# Convenience function
def analyze_sprint_risks(tasks: list[Task], today: Optional[date] = None) -> RiskSummary:
    """
    Classify every task and summarize the result.

    Example:
        summary = analyze_sprint_risks(tasks, today=date(2024, 1, 10))
        print(summary.off_track)
    """
    return RiskSummary(RiskClassifier(today).assess_sprint(tasks))
