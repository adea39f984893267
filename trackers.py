"""
Tracker views over a user's task list.

Each function takes the full list returned by GET /api/tasks/{userId} and
derives what one tracker shows. "Today" means the task's createdAt falls on
the same UTC calendar date as ``now``.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from details import MEAL_TYPES, AppointmentDetails, decode, parse_timestamp

DAILY_GOAL = 8
# Glasses that may be logged beyond the goal
HYDRATION_OVERFLOW = 4
MISSED_CHECKIN_HOURS = 12

Task = Mapping[str, Any]


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


def _created(task: Task) -> Optional[datetime]:
    return parse_timestamp(task.get("createdAt"))


def _is_today(task: Task, now: datetime) -> bool:
    created = _created(task)
    return created is not None and created.astimezone(timezone.utc).date() == now.astimezone(timezone.utc).date()


def _task_id(task: Task) -> Optional[str]:
    return task.get("id") or task.get("_id")


def by_category(tasks: Iterable[Task], category: str) -> List[Task]:
    return [t for t in tasks if t.get("category") == category]


@dataclass
class MedicineEntry:
    id: Optional[str]
    name: str
    dosage: str
    time: str
    taken: bool


@dataclass
class MedicineSchedule:
    items: List[MedicineEntry] = field(default_factory=list)

    @property
    def taken_count(self) -> int:
        return sum(1 for m in self.items if m.taken)

    @property
    def pending_count(self) -> int:
        return len(self.items) - self.taken_count


def medicine_schedule(tasks: Iterable[Task]) -> MedicineSchedule:
    items = []
    for t in by_category(tasks, "medicine"):
        d = decode(t)
        items.append(MedicineEntry(
            id=_task_id(t), name=t.get("title", ""), dosage=d.dosage, time=d.time,
            taken=bool(t.get("isCompleted")),
        ))
    return MedicineSchedule(items)


@dataclass
class MealSlot:
    type: str
    completed: bool = False
    id: Optional[str] = None
    logged_at: Optional[datetime] = None


def meals_today(tasks: Iterable[Task], now: Optional[datetime] = None) -> List[MealSlot]:
    """Breakfast, lunch and dinner; a slot is done once a completed meal task for it exists today."""
    now = _now(now)
    slots = {m: MealSlot(m) for m in MEAL_TYPES}
    for t in by_category(tasks, "meal"):
        if not _is_today(t, now):
            continue
        meal = decode(t).meal
        if meal is None or slots[meal].completed:
            continue
        slots[meal] = MealSlot(meal, bool(t.get("isCompleted")), _task_id(t), _created(t))
    return [slots[m] for m in MEAL_TYPES]


@dataclass
class HydrationStatus:
    task_ids: List[Optional[str]]
    goal: int = DAILY_GOAL

    @property
    def glasses(self) -> int:
        return len(self.task_ids)

    @property
    def progress(self) -> float:
        return min(self.glasses / self.goal * 100, 100.0) if self.goal else 100.0

    @property
    def can_add(self) -> bool:
        return self.glasses < self.goal + HYDRATION_OVERFLOW

    @property
    def last_task_id(self) -> Optional[str]:
        """Glass removed by an "undo": the most recently logged one."""
        return self.task_ids[-1] if self.task_ids else None


def hydration_today(tasks: Iterable[Task], now: Optional[datetime] = None, goal: int = DAILY_GOAL) -> HydrationStatus:
    now = _now(now)
    today = [t for t in by_category(tasks, "hydration") if _is_today(t, now)]
    today.sort(key=lambda t: _created(t) or now)
    return HydrationStatus([_task_id(t) for t in today], goal)


@dataclass
class Appointment:
    id: Optional[str]
    title: str
    details: AppointmentDetails


@dataclass
class AppointmentLists:
    upcoming: List[Appointment] = field(default_factory=list)
    past: List[Appointment] = field(default_factory=list)


def appointments(tasks: Iterable[Task], now: Optional[datetime] = None) -> AppointmentLists:
    """Split appointments around ``now``; ones without a parseable time are in neither list."""
    now = _now(now)
    out = AppointmentLists()
    for t in by_category(tasks, "appointment"):
        d = decode(t)
        if d.scheduled_at is None:
            continue
        appt = Appointment(_task_id(t), t.get("title", ""), d)
        (out.upcoming if d.scheduled_at >= now else out.past).append(appt)
    out.upcoming.sort(key=lambda a: a.details.scheduled_at)
    out.past.sort(key=lambda a: a.details.scheduled_at, reverse=True)
    return out


@dataclass
class SafetyStatus:
    last_check_in: Optional[datetime]
    checked_in_today: bool
    hours_since: Optional[float]

    @property
    def missed(self) -> bool:
        """More than MISSED_CHECKIN_HOURS since the last check-in and none today."""
        return (
            self.hours_since is not None
            and self.hours_since > MISSED_CHECKIN_HOURS
            and not self.checked_in_today
        )


def safety_status(tasks: Iterable[Task], now: Optional[datetime] = None) -> SafetyStatus:
    now = _now(now)
    stamps = [
        c for c in (_created(t) for t in by_category(tasks, "safety") if t.get("isCompleted"))
        if c is not None
    ]
    if not stamps:
        return SafetyStatus(None, False, None)
    last = max(stamps)
    hours = (now - last).total_seconds() / 3600
    return SafetyStatus(last, last.astimezone(timezone.utc).date() == now.astimezone(timezone.utc).date(), hours)


def dashboard_summary(tasks: Iterable[Task], now: Optional[datetime] = None) -> Dict[str, Any]:
    tasks = list(tasks)
    now = _now(now)

    def done(category: str) -> int:
        return sum(1 for t in by_category(tasks, category) if t.get("isCompleted"))

    return {
        "medicines": done("medicine"),
        "meals": done("meal"),
        "hydration": done("hydration"),
        "check_in": safety_status(tasks, now).checked_in_today,
    }
