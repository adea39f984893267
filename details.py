"""
Category-specific task attributes.

The wire format only has two free-form slots per task, ``time`` and
``notes``. Each category gets its own typed model here, and encode() /
decode() are the single place that maps those models onto the slots.
"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from schemas import coerce_category

MealType = Literal["breakfast", "lunch", "dinner"]
MEAL_TYPES = ("breakfast", "lunch", "dinner")

HYDRATION_TITLE = "Glass of Water"
SAFETY_TITLE = "Safety Check-in"

_NOTE_SEPARATOR = " | "
_APPOINTMENT_KEYS = {"doctor": "doctor", "location": "location", "notes": "notes"}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (trailing Z allowed); naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.astimezone(timezone.utc).isoformat() if dt else None


class MedicineDetails(BaseModel):
    kind: Literal["medicine"] = "medicine"
    dosage: str = ""
    time: str = Field("", description="Clock time, e.g. 08:30")


class MealDetails(BaseModel):
    kind: Literal["meal"] = "meal"
    meal: Optional[MealType] = None
    logged_at: Optional[datetime] = None


class HydrationDetails(BaseModel):
    kind: Literal["hydration"] = "hydration"
    logged_at: Optional[datetime] = None


class AppointmentDetails(BaseModel):
    kind: Literal["appointment"] = "appointment"
    doctor: str = ""
    location: str = ""
    notes: str = ""
    scheduled_at: Optional[datetime] = None


class SafetyDetails(BaseModel):
    kind: Literal["safety"] = "safety"
    checked_in_at: Optional[datetime] = None


CategoryDetails = Annotated[
    Union[MedicineDetails, MealDetails, HydrationDetails, AppointmentDetails, SafetyDetails],
    Field(discriminator="kind"),
]
details_adapter: TypeAdapter = TypeAdapter(CategoryDetails)


def format_appointment_notes(doctor: str, location: str, notes: str) -> str:
    return _NOTE_SEPARATOR.join(
        [f"Doctor: {doctor}", f"Location: {location}", f"Notes: {notes}"]
    )


def parse_appointment_notes(raw: Optional[str]) -> Dict[str, str]:
    """
    Split ``Doctor: X | Location: Y | Notes: Z`` into its parts.

    Segments without a recognised key are kept as free text in ``notes``,
    which covers notes written before the structured format existed.
    """
    out = {"doctor": "", "location": "", "notes": ""}
    if not raw:
        return out
    loose: List[str] = []
    for segment in raw.split("|"):
        segment = segment.strip()
        if not segment:
            continue
        key, sep, val = segment.partition(":")
        field = _APPOINTMENT_KEYS.get(key.strip().lower()) if sep else None
        if field:
            out[field] = val.strip()
        else:
            loose.append(segment)
    if loose:
        out["notes"] = " ".join(filter(None, [out["notes"], *loose]))
    return out


def encode(details: CategoryDetails) -> Dict[str, Any]:
    """Wire fields (category, time, notes and, where fixed, title) for a details model."""
    wire: Dict[str, Any] = {"category": details.kind, "time": None, "notes": None}
    if isinstance(details, MedicineDetails):
        wire["time"] = details.time or None
        wire["notes"] = details.dosage or None
    elif isinstance(details, MealDetails):
        wire["time"] = _iso(details.logged_at)
        if details.meal:
            wire["title"] = details.meal.capitalize()
    elif isinstance(details, HydrationDetails):
        wire["time"] = _iso(details.logged_at)
        wire["title"] = HYDRATION_TITLE
    elif isinstance(details, AppointmentDetails):
        wire["time"] = _iso(details.scheduled_at)
        wire["notes"] = format_appointment_notes(details.doctor, details.location, details.notes)
    elif isinstance(details, SafetyDetails):
        wire["time"] = _iso(details.checked_in_at)
        wire["title"] = SAFETY_TITLE
    return wire


def decode(task: Mapping[str, Any]) -> CategoryDetails:
    """Typed details for a wire task, chosen by its category."""
    category = coerce_category(task.get("category"))
    time = task.get("time")
    notes = task.get("notes")
    if category == "medicine":
        return MedicineDetails(dosage=notes or "", time=time or "")
    if category == "meal":
        title = (task.get("title") or "").strip().lower()
        return MealDetails(meal=title if title in MEAL_TYPES else None, logged_at=parse_timestamp(time))
    if category == "hydration":
        return HydrationDetails(logged_at=parse_timestamp(time))
    if category == "appointment":
        return AppointmentDetails(scheduled_at=parse_timestamp(time), **parse_appointment_notes(notes))
    return SafetyDetails(checked_in_at=parse_timestamp(time))
