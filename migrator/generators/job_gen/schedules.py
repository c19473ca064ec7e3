"""Trigger event and frequency tables for the job layer."""
from typing import Optional
from migrator.generators.types import FunctionRecord, TriggerDescriptor, TriggerInstallation
from migrator.generators.utils import split_words

WEBHOOK_INTAKE = "webhook-intake"
SCHEDULED_JOB = "scheduled-job"
QUEUE_PROCESSOR = "queue-processor"

# Frequency -> cron expression; exhaustive, anything else runs hourly
FREQUENCY_SCHEDULES = {
    "MINUTES": "*/5 * * * *",
    "HOURLY": "0 * * * *",
    "DAILY": "0 9 * * *",
    "WEEKLY": "0 9 * * 1",
    "MONTHLY": "0 9 1 * *",
    "YEARLY": "0 9 1 1 *",
}
DEFAULT_FREQUENCY = "HOURLY"

# Event type -> conversion kind; unlisted events (CLOCK included) are scheduled
EVENT_CONVERSIONS = {
    "ON_EDIT": WEBHOOK_INTAKE,
    "ON_OPEN": WEBHOOK_INTAKE,
    "ON_FORM_SUBMIT": WEBHOOK_INTAKE,
    "ON_CHANGE": QUEUE_PROCESSOR,
    "ON_SELECTION_CHANGE": QUEUE_PROCESSOR,
    "ON_INSTALL": QUEUE_PROCESSOR,
}

# Name token -> event type, checked in order (selection before change)
EVENT_NAME_TOKENS = [
    ("selection", "ON_SELECTION_CHANGE"),
    ("form", "ON_FORM_SUBMIT"),
    ("submit", "ON_FORM_SUBMIT"),
    ("edit", "ON_EDIT"),
    ("open", "ON_OPEN"),
    ("install", "ON_INSTALL"),
    ("change", "ON_CHANGE"),
]


def schedule_for(frequency: Optional[str]) -> str:
    """Cron expression for a frequency name; unknown or missing runs hourly."""
    return FREQUENCY_SCHEDULES.get((frequency or "").upper(), FREQUENCY_SCHEDULES[DEFAULT_FREQUENCY])


def event_type_from_name(name: str) -> str:
    words = split_words(name)
    for token, event_type in EVENT_NAME_TOKENS:
        if token in words:
            return event_type
    return "CLOCK"


def describe_trigger(record: FunctionRecord, installation: Optional[TriggerInstallation] = None) -> TriggerDescriptor:
    """How a trigger is re-expressed: an explicit installation wins over the name."""
    event_type = None
    frequency = None
    if installation is not None:
        event_type = installation.event_type
        frequency = installation.frequency
    if not event_type:
        event_type = event_type_from_name(record.name)

    kind = EVENT_CONVERSIONS.get(event_type, SCHEDULED_JOB)
    return TriggerDescriptor(
        event_type=event_type,
        conversion_kind=kind,
        schedule_expression=schedule_for(frequency) if kind == SCHEDULED_JOB else None,
    )
