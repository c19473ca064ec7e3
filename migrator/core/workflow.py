from enum import Enum


class Classification(str, Enum):
    API_ENDPOINT = "APIEndpoint"
    TRIGGER = "Trigger"
    UTILITY = "Utility"


class TargetKind(str, Enum):
    ENDPOINT = "endpoint"
    JOB = "job"
    UI = "ui"
    MOBILE_UI = "mobile-ui"


# Output subtree per target
TARGET_ROOTS = {
    TargetKind.ENDPOINT: "service",
    TargetKind.JOB: "worker",
    TargetKind.UI: "web",
    TargetKind.MOBILE_UI: "mobile",
}


class RunStage(str, Enum):
    CLASSIFY = "CLASSIFY"
    BUILD_IDENTIFIERS = "BUILD_IDENTIFIERS"
    EMIT = "EMIT"
    ASSEMBLE = "ASSEMBLE"
    WRITE = "WRITE"
    DONE = "DONE"
    FAILED = "FAILED"


class RunStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"
