from enum import StrEnum

class EnrichmentKind(StrEnum):
    DIRECTORY_LOOKUP = "directory-lookup"
    SOCIAL_PROFILE_LOOKUP = "social-profile-lookup"
    DECISION_MAKER_LOOKUP = "decision-maker-lookup"
    CONTACT_SCRAPE = "contact-scrape"
    TECH_STACK = "tech-stack"

class JobStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.RUNNING

class RunState(StrEnum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"
    TIMED_OUT = "timed_out"

    @property
    def is_active(self) -> bool:
        return self in (RunState.QUEUED, RunState.RUNNING)

class OutboxTopic(StrEnum):
    ENRICHMENT_COMPLETED = "enrichment.completed"
