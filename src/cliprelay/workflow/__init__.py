"""Request workflow: scratch storage, submission parsing, orchestration."""

from cliprelay.workflow.orchestrator import RequestOrchestrator, SubmissionReceiver
from cliprelay.workflow.scratch import ScratchSpace, release_artifact, sanitize_filename
from cliprelay.workflow.submission import Submission, SubmissionForm, parse_form
from cliprelay.workflow.timeline import RequestTimeline, TimelineEvent

__all__ = [
    "RequestOrchestrator",
    "RequestTimeline",
    "ScratchSpace",
    "Submission",
    "SubmissionForm",
    "SubmissionReceiver",
    "TimelineEvent",
    "parse_form",
    "release_artifact",
    "sanitize_filename",
]
