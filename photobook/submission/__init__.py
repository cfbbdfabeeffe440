from photobook.submission.handoff import (
    build_whatsapp_link,
    render_handoff_message,
    render_template,
    validate_template,
)
from photobook.submission.pipeline import (
    SubmissionError,
    SubmissionPipeline,
    SubmissionResult,
    build_payload,
)

__all__ = [
    "SubmissionError",
    "SubmissionPipeline",
    "SubmissionResult",
    "build_payload",
    "build_whatsapp_link",
    "render_handoff_message",
    "render_template",
    "validate_template",
]
