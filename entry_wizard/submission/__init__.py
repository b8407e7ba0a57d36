"""Draft to payload conversion and saving."""

from entry_wizard.submission.adapter import (
    SaveCallback,
    SubmissionError,
    SubmitAdapter,
    coerce_value,
    shared_ownership,
    storage_save_callback,
)

__all__ = [
    "SaveCallback",
    "SubmissionError",
    "SubmitAdapter",
    "coerce_value",
    "shared_ownership",
    "storage_save_callback",
]
