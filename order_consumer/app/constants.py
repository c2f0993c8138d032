"""Consumer-level constants shared across modules."""
from __future__ import annotations

# Exact prefix of every output line, spelling included.
OUTPUT_PREFIX = "Message recieved from queue : "

JSON_CONTENT_TYPES = ("application/json", "text/json")


class DELIVERY_OUTCOME:
    ACKED = "ACKED"
    REJECTED = "REJECTED"
    REQUEUED = "REQUEUED"


# Upper bound on exceptions kept for the supervisor; later ones are logged and dropped.
MAX_TRACKED_HANDLER_ERRORS = 100
