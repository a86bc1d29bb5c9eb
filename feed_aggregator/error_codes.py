"""Stable failure codes for per-source fetch/validate/extract failures.

Used by: json_fetch, validate, extract, pipeline, logging, jobs/build_feed.
"""

FETCH_TIMEOUT = "FETCH_TIMEOUT"
FETCH_TRANSIENT = "FETCH_TRANSIENT"
RATE_LIMITED = "RATE_LIMITED"
FETCH_PERMANENT = "FETCH_PERMANENT"

  # Payload codes
NON_JSON = "NON_JSON"            # body does not start with "{" (HTML error page etc.)
PARSE_ERROR = "PARSE_ERROR"      # looked like JSON, json.loads failed
SHAPE_ERROR = "SHAPE_ERROR"      # expected array field missing / wrong type

  # Run-level codes
EMPTY_FEED = "EMPTY_FEED"        # zero items collected across all sources
