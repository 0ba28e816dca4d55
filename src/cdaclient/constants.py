"""Endpoints, resource paths and request defaults for the Content Delivery API."""

ENDPOINT_PROD = "https://cdn.contentful.com"
"""Production delivery endpoint (published content only)."""

ENDPOINT_PREVIEW = "https://preview.contentful.com"
"""Preview endpoint (draft content, requires a preview token)."""

PATH_SPACES = "spaces"
PATH_CONTENT_TYPES = "content_types"
PATH_ENTRIES = "entries"
PATH_ASSETS = "assets"
PATH_SYNC = "sync"

PARAM_SYNC_TOKEN = "sync_token"
PARAM_INITIAL = "initial"

USER_AGENT = "cdaclient-python"
