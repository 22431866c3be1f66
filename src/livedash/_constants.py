"""Internal constants shared across the library."""

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1"
USER_AGENT = "livedash/1.0"

DEFAULT_APP_ID = "default-app-id"
DOCUMENT_ID = "current_data"
PUBLIC_COLLECTION_TEMPLATE = "/artifacts/{app_id}/public/data/dashboard"

NOT_AVAILABLE = "N/A"

# ------------------------------------------------------------------
# Income bracket midpoints
# ------------------------------------------------------------------

#: Representative value per income bracket label.  A coarse heuristic for
#: approximating an average from binned counts, not an income model.
#: Override through ``DashboardConfig.income_midpoints``.
DEFAULT_INCOME_MIDPOINTS: dict[str, float] = {
    "0-25k": 12500,
    "25k-50k": 37500,
    "50k-75k": 62500,
    "75k-100k": 87500,
    "100k+": 150000,  # high estimate for the open-ended bracket
}


def sanitize_app_id(raw_app_id: str) -> str:
    """Make *raw_app_id* usable as a single document path segment.

    Path separators become ``__`` and dots become ``-``.
    """
    return raw_app_id.replace("/", "__").replace(".", "-")


def document_path(app_id: str) -> str:
    """Full path of the dashboard document for an already sanitized *app_id*."""
    return f"{PUBLIC_COLLECTION_TEMPLATE.format(app_id=app_id)}/{DOCUMENT_ID}"
