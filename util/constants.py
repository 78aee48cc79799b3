# util/constants.py
from urllib.parse import quote


class ExternalURIs:
    """Collaborating backend routes, relative to settings.API_BASE_URL."""

    UPLOADS = "uploads"
    FORM_FILL = "form-fill"

    @staticmethod
    def upload(slug: str) -> str:
        return f"{ExternalURIs.UPLOADS}/{quote(slug, safe='')}"

    @staticmethod
    def form_fill_job(job_id: str) -> str:
        return f"{ExternalURIs.FORM_FILL}/{quote(job_id, safe='')}"


DEFAULT_FILE_NAME = "Stored file"
DEFAULT_PROFILE = "default"
