"""
User-facing text for pipeline outcomes, shared by the CLI and the companion service.
"""

from .pipeline import FailureReason, PipelineResult

SUCCESS_MESSAGE = "Descarga iniciada."

MESSAGES = {
    FailureReason.MISSING_TOKEN: (
        "No se encontró myPlexAccessToken. Inicia sesión en Plex Web."
    ),
    FailureReason.MISSING_SERVER_ID: "No se pudo obtener clientID.",
    FailureReason.MISSING_SERVER_ACCESS: (
        "No se pudo obtener accessToken o baseUri del servidor."
    ),
    FailureReason.MISSING_CONTENT_ID: (
        "No se pudo detectar qué estás viendo (episodio/serie/etc)."
    ),
    FailureReason.NO_PARTS: "No se encontraron partes descargables.",
}


def describe(result: PipelineResult) -> str:
    """Returns the message to show the user for a finished run."""
    if result.ok:
        return SUCCESS_MESSAGE
    if result.reason is FailureReason.UNEXPECTED:
        return f"Error: {result.error}"
    return MESSAGES[result.reason]
