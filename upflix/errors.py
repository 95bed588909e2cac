from __future__ import annotations


class UpflixError(Exception):
    """Base de errores del paquete."""


class UpstreamError(UpflixError):
    """El fetch upstream no produjo un MediaRecord."""

    kind = "upstream_error"

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class TransportError(UpstreamError):
    """Fallo de red, timeout o status HTTP de error al hablar con upstream."""

    kind = "transport_error"

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.status_code = status_code


class ExtractionError(UpstreamError):
    """Documento upstream imposible de interpretar."""

    kind = "extraction_error"


class CacheIOError(UpflixError):
    """Lectura/escritura de la caché persistente fallida (o fichero corrupto)."""
