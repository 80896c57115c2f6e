"""Classification des erreurs et messages utilisateur.

Objectif du module
------------------
- Ramener une erreur quelconque (exception, payload d'API) à une taxonomie fermée (`ErrorType`).
- Dériver un message utilisateur, une action suggérée et un indicateur de retry (`ErrorInfo`).
- Journaliser chaque classification sous forme d'enregistrement structuré.
- Fournir `retry_operation`, un retry borné avec backoff exponentiel qui s'interrompt dès qu'une
  erreur non rejouable est rencontrée.

L'ordre des tests de `detect_error_type` fait foi: la première catégorie reconnue l'emporte, même
si l'erreur correspond aussi à une catégorie suivante.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

import httpx
import structlog

from workoutsync.core.http_constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY_S,
    HTTP_BAD_REQUEST,
    HTTP_FORBIDDEN,
    HTTP_NOT_FOUND,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
)

log = structlog.get_logger(__name__)

T = TypeVar("T")


class ErrorType(str, Enum):
    """Taxonomie des erreurs présentées à l'utilisateur."""

    NETWORK = "NETWORK"
    VALIDATION = "VALIDATION"
    AUTHENTICATION = "AUTHENTICATION"
    PERMISSION = "PERMISSION"
    DATA = "DATA"
    PHONE = "PHONE"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ErrorTemplate:
    """Message, action suggérée et rejouabilité associés à un type d'erreur."""

    user_message: str
    actionable: str
    retryable: bool


@dataclass(frozen=True)
class ErrorInfo:
    """Erreur classifiée, prête à être présentée (le message brut n'est jamais affiché)."""

    type: ErrorType
    message: str
    user_message: str
    actionable: str
    retryable: bool
    original_error: Any = None
    context: str | None = None


ERROR_MESSAGES: dict[ErrorType, ErrorTemplate] = {
    ErrorType.NETWORK: ErrorTemplate(
        user_message="Network connection issue. Please check your internet connection.",
        actionable="Try again or check your internet connection.",
        retryable=True,
    ),
    ErrorType.VALIDATION: ErrorTemplate(
        user_message="Please check your input and try again.",
        actionable="Review the highlighted fields and correct any errors.",
        retryable=False,
    ),
    ErrorType.AUTHENTICATION: ErrorTemplate(
        user_message="Your session has expired. Please log in again.",
        actionable="Please log in again to continue.",
        retryable=False,
    ),
    ErrorType.PERMISSION: ErrorTemplate(
        user_message="Permission required to continue.",
        actionable="Please allow the requested permission in your browser settings.",
        retryable=False,
    ),
    ErrorType.DATA: ErrorTemplate(
        user_message="Unable to load your data. Please try again.",
        actionable="Refresh the page or try again later.",
        retryable=True,
    ),
    ErrorType.PHONE: ErrorTemplate(
        user_message=(
            "Please enter a valid phone number with country code (e.g., +1 555-555-5555)"
        ),
        actionable=(
            "Make sure your phone number includes the country code and is in the correct format."
        ),
        retryable=False,
    ),
    ErrorType.UNKNOWN: ErrorTemplate(
        user_message="Something went wrong. Please try again.",
        actionable="If the problem persists, please contact support.",
        retryable=True,
    ),
}

PHONE_ERROR_MESSAGES = {
    "INVALID_FORMAT": (
        "Please enter a valid phone number with country code (e.g., +1 555-555-5555)"
    ),
    "ALREADY_REGISTERED": "This phone number is already registered. Try logging in instead.",
    "INVALID_COUNTRY_CODE": "Please include a valid country code (e.g., +1 for US)",
    "TOO_SHORT": "Phone number is too short. Please include the full number with country code.",
    "TOO_LONG": "Phone number is too long. Please check the format.",
    "INVALID_CHARACTERS": "Phone number contains invalid characters. Use only numbers and + sign.",
    "MISSING_COUNTRY_CODE": "Please include a country code at the beginning (e.g., +1)",
}

_NETWORK_WORDS = ("network", "fetch", "connection", "timeout")
_NETWORK_CODES = {"NETWORK_ERROR", "TIMEOUT"}
_AUTH_WORDS = ("unauthorized", "forbidden", "authentication", "session")
_AUTH_CODES = {"AUTH_ERROR", "SESSION_EXPIRED", "NOT_AUTHENTICATED"}
_PERMISSION_WORDS = ("permission", "denied", "blocked")
_PERMISSION_NAMES = {"NotAllowedError", "PermissionDeniedError"}
_PHONE_CODES = {"INVALID_PHONE", "PHONE_ALREADY_EXISTS"}
_VALIDATION_WORDS = ("validation", "invalid", "required")
_VALIDATION_CODES = {"VALIDATION_ERROR"}
_DATA_WORDS = ("not found", "does not exist")
_DATA_CODES = {"NOT_FOUND", "PROFILE_NOT_FOUND"}


def _field(error: Any, name: str) -> Any:
    """Lit `name` comme clé (mapping) ou comme attribut."""
    if isinstance(error, Mapping):
        return error.get(name)
    return getattr(error, name, None)


def error_status(error: Any) -> int | None:
    """Statut HTTP porté par l'erreur (`status`, `status_code` ou réponse httpx)."""
    for name in ("status", "status_code"):
        value = _field(error, name)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def error_code(error: Any) -> str:
    value = _field(error, "code")
    return value if isinstance(value, str) else ""


def error_name(error: Any) -> str:
    value = _field(error, "name")
    if isinstance(value, str) and value:
        return value
    if isinstance(error, BaseException):
        return type(error).__name__
    return ""


def error_message(error: Any) -> str:
    """Message brut de l'erreur, pour les diagnostics uniquement."""
    if error is None:
        return ""
    for name in ("message", "error", "detail"):
        value = _field(error, name)
        if isinstance(value, str) and value:
            return value
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)


def _error_text(error: Any) -> str:
    name = error_name(error)
    message = error_message(error)
    return (f"{name}: {message}" if name else message).lower()


def _contains(text: str, words: tuple[str, ...]) -> bool:
    return any(word in text for word in words)


def detect_error_type(error: Any, context: str | None = None) -> ErrorType:
    """Détermine le type d'erreur; la première règle satisfaite l'emporte."""
    if error is None:
        return ErrorType.UNKNOWN

    text = _error_text(error)
    status = error_status(error)
    code = error_code(error)

    if (
        isinstance(error, httpx.TransportError | ConnectionError | TimeoutError)
        or _contains(text, _NETWORK_WORDS)
        or code in _NETWORK_CODES
        or (status is not None and HTTP_STATUS_SERVER_ERROR_MIN <= status < HTTP_STATUS_SERVER_ERROR_MAX)
    ):
        return ErrorType.NETWORK

    if (
        _contains(text, _AUTH_WORDS)
        or status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN)
        or code in _AUTH_CODES
    ):
        return ErrorType.AUTHENTICATION

    if (
        isinstance(error, PermissionError)
        or _contains(text, _PERMISSION_WORDS)
        or error_name(error) in _PERMISSION_NAMES
    ):
        return ErrorType.PERMISSION

    if "phone" in (context or "").lower() or "phone" in text or code in _PHONE_CODES:
        return ErrorType.PHONE

    if (
        _contains(text, _VALIDATION_WORDS)
        or status in (HTTP_BAD_REQUEST, HTTP_UNPROCESSABLE_ENTITY)
        or code in _VALIDATION_CODES
    ):
        return ErrorType.VALIDATION

    if _contains(text, _DATA_WORDS) or status == HTTP_NOT_FOUND or code in _DATA_CODES:
        return ErrorType.DATA

    return ErrorType.UNKNOWN


def _phone_specific_error(error: Any) -> tuple[str, str]:
    message = error_message(error).lower()
    code = error_code(error)

    if "already" in message or "exists" in message or code == "PHONE_ALREADY_EXISTS":
        return (
            PHONE_ERROR_MESSAGES["ALREADY_REGISTERED"],
            "Try logging in instead, or contact support if you forgot your password.",
        )
    if "country" in message or "code" in message or code == "INVALID_COUNTRY_CODE":
        return (
            PHONE_ERROR_MESSAGES["INVALID_COUNTRY_CODE"],
            "Make sure to include your country code (e.g., +1 for US, +44 for UK).",
        )
    if "short" in message or "length" in message or code == "PHONE_TOO_SHORT":
        return (
            PHONE_ERROR_MESSAGES["TOO_SHORT"],
            "Include the full phone number with country code.",
        )
    if "long" in message or code == "PHONE_TOO_LONG":
        return (
            PHONE_ERROR_MESSAGES["TOO_LONG"],
            "Check that your phone number is in the correct format.",
        )
    if "invalid" in message or "character" in message or code == "INVALID_CHARACTERS":
        return (
            PHONE_ERROR_MESSAGES["INVALID_CHARACTERS"],
            "Use only numbers and the + sign for country code.",
        )
    return (
        PHONE_ERROR_MESSAGES["INVALID_FORMAT"],
        "Make sure your phone number includes the country code and is in the correct format.",
    )


def _validation_specific_error(error: Any) -> tuple[str, str] | None:
    message = error_message(error).lower()
    field = _field(error, "field") or ""

    if field == "name" or "name" in message:
        return (
            "Please enter a valid name.",
            "Name should be at least 2 characters long and contain only letters.",
        )
    if field == "email" or "email" in message:
        return (
            "Please enter a valid email address.",
            "Make sure your email address is in the correct format (e.g., user@example.com).",
        )
    if field == "password" or "password" in message:
        return (
            "Password must be at least 8 characters long and include a letter and a number.",
            "Choose a password with at least 8 characters, including a letter and a number.",
        )
    return None


def build_error_record(
    info: ErrorInfo, additional_context: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Construit l'enregistrement structuré journalisé pour une erreur classifiée.

    L'URL et le user agent proviennent du contexte de requête lié par le middleware
    (`structlog.contextvars`); hors requête ils valent "server".
    """
    request_ctx = structlog.contextvars.get_contextvars()
    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "type": info.type.value,
        "message": info.message,
        "user_message": info.user_message,
        "context": info.context,
        "original_error": repr(info.original_error),
        "additional_context": additional_context,
        "url": request_ctx.get("url", "server"),
        "user_agent": request_ctx.get("user_agent", "server"),
    }


def log_error(info: ErrorInfo, additional_context: dict[str, Any] | None = None) -> dict[str, Any]:
    """Journalise une erreur classifiée et renvoie l'enregistrement émis."""
    record = build_error_record(info, additional_context)
    fields = {k: v for k, v in record.items() if k != "timestamp"}
    log.error("error_classified", occurred_at=record["timestamp"], **fields)
    return record


def create_error_info(
    error: Any, context: str | None = None, custom_message: str | None = None
) -> ErrorInfo:
    """Point d'entrée unique: classifie `error` et produit un `ErrorInfo` journalisé."""
    error_type = detect_error_type(error, context)
    template = ERROR_MESSAGES[error_type]

    user_message = custom_message or template.user_message
    actionable = template.actionable

    if error_type is ErrorType.PHONE:
        user_message, actionable = _phone_specific_error(error)
    elif error_type is ErrorType.VALIDATION:
        refined = _validation_specific_error(error)
        if refined:
            user_message, actionable = refined

    info = ErrorInfo(
        type=error_type,
        message=error_message(error),
        user_message=user_message,
        actionable=actionable,
        retryable=template.retryable,
        original_error=error,
        context=context,
    )
    log_error(info)
    return info


def handle_api_error(error: Any, context: str | None = None) -> ErrorInfo:
    """Classifie une erreur d'API en privilégiant le payload de réponse quand il existe."""
    details = error
    response = _field(error, "response")
    if response is not None and _field(response, "data") is not None:
        details = _field(response, "data")
    elif isinstance(error, httpx.HTTPStatusError):
        details = _response_payload(error.response)
    elif _field(error, "data") is not None:
        details = _field(error, "data")
    return create_error_info(details, context)


def _response_payload(response: httpx.Response) -> Any:
    try:
        payload = response.json()
    except ValueError:
        return {"status": response.status_code, "message": response.text}
    if isinstance(payload, dict):
        return {"status": response.status_code, **payload}
    return {"status": response.status_code, "message": str(payload)}


def handle_location_error(error: Any) -> ErrorInfo:
    """Classifie une erreur de géolocalisation avec des messages dédiés."""
    info = create_error_info(error, "location")
    name = error_name(error)
    if name == "NotAllowedError":
        return dataclasses.replace(
            info,
            user_message="Location access is required to find nearby workout partners.",
            actionable=(
                "Please enable location access in your browser settings and refresh the page."
            ),
        )
    if name == "PositionUnavailableError":
        return dataclasses.replace(
            info,
            user_message="Unable to determine your location.",
            actionable="Make sure you have a good internet connection and try again.",
        )
    if name == "TimeoutError":
        return dataclasses.replace(
            info,
            user_message="Location request timed out.",
            actionable="Please try again or enter your location manually.",
        )
    return info


def handle_notification_error(error: Any) -> ErrorInfo:
    """Classifie une erreur de permission de notification."""
    info = create_error_info(error, "notifications")
    if error_name(error) == "NotAllowedError":
        return dataclasses.replace(
            info,
            user_message="Notification permission is required for workout reminders.",
            actionable=(
                "Please enable notifications in your browser settings to receive workout updates."
            ),
        )
    return info


def is_retryable(info: ErrorInfo) -> bool:
    return info.retryable


def create_error_boundary_message(info: ErrorInfo) -> str:
    return f"Something went wrong: {info.user_message}. {info.actionable}"


@dataclass(frozen=True)
class RetryOptions:
    """Paramètres de `retry_operation` (délai en secondes)."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay: float = DEFAULT_RETRY_DELAY_S
    backoff: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Délai après l'échec de la tentative `attempt` (1-indexée)."""
        if self.backoff:
            return self.delay * 2 ** (attempt - 1)
        return self.delay


async def retry_operation(
    operation: Callable[[], Awaitable[T]], options: RetryOptions | None = None
) -> T:
    """Exécute `operation` avec retry séquentiel.

    Une erreur dont le type n'est pas rejouable est relancée immédiatement. Après la dernière
    tentative, la dernière erreur est relancée (pas de délai après la dernière tentative).
    """
    options = options or RetryOptions()
    last_error: Exception | None = None

    for attempt in range(1, options.max_attempts + 1):
        try:
            return await operation()
        except Exception as err:
            last_error = err
            error_type = detect_error_type(err)
            if not ERROR_MESSAGES[error_type].retryable:
                raise
            if attempt == options.max_attempts:
                break
            delay = options.delay_for(attempt)
            log.warning(
                "retry_scheduled",
                attempt=attempt,
                max_attempts=options.max_attempts,
                delay_s=delay,
                error_type=error_type.value,
            )
            await asyncio.sleep(delay)

    assert last_error is not None
    raise last_error
