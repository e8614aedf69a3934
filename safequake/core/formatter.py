"""Message formatting - Pure functions.

This module formats seismic events into notification messages: browser
push notifications and in-app toasts (localised it/en/es), Telegram alert,
advice and news-post messages, and the Telegram bot texts.
All functions are pure with no side effects.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from safequake.core.advice import Advice
from safequake.core.seismic_event import SeismicEvent
from safequake.core.user import DEFAULT_LANGUAGE


ROME = ZoneInfo("Europe/Rome")

APP_NAME = "SafeQuake Alert"


@dataclass(frozen=True)
class Labels:
    """Language-specific field labels."""
    magnitude: str
    zone: str
    date: str
    depth: str
    distance: str
    permission_missing: str
    notifications_disabled: str


LABELS: dict[str, Labels] = {
    "it": Labels(
        magnitude="Magnitudo",
        zone="Zona",
        date="Data",
        depth="Profondità",
        distance="Distanza",
        permission_missing="Per ricevere le notifiche push abilita i permessi del browser.",
        notifications_disabled="Le tue notifiche sono disattivate.",
    ),
    "en": Labels(
        magnitude="Magnitude",
        zone="Zone",
        date="Date",
        depth="Depth",
        distance="Distance",
        permission_missing="To receive push notifications, allow notifications in your browser.",
        notifications_disabled="Your notifications are disabled.",
    ),
    "es": Labels(
        magnitude="Magnitud",
        zone="Zona",
        date="Fecha",
        depth="Profundidad",
        distance="Distancia",
        permission_missing="Para recibir notificaciones push, habilita los permisos del navegador.",
        notifications_disabled="Tus notificaciones están desactivadas.",
    ),
}


@dataclass(frozen=True)
class PushNotification:
    """Payload for the browser Notification API."""
    title: str
    body: str


@dataclass(frozen=True)
class Toast:
    """Payload for an in-app toast."""
    title: str
    lines: tuple[str, ...]


def get_labels(language: str) -> Labels:
    """Labels for a language, falling back to Italian."""
    return LABELS.get(language, LABELS[DEFAULT_LANGUAGE])


def format_italian_time(value: datetime) -> str:
    """Render a UTC datetime in Italian local time (dd/mm/yyyy, HH:MM:SS).

    Pure function.
    """
    return value.astimezone(ROME).strftime("%d/%m/%Y, %H:%M:%S")


def _format_number(value: float | None) -> str:
    if value is None:
        return "n/d"
    return f"{value:g}"


def format_event_title(event: SeismicEvent, language: str = DEFAULT_LANGUAGE) -> str:
    """Notification title, e.g. 'SafeQuake Alert - Magnitudo: ML 4.5'."""
    labels = get_labels(language)
    return f"{APP_NAME} - {labels.magnitude}: {event.mag_type} {_format_number(event.magnitude)}"


def format_push_notification(
    event: SeismicEvent,
    distance_km: float | None,
    language: str = DEFAULT_LANGUAGE,
) -> PushNotification:
    """Format a browser push notification.

    Pure function.

    Args:
        event: The seismic event
        distance_km: Distance from the user, None if undetermined
        language: Language code (it/en/es)

    Returns:
        PushNotification with title and multi-line body
    """
    labels = get_labels(language)
    body = "\n".join((
        f"{labels.zone}: {event.place}",
        f"{labels.date}: {format_italian_time(event.time)}",
        f"{labels.depth}: Km {_format_number(event.depth_km)}",
        f"{labels.distance}: Km {_format_number(distance_km)}",
    ))
    return PushNotification(title=format_event_title(event, language), body=body)


def format_event_toast(
    event: SeismicEvent,
    distance_km: float | None,
    language: str = DEFAULT_LANGUAGE,
) -> Toast:
    """Format the in-app toast describing an event.

    Pure function.
    """
    labels = get_labels(language)
    return Toast(
        title=format_event_title(event, language),
        lines=(
            f"{labels.zone}: {event.place}",
            f"{labels.date}: {format_italian_time(event.time)}",
            f"{labels.depth}: Km {_format_number(event.depth_km)}",
            f"{labels.distance}: Km {_format_number(distance_km)}",
        ),
    )


def format_permission_toast(language: str = DEFAULT_LANGUAGE) -> Toast:
    """Toast shown when browser notifications are not permitted."""
    return Toast(title=APP_NAME, lines=(get_labels(language).permission_missing,))


def format_disabled_toast(language: str = DEFAULT_LANGUAGE) -> Toast:
    """Toast shown when the user switched push notifications off."""
    return Toast(title=APP_NAME, lines=(get_labels(language).notifications_disabled,))


def _format_location(event: SeismicEvent) -> str:
    return (
        f"Un sisma di magnitudo {event.mag_type} {_format_number(event.magnitude)} "
        f"è avvenuto nella zona: {event.place} il {format_italian_time(event.time)} "
        f"con coordinate geografiche (latitudine {event.latitude}, longitudine {event.longitude}), "
        f"ad una profondità di {_format_number(event.depth_km)} Km. "
        f"Il terremoto è stato localizzato da: {event.author or 'n/d'}."
    )


def format_telegram_alert(
    event: SeismicEvent,
    distance_km: float | None,
    radius_km: float = 100.0,
) -> str:
    """Format the Telegram alert sent to a user near the epicenter.

    Pure function.
    """
    return (
        f"⚠️ Avviso Terremoto (Raggio di {radius_km:g}km)!\n"
        f"{_format_location(event)}\n"
        f"Il terremoto dalla tua posizione è distante Km {_format_number(distance_km)}."
    )


def format_telegram_broadcast(event: SeismicEvent) -> str:
    """Format the Telegram alert broadcast to every subscriber.

    Pure function.
    """
    return f"⚠️ Avviso Terremoto!\n{_format_location(event)}"


def format_telegram_advice(advice: Advice, band_label: str) -> str:
    """Format the Telegram advice message that follows an alert.

    Pure function.
    """
    return (
        "Informazioni utili\n\n"
        f"{band_label}\n\n"
        f"Consiglio: {advice.general}\n\n"
        f"Avvisi di replica: {advice.aftershock_warning}\n\n"
        f"Possibile impatto: {advice.possible_impact}\n\n"
        f"Durante il terremoto: {advice.during}\n\n"
        f"Dopo il terremoto: {advice.after}\n\n"
        f"Consigli di sicurezza: {advice.safety_tips}"
    )


def format_telegram_post(
    post: dict[str, Any],
    frontend_url: str,
    published_at: datetime | None = None,
) -> str:
    """Format a news post for Telegram subscribers.

    Pure function.

    Args:
        post: Post fields (title, category, author, description, id)
        frontend_url: Base URL of the web app, used for the detail link
        published_at: Publication time; omitted from the message if None
    """
    published = format_italian_time(published_at) if published_at else "n/d"
    link = f"{frontend_url.rstrip('/')}/detail-post/{post.get('id', '')}"
    return (
        f"{post.get('title', '')}\n\n"
        f"Categoria: {post.get('category', '')}\n\n"
        f"Autore: {post.get('author', '')}\n\n"
        f"Data Pubblicazione: {published}\n\n"
        f"{post.get('description', '')}\n\n"
        f"Link: {link}"
    )


INFO_TEXT = (
    "SafeQuake Alert è un'applicazione web progettata per fornirti allerte istantanee "
    "sui terremoti e consigli su come comportarti durante questi eventi.\n\n"
    "Per ricevere allerte sismiche personalizzate in base alla tua posizione geografica "
    "inserisci il tuo ID utente Telegram nel tuo profilo. Il sistema monitora i terremoti "
    "entro un raggio di 100 km dalla tua posizione e, a seconda della magnitudo, ti invia "
    "anche consigli utili su come proteggerti.\n\n"
    "Per maggiori informazioni sul funzionamento digita il comando /start."
)

WELCOME_TEXT = (
    "Benvenuto in SafeQuake Alert, l'applicazione di monitoraggio e allerta sismica.\n\n"
    "Caratteristiche principali:\n"
    "📡 Allerta in tempo reale per terremoti nella tua area.\n"
    "📈 Informazioni dettagliate: magnitudo, epicentro, località.\n"
    "🧭 Consigli su cosa fare prima, durante e dopo un evento sismico.\n"
    "🔄 Articoli con link diretto alla pagina di SafeQuake Alert.\n\n"
    "Come utilizzare SafeQuake Alert:\n"
    "🆔 Premi 'Mostra Mio ID Telegram' per ottenere il tuo id.\n"
    "ℹ️ Digita /info per visualizzare informazioni sull'app."
)

REGISTERED_TEXT = "Il tuo ID Telegram è stato registrato con successo."
ALREADY_REGISTERED_TEXT = "Il tuo ID Telegram è già registrato."
REGISTRATION_FAILED_TEXT = (
    "Si è verificato un errore durante la registrazione del tuo ID Telegram. "
    "Riprova più tardi."
)
UNKNOWN_COMMAND_TEXT = "Comando non riconosciuto."


def format_my_id(chat_id: int) -> str:
    """Reply to the 'mioId' button with the user's Telegram id."""
    return (
        "Questo è il tuo ID personale da inserire nel tuo profilo SafeQuake Alert "
        f"alla sezione notifiche telegram:\n {chat_id}"
    )
