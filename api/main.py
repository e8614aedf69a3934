"""SafeQuake API - FastAPI service for the SafeQuake Alert web app.

REST endpoints for seismic event records, the advice catalog, Telegram
subscribers, user alert settings and Telegram relays. Storage is
Firestore through FirestoreClient; every dependency lives on app.state so
tests can swap in fakes via create_app().
"""

import logging
import os
from datetime import datetime
from typing import Any, Literal

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, field_validator

from safequake.core.advice import parse_advice
from safequake.core.config import Config
from safequake.core.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, DEFAULT_SORT, paginate
from safequake.core.formatter import format_telegram_advice, format_telegram_alert
from safequake.core.seismic_event import parse_seismic_event, record_document_id
from safequake.dispatcher import Dispatcher
from safequake.shell.config_loader import load_config
from safequake.shell.firestore_client import FirestoreClient, FirestoreConfig
from safequake.shell.inbox_client import InboxClient
from safequake.shell.telegram_client import TelegramClient

log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# User document fields never returned by the API
PRIVATE_USER_FIELDS = ("password",)


# ===== Request Models =====

class GeometryPoint(BaseModel):
    latitude: float
    longitude: float
    depth: float | None = None


class SeismicEventCreate(BaseModel):
    eventId: str | int
    time: datetime
    magType: str | None = None
    magnitude: float
    geometry: list[GeometryPoint]
    place: str
    proximity: float
    user: str

    @field_validator("geometry", mode="before")
    @classmethod
    def wrap_single_point(cls, value):
        # A single point is stored as a one-element list
        if isinstance(value, dict):
            return [value]
        return value


class AdviceCreate(BaseModel):
    magnitudo: str
    consigli: str = ""
    avvisiDiReplica: str = ""
    possibileImpatto: str = ""
    duranteIlTerremoto: str = ""
    dopoIlTerremoto: str = ""
    consigliDiSicurezza: str = ""


class AdviceUpdate(BaseModel):
    magnitudo: str | None = None
    consigli: str | None = None
    avvisiDiReplica: str | None = None
    possibileImpatto: str | None = None
    duranteIlTerremoto: str | None = None
    dopoIlTerremoto: str | None = None
    consigliDiSicurezza: str | None = None


class UserTelegramBody(BaseModel):
    idTelegram: int


class PlaceUpdate(BaseModel):
    region: str = ""
    province: str = ""
    city: str = ""
    address: str = ""
    cap: str = ""
    latitude: float | None = None
    longitude: float | None = None


class NotificationsUpdate(BaseModel):
    push: bool = False
    telegram: bool = False
    userTelegram: str = ""
    userIdTelegram: int | None = None


class PushPermissionUpdate(BaseModel):
    pushPermission: Literal["granted", "denied", "default"]


class SendAlertRequest(BaseModel):
    event: dict[str, Any]
    distanza: float | None = None
    idTelegram: int


class SendAdviceRequest(BaseModel):
    idTelegram: int
    message: dict[str, Any]
    msg: str = ""


class SendPostRequest(BaseModel):
    post: dict[str, Any]


# ===== Dependencies =====

def get_store(request: Request) -> FirestoreClient:
    return request.app.state.store


def get_config(request: Request) -> Config:
    return request.app.state.config


def require_token(
    request: Request,
    authorization: str | None = Header(default=None),
) -> None:
    """Verify the bearer token against the configured tokens."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")

    token = authorization[len("Bearer "):].strip()
    if token not in request.app.state.config.api_tokens:
        raise HTTPException(status_code=401, detail="Invalid token")


def _fail(action: str, error: Exception) -> HTTPException:
    logger.error("Failed to %s: %s", action, error)
    return HTTPException(status_code=500, detail=str(error))


def _page_response(
    key: str,
    total_key: str,
    docs: list[dict[str, Any]],
    page: int,
    limit: int,
    sort: str,
    sort_direction: str,
) -> dict[str, Any]:
    result = paginate(docs, page, limit, sort, sort_direction)
    return {
        key: result.items,
        "currentPage": result.current_page,
        "totalPages": result.total_pages,
        total_key: result.total,
    }


def _public_user(doc: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in doc.items() if k not in PRIVATE_USER_FIELDS}


def _parse_published_at(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Ignoring unparseable post date %s", value)
    return None


def create_app(
    config: Config | None = None,
    store: FirestoreClient | None = None,
    telegram_client: TelegramClient | None = None,
    dispatcher: Dispatcher | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        config: Application configuration (loaded from file/env if None)
        store: Document store (Firestore if None)
        telegram_client: Telegram client (created from config if None)
        dispatcher: Dispatcher used for subscriber relays

    Returns:
        Configured FastAPI app
    """
    config = config or load_config()
    store = store or FirestoreClient(
        FirestoreConfig(
            database=config.firestore_database,
            collections=config.collections,
        )
    )
    telegram_client = telegram_client or TelegramClient(
        config.telegram_bot_token,
        retry_policy=config.retry,
    )
    dispatcher = dispatcher or Dispatcher(
        telegram_client,
        InboxClient(store),
        radius_km=config.proximity_radius_km,
    )

    app = FastAPI(
        title="SafeQuake API",
        description="API for SafeQuake Alert - seismic events, advices and Telegram relays",
        version="1.0.0",
    )
    app.state.config = config
    app.state.store = store
    app.state.telegram = telegram_client
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    collections = config.collections
    protected = [Depends(require_token)]

    # ===== Health =====

    @app.get("/health")
    def health_check():
        """Health check endpoint for Cloud Run."""
        return {"status": "healthy"}

    # ===== Seismic Events =====

    @app.get("/api/seismicEvents", dependencies=protected)
    def list_seismic_events(
        page: int = Query(default=DEFAULT_PAGE),
        limit: int = Query(default=DEFAULT_LIMIT),
        sort: str = Query(default=DEFAULT_SORT),
        sortDirection: str = Query(default="asc"),
        store: FirestoreClient = Depends(get_store),
    ):
        try:
            docs = store.list_documents(collections.seismic_events)
        except Exception as e:
            raise _fail("list seismic events", e)
        return _page_response(
            "seismicEvents", "totalSeismicEvents", docs, page, limit, sort, sortDirection,
        )

    @app.get("/api/seismicEvents/{seismic_id}", dependencies=protected)
    def get_seismic_event(seismic_id: str, store: FirestoreClient = Depends(get_store)):
        try:
            doc = store.get_document(collections.seismic_events, seismic_id)
        except Exception as e:
            raise _fail(f"fetch seismic event {seismic_id}", e)
        if doc is None:
            raise HTTPException(status_code=404, detail="Evento sismico non trovato!")
        return doc

    @app.get("/api/seismicEvents/{user_id}/seismicEvent", dependencies=protected)
    def list_user_seismic_events(
        user_id: str,
        page: int = Query(default=DEFAULT_PAGE),
        limit: int = Query(default=DEFAULT_LIMIT),
        sort: str = Query(default=DEFAULT_SORT),
        sortDirection: str = Query(default="asc"),
        store: FirestoreClient = Depends(get_store),
    ):
        try:
            docs = store.list_documents(collections.seismic_events)
        except Exception as e:
            raise _fail(f"list seismic events of user {user_id}", e)
        docs = [d for d in docs if str(d.get("user")) == user_id]
        return _page_response(
            "seismicEvents", "totalSeismicEvents", docs, page, limit, sort, sortDirection,
        )

    @app.post("/api/seismicEvents", status_code=201, dependencies=protected)
    def create_seismic_event(body: SeismicEventCreate, store: FirestoreClient = Depends(get_store)):
        data = body.model_dump()
        data["eventId"] = str(body.eventId)
        document_id = record_document_id(body.user, data["eventId"])

        try:
            result = store.create_document(collections.seismic_events, data, document_id=document_id)
        except Exception as e:
            raise _fail(f"create seismic event {document_id}", e)

        if result.conflict:
            raise HTTPException(
                status_code=409,
                detail=f"Event {data['eventId']} already recorded for user {body.user}",
            )
        return {**data, "id": result.document_id}

    @app.delete("/api/seismicEvents/{seismic_id}", dependencies=protected)
    def delete_seismic_event(seismic_id: str, store: FirestoreClient = Depends(get_store)):
        try:
            deleted = store.delete_document(collections.seismic_events, seismic_id)
        except Exception as e:
            raise _fail(f"delete seismic event {seismic_id}", e)
        if not deleted:
            raise HTTPException(status_code=404, detail="Evento sismico non trovato!")
        return {"message": "Evento sismico eliminato!"}

    # ===== Advices =====

    @app.get("/api/advices", dependencies=protected)
    def list_advices(
        page: int = Query(default=DEFAULT_PAGE),
        limit: int = Query(default=DEFAULT_LIMIT),
        sort: str = Query(default=DEFAULT_SORT),
        sortDirection: str = Query(default="asc"),
        store: FirestoreClient = Depends(get_store),
    ):
        try:
            docs = store.list_documents(collections.advices)
        except Exception as e:
            raise _fail("list advices", e)
        return _page_response("advices", "totalAdvices", docs, page, limit, sort, sortDirection)

    @app.get("/api/advices/{advice_id}", dependencies=protected)
    def get_advice(advice_id: str, store: FirestoreClient = Depends(get_store)):
        try:
            doc = store.get_document(collections.advices, advice_id)
        except Exception as e:
            raise _fail(f"fetch advice {advice_id}", e)
        if doc is None:
            raise HTTPException(status_code=404, detail="Consiglio non trovato!")
        return doc

    @app.post("/api/advices", status_code=201, dependencies=protected)
    def create_advice(body: AdviceCreate, store: FirestoreClient = Depends(get_store)):
        data = body.model_dump()
        try:
            result = store.create_document(collections.advices, data)
        except Exception as e:
            raise _fail("create advice", e)
        return {**data, "id": result.document_id}

    @app.patch("/api/advices/{advice_id}", dependencies=protected)
    def update_advice(advice_id: str, body: AdviceUpdate, store: FirestoreClient = Depends(get_store)):
        fields = body.model_dump(exclude_none=True)
        if not fields:
            raise HTTPException(status_code=400, detail="No fields to update")

        try:
            updated = store.update_document(collections.advices, advice_id, fields)
            doc = store.get_document(collections.advices, advice_id) if updated else None
        except Exception as e:
            raise _fail(f"update advice {advice_id}", e)
        if doc is None:
            raise HTTPException(status_code=404, detail="Consiglio non trovato!")
        return doc

    @app.delete("/api/advices/{advice_id}", dependencies=protected)
    def delete_advice(advice_id: str, store: FirestoreClient = Depends(get_store)):
        try:
            deleted = store.delete_document(collections.advices, advice_id)
        except Exception as e:
            raise _fail(f"delete advice {advice_id}", e)
        if not deleted:
            raise HTTPException(status_code=404, detail="Consiglio non trovato!")
        return {"message": "Consiglio eliminato!"}

    # ===== Telegram Subscribers =====

    @app.get("/api/userTelegram", dependencies=protected)
    def list_telegram_users(
        page: int = Query(default=DEFAULT_PAGE),
        limit: int = Query(default=DEFAULT_LIMIT),
        sort: str = Query(default=DEFAULT_SORT),
        sortDirection: str = Query(default="asc"),
        store: FirestoreClient = Depends(get_store),
    ):
        try:
            docs = store.list_documents(collections.telegram_users)
        except Exception as e:
            raise _fail("list Telegram users", e)
        return _page_response(
            "usersTelegram", "totalUsersTelegram", docs, page, limit, sort, sortDirection,
        )

    @app.post("/api/userTelegram", status_code=201)
    def create_telegram_user(body: UserTelegramBody, store: FirestoreClient = Depends(get_store)):
        result = store.add_telegram_subscriber(body.idTelegram)
        if result.error:
            raise HTTPException(status_code=500, detail=result.error)
        if result.conflict:
            raise HTTPException(status_code=409, detail=f"Telegram id {body.idTelegram} already registered")
        return {"id": result.document_id, "idTelegram": body.idTelegram}

    @app.patch("/api/userTelegram/{telegram_user_id}", dependencies=protected)
    def update_telegram_user(
        telegram_user_id: str,
        body: UserTelegramBody,
        store: FirestoreClient = Depends(get_store),
    ):
        try:
            updated = store.update_document(
                collections.telegram_users,
                telegram_user_id,
                {"idTelegram": body.idTelegram},
            )
        except Exception as e:
            raise _fail(f"update Telegram user {telegram_user_id}", e)
        if not updated:
            raise HTTPException(status_code=404, detail="Utente Telegram non trovato!")
        return {"id": telegram_user_id, "idTelegram": body.idTelegram}

    @app.delete("/api/userTelegram/{telegram_user_id}", dependencies=protected)
    def delete_telegram_user(telegram_user_id: str, store: FirestoreClient = Depends(get_store)):
        try:
            deleted = store.delete_document(collections.telegram_users, telegram_user_id)
        except Exception as e:
            raise _fail(f"delete Telegram user {telegram_user_id}", e)
        if not deleted:
            raise HTTPException(status_code=404, detail="Utente Telegram non trovato!")
        return {"message": "Utente Telegram eliminato!"}

    # ===== Users =====

    def _load_user(store: FirestoreClient, user_id: str) -> dict[str, Any]:
        try:
            doc = store.get_document(collections.users, user_id)
        except Exception as e:
            raise _fail(f"fetch user {user_id}", e)
        if doc is None:
            raise HTTPException(status_code=404, detail="Utente non trovato!")
        return doc

    def _replace_first(store: FirestoreClient, user_id: str, field: str, value: dict[str, Any]):
        """Replace index 0 of a list-valued user field."""
        doc = _load_user(store, user_id)
        entries = list(doc.get(field) or [])
        if entries:
            entries[0] = value
        else:
            entries.append(value)

        try:
            store.update_document(collections.users, user_id, {field: entries})
        except Exception as e:
            raise _fail(f"update {field} of user {user_id}", e)
        return _public_user({**doc, field: entries})

    @app.get("/api/users/{user_id}", dependencies=protected)
    def get_user(user_id: str, store: FirestoreClient = Depends(get_store)):
        return _public_user(_load_user(store, user_id))

    @app.patch("/api/users/{user_id}/place", dependencies=protected)
    def update_user_place(user_id: str, body: PlaceUpdate, store: FirestoreClient = Depends(get_store)):
        return _replace_first(store, user_id, "place", body.model_dump())

    @app.patch("/api/users/{user_id}/notifications", dependencies=protected)
    def update_user_notifications(
        user_id: str,
        body: NotificationsUpdate,
        store: FirestoreClient = Depends(get_store),
    ):
        return _replace_first(store, user_id, "notifications", body.model_dump())

    @app.patch("/api/users/{user_id}/pushPermission", dependencies=protected)
    def update_push_permission(
        user_id: str,
        body: PushPermissionUpdate,
        store: FirestoreClient = Depends(get_store),
    ):
        doc = _load_user(store, user_id)
        try:
            store.update_document(collections.users, user_id, {"pushPermission": body.pushPermission})
        except Exception as e:
            raise _fail(f"update push permission of user {user_id}", e)
        return _public_user({**doc, "pushPermission": body.pushPermission})

    # ===== Telegram Relays =====

    @app.post("/api/telegram/sendAlert", dependencies=protected)
    def send_alert(body: SendAlertRequest, request: Request, config: Config = Depends(get_config)):
        event = parse_seismic_event(body.event)
        if event is None:
            raise HTTPException(status_code=400, detail="Nessun evento sismico valido fornito.")

        text = format_telegram_alert(event, body.distanza, config.proximity_radius_km)
        response = request.app.state.telegram.send_message(body.idTelegram, text)
        if not response.success:
            raise HTTPException(status_code=502, detail=f"Errore nell'invio dell'allerta: {response.error}")
        return {"success": True, "message": "Allerta sismica inviata agli utenti!"}

    @app.post("/api/telegram/sendAdvice", dependencies=protected)
    def send_advice(body: SendAdviceRequest, request: Request):
        if not body.message:
            raise HTTPException(status_code=400, detail="Nessun advice fornito.")

        advice = parse_advice(str(body.message.get("id", "")), body.message)
        text = format_telegram_advice(advice, body.msg)
        response = request.app.state.telegram.send_message(body.idTelegram, text)
        if not response.success:
            raise HTTPException(status_code=502, detail=f"Errore nell'invio dell'advice: {response.error}")
        return {"success": True, "message": "Advice inviato agli utenti!"}

    @app.post("/api/telegram/sendPost", dependencies=protected)
    def send_post(
        body: SendPostRequest,
        request: Request,
        config: Config = Depends(get_config),
        store: FirestoreClient = Depends(get_store),
    ):
        if not body.post:
            raise HTTPException(status_code=400, detail="Nessun post fornito.")

        subscribers = store.get_telegram_subscribers()
        results = request.app.state.dispatcher.relay_post(
            body.post,
            subscribers,
            config.frontend_url,
            _parse_published_at(body.post.get("createdAt")),
        )
        sent = sum(1 for r in results if r.success)
        return {
            "success": True,
            "message": "Post inviato agli utenti!",
            "sent": sent,
            "failed": len(results) - sent,
        }

    return app


app = create_app()
