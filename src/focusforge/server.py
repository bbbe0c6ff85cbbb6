import logging
import time
from contextlib import asynccontextmanager
from datetime import date

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel
from ulid import ULID

from focusforge.application.card_service import CardService
from focusforge.application.config import resolve_config
from focusforge.application.factory import get_card_store
from focusforge.application.review_session import Phase, ReviewSession
from focusforge.consts import VERSION
from focusforge.domain.cards.errors import (
    FlashcardError,
    InvalidInput,
    InvalidQuality,
    InvalidTransition,
    NotFound,
    PersistenceError,
)
from focusforge.domain.cards.models import Card

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("focusforge.server")

MAX_SESSIONS = 100


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"FocusForge Server v{VERSION} starting up...")
    yield
    # Shutdown
    service = getattr(app.state, "service", None)
    if service is not None:
        await service.store.aclose()
    logger.info("FocusForge Server shutting down...")


app = FastAPI(
    title="FocusForge Server",
    description="Flashcards with SM-2 spaced repetition.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


class SessionRegistry:
    """
    Active review sessions, keyed by an opaque id.

    Finished sessions are released by the endpoints; at most `max_sessions`
    are held, and adding past the cap drops the oldest.
    """

    def __init__(self, max_sessions: int = MAX_SESSIONS):
        self.max_sessions = max_sessions
        self._sessions: dict[str, ReviewSession] = {}

    def add(self, session: ReviewSession) -> str:
        session_id = str(ULID())
        while len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            logger.info(f"Session limit reached; dropping session {oldest}")
            self._sessions.pop(oldest).abort()
        self._sessions[session_id] = session
        return session_id

    def get(self, session_id: str) -> ReviewSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
        return session

    def remove(self, session_id: str) -> ReviewSession:
        session = self.get(session_id)
        del self._sessions[session_id]
        return session

    def __len__(self) -> int:
        return len(self._sessions)


def get_service(request: Request) -> CardService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        config = resolve_config()
        service = CardService(get_card_store(config), timezone=config.timezone)
        request.app.state.service = service
    return service


def get_sessions(request: Request) -> SessionRegistry:
    sessions = getattr(request.app.state, "sessions", None)
    if sessions is None:
        sessions = SessionRegistry()
        request.app.state.sessions = sessions
    return sessions


def _http_error(e: FlashcardError) -> HTTPException:
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (InvalidInput, InvalidQuality)):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, InvalidTransition):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardOut(BaseModel):
    id: str
    question: str
    answer: str
    interval: int
    ease_factor: float
    next_review_date: date
    last_review_date: str | None = None
    created_at: str | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardOut":
        return cls(
            id=card.id,
            question=card.question,
            answer=card.answer,
            interval=card.interval,
            ease_factor=card.ease_factor,
            next_review_date=card.next_review_date,
            last_review_date=card.last_review_date.isoformat() if card.last_review_date else None,
            created_at=card.created_at.isoformat() if card.created_at else None,
        )


class CreateCardRequest(BaseModel):
    question: str
    answer: str


class QueueResponse(BaseModel):
    as_of: date
    total: int
    due: int
    overdue: int
    new: int
    queue: list[CardOut]


class StartSessionRequest(BaseModel):
    limit: int | None = None


class SessionOut(BaseModel):
    session_id: str
    phase: str
    position: int
    total: int
    remaining: int
    reviewed: int
    card_id: str | None = None
    question: str | None = None
    # Only filled in once the answer has been revealed
    answer: str | None = None

    @classmethod
    def from_session(cls, session_id: str, session: ReviewSession) -> "SessionOut":
        card = session.current_card
        revealed = session.phase is Phase.AWAITING_RATING
        return cls(
            session_id=session_id,
            phase=session.phase.value,
            position=session.position,
            total=session.total,
            remaining=session.remaining,
            reviewed=len(session.reviewed),
            card_id=card.id if card else None,
            question=card.question if card else None,
            answer=card.answer if card and revealed else None,
        )


class RatingRequest(BaseModel):
    quality: int


class RatingResponse(BaseModel):
    interval: int
    ease_factor: float
    next_review_date: date
    session: SessionOut


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/cards", response_model=list[CardOut])
async def list_cards(service: CardService = Depends(get_service)):
    try:
        cards = await service.list_cards()
    except FlashcardError as e:
        logger.error(f"Listing cards failed: {e}")
        raise _http_error(e) from e
    return [CardOut.from_card(c) for c in cards]


@app.post("/cards", status_code=201)
async def create_card(req: CreateCardRequest, service: CardService = Depends(get_service)):
    try:
        card_id = await service.add_card(req.question, req.answer)
    except FlashcardError as e:
        raise _http_error(e) from e
    return {"id": card_id}


@app.delete("/cards/{card_id}")
async def delete_card(card_id: str, service: CardService = Depends(get_service)):
    try:
        await service.delete_card(card_id)
    except FlashcardError as e:
        raise _http_error(e) from e
    return {"ok": True}


@app.get("/queue", response_model=QueueResponse)
async def get_queue(service: CardService = Depends(get_service)):
    """
    Cards due today in review order, with counts.
    """
    try:
        queue, summary = await service.due_overview()
    except FlashcardError as e:
        raise _http_error(e) from e
    return QueueResponse(
        as_of=summary.as_of,
        total=summary.total,
        due=summary.due,
        overdue=summary.overdue,
        new=summary.new,
        queue=[CardOut.from_card(c) for c in queue],
    )


@app.post("/sessions", response_model=SessionOut, status_code=201)
async def start_session(
    req: StartSessionRequest | None = None,
    service: CardService = Depends(get_service),
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Start a review session over a fresh snapshot of today's due cards."""
    try:
        session = await service.start_session(limit=req.limit if req else None)
    except FlashcardError as e:
        raise _http_error(e) from e
    if session.is_complete:
        # Nothing due; there is nothing to keep around
        return SessionOut.from_session(str(ULID()), session)
    session_id = sessions.add(session)
    logger.info(f"Started session {session_id} with {session.total} cards")
    return SessionOut.from_session(session_id, session)


@app.get("/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    return SessionOut.from_session(session_id, sessions.get(session_id))


@app.post("/sessions/{session_id}/reveal", response_model=SessionOut)
async def reveal_answer(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    session = sessions.get(session_id)
    try:
        session.reveal_answer()
    except FlashcardError as e:
        raise _http_error(e) from e
    return SessionOut.from_session(session_id, session)


@app.post("/sessions/{session_id}/rating", response_model=RatingResponse)
async def submit_rating(
    session_id: str,
    req: RatingRequest,
    sessions: SessionRegistry = Depends(get_sessions),
):
    """
    Rate the revealed card. The session only advances once the store has saved
    the new schedule; on a store failure it stays on the same card. The last
    rating releases the session.
    """
    session = sessions.get(session_id)
    try:
        update = await session.submit_rating(req.quality)
    except FlashcardError as e:
        raise _http_error(e) from e
    if session.is_complete:
        sessions.remove(session_id)
        logger.info(f"Session {session_id} complete: {len(session.reviewed)} cards reviewed")
    return RatingResponse(
        interval=update.interval,
        ease_factor=update.ease_factor,
        next_review_date=update.next_review_date,
        session=SessionOut.from_session(session_id, session),
    )


@app.delete("/sessions/{session_id}")
async def abort_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    session = sessions.remove(session_id)
    reviewed = len(session.reviewed)
    session.abort()
    return {"ok": True, "reviewed": reviewed}
