from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional

import sentry_sdk
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from swipematch.api.schemas import (
    CreditsResponse,
    ErrorResponse,
    SuggestionRequest,
    SuggestionsResponse,
    UnreadCountResponse,
)
from swipematch.config import settings
from swipematch.models import (
    MatchWithUser,
    Message,
    MessageCreate,
    SwipeCreate,
    SwipeResult,
    User,
    UserCreate,
)
from swipematch.services import SwipeMatchService, build_service
from swipematch.utils.errors import SwipeMatchError
from swipematch.utils.logging import configure_logging, get_logger, log_error

logger = get_logger(__name__)


def init_sentry() -> None:
    """Initialize Sentry if a DSN is configured."""
    if not settings.SENTRY_DSN:
        return
    logger.info("Initializing Sentry...")
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=1.0 if settings.ENVIRONMENT == "development" else 0.1,
            integrations=[
                FastApiIntegration(transaction_style="url"),
                SqlalchemyIntegration(),
            ],
        )
        logger.info("Sentry initialized")
    except Exception as e:
        logger.error("Failed to initialize Sentry", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan."""
    logger.info("Starting SwipeMatch API...")

    service: Optional[SwipeMatchService] = getattr(app.state, "service", None)
    try:
        if service is None:
            service = build_service(settings)
            app.state.service = service
        service.storage.init()
    except Exception as e:
        error_details = {}
        if hasattr(e, "details"):
            error_details = e.details
        logger.error("Failed to initialize storage", error=str(e), details=error_details)
        raise

    yield

    logger.info("Shutting down SwipeMatch API...")
    service.storage.close()


def get_service(request: Request) -> SwipeMatchService:
    return request.app.state.service


router = APIRouter(prefix="/api", responses={404: {"model": ErrorResponse}})


@router.get("/users", response_model=List[User])
def list_users(service: SwipeMatchService = Depends(get_service)) -> List[User]:
    return service.users.list_users()


@router.post("/users", response_model=User, status_code=201, responses={409: {"model": ErrorResponse}})
def create_user(data: UserCreate, service: SwipeMatchService = Depends(get_service)) -> User:
    return service.users.create_user(data)


@router.get("/users/{user_id}", response_model=User)
def get_user(user_id: int, service: SwipeMatchService = Depends(get_service)) -> User:
    return service.users.get_user(user_id)


@router.get("/users/{user_id}/swipe", response_model=List[User])
def get_candidates(
    user_id: int,
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: SwipeMatchService = Depends(get_service),
) -> List[User]:
    """Users to show in the swipe feed, most popular first."""
    return service.get_candidates(user_id, limit=limit, offset=offset)


@router.get("/users/{user_id}/credits", response_model=CreditsResponse)
def get_credits(user_id: int, service: SwipeMatchService = Depends(get_service)) -> CreditsResponse:
    return CreditsResponse(credits=service.get_credits(user_id))


@router.post(
    "/swipes",
    response_model=SwipeResult,
    status_code=201,
    responses={403: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def submit_swipe(data: SwipeCreate, service: SwipeMatchService = Depends(get_service)) -> SwipeResult:
    """Record a like or dislike; reports a match when the like is mutual."""
    return service.submit_swipe(data.swiper_id, data.swiped_id, data.liked)


@router.get("/users/{user_id}/matches", response_model=List[MatchWithUser])
def get_matches(user_id: int, service: SwipeMatchService = Depends(get_service)) -> List[MatchWithUser]:
    return service.get_matches(user_id)


@router.get("/users/{user_id}/matches/{match_id}", response_model=MatchWithUser)
def get_match(user_id: int, match_id: int, service: SwipeMatchService = Depends(get_service)) -> MatchWithUser:
    return service.get_match(match_id, user_id)


@router.get("/matches/{match_id}/messages", response_model=List[Message])
def get_messages(match_id: int, service: SwipeMatchService = Depends(get_service)) -> List[Message]:
    return service.messages.get_messages(match_id)


@router.post("/messages", response_model=Message, status_code=201)
def send_message(data: MessageCreate, service: SwipeMatchService = Depends(get_service)) -> Message:
    return service.messages.send_message(data)


@router.get("/users/{user_id}/unread", response_model=UnreadCountResponse)
def get_unread_count(user_id: int, service: SwipeMatchService = Depends(get_service)) -> UnreadCountResponse:
    service.users.get_user(user_id)
    return UnreadCountResponse(count=service.messages.unread_count(user_id))


@router.post("/messages/suggestions", response_model=SuggestionsResponse)
def suggest_messages(data: SuggestionRequest, service: SwipeMatchService = Depends(get_service)) -> SuggestionsResponse:
    return SuggestionsResponse(suggestions=service.suggestions.suggest(data.recipient_name, data.relationship_intent))


async def handle_swipematch_error(request: Request, exc: SwipeMatchError) -> JSONResponse:
    if exc.status_code >= 500:
        log_error(logger, exc, "Request failed", extra={"path": request.url.path})
    else:
        logger.info("Request rejected", path=request.url.path, status_code=exc.status_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "details": exc.details})


def create_app(service: Optional[SwipeMatchService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Pre-built service. When omitted one is built from settings
            during startup.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="SwipeMatch swipe, match and credit API",
        version="1.0.0",
        lifespan=lifespan,
    )
    if service is not None:
        app.state.service = service

    app.include_router(router)
    app.add_exception_handler(SwipeMatchError, handle_swipematch_error)  # type: ignore[arg-type]

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(
            content={
                "status": "ok",
                "app": settings.APP_NAME,
                "environment": settings.ENVIRONMENT,
            },
        )

    return app


configure_logging()
init_sentry()
app = create_app()
