"""FastAPI application serving the Inkora pages and a small JSON surface."""

from __future__ import annotations

import base64
import json
import logging
import os
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Literal

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkora.adapters.baas_factory import create_baas_client
from inkora.api.contracts import (
    AuthLoginRequest,
    AuthRegisterRequest,
    ChapterCreateRequest,
    ChapterResponse,
    CommentAuthorResponse,
    CommentCreateRequest,
    CommentPageResponse,
    CommentResponse,
    HealthResponse,
    NoticeResponse,
    SingleContentRequest,
    StatsResponse,
    StoryCreateRequest,
    StoryDetailResponse,
    StoryMetadataRequest,
    StoryResponse,
)
from inkora.api.rendering import (
    render_auth_page,
    render_chapter_reader,
    render_chapter_writer,
    render_document,
    render_metadata_editor,
    render_not_found,
    render_profile,
    render_single_writer,
    render_story_detail,
    render_story_list,
    render_story_reader,
    render_write_page,
)
from inkora.application.catalog import list_owner_stories, list_recent_stories
from inkora.application.header import HeaderState
from inkora.application.navigation import AUTH_PATH, HOME_PATH, PROFILE_PATH, story_path
from inkora.application.notifications import Notice, NotificationCenter
from inkora.application.readers import read_chapter, read_single_story
from inkora.application.session_store import DEFAULT_TTL_SECONDS, SessionStore
from inkora.application.story_detail import (
    FEATURE_PRESETS,
    StoryDetailFeatures,
    StoryDetailPage,
)
from inkora.application.writing import (
    StoryWriteError,
    add_chapter,
    create_story,
    list_chapters,
    load_owned_story,
    load_single_content,
    save_single_content,
    update_metadata,
)
from inkora.domain.models import Session, Story
from inkora.domain.ports import BaasClient
from inkora.domain.query import BaasResult

SESSION_COOKIE = "inkora_access_token"
FLASH_COOKIE = "inkora_flash"
SESSION_COOKIE_MAX_AGE = 24 * 60 * 60

INVALID_CREDENTIALS = "Invalid email or password"
EMAIL_TAKEN = "This email is already registered"
USERNAME_TAKEN = "This username is already taken"
SIGN_UP_CONFLICTS: dict[str, str] = {
    "user_already_exists": EMAIL_TAKEN,
    "username_taken": USERNAME_TAKEN,
}
SIGN_UP_FAILED = "Could not create the account"
SIGN_IN_REQUIRED = "Sign in to continue"

logger = logging.getLogger(__name__)


class SignInRequired(Exception):
    """Raised by page dependencies that need a signed-in visitor."""


class ApiRootResponse(BaseModel):
    """Describes the JSON endpoints and the configured backend."""

    name: str = "inkora"
    backend: Literal["sqlite", "postgrest"] = "sqlite"
    auth: Literal["bearer-token", "cookie"] = "bearer-token"
    endpoints: list[str] = Field(
        default_factory=lambda: [
            "/healthz",
            "/api/v1",
            "/api/v1/stories/{story_id}/detail",
            "/api/v1/stories/{story_id}/like",
            "/api/v1/stories/{story_id}/comments",
        ]
    )


def _int_env(name: str, default: int, *, minimum: int, maximum: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _cors_origins() -> list[str]:
    raw = os.environ.get("INKORA_CORS_ORIGINS", "").strip()
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _features_env() -> StoryDetailFeatures:
    name = os.environ.get("INKORA_STORY_DETAIL_FEATURES", "").strip().lower() or "full"
    features = FEATURE_PRESETS.get(name)
    if features is None:
        raise RuntimeError(
            "Unsupported INKORA_STORY_DETAIL_FEATURES value. Expected full or basic."
        )
    return features


def encode_flash(notices: Iterable[Notice]) -> str:
    payload = json.dumps(
        [{"level": notice.level, "message": notice.message} for notice in notices],
        ensure_ascii=False,
    )
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_flash(raw: str | None) -> list[Notice]:
    """Decode flashed notices; a tampered or stale cookie yields nothing."""
    if not raw:
        return []
    try:
        padded = raw + "=" * (-len(raw) % 4)
        entries = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
    except (ValueError, UnicodeError):
        logger.debug("flash.discarded length=%s", len(raw))
        return []
    if not isinstance(entries, list):
        return []
    notices: list[Notice] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        level = entry.get("level")
        message = entry.get("message")
        if level in {"error", "success", "info"} and isinstance(message, str):
            notices.append(Notice(level=level, message=message))
    return notices


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg", "Invalid input")).removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


def _error(message: str) -> list[Notice]:
    return [Notice(level="error", message=message)]


async def _form_fields(request: Request, names: Sequence[str]) -> dict[str, str]:
    form = await request.form()
    fields: dict[str, str] = {}
    for name in names:
        value = form.get(name)
        if isinstance(value, str):
            fields[name] = value
    return fields


def _page_field(raw: str, *, max_digits: int = 9) -> int:
    """Page number from a form field; anything that is not a short number means page 1."""
    value = raw.strip()
    if not value.isdecimal() or len(value) > max_digits:
        return 1
    return int(value)


def _access_token(result: BaasResult) -> str | None:
    if not result.ok or not isinstance(result.data, Mapping):
        return None
    token = result.data.get("access_token")
    return str(token) if token else None


def _story_response(story: Story) -> StoryResponse:
    return StoryResponse(
        story_id=story.story_id,
        owner_id=story.owner_id,
        title=story.title,
        description=story.description,
        cover_image_url=story.cover_image_url,
        tags=list(story.tags),
        is_chapters=story.is_chapters,
        status=story.status,
        content_type=story.content_type,
        created_at=story.created_at,
    )


def _detail_response(detail: StoryDetailPage, notices: Sequence[Notice]) -> StoryDetailResponse:
    state = detail.state
    if state.story is None:
        raise HTTPException(status_code=404, detail="Story not found")
    window = detail.comment_window
    return StoryDetailResponse(
        story=_story_response(state.story),
        is_owner=state.is_owner,
        is_liked=state.is_liked,
        stats=StatsResponse(
            views=state.stats.views,
            likes=state.stats.likes,
            comments=state.stats.comments,
        ),
        chapters=[
            ChapterResponse(
                chapter_id=chapter.chapter_id,
                title=chapter.title,
                chapter_number=chapter.chapter_number,
            )
            for chapter in state.chapters
        ],
        single_story_content=state.single_story_content,
        content_section=detail.content_section,
        owner_action_path=detail.owner_action_path,
        comments=CommentPageResponse(
            page=window.page,
            page_count=window.page_count,
            total=window.total,
            has_previous=window.has_previous,
            has_next=window.has_next,
            items=[
                CommentResponse(
                    comment_id=comment.comment_id,
                    user_id=comment.user_id,
                    content=comment.content,
                    created_at=comment.created_at,
                    author=CommentAuthorResponse(
                        first_name=comment.author.first_name,
                        last_name=comment.author.last_name,
                        username=comment.author.username,
                        avatar_url=comment.author.avatar_url,
                    ),
                )
                for comment in window.items
            ],
        ),
        notices=[NoticeResponse(level=notice.level, message=notice.message) for notice in notices],
    )


def create_app(
    db_path: Path | None = None,
    *,
    client: BaasClient | None = None,
    features: StoryDetailFeatures | None = None,
) -> FastAPI:
    """Create the web application."""
    baas = client if client is not None else create_baas_client(db_path=db_path)
    detail_features = features if features is not None else _features_env()
    session_ttl = _int_env(
        "INKORA_SESSION_TTL_SECONDS",
        DEFAULT_TTL_SECONDS,
        minimum=0,
        maximum=24 * 60 * 60,
    )
    cookie_secure = _env_flag("INKORA_COOKIE_SECURE")
    backend: Literal["sqlite", "postgrest"] = (
        "postgrest"
        if os.environ.get("INKORA_BAAS_BACKEND", "").strip().lower() == "postgrest"
        else "sqlite"
    )
    sessions = SessionStore(baas, ttl_seconds=session_ttl)
    bearer = HTTPBearer(auto_error=False)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("api.lifespan.start backend=%s", backend)
        yield
        sessions.clear()
        await baas.aclose()
        logger.info("api.lifespan.stop")

    app = FastAPI(
        title="Inkora",
        version="0.1.0",
        description="Story publishing pages backed by a hosted or local BaaS.",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "system", "description": "Service health and runtime metadata."},
            {"name": "pages", "description": "Server-rendered HTML pages."},
            {"name": "auth", "description": "Sign in, sign up, and sign out forms."},
            {"name": "stories", "description": "Story detail read model and interactions."},
        ],
    )
    app.state.client = baas
    app.state.sessions = sessions
    app.state.features = detail_features

    cors_origins = _cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    logger.info(
        "api.start backend=%s features=%s session_ttl=%s cookie_secure=%s",
        backend,
        "basic" if detail_features == FEATURE_PRESETS["basic"] else "full",
        session_ttl,
        cookie_secure,
    )

    async def current_session(
        request: Request,
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    ) -> Session | None:
        token = request.cookies.get(SESSION_COOKIE)
        if credentials is not None:
            token = credentials.credentials
        return await sessions.resolve(token)

    async def signed_in(session: Session | None = Depends(current_session)) -> Session:
        if session is None:
            raise SignInRequired()
        return session

    def page(
        request: Request,
        *,
        title: str,
        body: str,
        session: Session | None,
        notices: Sequence[Notice] = (),
        status_code: int = 200,
    ) -> HTMLResponse:
        header = HeaderState()
        header.update_search(request.query_params.get("q"))
        flashed = decode_flash(request.cookies.get(FLASH_COOKIE))
        response = HTMLResponse(
            render_document(
                title=title,
                header=header,
                session=session,
                body=body,
                notices=[*flashed, *notices],
            ),
            status_code=status_code,
        )
        if FLASH_COOKIE in request.cookies:
            response.delete_cookie(FLASH_COOKIE)
        return response

    def redirect(path: str, notices: Sequence[Notice] = ()) -> RedirectResponse:
        response = RedirectResponse(path, status_code=303)
        if notices:
            response.set_cookie(
                FLASH_COOKIE,
                encode_flash(notices),
                httponly=True,
                samesite="lax",
                secure=cookie_secure,
            )
        return response

    def signed_in_redirect(token: str, path: str, notices: Sequence[Notice]) -> RedirectResponse:
        response = redirect(path, notices)
        response.set_cookie(
            SESSION_COOKIE,
            token,
            max_age=SESSION_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
            secure=cookie_secure,
        )
        return response

    def detail_page(
        story_id: str, session: Session | None
    ) -> tuple[StoryDetailPage, NotificationCenter]:
        notifier = NotificationCenter()
        detail = StoryDetailPage(
            client=baas,
            notifier=notifier,
            story_id=story_id,
            session=session,
            features=detail_features,
        )
        return detail, notifier

    def detail_html(
        request: Request,
        detail: StoryDetailPage,
        notifier: NotificationCenter,
    ) -> HTMLResponse:
        story = detail.state.story
        return page(
            request,
            title=story.title if story is not None else "Story",
            body=render_story_detail(detail),
            session=detail.session,
            notices=notifier.drain(),
        )

    async def owned_story_or_404(*, session: Session, story_id: str) -> Story:
        story = await load_owned_story(baas, session=session, story_id=story_id)
        if story is None:
            raise HTTPException(status_code=404, detail="Story not found")
        return story

    async def writer_html(
        request: Request,
        *,
        session: Session,
        story: Story,
        notices: Sequence[Notice] = (),
        status_code: int = 200,
    ) -> HTMLResponse:
        if story.is_chapters:
            chapters = await list_chapters(baas, session=session, story=story)
            body = render_chapter_writer(story, chapters)
        else:
            content = await load_single_content(baas, session=session, story=story)
            body = render_single_writer(story, content)
        return page(
            request,
            title=story.title,
            body=body,
            session=session,
            notices=notices,
            status_code=status_code,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> Response:
        if request.url.path.startswith("/api/") or exc.status_code != 404:
            return await http_exception_handler(request, exc)
        session = await sessions.resolve(request.cookies.get(SESSION_COOKIE))
        return page(
            request,
            title="Page not found",
            body=render_not_found(request.url.path),
            session=session,
            status_code=404,
        )

    @app.exception_handler(SignInRequired)
    async def sign_in_required(request: Request, exc: SignInRequired) -> Response:
        logger.info("auth.required path=%s", request.url.path)
        return redirect(AUTH_PATH, _error(SIGN_IN_REQUIRED))

    @app.exception_handler(StoryWriteError)
    async def story_write_failed(request: Request, exc: StoryWriteError) -> Response:
        return redirect(PROFILE_PATH, _error(str(exc)))

    @app.get("/healthz", response_model=HealthResponse, tags=["system"])
    def healthz() -> HealthResponse:
        return HealthResponse()

    @app.get("/api/v1", response_model=ApiRootResponse, tags=["system"])
    def api_v1_root() -> ApiRootResponse:
        return ApiRootResponse(backend=backend)

    @app.get("/", response_class=HTMLResponse, tags=["pages"])
    async def index(
        request: Request, session: Session | None = Depends(current_session)
    ) -> Response:
        stories = await list_recent_stories(baas)
        body = render_story_list(
            stories,
            heading="Latest stories",
            empty_text="No stories have been published yet.",
        )
        return page(request, title="Home", body=body, session=session)

    @app.get("/auth", response_class=HTMLResponse, tags=["auth"])
    async def auth_page(
        request: Request, session: Session | None = Depends(current_session)
    ) -> Response:
        if session is not None:
            return redirect(PROFILE_PATH)
        return page(request, title="Sign in", body=render_auth_page(), session=None)

    @app.post("/auth/login", response_class=HTMLResponse, tags=["auth"])
    async def login(request: Request) -> Response:
        fields = await _form_fields(request, ("email", "password"))
        try:
            payload = AuthLoginRequest.model_validate(fields)
        except ValidationError as exc:
            return page(
                request,
                title="Sign in",
                body=render_auth_page(),
                session=None,
                notices=_error(_validation_message(exc)),
                status_code=400,
            )
        result = await baas.sign_in(
            email=payload.email, password=payload.password.get_secret_value()
        )
        token = _access_token(result)
        if token is None:
            logger.info("auth.login_failed code=%s", result.error.code if result.error else "")
            return page(
                request,
                title="Sign in",
                body=render_auth_page(),
                session=None,
                notices=_error(INVALID_CREDENTIALS),
                status_code=401,
            )
        await sessions.resolve(token)
        return signed_in_redirect(
            token, PROFILE_PATH, [Notice(level="success", message="Signed in")]
        )

    @app.post("/auth/register", response_class=HTMLResponse, tags=["auth"])
    async def register(request: Request) -> Response:
        fields = await _form_fields(
            request, ("email", "password", "first_name", "last_name", "username")
        )
        try:
            payload = AuthRegisterRequest.model_validate(fields)
        except ValidationError as exc:
            return page(
                request,
                title="Sign in",
                body=render_auth_page(),
                session=None,
                notices=_error(_validation_message(exc)),
                status_code=400,
            )
        password = payload.password.get_secret_value()
        created = await baas.sign_up(
            email=payload.email,
            password=password,
            first_name=payload.first_name,
            last_name=payload.last_name,
            username=payload.username,
        )
        if not created.ok:
            code = created.error.code if created.error else ""
            logger.info("auth.register_failed code=%s", code)
            message = SIGN_UP_CONFLICTS.get(code, SIGN_UP_FAILED)
            return page(
                request,
                title="Sign in",
                body=render_auth_page(),
                session=None,
                notices=_error(message),
                status_code=409 if code in SIGN_UP_CONFLICTS else 400,
            )
        token = _access_token(await baas.sign_in(email=payload.email, password=password))
        if token is None:
            return redirect(
                AUTH_PATH,
                [Notice(level="info", message="Account created. Sign in to continue.")],
            )
        await sessions.resolve(token)
        return signed_in_redirect(
            token, PROFILE_PATH, [Notice(level="success", message="Welcome to Inkora")]
        )

    @app.post("/auth/logout", tags=["auth"])
    async def logout(request: Request) -> Response:
        token = request.cookies.get(SESSION_COOKIE)
        if token:
            result = await baas.sign_out(access_token=token)
            if result.error is not None:
                logger.info("auth.logout_failed code=%s", result.error.code)
            sessions.invalidate(token)
        response = redirect(HOME_PATH, [Notice(level="info", message="Signed out")])
        response.delete_cookie(SESSION_COOKIE)
        return response

    @app.get("/profile", response_class=HTMLResponse, tags=["pages"])
    async def profile(request: Request, session: Session = Depends(signed_in)) -> Response:
        stories = await list_owner_stories(
            baas, owner_id=session.user_id, access_token=session.access_token
        )
        return page(
            request, title="Profile", body=render_profile(session, stories), session=session
        )

    @app.get("/write", response_class=HTMLResponse, tags=["pages"])
    async def write_page(request: Request, session: Session = Depends(signed_in)) -> Response:
        return page(request, title="Write", body=render_write_page(), session=session)

    @app.post("/write", response_class=HTMLResponse, tags=["pages"])
    async def write_story(request: Request, session: Session = Depends(signed_in)) -> Response:
        fields = await _form_fields(
            request, ("title", "description", "tags", "is_chapters", "content_type")
        )
        try:
            payload = StoryCreateRequest.model_validate(fields)
            story = await create_story(
                baas,
                session=session,
                title=payload.title,
                description=payload.description,
                tags=payload.tags,
                is_chapters=payload.is_chapters,
                content_type=payload.content_type,
            )
        except ValidationError as exc:
            return page(
                request,
                title="Write",
                body=render_write_page(),
                session=session,
                notices=_error(_validation_message(exc)),
                status_code=400,
            )
        except StoryWriteError as exc:
            return page(
                request,
                title="Write",
                body=render_write_page(),
                session=session,
                notices=_error(str(exc)),
                status_code=502,
            )
        return redirect(
            story_path(story.story_id), [Notice(level="success", message="Story created")]
        )

    @app.get("/story/{story_id}", response_class=HTMLResponse, tags=["pages"])
    async def story_detail(
        request: Request,
        story_id: str,
        comments: bool = False,
        page_number: int = Query(default=1, alias="page"),
        session: Session | None = Depends(current_session),
    ) -> Response:
        detail, notifier = detail_page(story_id, session)
        detail.state.show_comments = comments
        await detail.load()
        if detail.state.redirect_to is not None:
            return redirect(detail.state.redirect_to, notifier.drain())
        detail.go_to_page(page_number)
        return detail_html(request, detail, notifier)

    @app.post("/story/{story_id}/like", response_class=HTMLResponse, tags=["pages"])
    async def story_like(
        request: Request,
        story_id: str,
        session: Session | None = Depends(current_session),
    ) -> Response:
        detail, notifier = detail_page(story_id, session)
        await detail.load(record_view=False)
        if detail.state.redirect_to is not None:
            return redirect(detail.state.redirect_to, notifier.drain())
        await detail.toggle_like()
        return detail_html(request, detail, notifier)

    @app.post("/story/{story_id}/comments", response_class=HTMLResponse, tags=["pages"])
    async def story_comment(
        request: Request,
        story_id: str,
        session: Session | None = Depends(current_session),
    ) -> Response:
        fields = await _form_fields(request, ("content", "page"))
        detail, notifier = detail_page(story_id, session)
        detail.state.show_comments = True
        await detail.load(record_view=False)
        if detail.state.redirect_to is not None:
            return redirect(detail.state.redirect_to, notifier.drain())
        try:
            payload = CommentCreateRequest.model_validate({"content": fields.get("content", "")})
        except ValidationError as exc:
            notifier.error(_validation_message(exc))
            detail.set_comment_draft(fields.get("content", ""))
            return detail_html(request, detail, notifier)
        added = await detail.submit_comment(payload.content)
        if not added:
            detail.go_to_page(_page_field(fields.get("page", "1")))
        return detail_html(request, detail, notifier)

    @app.get("/story/{story_id}/write", response_class=HTMLResponse, tags=["pages"])
    async def story_writer(
        request: Request, story_id: str, session: Session = Depends(signed_in)
    ) -> Response:
        story = await owned_story_or_404(session=session, story_id=story_id)
        return await writer_html(request, session=session, story=story)

    @app.post("/story/{story_id}/write", response_class=HTMLResponse, tags=["pages"])
    async def story_write(
        request: Request, story_id: str, session: Session = Depends(signed_in)
    ) -> Response:
        story = await owned_story_or_404(session=session, story_id=story_id)
        fields = await _form_fields(request, ("title", "content"))
        try:
            if story.is_chapters:
                chapter = ChapterCreateRequest.model_validate(fields)
                await add_chapter(
                    baas,
                    session=session,
                    story=story,
                    title=chapter.title,
                    content=chapter.content,
                )
                message = "Chapter added"
            else:
                body = SingleContentRequest.model_validate({"content": fields.get("content", "")})
                await save_single_content(baas, session=session, story=story, content=body.content)
                message = "Story saved"
        except ValidationError as exc:
            return await writer_html(
                request,
                session=session,
                story=story,
                notices=_error(_validation_message(exc)),
                status_code=400,
            )
        except StoryWriteError as exc:
            return await writer_html(
                request,
                session=session,
                story=story,
                notices=_error(str(exc)),
                status_code=502,
            )
        return redirect(story_path(story.story_id), [Notice(level="success", message=message)])

    @app.get("/story/{story_id}/edit", response_class=HTMLResponse, tags=["pages"])
    async def story_edit(
        request: Request, story_id: str, session: Session = Depends(signed_in)
    ) -> Response:
        story = await owned_story_or_404(session=session, story_id=story_id)
        if story.is_chapters:
            return redirect(f"/story/{story.story_id}/edit-metadata")
        return await writer_html(request, session=session, story=story)

    @app.get("/story/{story_id}/edit-metadata", response_class=HTMLResponse, tags=["pages"])
    async def story_metadata(
        request: Request, story_id: str, session: Session = Depends(signed_in)
    ) -> Response:
        story = await owned_story_or_404(session=session, story_id=story_id)
        return page(
            request, title="Edit story", body=render_metadata_editor(story), session=session
        )

    @app.post("/story/{story_id}/edit-metadata", response_class=HTMLResponse, tags=["pages"])
    async def story_metadata_save(
        request: Request, story_id: str, session: Session = Depends(signed_in)
    ) -> Response:
        story = await owned_story_or_404(session=session, story_id=story_id)
        fields = await _form_fields(request, ("title", "description", "tags"))
        try:
            payload = StoryMetadataRequest.model_validate(fields)
            await update_metadata(
                baas,
                session=session,
                story=story,
                title=payload.title,
                description=payload.description,
                tags=payload.tags,
            )
        except ValidationError as exc:
            return page(
                request,
                title="Edit story",
                body=render_metadata_editor(story),
                session=session,
                notices=_error(_validation_message(exc)),
                status_code=400,
            )
        except StoryWriteError as exc:
            return page(
                request,
                title="Edit story",
                body=render_metadata_editor(story),
                session=session,
                notices=_error(str(exc)),
                status_code=502,
            )
        return redirect(
            story_path(story.story_id), [Notice(level="success", message="Story updated")]
        )

    @app.get("/story/{story_id}/read", response_class=HTMLResponse, tags=["pages"])
    async def story_read(
        request: Request,
        story_id: str,
        session: Session | None = Depends(current_session),
    ) -> Response:
        reading = await read_single_story(baas, story_id=story_id, session=session)
        if reading is None:
            raise HTTPException(status_code=404, detail="Story not found")
        return page(
            request,
            title=reading.story.title,
            body=render_story_reader(reading),
            session=session,
        )

    @app.get("/story/{story_id}/chapter/{chapter_id}", response_class=HTMLResponse, tags=["pages"])
    async def chapter_read(
        request: Request,
        story_id: str,
        chapter_id: str,
        session: Session | None = Depends(current_session),
    ) -> Response:
        reading = await read_chapter(
            baas, story_id=story_id, chapter_id=chapter_id, session=session
        )
        if reading is None:
            raise HTTPException(status_code=404, detail="Chapter not found")
        return page(
            request,
            title=reading.chapter.title,
            body=render_chapter_reader(reading),
            session=session,
        )

    @app.get(
        "/api/v1/stories/{story_id}/detail",
        response_model=StoryDetailResponse,
        tags=["stories"],
    )
    async def api_story_detail(
        story_id: str,
        page_number: int = Query(default=1, alias="page"),
        session: Session | None = Depends(current_session),
    ) -> StoryDetailResponse:
        detail, notifier = detail_page(story_id, session)
        await detail.load()
        detail.go_to_page(page_number)
        return _detail_response(detail, notifier.drain())

    @app.post(
        "/api/v1/stories/{story_id}/like",
        response_model=StoryDetailResponse,
        tags=["stories"],
    )
    async def api_story_like(
        story_id: str,
        session: Session | None = Depends(current_session),
    ) -> StoryDetailResponse:
        detail, notifier = detail_page(story_id, session)
        await detail.load(record_view=False)
        if detail.state.story is None:
            raise HTTPException(status_code=404, detail="Story not found")
        await detail.toggle_like()
        return _detail_response(detail, notifier.drain())

    @app.post(
        "/api/v1/stories/{story_id}/comments",
        response_model=StoryDetailResponse,
        tags=["stories"],
    )
    async def api_story_comment(
        story_id: str,
        payload: CommentCreateRequest,
        session: Session | None = Depends(current_session),
    ) -> StoryDetailResponse:
        detail, notifier = detail_page(story_id, session)
        await detail.load(record_view=False)
        if detail.state.story is None:
            raise HTTPException(status_code=404, detail="Story not found")
        await detail.submit_comment(payload.content)
        return _detail_response(detail, notifier.drain())

    return app


app = create_app()
