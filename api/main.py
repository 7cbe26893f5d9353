"""
FastAPI main application for the Bookshelf API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import errors
from api.auth import get_token_service, require_user
from api.books import BookStore
from api.config import APIConfig
from api.database import DatabaseManager, health_check
from api.models import (
    BookCreate, BookMutationResponse, BookResponse, BookUpdate,
    ErrorResponse, HealthResponse, MessageResponse, TokenClaims,
    TokenResponse, UserCredentials
)
from api.tokens import TokenService
from api.users import CredentialStore

# Setup logging
logger = structlog.get_logger(__name__)


def get_book_store(request: Request) -> BookStore:
    return request.app.state.books


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.users


def _error_body(status_code: int, message: str, detail: Optional[str] = None) -> dict:
    return ErrorResponse(message=message, detail=detail, status_code=status_code).model_dump()


def create_app(settings: Optional[APIConfig] = None, database=None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; read from the environment when omitted
        database: Pre-opened database handle. When omitted a motor client
            is opened from settings.mongodb_url at startup.
    """
    settings = settings or APIConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Bookshelf API")

        manager = None
        db = database
        if db is None:
            manager = DatabaseManager(settings.mongodb_url, settings.mongodb_database)
            try:
                db = await manager.connect()
            except Exception as e:
                logger.error("Failed to connect to database", error=str(e))
                raise

        app.state.database = db
        app.state.users = CredentialStore(db[settings.users_collection], rounds=settings.bcrypt_rounds)
        app.state.books = BookStore(db[settings.books_collection])
        app.state.tokens = TokenService(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_minutes=settings.access_token_expire_minutes
        )

        await app.state.users.ensure_indexes()
        await app.state.books.ensure_indexes()
        logger.info("Database indexes ensured")

        yield

        logger.info("Shutting down Bookshelf API")
        if manager:
            await manager.disconnect()

    app = FastAPI(
        title=settings.api_title,
        description="""
    Book catalog API.

    ## Authentication

    Register, then log in to obtain a token. Adding, updating and deleting
    books require it in the Authorization header:

    ```
    Authorization: Bearer your_token_here
    ```

    Tokens expire after one hour by default.
    """,
        version=settings.api_version,
        lifespan=lifespan
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request with its status and duration."""
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2)
        )
        return response

    # Exception handlers
    @app.exception_handler(errors.APIError)
    async def api_error_handler(request: Request, exc: errors.APIError):
        """Render taxonomy errors as ErrorResponse bodies."""
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.detail)
        detail = exc.detail
        if exc.status_code >= 500 and not settings.debug:
            detail = None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.status_code, exc.message, detail),
            headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as 400 ValidationError."""
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=errors.ValidationError.status_code,
            content=_error_body(
                errors.ValidationError.status_code,
                errors.ValidationError.message,
                problems
            )
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                errors.InternalError.message,
                str(exc) if settings.debug else None
            )
        )

    # Health check endpoint (no authentication required)
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health(request: Request):
        """Health check endpoint."""
        info = await health_check(
            request.app.state.database,
            settings.users_collection,
            settings.books_collection
        )
        db_status = info.get("status", "unknown")
        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=settings.api_version,
            database_status=db_status
        )

    # Auth endpoints
    @app.post(
        "/api/auth/register",
        response_model=MessageResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Auth"]
    )
    async def register(
        body: UserCredentials,
        users: CredentialStore = Depends(get_credential_store)
    ):
        """Create a user. Usernames are unique."""
        await users.register(body.username, body.password)
        return MessageResponse(message="User registered successfully")

    @app.post("/api/auth/login", response_model=TokenResponse, tags=["Auth"])
    async def login(
        body: UserCredentials,
        users: CredentialStore = Depends(get_credential_store),
        tokens: TokenService = Depends(get_token_service)
    ):
        """Exchange a username and password for a bearer token."""
        user = await users.authenticate(body.username, body.password)
        token = tokens.issue(str(user["_id"]), user["username"])
        logger.info("User logged in", username=user["username"])
        return TokenResponse(token=token)

    # Books endpoints
    @app.post(
        "/api/books/add",
        response_model=BookMutationResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Books"]
    )
    async def add_book(
        body: BookCreate,
        user: TokenClaims = Depends(require_user),
        books: BookStore = Depends(get_book_store)
    ):
        """
        Add a book.

        - **name**, **author**, **price**: required
        - **imageUrl**: optional cover image URL
        """
        book = await books.create(body)
        return BookMutationResponse(message="Book added successfully", book=book)

    @app.get("/api/books", response_model=List[BookResponse], tags=["Books"])
    async def list_books(books: BookStore = Depends(get_book_store)):
        """Get all books, newest first."""
        return await books.list()

    @app.get("/api/books/{book_id}", response_model=BookResponse, tags=["Books"])
    async def get_book(book_id: str, books: BookStore = Depends(get_book_store)):
        """
        Get a single book by ID.

        - **book_id**: MongoDB ObjectId of the book
        """
        return await books.get_by_id(book_id)

    @app.put("/api/books/{book_id}", response_model=BookMutationResponse, tags=["Books"])
    async def update_book(
        book_id: str,
        body: BookUpdate,
        user: TokenClaims = Depends(require_user),
        books: BookStore = Depends(get_book_store)
    ):
        """Update some fields of a book; omitted fields are left unchanged."""
        book = await books.update(book_id, body)
        return BookMutationResponse(message="Book updated successfully", book=book)

    @app.delete("/api/books/{book_id}", response_model=BookMutationResponse, tags=["Books"])
    async def delete_book(
        book_id: str,
        user: TokenClaims = Depends(require_user),
        books: BookStore = Depends(get_book_store)
    ):
        """Delete a book and return it."""
        book = await books.delete(book_id)
        return BookMutationResponse(message="Book deleted successfully", book=book)

    return app
