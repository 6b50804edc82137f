import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from book import Book, BookFilter
from config import settings, setup_logging
from library import Library, NotFoundError, ValidationError
from storage import StorageError, initialize_storage, open_document

logger = logging.getLogger(__name__)


# --- Models ---
class BookModel(BaseModel):
    id: str
    title: str
    pages: int
    price: float
    genres: List[str]


class BookPayloadModel(BaseModel):
    """Fields a client supplies when creating or replacing a book."""
    title: str = ""
    pages: int = 0
    price: float = 0.0
    genres: List[str] | None = Field(default=None, description="At least one genre label")

    def to_book(self, book_id: str = "") -> Book:
        return Book(id=book_id, title=self.title, pages=self.pages, price=self.price, genres=self.genres)


class BookFilterModel(BaseModel):
    price: str = Field(description="Comparison such as '>10' or '<9.99'")


class MessageModel(BaseModel):
    message: str


# --- Helpers ---
def _to_model(book: Book) -> BookModel:
    return BookModel(**book.to_dict())


def _raise_http(exc: Exception) -> None:
    """Map a store error onto an HTTP error response."""
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.error("Storage failure: %s", exc)
    raise HTTPException(status_code=500, detail=f"Storage error: {exc}") from exc


# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key(api_key: Optional[str] = Security(api_key_header)):
    """Dependency validating the API key on mutating routes."""
    if api_key == settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")


def get_library(request: Request) -> Library:
    return request.app.state.library


def create_app(data_file: Optional[str] = None) -> FastAPI:
    """Build the API; the document is opened on startup and closed on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        path = initialize_storage(data_file or settings.data_file)
        app.state.library = Library(open_document(path))
        logger.info("Serving books from %s", path)
        try:
            yield
        finally:
            app.state.library.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    @app.get("/")
    def index():
        return {"message": f"Welcome to the {settings.app_name} API"}

    @app.get("/health")
    def health(library: Library = Depends(get_library)):
        """Lightweight health check that also proves the document decodes."""
        now_iso = datetime.now(timezone.utc).isoformat()
        try:
            total = len(library.get_books())
        except StorageError as e:
            return {"status": "unhealthy", "timestamp": now_iso, "detail": str(e)}
        return {"status": "healthy", "timestamp": now_iso, "total_books": total}

    @app.get("/books", response_model=List[BookModel])
    def list_books(library: Library = Depends(get_library)):
        """Return the whole collection in document order."""
        try:
            return [_to_model(b) for b in library.get_books()]
        except StorageError as e:
            _raise_http(e)

    @app.post("/books", response_model=BookModel, status_code=201, dependencies=[Depends(get_api_key)])
    def create_book(payload: BookPayloadModel, library: Library = Depends(get_library)):
        try:
            return _to_model(library.create_book(payload.to_book()))
        except (ValidationError, StorageError) as e:
            _raise_http(e)

    @app.post("/books/filter", response_model=List[BookModel])
    def filter_books(payload: BookFilterModel, library: Library = Depends(get_library)):
        """Books whose price strictly satisfies the comparison."""
        try:
            return [_to_model(b) for b in library.price_filter(BookFilter(price=payload.price))]
        except (ValidationError, StorageError) as e:
            _raise_http(e)

    @app.get("/books/{book_id}", response_model=BookModel)
    def get_book(book_id: str, library: Library = Depends(get_library)):
        try:
            return _to_model(library.get_book(book_id))
        except (NotFoundError, StorageError) as e:
            _raise_http(e)

    @app.put("/books/{book_id}", response_model=BookModel, dependencies=[Depends(get_api_key)])
    def change_book(book_id: str, payload: BookPayloadModel, library: Library = Depends(get_library)):
        """Replace title, pages, price and genres of a book."""
        try:
            return _to_model(library.change_book(payload.to_book(book_id)))
        except (NotFoundError, StorageError) as e:
            _raise_http(e)

    @app.delete("/books/{book_id}", response_model=MessageModel, dependencies=[Depends(get_api_key)])
    def remove_book(book_id: str, library: Library = Depends(get_library)):
        try:
            library.remove_book(book_id)
        except (NotFoundError, StorageError) as e:
            _raise_http(e)
        return {"message": "Book removed."}

    return app


app = create_app()
