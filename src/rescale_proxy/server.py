"""
FastAPI application serving rescaled images.

Routes every GET of the form /{head}/{tail} through the ImageProxy and
frames the result as an HTTP response.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from loguru import logger

from .config import Settings, settings as default_settings
from .errors import ConfigurationError, FetchError
from .images import ContentStore, Fetcher, ImageCache
from .magic import MagicResolver
from .proxy import ImageProxy, Purged


def raw_tail(request: Request, tail: str) -> str:
    """
    Return the path after the first segment exactly as the client sent it.

    The routed tail is percent-decoded, which would change upstream URLs
    such as ``a%3Fb.png``. Falls back to the decoded tail when the server
    does not provide ``raw_path``.
    """
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return tail
    parts = raw_path.decode("latin-1").split("/", 2)
    return parts[2] if len(parts) == 3 else tail


def build_proxy(settings: Settings, fetcher: Fetcher) -> ImageProxy:
    """Wire the caches and the dispatcher from settings."""
    image_cache = ImageCache(
        fetcher=fetcher,
        store=ContentStore(settings.cache_path),
        base_urls=settings.base_urls,
        max_backoff=settings.max_backoff,
    )
    magic_resolver = MagicResolver(
        fetcher=fetcher,
        ttl=settings.magic_ttl,
        max_backoff=settings.max_backoff,
    )
    return ImageProxy(image_cache, magic_resolver, cache_max_age=settings.cache_max_age)


def create_app(settings: Settings | None = None, fetcher: Fetcher | None = None) -> FastAPI:
    """
    Create the proxy application.

    Args:
        settings: Settings to use (defaults to the global instance)
        fetcher: Optional fetcher override (mainly for tests)

    Returns:
        Configured FastAPI application

    Raises:
        ConfigurationError: If a rescale base URL or the referer is missing
    """
    settings = settings or default_settings
    missing = settings.missing_required()
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    fetcher = fetcher or Fetcher(referer=settings.referer, timeout=settings.fetch_timeout)
    proxy = build_proxy(settings, fetcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Serving images from cache at {}", settings.cache_path)
        yield
        await fetcher.aclose()

    app = FastAPI(title="rescale-proxy", lifespan=lifespan, docs_url=None, redoc_url=None)
    app.state.proxy = proxy
    app.add_middleware(CORSMiddleware, allow_origins=["*"])

    @app.exception_handler(FetchError)
    async def fetch_error_handler(request: Request, exc: FetchError) -> Response:
        status_code = 400 if exc.is_input_error else 404
        logger.info("{} {} -> {}", request.method, request.url.path, exc)
        return PlainTextResponse(str(exc), status_code=status_code)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "images": len(proxy.image_cache.entries),
                "magic": len(proxy.magic_resolver.entries),
            }
        )

    @app.get("/{head}/{tail:path}")
    async def proxy_image(head: str, tail: str, request: Request) -> Response:
        tail = raw_tail(request, tail)
        query = request.url.query
        if query:
            tail = f"{tail}?{query}"

        result = await proxy.handle(head, tail)
        if isinstance(result, Purged):
            return PlainTextResponse("purged")

        return Response(
            content=result.image.body,
            media_type=result.image.content_type,
            headers={"Cache-Control": f"public,max-age={result.max_age}"},
        )

    return app
