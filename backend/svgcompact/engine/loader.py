"""Input sources and the loader that runs one parse.

Usage:
    picture = SvgLoader.from_file("icon.svg").with_color_map({0xFF0000: 0x00FF00}).load()
    future = SvgLoader.from_string(markup).load_async(callback)
"""

from __future__ import annotations

import gzip
import io
import logging
import time
import zlib
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from importlib import resources
from pathlib import Path
from typing import IO, Callable
from xml.etree import ElementTree

from svgcompact.config import settings
from svgcompact.engine.context import FontLookup, ParseContext, SvgElementListener, Verbosity
from svgcompact.engine.driver import SvgHandler
from svgcompact.errors import SvgParseError
from svgcompact.render.drawable import SvgPicture
from svgcompact.svg.text import asset_font_lookup

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

Callback = Callable[["SvgPicture | None", "SvgParseError | None"], None]


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class SvgSource:
    """Opens the document's byte stream and closes it afterwards."""

    def open(self) -> IO[bytes]:
        raise NotImplementedError

    def close(self, stream: IO[bytes]) -> None:
        stream.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class StreamSource(SvgSource):
    """A caller-owned stream; left open after parsing."""

    def __init__(self, stream: IO[bytes]) -> None:
        self.stream = stream

    def open(self) -> IO[bytes]:
        return self.stream

    def close(self, stream: IO[bytes]) -> None:
        pass


class StringSource(SvgSource):
    def __init__(self, text: str) -> None:
        self.text = text

    def open(self) -> IO[bytes]:
        return io.BytesIO(self.text.encode("utf-8"))


class BytesSource(SvgSource):
    def __init__(self, data: bytes) -> None:
        self.data = data

    def open(self) -> IO[bytes]:
        return io.BytesIO(self.data)


class FileSource(SvgSource):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def open(self) -> IO[bytes]:
        return self.path.open("rb")

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r})"


class ResourceSource(SvgSource):
    """A file packaged inside an importable package."""

    def __init__(self, package: str, name: str) -> None:
        self.package = package
        self.name = name

    def open(self) -> IO[bytes]:
        return resources.files(self.package).joinpath(self.name).open("rb")

    def __repr__(self) -> str:
        return f"ResourceSource({self.package!r}, {self.name!r})"


class AssetSource(SvgSource):
    """A named file under an asset root directory."""

    def __init__(self, root: str | Path, name: str) -> None:
        self.root = Path(root)
        self.name = name

    def open(self) -> IO[bytes]:
        return (self.root / self.name).open("rb")

    def __repr__(self) -> str:
        return f"AssetSource({str(self.root)!r}, {self.name!r})"


def maybe_gunzip(stream: IO[bytes]) -> IO[bytes]:
    """Wrap ``stream`` in a gzip reader when it starts with the gzip magic.

    Sniffing needs a stream that can peek or seek; anything else is assumed
    to be uncompressed already.
    """
    if hasattr(stream, "peek"):
        head = stream.peek(2)[:2]
    elif stream.seekable():
        pos = stream.tell()
        head = stream.read(2)
        stream.seek(pos)
    else:
        return stream
    if head == GZIP_MAGIC:
        return gzip.GzipFile(fileobj=stream, mode="rb")
    return stream


def parse_stream(stream: IO[bytes], ctx: ParseContext, chunk_size: int | None = None) -> SvgPicture:
    """Feed ``stream`` through the markup parser into a fresh document driver."""
    handler = SvgHandler(ctx, settings.fallback_size)
    parser = ElementTree.XMLParser(target=handler)
    chunk_size = chunk_size or settings.read_chunk_size
    try:
        reader = maybe_gunzip(stream)
        while True:
            chunk = reader.read(chunk_size)
            if not chunk:
                break
            parser.feed(chunk)
        return parser.close()
    except (OSError, EOFError, zlib.error, ElementTree.ParseError) as exc:
        raise SvgParseError(f"Failed to read SVG: {exc}") from exc
    finally:
        ctx.finish()


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

_executor: ThreadPoolExecutor | None = None


def _default_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="svgcompact")
    return _executor


class SvgLoader:
    """Configures and runs one parse of one source."""

    def __init__(self, source: SvgSource) -> None:
        self.source = source
        self.color_map: dict[int, int] | None = None
        self.listener: SvgElementListener | None = None
        self.font_lookup: FontLookup | None = None
        self.dynamic_texts: dict[str, str] | None = None
        self.verbosity = Verbosity.parse(settings.svgcompact_verbosity)

    # --- Sources ---
    @classmethod
    def from_string(cls, text: str) -> SvgLoader:
        return cls(StringSource(text))

    @classmethod
    def from_bytes(cls, data: bytes) -> SvgLoader:
        return cls(BytesSource(data))

    @classmethod
    def from_file(cls, path: str | Path) -> SvgLoader:
        return cls(FileSource(path))

    @classmethod
    def from_stream(cls, stream: IO[bytes]) -> SvgLoader:
        return cls(StreamSource(stream))

    @classmethod
    def from_resource(cls, package: str, name: str) -> SvgLoader:
        return cls(ResourceSource(package, name))

    @classmethod
    def from_asset(cls, root: str | Path, name: str) -> SvgLoader:
        return cls(AssetSource(root, name)).with_assets(root)

    # --- Options ---
    def with_color_map(self, color_map: dict[int, int]) -> SvgLoader:
        """Replace colors while parsing; colors seen but not mapped are added to the map."""
        self.color_map = color_map
        return self

    def with_listener(self, listener: SvgElementListener) -> SvgLoader:
        self.listener = listener
        return self

    def with_font_lookup(self, lookup: FontLookup) -> SvgLoader:
        self.font_lookup = lookup
        return self

    def with_assets(self, root: str | Path) -> SvgLoader:
        """Resolve ``font-family`` names to ``<root>/fonts/<family>.ttf``."""
        self.font_lookup = asset_font_lookup(root)
        return self

    def with_dynamic_texts(self, texts: dict[str, str]) -> SvgLoader:
        """Substitute text content by exact match; the table is cleared after one parse."""
        self.dynamic_texts = texts
        return self

    def with_verbosity(self, level: str | int | Verbosity) -> SvgLoader:
        self.verbosity = Verbosity.parse(level)
        return self

    # --- Running ---
    def _context(self) -> ParseContext:
        return ParseContext(
            color_map=self.color_map if self.color_map is not None else {},
            dynamic_texts=self.dynamic_texts,
            font_lookup=self.font_lookup,
            listener=self.listener,
            verbosity=self.verbosity,
        )

    def load(self) -> SvgPicture:
        """Parse synchronously. Raises :class:`SvgParseError` on failure."""
        t0 = time.perf_counter()
        try:
            stream = self.source.open()
        except OSError as exc:
            raise SvgParseError(f"Failed to open {self.source!r}: {exc}") from exc
        try:
            result = parse_stream(stream, self._context())
        finally:
            self.source.close(stream)
        elapsed = (time.perf_counter() - t0) * 1000
        logger.info("Parsed %r: %d ops in %.1fms", self.source, len(result.picture), elapsed)
        return result

    def load_async(self, callback: Callback | None = None, executor: Executor | None = None) -> Future[SvgPicture]:
        """Parse on a worker; ``callback(result, error)`` runs once when done."""
        future = (executor or _default_executor()).submit(self.load)
        if callback is not None:

            def _done(done: Future[SvgPicture]) -> None:
                error = done.exception()
                if error is None:
                    callback(done.result(), None)
                elif isinstance(error, SvgParseError):
                    callback(None, error)
                else:
                    wrapped = SvgParseError(f"Unexpected failure parsing {self.source!r}: {error}")
                    wrapped.__cause__ = error
                    callback(None, wrapped)

            future.add_done_callback(_done)
        return future


def load_string(text: str, **options: object) -> SvgPicture:
    return _configure(SvgLoader.from_string(text), options).load()


def load_file(path: str | Path, **options: object) -> SvgPicture:
    return _configure(SvgLoader.from_file(path), options).load()


def _configure(loader: SvgLoader, options: dict[str, object]) -> SvgLoader:
    for name, value in options.items():
        setter = getattr(loader, f"with_{name}", None)
        if setter is None:
            raise TypeError(f"Unknown loader option: {name}")
        setter(value)
    return loader
