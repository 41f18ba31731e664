"""svgcompact streaming SVG engine."""

from svgcompact.engine.context import ParseContext, SvgElementListener, Verbosity
from svgcompact.engine.driver import SvgHandler
from svgcompact.engine.loader import (
    AssetSource,
    BytesSource,
    FileSource,
    ResourceSource,
    StreamSource,
    StringSource,
    SvgLoader,
    load_file,
    load_string,
)

__all__ = [
    "ParseContext",
    "SvgElementListener",
    "Verbosity",
    "SvgHandler",
    "SvgLoader",
    "StreamSource",
    "StringSource",
    "BytesSource",
    "FileSource",
    "ResourceSource",
    "AssetSource",
    "load_string",
    "load_file",
]
