# Video package - sources, compositing, codec negotiation and export

from .codecs import (
    CodecNegotiator,
    CodecSelection,
    FfmpegCapabilities,
    negotiate_codecs,
    parse_encoder_list,
)
from .compositor import FrameCompositor
from .encoder import FfmpegMuxer
from .exporter import (
    ExportJob,
    ExportOptions,
    ExportResult,
    TimelineExporter,
    export_timeline,
)
from .filters import apply_filters
from .formats import AudioCodec, OutputContainer, VideoCodec, parse_container
from .probe import probe_asset
from .sources import ImageSource, VideoFileSource, load_sources, open_source

__all__ = [
    # Formats
    "OutputContainer",
    "VideoCodec",
    "AudioCodec",
    "parse_container",
    # Codec negotiation
    "CodecNegotiator",
    "CodecSelection",
    "FfmpegCapabilities",
    "negotiate_codecs",
    "parse_encoder_list",
    # Sources
    "VideoFileSource",
    "ImageSource",
    "open_source",
    "load_sources",
    "probe_asset",
    # Rendering
    "FrameCompositor",
    "apply_filters",
    # Encoding
    "FfmpegMuxer",
    # Export
    "ExportOptions",
    "ExportResult",
    "ExportJob",
    "TimelineExporter",
    "export_timeline",
]
