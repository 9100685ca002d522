"""
Exporter - Render a timeline frame by frame and encode it to one file.
"""

import asyncio
import math
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

import structlog

from packages.audio.mixdown import AudioMixdownEngine, MixdownBuffer
from packages.core.cancellation import AbortSignal
from packages.core.config import LocalCutConfig, get_config
from packages.core.errors import (
    EncodeError,
    ExportCancelledError,
    LocalCutError,
    MediaError,
    RenderError,
    ValidationError,
)
from packages.core.protocols import (
    AudioDecoder,
    EncoderProbe,
    FrameRenderer,
    LoadedSource,
    MediaMuxer,
    ProgressCallback,
)
from packages.core.types import ExportState, FitMode
from packages.core.utils import ensure_dir, frame_count, safe_filename
from packages.timeline.composition import build_composition
from packages.timeline.models import Timeline, Track

from .codecs import CodecNegotiator, CodecSelection, FfmpegCapabilities
from .compositor import FrameCompositor
from .encoder import FfmpegMuxer
from .formats import OutputContainer
from .sources import SourceOpener, dispose_sources, load_sources, open_source

logger = structlog.get_logger(__name__)

DEFAULT_FILENAME_BASE = "localcut-export"


@dataclass
class ExportOptions:
    """Settings for one export."""
    width: int = 1920
    height: int = 1080
    fps: float = 30.0
    background_color: str = "#000000"
    fit_mode: FitMode = FitMode.CONTAIN
    container: Optional[Union[OutputContainer, str]] = None  # None = mp4, then webm
    filename_base: str = DEFAULT_FILENAME_BASE
    sample_rate: int = 48_000
    channels: int = 2
    keyframe_interval: float = 5.0  # seconds
    video_bitrate: float = 8e6
    audio_bitrate: float = 192e3
    yield_interval: int = 4  # frames between cooperative yields
    abort_signal: Optional[AbortSignal] = None
    on_progress: Optional[ProgressCallback] = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid output size: {self.width}x{self.height}")
        if self.fps <= 0:
            raise ValueError(f"Invalid fps: {self.fps}")
        if isinstance(self.fit_mode, str):
            self.fit_mode = FitMode(self.fit_mode.lower())
        self.yield_interval = max(1, self.yield_interval)

    @property
    def frame_duration(self) -> float:
        return 1.0 / self.fps

    @property
    def keyframe_every(self) -> int:
        """Frames between forced keyframes."""
        return max(1, int(math.floor(self.fps * self.keyframe_interval)))

    @classmethod
    def from_config(cls, config: Optional[LocalCutConfig] = None, **overrides) -> "ExportOptions":
        """Options seeded from the environment config."""
        config = config or get_config()
        values = dict(
            width=config.default_width,
            height=config.default_height,
            fps=config.default_fps,
            sample_rate=config.sample_rate,
            channels=config.channels,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class ExportResult:
    """A finished export."""
    output_bytes: bytes
    suggested_file_name: str
    mime_type: str
    metadata: Dict = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.output_bytes)

    def save(self, directory: Union[str, Path]) -> Path:
        """Write the output to directory/suggested_file_name."""
        path = ensure_dir(Path(directory)) / self.suggested_file_name
        path.write_bytes(self.output_bytes)
        return path


RendererFactory = Callable[[ExportOptions, Mapping[str, LoadedSource]], FrameRenderer]
MuxerFactory = Callable[[CodecSelection, ExportOptions], MediaMuxer]


class ExportJob:
    """
    One export invocation.

    Drives Idle -> MixingAudio -> NegotiatingCodecs -> Rendering ->
    Finalizing -> Done. Cancellation or failure ends in Cancelled/Failed.
    Everything the job acquires is owned by it and disposed exactly once
    when it ends, whatever the outcome.
    """

    def __init__(
        self,
        timeline: Timeline,
        options: ExportOptions,
        mixdown_engine: AudioMixdownEngine,
        negotiator: CodecNegotiator,
        renderer_factory: RendererFactory,
        muxer_factory: MuxerFactory,
        source_opener: SourceOpener = open_source,
    ):
        self.timeline = timeline
        self.options = options
        self.mixdown_engine = mixdown_engine
        self.negotiator = negotiator
        self.renderer_factory = renderer_factory
        self.muxer_factory = muxer_factory
        self.source_opener = source_opener

        self.state = ExportState.IDLE
        self.state_history: List[ExportState] = [ExportState.IDLE]
        self.selection: Optional[CodecSelection] = None
        self.mixdown: Optional[MixdownBuffer] = None
        self.frames_rendered = 0

        self._sources: Dict[str, LoadedSource] = {}
        self._renderer: Optional[FrameRenderer] = None
        self._muxer: Optional[MediaMuxer] = None

    def _set_state(self, state: ExportState) -> None:
        self.state = state
        self.state_history.append(state)
        logger.debug("export.state", state=state.value)

    def _check_abort(self) -> None:
        if self.options.abort_signal is not None:
            self.options.abort_signal.throw_if_aborted()

    def _report(self, progress: float) -> None:
        if self.options.on_progress is not None:
            self.options.on_progress(progress)

    @contextmanager
    def _encoder_errors(self):
        """Wrap foreign muxer failures in EncodeError."""
        try:
            yield
        except LocalCutError:
            raise
        except Exception as e:
            container = self.selection.container.value if self.selection else None
            raise EncodeError(f"{type(e).__name__}: {e}", container=container) from e

    @contextmanager
    def _render_errors(self, frame_index: Optional[int] = None):
        """Wrap source and renderer failures in RenderError."""
        try:
            yield
        except MediaError as e:
            raise RenderError(str(e), frame_index=frame_index) from e
        except LocalCutError:
            raise
        except Exception as e:
            raise RenderError(f"{type(e).__name__}: {e}", frame_index=frame_index) from e

    def _acquire(self) -> None:
        options = self.options
        with self._encoder_errors():
            self._muxer = self.muxer_factory(self.selection, options)
        with self._render_errors():
            self._sources = load_sources(self.timeline.tracks, self.source_opener)
            self._renderer = self.renderer_factory(options, self._sources)

    async def _render_frame(self, index: int):
        t = index / self.options.fps
        composition = build_composition(
            t,
            self.timeline.tracks,
            self._sources,
            self.options.width,
            self.options.height,
            fit_mode=self.options.fit_mode,
        )
        with self._render_errors(frame_index=index):
            return await self._renderer.render(composition.layers)

    async def _dispose(self) -> None:
        if self._renderer is not None:
            try:
                self._renderer.dispose()
            except Exception as e:
                logger.warning("export.dispose_failed", resource="renderer", reason=str(e))
            self._renderer = None

        dispose_sources(self._sources)

        if self._muxer is not None:
            try:
                await self._muxer.dispose()
            except Exception as e:
                logger.warning("export.dispose_failed", resource="muxer", reason=str(e))
            self._muxer = None

    async def run(self) -> ExportResult:
        """
        Run the export.

        Returns:
            ExportResult with the container bytes

        Raises:
            ValidationError: If the timeline has zero duration
            NoEncodableFormatError: If no container/codec combination encodes
            RenderError: If a source fails to load or a frame fails to render
            EncodeError: If the encoder or muxer fails
            ExportCancelledError: If the abort signal trips
        """
        if self.state != ExportState.IDLE:
            raise RuntimeError("ExportJob can only run once")

        options = self.options
        duration = self.timeline.duration
        if duration <= 0:
            self._set_state(ExportState.FAILED)
            raise ValidationError("timeline has zero duration")

        total_frames = frame_count(duration, options.fps)
        started = time.monotonic()
        logger.info(
            "export.started",
            duration=round(duration, 3),
            frames=total_frames,
            width=options.width,
            height=options.height,
            fps=options.fps,
        )

        try:
            self._set_state(ExportState.MIXING_AUDIO)
            self.mixdown = await self.mixdown_engine.mix(
                self.timeline.tracks, duration, abort_signal=options.abort_signal
            )

            self._set_state(ExportState.NEGOTIATING_CODECS)
            self._check_abort()
            self.selection = await self.negotiator.negotiate(
                options.width,
                options.height,
                needs_audio=self.mixdown is not None,
                preference=options.container,
            )

            self._acquire()

            with self._encoder_errors():
                if self.mixdown is not None and self.selection.has_audio:
                    await self._muxer.add_audio(
                        self.mixdown.samples, self.mixdown.sample_rate, self.mixdown.channels
                    )
                self._muxer.close_audio()

            self._set_state(ExportState.RENDERING)
            for index in range(total_frames):
                self._check_abort()

                frame = await self._render_frame(index)
                with self._encoder_errors():
                    await self._muxer.add_video_frame(
                        frame,
                        index / options.fps,
                        options.frame_duration,
                        key_frame=index % options.keyframe_every == 0,
                    )
                self.frames_rendered = index + 1
                self._report(index / total_frames)

                if index % options.yield_interval == 0:
                    await asyncio.sleep(0)

            self._set_state(ExportState.FINALIZING)
            self._check_abort()
            with self._encoder_errors():
                self._muxer.close_video()
                output = await self._muxer.finalize()
                mime_type = self._muxer.mime_type

            container = self.selection.container
            file_name = f"{safe_filename(options.filename_base, DEFAULT_FILENAME_BASE)}.{container.extension}"
            self._report(1.0)
            self._set_state(ExportState.DONE)

            elapsed = time.monotonic() - started
            logger.info(
                "export.completed",
                file_name=file_name,
                bytes=len(output),
                frames=self.frames_rendered,
                elapsed=round(elapsed, 3),
            )
            return ExportResult(
                output_bytes=output,
                suggested_file_name=file_name,
                mime_type=mime_type,
                metadata={
                    "container": container.value,
                    "video_codec": self.selection.video_codec.value,
                    "audio_codec": (
                        self.selection.audio_codec.value if self.selection.audio_codec else None
                    ),
                    "frames": self.frames_rendered,
                    "duration": duration,
                },
            )

        except ExportCancelledError as e:
            self._set_state(ExportState.CANCELLED)
            logger.info("export.cancelled", frames=self.frames_rendered, reason=e.details.get("reason"))
            raise
        except Exception as e:
            self._set_state(ExportState.FAILED)
            logger.error("export.failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            await self._dispose()


class TimelineExporter:
    """
    Export timelines with injectable collaborators.

    Usage:
        exporter = TimelineExporter()
        result = await exporter.export(timeline, ExportOptions(width=1280, height=720))
        result.save("exports")
    """

    def __init__(
        self,
        probe: Optional[EncoderProbe] = None,
        audio_decoder: Optional[AudioDecoder] = None,
        renderer_factory: Optional[RendererFactory] = None,
        muxer_factory: Optional[MuxerFactory] = None,
        source_opener: SourceOpener = open_source,
    ):
        """
        Initialize the exporter.

        Args:
            probe: Encoder capability probe (default: local ffmpeg)
            audio_decoder: Audio decoder for the mixdown (default: ffmpeg)
            renderer_factory: Builds the render surface (default: FrameCompositor)
            muxer_factory: Builds the muxer (default: FfmpegMuxer)
            source_opener: Opens visual assets (default: OpenCV sources)
        """
        self.probe = probe or FfmpegCapabilities()
        self.audio_decoder = audio_decoder
        self.renderer_factory = renderer_factory or self._default_renderer
        self.muxer_factory = muxer_factory or self._default_muxer
        self.source_opener = source_opener

    @staticmethod
    def _default_renderer(
        options: ExportOptions, sources: Mapping[str, LoadedSource]
    ) -> FrameRenderer:
        return FrameCompositor(options.width, options.height, sources, options.background_color)

    def _default_muxer(self, selection: CodecSelection, options: ExportOptions) -> MediaMuxer:
        capabilities = self.probe if isinstance(self.probe, FfmpegCapabilities) else None
        return FfmpegMuxer(
            selection,
            options.width,
            options.height,
            options.fps,
            video_bitrate=options.video_bitrate,
            audio_bitrate=options.audio_bitrate,
            keyframe_interval=options.keyframe_interval,
            capabilities=capabilities,
        )

    def create_job(self, timeline: Timeline, options: ExportOptions) -> ExportJob:
        """Build a job bound to fresh per-export collaborators."""
        engine = AudioMixdownEngine(
            decoder=self.audio_decoder,
            sample_rate=options.sample_rate,
            channels=options.channels,
        )
        negotiator = CodecNegotiator(
            self.probe,
            video_bitrate=options.video_bitrate,
            audio_channels=options.channels,
            audio_sample_rate=options.sample_rate,
            audio_bitrate=options.audio_bitrate,
        )
        return ExportJob(
            timeline,
            options,
            mixdown_engine=engine,
            negotiator=negotiator,
            renderer_factory=self.renderer_factory,
            muxer_factory=self.muxer_factory,
            source_opener=self.source_opener,
        )

    async def export(
        self,
        timeline: Union[Timeline, Sequence[Track]],
        options: Optional[ExportOptions] = None,
    ) -> ExportResult:
        """
        Export a timeline.

        Args:
            timeline: Timeline, or its tracks in display order
            options: Export settings (default: ExportOptions())

        Returns:
            ExportResult
        """
        if not isinstance(timeline, Timeline):
            timeline = Timeline(tracks=list(timeline))
        job = self.create_job(timeline, options or ExportOptions())
        return await job.run()


async def export_timeline(
    timeline: Union[Timeline, Sequence[Track]],
    options: Optional[ExportOptions] = None,
    **kwargs
) -> ExportResult:
    """
    Convenience function to export a timeline with the default ffmpeg stack.

    Args:
        timeline: Timeline or tracks
        options: Export settings
        **kwargs: Forwarded to TimelineExporter

    Returns:
        ExportResult
    """
    return await TimelineExporter(**kwargs).export(timeline, options)
