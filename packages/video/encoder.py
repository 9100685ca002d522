"""
Encoder - Mux rendered frames and mixdown audio with ffmpeg.
"""

import asyncio
import math
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

import anyio
import numpy as np
import structlog

from packages.core.config import get_config
from packages.core.errors import EncodeError

from .codecs import AUDIO_ENCODERS, VIDEO_ENCODERS, CodecSelection, FfmpegCapabilities
from .formats import AudioCodec, OutputContainer

logger = structlog.get_logger(__name__)

# Lossless audio codecs take no bitrate
_UNBOUNDED_AUDIO = {AudioCodec.FLAC, AudioCodec.PCM_S16, AudioCodec.PCM_F32}

_FASTSTART_CONTAINERS = {OutputContainer.MP4, OutputContainer.MOV}


class FfmpegMuxer:
    """
    Encode and mux one export through a single ffmpeg process.

    The whole mixdown is written to a temporary float32 PCM file before
    video starts. ffmpeg is spawned on the first video frame and reads raw
    RGB frames from stdin; each frame waits on the pipe draining, so frames
    are never queued faster than the encoder consumes them. The container
    is written to a temporary file and returned as bytes on finalize.

    Usage:
        muxer = FfmpegMuxer(selection, 1920, 1080, fps=30)
        await muxer.add_audio(samples, 48000, 2)
        muxer.close_audio()
        await muxer.add_video_frame(frame, 0.0, 1 / 30, key_frame=True)
        muxer.close_video()
        data = await muxer.finalize()
        await muxer.dispose()
    """

    def __init__(
        self,
        selection: CodecSelection,
        width: int,
        height: int,
        fps: float,
        video_bitrate: float = 8e6,
        audio_bitrate: float = 192e3,
        keyframe_interval: float = 5.0,
        ffmpeg_bin: Optional[str] = None,
        capabilities: Optional[FfmpegCapabilities] = None,
    ):
        """
        Initialize the muxer.

        Args:
            selection: Negotiated container and codecs
            width: Frame width in pixels
            height: Frame height in pixels
            fps: Output frame rate
            video_bitrate: Target video bitrate (bits/s)
            audio_bitrate: Target audio bitrate (bits/s)
            keyframe_interval: Seconds between forced keyframes
            ffmpeg_bin: ffmpeg executable (default from config)
            capabilities: Used to pick the ffmpeg encoder per codec
        """
        self.selection = selection
        self.width = width
        self.height = height
        self.fps = fps
        self.video_bitrate = video_bitrate
        self.audio_bitrate = audio_bitrate
        self.keyframe_interval = keyframe_interval
        self.ffmpeg_bin = ffmpeg_bin or get_config().ffmpeg_bin
        self.capabilities = capabilities

        self._workdir = Path(tempfile.mkdtemp(prefix="localcut-"))
        self._audio_path = self._workdir / "audio.f32"
        self._output_path = self._workdir / f"output.{selection.container.extension}"

        self._audio_format: Optional[tuple] = None
        self._audio_closed = False
        self._video_closed = False
        self._process: Optional[asyncio.subprocess.Process] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._stderr = bytearray()
        self._last_timestamp: Optional[float] = None
        self.frames_written = 0
        self.key_frames = 0
        self.disposed = False

    @property
    def mime_type(self) -> str:
        return self.selection.container.mime_type

    @property
    def stderr_text(self) -> str:
        return self._stderr.decode(errors="replace").strip()

    def _error(self, reason: str) -> EncodeError:
        return EncodeError(reason, container=self.selection.container.value)

    async def add_audio(self, samples: np.ndarray, sample_rate: int, channels: int) -> None:
        """Write the complete mixdown to the temporary PCM file."""
        if self.selection.audio_codec is None:
            raise self._error("no audio track was negotiated")
        if self._audio_closed or self._process is not None:
            raise self._error("audio must be submitted before video")

        data = np.ascontiguousarray(samples, dtype="<f4").tobytes()
        await anyio.to_thread.run_sync(self._audio_path.write_bytes, data)
        self._audio_format = (sample_rate, channels)
        logger.debug("muxer.audio_buffered", bytes=len(data), sample_rate=sample_rate)

    def close_audio(self) -> None:
        self._audio_closed = True

    async def _resolve_encoders(self):
        video_codec = self.selection.video_codec
        audio_codec = self.selection.audio_codec

        video_encoder = None
        audio_encoder = None
        if self.capabilities is not None:
            video_encoder = await self.capabilities.video_encoder(video_codec)
            if audio_codec is not None:
                audio_encoder = await self.capabilities.audio_encoder(audio_codec)

        video_encoder = video_encoder or VIDEO_ENCODERS[video_codec][0]
        if audio_codec is not None:
            audio_encoder = audio_encoder or AUDIO_ENCODERS[audio_codec][0]
        return video_encoder, audio_encoder

    def build_command(self, video_encoder: str, audio_encoder: Optional[str]) -> List[str]:
        """Build the ffmpeg command line."""
        container = self.selection.container
        gop = max(1, int(math.floor(self.fps * self.keyframe_interval)))

        cmd = [self.ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y"]

        # Input 0: raw frames on stdin
        cmd.extend([
            "-f", "rawvideo",
            "-pix_fmt", "rgb24",
            "-s", f"{self.width}x{self.height}",
            "-r", str(self.fps),
            "-i", "-",
        ])

        with_audio = self._audio_format is not None and audio_encoder is not None
        if with_audio:
            sample_rate, channels = self._audio_format
            cmd.extend([
                "-f", "f32le",
                "-ar", str(sample_rate),
                "-ac", str(channels),
                "-i", str(self._audio_path),
            ])

        cmd.extend(["-map", "0:v:0"])
        if with_audio:
            cmd.extend(["-map", "1:a:0"])

        cmd.extend([
            "-c:v", video_encoder,
            "-b:v", str(int(self.video_bitrate)),
            "-pix_fmt", "yuv420p",
            "-g", str(gop),
            "-force_key_frames", f"expr:gte(t,n_forced*{self.keyframe_interval:g})",
        ])

        if with_audio:
            cmd.extend(["-c:a", audio_encoder])
            if self.selection.audio_codec not in _UNBOUNDED_AUDIO:
                cmd.extend(["-b:a", str(int(self.audio_bitrate))])

        if container in _FASTSTART_CONTAINERS:
            cmd.extend(["-movflags", "+faststart"])

        cmd.extend(["-f", container.ffmpeg_format, str(self._output_path)])
        return cmd

    async def _start(self) -> None:
        video_encoder, audio_encoder = await self._resolve_encoders()
        cmd = self.build_command(video_encoder, audio_encoder)
        logger.debug("muxer.spawn", cmd=" ".join(cmd))

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise self._error(f"cannot run ffmpeg: {e}") from e

        self._stderr_task = asyncio.ensure_future(self._collect_stderr())
        logger.info(
            "muxer.started",
            container=self.selection.container.value,
            video_encoder=video_encoder,
            audio_encoder=audio_encoder if self._audio_format else None,
        )

    async def _collect_stderr(self) -> None:
        stream = self._process.stderr
        if stream is None:
            return
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                break
            self._stderr.extend(chunk)

    async def add_video_frame(
        self,
        frame: np.ndarray,
        timestamp: float,
        duration: float,
        key_frame: bool = False
    ) -> None:
        """
        Stream one RGB frame to the encoder.

        Raw frames carry no per-frame flags, so keyframe placement comes from
        the -force_key_frames cadence built from keyframe_interval. The
        key_frame argument is only counted in key_frames; callers flag the
        same cadence.

        Raises:
            EncodeError: If the track is closed, the timestamp does not
                increase, the frame has the wrong shape, or ffmpeg stopped
                accepting input
        """
        if self._video_closed:
            raise self._error("video track already closed")
        if self._last_timestamp is not None and timestamp <= self._last_timestamp:
            raise self._error(
                f"non-monotonic timestamp {timestamp:.6f} after {self._last_timestamp:.6f}"
            )
        if frame.shape != (self.height, self.width, 3):
            raise self._error(
                f"frame shape {frame.shape} does not match {self.width}x{self.height}"
            )

        if self._process is None:
            self._audio_closed = True
            await self._start()

        try:
            self._process.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise self._error(f"ffmpeg stopped accepting frames: {self.stderr_text or e}") from e

        self._last_timestamp = timestamp
        self.frames_written += 1
        if key_frame:
            self.key_frames += 1

    def close_video(self) -> None:
        self._video_closed = True

    async def finalize(self) -> bytes:
        """
        Flush ffmpeg and return the finished container.

        Raises:
            EncodeError: If no frame was written, ffmpeg failed, or the
                output is empty
        """
        if self._process is None:
            raise self._error("no video frames were submitted")

        self._video_closed = True
        stdin = self._process.stdin
        if stdin is not None:
            try:
                stdin.close()
                await stdin.wait_closed()
            except (BrokenPipeError, ConnectionResetError):
                # ffmpeg already exited; its return code tells why
                pass

        returncode = await self._process.wait()
        if self._stderr_task is not None:
            await self._stderr_task

        if returncode != 0:
            raise self._error(self.stderr_text or f"ffmpeg exited with {returncode}")

        if not self._output_path.exists():
            raise self._error("ffmpeg produced no output")
        data = await anyio.to_thread.run_sync(self._output_path.read_bytes)
        if not data:
            raise self._error("ffmpeg produced an empty file")

        logger.info(
            "muxer.finalized",
            container=self.selection.container.value,
            frames=self.frames_written,
            bytes=len(data),
        )
        return data

    async def dispose(self) -> None:
        """Kill ffmpeg if still running, reap it and remove temporary files."""
        if self.disposed:
            return
        self.disposed = True

        process = self._process
        if process is not None and process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
        if self._stderr_task is not None:
            if not self._stderr_task.done():
                self._stderr_task.cancel()
            await asyncio.gather(self._stderr_task, return_exceptions=True)

        shutil.rmtree(self._workdir, ignore_errors=True)
