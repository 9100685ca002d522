"""Protocol definitions for localcut collaborators.

Protocols define the seams between the export core and the media
primitives it drives: decoding, frame rasterization, encoding and muxing.
The default implementations live in ``packages.audio`` and
``packages.video``; tests and embedders can supply their own.

Usage:
    from packages.core import MediaMuxer

    async def write(muxer: MediaMuxer, frame) -> None:
        await muxer.add_video_frame(frame, timestamp=0.0, duration=1 / 30, key_frame=True)
"""

from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

ProgressCallback = Callable[[float], None]


@runtime_checkable
class LoadedSource(Protocol):
    """Export-scoped handle over one visual asset.

    Opened once per export and disposed unconditionally at its end.
    """

    asset_id: str
    width: int
    height: int
    duration: float

    def frame_at(self, timestamp: float) -> Any:
        """Get the RGB frame shown at a source timestamp.

        Args:
            timestamp: Source time in seconds

        Returns:
            uint8 array of shape (height, width, 3)

        Raises:
            SourceDecodeError: If the frame cannot be produced
        """
        ...

    def dispose(self) -> None:
        """Release decoder resources."""
        ...


@runtime_checkable
class AudioDecoder(Protocol):
    """Decodes a window of an asset's audio to float PCM."""

    async def decode(
        self,
        asset: Any,
        start: float,
        end: float,
        sample_rate: int,
        channels: int,
    ) -> Optional[Any]:
        """Decode source audio in [start, end).

        Args:
            asset: The asset to read
            start: Window start in source seconds
            end: Window end in source seconds
            sample_rate: Output sample rate in Hz
            channels: Output channel count

        Returns:
            float32 array of shape (frames, channels), or None when the
            asset has no audio stream

        Raises:
            SourceDecodeError: If the audio cannot be opened or decoded
        """
        ...


@runtime_checkable
class FrameRenderer(Protocol):
    """Export-scoped render surface that rasterizes layer stacks."""

    width: int
    height: int

    async def render(self, layers: Sequence[Any]) -> Any:
        """Rasterize layers (bottom to top) into one RGB frame.

        Returns:
            uint8 array of shape (height, width, 3)
        """
        ...

    def dispose(self) -> None:
        """Release the surface."""
        ...


@runtime_checkable
class EncoderProbe(Protocol):
    """Answers whether a codec can actually be encoded with given settings."""

    async def can_encode_video(self, codec: str, width: int, height: int, bitrate: float) -> bool:
        ...

    async def can_encode_audio(
        self, codec: str, channels: int, sample_rate: int, bitrate: float
    ) -> bool:
        ...


@runtime_checkable
class MediaMuxer(Protocol):
    """Encoder/muxer pair bound to negotiated codecs.

    Audio is submitted whole and closed before the first video frame.
    Video frames arrive in strictly increasing timestamp order.
    """

    @property
    def mime_type(self) -> str:
        ...

    async def add_audio(self, samples: Any, sample_rate: int, channels: int) -> None:
        """Submit the complete mixdown buffer."""
        ...

    def close_audio(self) -> None:
        """Mark the audio track complete."""
        ...

    async def add_video_frame(
        self, frame: Any, timestamp: float, duration: float, key_frame: bool = False
    ) -> None:
        """Submit one frame; resolves once the encoder accepted it."""
        ...

    def close_video(self) -> None:
        """Mark the video track complete."""
        ...

    async def finalize(self) -> bytes:
        """Flush encoders, finish the container and return its bytes."""
        ...

    async def dispose(self) -> None:
        """Tear down encoder processes and temporary storage."""
        ...

