# Audio package - asset decoding and timeline mixdown

from .decoder import FfmpegAudioDecoder
from .mixdown import AudioMixdownEngine, MixdownBuffer, mix_timeline_audio

__all__ = [
    "FfmpegAudioDecoder",
    "AudioMixdownEngine",
    "MixdownBuffer",
    "mix_timeline_audio",
]
