import io
import os
import logging
import wave
from typing import Optional, Tuple

import numpy as np

from utils.errors import ProcessingError, ValidationError
from utils.files import derive_filename, unique_output_path


logger = logging.getLogger(__name__)

SUPPORTED_OUTPUT_FORMATS = ("wav",)
SUPPORTED_SAMPLE_WIDTHS = (1, 2, 3, 4)


def decode_wav(data: bytes) -> Tuple[np.ndarray, int]:
    """
    Decode PCM WAV bytes.

    Returns (samples, sample_rate) where samples is a float32 array of
    shape [frames, channels] scaled to [-1, 1].
    """
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            channels = wf.getnchannels()
            width = wf.getsampwidth()
            rate = wf.getframerate()
            raw = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as e:
        raise ProcessingError(
            "Unsupported audio format. Only PCM WAV input can be decoded."
        ) from e

    if width not in SUPPORTED_SAMPLE_WIDTHS:
        raise ProcessingError(f"Unsupported audio format: {width * 8}-bit samples")

    if width == 1:
        # 8-bit WAV is unsigned
        ints = np.frombuffer(raw, dtype=np.uint8).astype(np.float32)
        samples = (ints - 128.0) / 128.0
    elif width == 2:
        samples = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    elif width == 3:
        b = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        ints = b[:, 0] | (b[:, 1] << 8) | (b[:, 2] << 16)
        ints = np.where(ints & 0x800000, ints - 0x1000000, ints)
        samples = ints.astype(np.float32) / 8388608.0
    else:
        samples = (np.frombuffer(raw, dtype="<i4").astype(np.float64) / 2147483648.0).astype(
            np.float32
        )

    return samples.reshape(-1, channels), rate


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """
    Encode float samples as 16-bit PCM little-endian WAV.
    """
    samples = np.asarray(samples, dtype=np.float32)
    if samples.ndim == 1:
        samples = samples.reshape(-1, 1)

    clipped = np.clip(samples, -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    pcm = np.round(scaled).astype("<i2")

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(samples.shape[1])
        wf.setsampwidth(2)
        wf.setframerate(int(sample_rate))
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


def mix_down(samples: np.ndarray) -> np.ndarray:
    """Average all channels into one."""
    if samples.shape[1] == 1:
        return samples
    return samples.mean(axis=1, keepdims=True).astype(np.float32)


def resample(samples: np.ndarray, src_rate: int, dst_rate: int) -> np.ndarray:
    if src_rate == dst_rate or len(samples) == 0:
        return samples
    if dst_rate <= 0:
        raise ValidationError("Sample rate must be positive.")

    frames = len(samples)
    out_frames = max(1, int(round(frames * dst_rate / src_rate)))
    src_positions = np.arange(frames)
    dst_positions = np.linspace(0, frames - 1, out_frames)

    channels = [
        np.interp(dst_positions, src_positions, samples[:, c]) for c in range(samples.shape[1])
    ]
    return np.stack(channels, axis=1).astype(np.float32)


class AudioProcessor:
    def __init__(self, output_folder: str):
        self.output_folder = output_folder

    def convert(
        self,
        path: str,
        output_format: str = "wav",
        sample_rate: Optional[int] = None,
        channels: Optional[int] = None,
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        fmt = (output_format or "wav").lower()
        if fmt not in SUPPORTED_OUTPUT_FORMATS:
            raise ValidationError(
                f"Output format '{fmt}' is not supported. Supported: "
                + ", ".join(SUPPORTED_OUTPUT_FORMATS)
            )
        if channels not in (None, 1, 2):
            raise ValidationError("Channels must be 1 or 2.")

        with open(path, "rb") as f:
            samples, rate = decode_wav(f.read())

        if channels == 1:
            samples = mix_down(samples)
        elif channels == 2 and samples.shape[1] == 1:
            samples = np.repeat(samples, 2, axis=1)

        target_rate = sample_rate or rate
        samples = resample(samples, rate, target_rate)

        name = derive_filename(original_name or os.path.basename(path), "", fmt)
        out_path = unique_output_path(self.output_folder, name, fmt)
        with open(out_path, "wb") as f:
            f.write(encode_wav(samples, target_rate))

        logger.debug(
            "converted %s: %d Hz -> %d Hz, %d channel(s)",
            name,
            rate,
            target_rate,
            samples.shape[1],
        )
        return out_path, name, "audio/wav"
