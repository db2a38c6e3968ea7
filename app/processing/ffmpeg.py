"""ffmpeg invocation for a single variation.

The command is built by plain functions so it can be checked without running
ffmpeg; `transcode` only executes what `build_ffmpeg_command` returns.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from app.config import Settings
from app.processing.params import TransformConfig

logger = logging.getLogger(__name__)

# How much of ffmpeg's stderr ends up in the job error message
STDERR_TAIL_LINES = 5


class TranscodeError(RuntimeError):
    """ffmpeg could not produce the output file."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


@dataclass(frozen=True)
class EncoderOptions:
    ffmpeg_bin: str = "ffmpeg"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "fast"
    crf: int = 23

    @classmethod
    def from_settings(cls, s: Settings) -> "EncoderOptions":
        return cls(
            ffmpeg_bin=s.ffmpeg_bin,
            video_codec=s.video_codec,
            audio_codec=s.audio_codec,
            preset=s.encoder_preset,
            crf=s.encoder_crf,
        )


@dataclass
class FilterPlan:
    """Ordered filter stages derived from a TransformConfig."""
    video: List[str] = field(default_factory=list)
    audio: List[str] = field(default_factory=list)

    @property
    def video_chain(self) -> Optional[str]:
        return ",".join(self.video) if self.video else None

    @property
    def audio_chain(self) -> Optional[str]:
        return ",".join(self.audio) if self.audio else None


def _num(value: float) -> str:
    return repr(float(value))


def build_filter_plan(config: TransformConfig) -> FilterPlan:
    """Map a config to filter stages: tempo, color, scale, flip."""
    plan = FilterPlan()

    # Speed: retime video and audio together so they stay in sync
    if config.speed != 1:
        plan.audio.append(f"atempo={_num(config.speed)}")
        plan.video.append(f"setpts={_num(1 / config.speed)}*PTS")

    eq = []
    if config.brightness != 0:
        eq.append(f"brightness={_num(config.brightness)}")
    if config.contrast != 1:
        eq.append(f"contrast={_num(config.contrast)}")
    if config.saturation != 1:
        eq.append(f"saturation={_num(config.saturation)}")
    if eq:
        plan.video.append("eq=" + ":".join(eq))

    if config.scale != 1:
        s = _num(config.scale)
        plan.video.append(f"scale=iw*{s}:ih*{s}")

    if config.flip:
        plan.video.append("hflip")

    return plan


def build_ffmpeg_command(
    input_path: str,
    output_path: str,
    config: TransformConfig,
    options: Optional[EncoderOptions] = None,
) -> List[str]:
    """Constructs the ffmpeg command line arguments."""
    options = options or EncoderOptions()
    plan = build_filter_plan(config)

    cmd = [options.ffmpeg_bin, "-y", "-i", str(input_path)]
    if plan.video_chain:
        cmd.extend(["-filter:v", plan.video_chain])
    if plan.audio_chain:
        cmd.extend(["-filter:a", plan.audio_chain])
    cmd.extend([
        "-c:v", options.video_codec,
        "-c:a", options.audio_codec,
        "-preset", options.preset,
        "-crf", str(options.crf),
        str(output_path),
    ])
    return cmd


def _stderr_tail(stderr: bytes) -> str:
    lines = [ln for ln in stderr.decode(errors="ignore").splitlines() if ln.strip()]
    return "\n".join(lines[-STDERR_TAIL_LINES:])


async def transcode(
    input_path: str,
    output_path: str,
    config: TransformConfig,
    options: Optional[EncoderOptions] = None,
) -> None:
    """Run ffmpeg for one variation and wait for it to exit.

    Raises:
        TranscodeError: binary missing or non-zero exit (message carries stderr tail)
    """
    cmd = build_ffmpeg_command(input_path, output_path, config, options)
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    logger.debug("Running: %s", " ".join(cmd))

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise TranscodeError(f"ffmpeg binary not found: {cmd[0]}") from exc

    try:
        _, stderr = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    if process.returncode != 0:
        tail = _stderr_tail(stderr or b"")
        message = f"ffmpeg exited with code {process.returncode}"
        if tail:
            message = f"{message}: {tail}"
        raise TranscodeError(message, returncode=process.returncode)
