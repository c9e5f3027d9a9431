"""Deterministic object-store layout for a media."""

from pydantic import BaseModel, ConfigDict, Field

from src.domain.models.encoding import QUALITY_LADDER, VideoQuality

_ROOT = "videos"


class MediaPaths(BaseModel):
    """Object-store keys derived from a media id.

    Examples:
        >>> paths = MediaPaths(media_id="abc")
        >>> paths.variant(VideoQuality.Q720P)
        'videos/encoded/abc/720p.mp4'
        >>> paths.thumbnail
        'videos/thumbnails/abc.jpg'
    """

    model_config = ConfigDict(frozen=True)

    media_id: str = Field(min_length=1)

    def raw(self, filename: str) -> str:
        """Path of the original upload."""
        return f"{_ROOT}/raw/{self.media_id}/{filename}"

    @property
    def encoded_base(self) -> str:
        """Directory the worker writes renditions into."""
        return f"{_ROOT}/encoded/{self.media_id}"

    def variant(self, quality: VideoQuality | str) -> str:
        """Path of one rendition."""
        return f"{self.encoded_base}/{VideoQuality(quality).value}.mp4"

    @property
    def thumbnail(self) -> str:
        return f"{_ROOT}/thumbnails/{self.media_id}.jpg"

    @property
    def stt_audio(self) -> str:
        return f"{_ROOT}/audio/{self.media_id}/audio_for_stt.wav"

    @property
    def transcript(self) -> str:
        return f"{_ROOT}/transcripts/{self.media_id}/transcript.json"

    def all_objects(self, filename: str) -> list[str]:
        """Every key the pipeline may have written for this media."""
        return [
            self.raw(filename),
            *(self.variant(c.quality) for c in QUALITY_LADDER),
            self.thumbnail,
            self.stt_audio,
            self.transcript,
        ]
