"""
Request schemas for the shorts API.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Matches the 11 character YouTube video id in watch, share and embed URLs
YOUTUBE_ID_PATTERN = re.compile(r"(?:v=|/)([0-9A-Za-z_-]{11})")


class GenerateShortsRequest(BaseModel):
    """Request body for POST /api/shorts/generate."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {"videoUrl": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"},
        },
    )

    video_url: Optional[str] = Field(
        default=None,
        description="YouTube video URL to cut into shorts",
    )

    def youtube_video_id(self) -> Optional[str]:
        """The video id embedded in video_url, or None when it does not look like YouTube."""
        if not self.video_url:
            return None
        match = YOUTUBE_ID_PATTERN.search(self.video_url)
        return match.group(1) if match else None
