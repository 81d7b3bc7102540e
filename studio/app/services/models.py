"""Data models passed between the workflow phases."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

AspectRatio = Literal["1:1", "16:9", "4:5"]
ImageModel = Literal["standard", "pro"]
ImageStyle = Literal["professional", "abstract", "editorial", "infographic"]


class Angle(BaseModel):
    """One article angle proposed for a topic."""
    id: str
    title: str
    hook: str
    pitch: str


class Citation(BaseModel):
    title: str
    url: str
    snippet: Optional[str] = None


class ResearchResult(BaseModel):
    summary: str
    citations: List[Citation] = Field(default_factory=list)
    key_stats: List[str] = Field(default_factory=list)


class DraftResult(BaseModel):
    title: str
    content: str
    word_count: int


class ImagePrompt(BaseModel):
    id: str
    description: str
    style: ImageStyle


class GeneratedImage(BaseModel):
    base64: str
    media_type: str
