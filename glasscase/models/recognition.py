"""Pydantic models for image recognition."""

from pydantic import BaseModel, Field


class RecognitionRequest(BaseModel):
    image: str = Field(..., min_length=1)  # base64 encoded image
    filename: str = Field(..., min_length=1)
    fileType: str | None = None


class RecognitionMatch(BaseModel):
    id: str
    collection: str
    itemType: str
    material: str
    manufacturer: str
    pattern: str
    era: str
    confidence: float
    description: str
    estimatedValue: float | None = None


class RecognitionResponse(BaseModel):
    matches: list[RecognitionMatch]
    primaryMatch: RecognitionMatch
    analysisId: str
    processedAt: str
    source: str
    labels: list[str] = []
