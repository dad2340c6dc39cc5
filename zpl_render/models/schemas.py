"""
Pydantic Models and Schemas
===========================

Core data models for parsed labels, render pipeline values and API responses.
Every model here is request-scoped: built while handling one request and
discarded once the response is sent.
"""

from typing import Optional, List, Dict, Any, Literal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# Enums
class ElementType(str, Enum):
    """Label element types."""
    TEXT = "text"
    BOX = "box"
    CIRCLE = "circle"
    ELLIPSE = "ellipse"


class FieldOrientation(str, Enum):
    """Field rotation, clockwise from normal."""
    NORMAL = "N"
    ROTATED = "R"
    INVERTED = "I"
    BOTTOM_UP = "B"


class LineColor(str, Enum):
    """Line color for graphic fields."""
    BLACK = "B"
    WHITE = "W"


# Label Models
class LabelElement(BaseModel):
    """A single drawable field of a label, positioned in dots."""
    type: ElementType = Field(..., description="Element type")
    x: int = Field(0, description="Left edge in dots, label home applied")
    y: int = Field(0, description="Top edge (or baseline for typeset fields) in dots")

    # Graphic properties
    width: Optional[int] = Field(None, ge=0, description="Width in dots")
    height: Optional[int] = Field(None, ge=0, description="Height in dots")
    thickness: int = Field(1, ge=1, description="Line thickness in dots")
    color: LineColor = Field(LineColor.BLACK, description="Line color")
    rounding: int = Field(0, ge=0, le=8, description="Corner rounding (0-8)")

    # Text properties
    text: Optional[str] = Field(None, description="Field data")
    font_name: str = Field("0", description="Font identifier")
    font_height: int = Field(9, ge=1, description="Character height in dots")
    font_width: Optional[int] = Field(None, ge=1, description="Character width in dots")
    orientation: FieldOrientation = Field(FieldOrientation.NORMAL, description="Field rotation")
    baseline: bool = Field(False, description="Origin is the text baseline (^FT)")

    reverse: bool = Field(False, description="Invert pixels under the field (^FR)")


class LabelDocument(BaseModel):
    """One label, i.e. everything between ^XA and ^XZ."""
    elements: List[LabelElement] = Field(default_factory=list, description="Label fields in order")
    print_width: Optional[int] = Field(None, description="Print width in dots (^PW)")
    label_length: Optional[int] = Field(None, description="Label length in dots (^LL)")


# Render Pipeline Models
class RenderRequest(BaseModel):
    """Validated path geometry plus the raw markup of one render call."""
    width_mm: int = Field(..., description="Label width in millimeters")
    height_mm: int = Field(..., description="Label height in millimeters")
    dpmm: int = Field(..., description="Resolution in dots per millimeter")
    raw_markup: bytes = Field(..., description="Raw ZPL bytes", repr=False)


class RenderOptions(BaseModel):
    """Options handed to the rasterizer."""
    model_config = ConfigDict(frozen=True)

    label_width_mm: float = Field(..., description="Label width in millimeters")
    label_height_mm: float = Field(..., description="Label height in millimeters")
    dpmm: int = Field(..., description="Dots per millimeter")

    @classmethod
    def from_request(cls, request: RenderRequest) -> "RenderOptions":
        return cls(
            label_width_mm=float(request.width_mm),
            label_height_mm=float(request.height_mm),
            dpmm=request.dpmm,
        )


class PNGResult(BaseModel):
    """Result of PNG generation."""
    png_data: bytes = Field(..., description="PNG binary data", exclude=True, repr=False)
    width: int = Field(..., description="Image width in pixels")
    height: int = Field(..., description="Image height in pixels")
    file_size: int = Field(..., description="File size in bytes")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Generation metadata")


# Health Check Models
class HealthStatus(BaseModel):
    """Health check status."""
    status: Literal["healthy"] = Field("healthy", description="Overall status")


# Error Models
class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., min_length=1, description="Error message")
