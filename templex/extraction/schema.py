"""Template data model (Pydantic v2). Raw model output is sanitized by validation before it gets here."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ElementKind = Literal["heading", "paragraph", "list", "quote", "code", "section"]
ELEMENT_KINDS: tuple[str, ...] = ("heading", "paragraph", "list", "quote", "code", "section")
CONTENT_KINDS: tuple[str, ...] = ("paragraph", "list", "quote")

Flow = Literal["Linear", "Pyramid", "Circular"]
FLOWS: tuple[str, ...] = ("Linear", "Pyramid", "Circular")

PATTERN_KEYS: tuple[str, ...] = ("introduction", "body", "conclusion")
METADATA_KEYS: tuple[str, ...] = ("genre", "style", "purpose", "audience", "tone")

DEFAULT_KEYWORD_CONTEXT = "general"
UNTITLED_TEMPLATE = "Untitled Template"

ProgressPhase = Literal["chunking", "analyzing", "refining", "finalizing"]


class StructuralElement(BaseModel):
    """One structural unit of a document. children make it a tree."""

    model_config = ConfigDict(extra="ignore")

    kind: ElementKind
    level: int | None = Field(default=None, ge=1, le=6)
    content: str | None = None
    intent: str | None = None
    persuasion: str | None = None
    technique: str | None = None
    transition: str | None = None
    keywords: list[str] = Field(default_factory=list)
    children: list[StructuralElement] = Field(default_factory=list)


class TemplateComponent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    purpose: str = ""
    examples: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    position: int = 0
    weight: float = Field(default=0.0, ge=0.0, le=1.0)


class RhetoricalTemplate(BaseModel):
    """Abstracted, reusable composition pattern (e.g. Problem-Solution, AIDA)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    formula: str
    components: list[TemplateComponent] = Field(default_factory=list)
    flow: Flow = "Linear"
    persuasion_techniques: list[str] = Field(default_factory=list, alias="persuasionTechniques")


class NormalizedKeyword(BaseModel):
    term: str
    weight: float = Field(default=1.0, ge=0.0, le=1.0)
    context: str = DEFAULT_KEYWORD_CONTEXT


class FragmentAnalysis(BaseModel):
    """What one completion call said about one fragment, after repair and sanitizing."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    elements: list[StructuralElement] = Field(default_factory=list)
    keywords: list[NormalizedKeyword] = Field(default_factory=list)
    patterns: dict[str, str] = Field(default_factory=dict)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    abstract_template: RhetoricalTemplate | None = Field(default=None, alias="abstractTemplate")
    # Non-fatal recovery notes (dropped elements, partial parse)
    warnings: list[str] = Field(default_factory=list)


class DocumentTemplate(BaseModel):
    """Final merged artifact returned to the caller."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str = UNTITLED_TEMPLATE
    structure: list[StructuralElement] = Field(default_factory=list)
    abstract_template: RhetoricalTemplate | None = Field(default=None, alias="abstractTemplate")
    metadata: dict[str, str] = Field(default_factory=dict)
    patterns: dict[str, str] = Field(default_factory=dict)
    keywords: list[NormalizedKeyword] = Field(default_factory=list)


class ProgressInfo(BaseModel):
    phase: ProgressPhase
    current: int = 0
    total: int = 0
    message: str = ""


class ExtractionResult(BaseModel):
    template: DocumentTemplate
    confidence: float = Field(ge=0.0, le=1.0)
    processing_time_ms: int = 0
    chunks: int = 0
    errors: list[str] | None = None
