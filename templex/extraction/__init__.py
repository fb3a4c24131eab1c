"""
Template extraction core: JSON repair, similarity, keyword aggregation, structure merge,
validation, bounded refinement, and the TemplateExtractor facade.
"""
from templex.extraction.chunking import FragmentProcessor, split_text
from templex.extraction.config import ChunkingSettings, ExtractionConfig, ExtractionOptions
from templex.extraction.errors import ExtractionError, TemplateValidationError
from templex.extraction.extractor import TemplateExtractor
from templex.extraction.json_repair import extract_structured, recover_partial_fields
from templex.extraction.keywords import (
    keyword_list_similarity,
    merge_keyword_lists,
    normalize_keyword,
    normalize_keywords,
)
from templex.extraction.merger import (
    SemanticMergeStrategy,
    StructureMerger,
    create_merge_strategy,
    merge_element_lists,
    merge_elements,
)
from templex.extraction.parsing import parse_fragment_response
from templex.extraction.ports import ChunkCallbacks, ChunkProcessor
from templex.extraction.prompt import PromptBuilder
from templex.extraction.schema import (
    DocumentTemplate,
    ExtractionResult,
    FragmentAnalysis,
    NormalizedKeyword,
    ProgressInfo,
    RhetoricalTemplate,
    StructuralElement,
    TemplateComponent,
)
from templex.extraction.similarity import (
    edit_distance,
    element_similarity,
    set_similarity,
    string_similarity,
)
from templex.extraction.templates import compare_templates, merge_templates, simplify_template
from templex.extraction.validation import (
    clamp_weight,
    validate_document_template,
    validate_element,
    validate_fragment_analysis,
    validate_rhetorical_template,
)

__all__ = [
    "TemplateExtractor",
    "ExtractionConfig",
    "ExtractionOptions",
    "ChunkingSettings",
    "ExtractionError",
    "TemplateValidationError",
    "FragmentProcessor",
    "split_text",
    "ChunkCallbacks",
    "ChunkProcessor",
    "PromptBuilder",
    "DocumentTemplate",
    "ExtractionResult",
    "FragmentAnalysis",
    "NormalizedKeyword",
    "ProgressInfo",
    "RhetoricalTemplate",
    "StructuralElement",
    "TemplateComponent",
    "extract_structured",
    "recover_partial_fields",
    "parse_fragment_response",
    "edit_distance",
    "string_similarity",
    "set_similarity",
    "element_similarity",
    "merge_elements",
    "merge_element_lists",
    "SemanticMergeStrategy",
    "StructureMerger",
    "create_merge_strategy",
    "normalize_keyword",
    "normalize_keywords",
    "merge_keyword_lists",
    "keyword_list_similarity",
    "clamp_weight",
    "validate_element",
    "validate_rhetorical_template",
    "validate_fragment_analysis",
    "validate_document_template",
    "merge_templates",
    "simplify_template",
    "compare_templates",
]
