"""pybacnet-points: BACnet point name normalization, Haystack tag inference and template matching."""

__version__ = "0.1.0"

from .batch import BatchResult, PointRecord, normalize_batch, process_batch, tag_batch
from .classify import classify, parse_object_type
from .context import infer_context
from .dictionaries import AcronymStore, get_default_store
from .errors import (
    EmptyIdentifierError,
    InvalidSignaturePattern,
    PyBACnetPointsError,
    TagGenerationFailure,
    UnknownTemplateError,
)
from .matching import MatchingConfig, SignatureStats, match_template
from .normalize import NormalizerConfig, PointNormalizer, normalize, tokenize
from .signature import normalize_pattern, template_signature, to_signature
from .tagger import HaystackTagger, TaggingConfig, tag, validate_consistency
from .templates import TemplateLibrary, get_default_templates, load_templates
from .types import (
    ConfidenceLevel,
    HaystackTag,
    HaystackTagSet,
    MatchReport,
    NormalizedPoint,
    ObjectType,
    PointFunction,
    PointSignature,
    RawPoint,
    TemplateMatch,
)

__all__ = [
    "__version__",
    "BatchResult",
    "PointRecord",
    "normalize_batch",
    "process_batch",
    "tag_batch",
    "classify",
    "parse_object_type",
    "infer_context",
    "AcronymStore",
    "get_default_store",
    "EmptyIdentifierError",
    "InvalidSignaturePattern",
    "PyBACnetPointsError",
    "TagGenerationFailure",
    "UnknownTemplateError",
    "MatchingConfig",
    "SignatureStats",
    "match_template",
    "NormalizerConfig",
    "PointNormalizer",
    "normalize",
    "tokenize",
    "normalize_pattern",
    "template_signature",
    "to_signature",
    "HaystackTagger",
    "TaggingConfig",
    "tag",
    "validate_consistency",
    "TemplateLibrary",
    "get_default_templates",
    "load_templates",
    "ConfidenceLevel",
    "HaystackTag",
    "HaystackTagSet",
    "MatchReport",
    "NormalizedPoint",
    "ObjectType",
    "PointFunction",
    "PointSignature",
    "RawPoint",
    "TemplateMatch",
]
