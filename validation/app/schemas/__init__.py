from .files import PathContent, RawFile
from .metadata import (
    CompilerMetadata,
    MetadataParseResult,
    MetadataSettings,
    MetadataSource,
)
from .checked_contract import (
    CheckedContract,
    InvalidSource,
    MissingSource,
    SourceResolution,
)

__all__ = [
    "PathContent",
    "RawFile",
    "CompilerMetadata",
    "MetadataParseResult",
    "MetadataSettings",
    "MetadataSource",
    "CheckedContract",
    "InvalidSource",
    "MissingSource",
    "SourceResolution",
]
