from .archive import ArchiveCodec, ArchiveMetrics, ContainerFormat, CorruptArchiveError
from .batch import BatchOrchestrator, BatchReport, FileOutcome, NoChaptersFound, OutcomeStatus
from .encoding import DecodedText, EncodingError, EncodingResolver, SizeLimitError
from .normalize import normalize_content
from .segment import Chapter, ChapterCollection, ChapterSegmenter, EmptyPolicy

__all__ = [
    "ArchiveCodec",
    "ArchiveMetrics",
    "ContainerFormat",
    "CorruptArchiveError",
    "BatchOrchestrator",
    "BatchReport",
    "FileOutcome",
    "NoChaptersFound",
    "OutcomeStatus",
    "DecodedText",
    "EncodingError",
    "EncodingResolver",
    "SizeLimitError",
    "normalize_content",
    "Chapter",
    "ChapterCollection",
    "ChapterSegmenter",
    "EmptyPolicy",
]
