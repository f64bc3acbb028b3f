"""
Archive production and merging.

`producer` wraps `git archive`, `archiver` turns a unit into a staged
artifact, `formats` holds the per-container splice primitives and `merger`
combines (or separates) the staged artifacts.
"""

from .archiver import UnitArchiver
from .formats import SPLICE_STRATEGIES, get_splice_strategy
from .merger import ArchiveMerger, validate_destination
from .producer import ArchiveProducer, GitArchiveProducer

__all__ = [
    "ArchiveMerger",
    "ArchiveProducer",
    "GitArchiveProducer",
    "SPLICE_STRATEGIES",
    "UnitArchiver",
    "get_splice_strategy",
    "validate_destination",
]
