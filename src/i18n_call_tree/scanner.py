"""
File level driver: parse a Ruby file, index its magic comments, normalize it and collect its translation calls.

A file that cannot be read, parsed or normalized is reported as a failure for that file alone; the other files are
still scanned.
"""
import logging
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Iterable
from typing import List
from typing import Type
from typing import Union

from i18n_call_tree.errors import NormalizationError
from i18n_call_tree.errors import SourceParseError
from i18n_call_tree.nodes import Result
from i18n_call_tree.nodes import translation_calls
from i18n_call_tree.nodes import TranslationCall
from i18n_call_tree.normalize.magic_comments import SnippetParser
from i18n_call_tree.normalize.normalizer import Normalizer
from i18n_call_tree.raw import ruby

__all__ = ["FileScan", "ScanFailure", "ScanReport", "scan_source", "scan_paths"]

logger = logging.getLogger(__name__)


@dataclass
class FileScan:
    path: str
    tree: Result
    translation_calls: List[TranslationCall] = field(default_factory=list)
    skipped: bool = False
    """True when the file asked to be left out with the skip marker. The tree is None in that case"""


@dataclass
class ScanFailure:
    path: str
    error: Exception


@dataclass
class ScanReport:
    scans: List[FileScan] = field(default_factory=list)
    failures: List[ScanFailure] = field(default_factory=list)

    @property
    def translation_calls(self) -> List[TranslationCall]:
        return [call for scan in self.scans for call in scan.translation_calls]


def scan_source(
    source: Union[str, bytes],
    path: str = "<unknown>",
    normalizer_class: Type[Normalizer] = Normalizer,
    parser: SnippetParser = ruby.parse,
) -> FileScan:
    """Scan the source of one file. Parse and normalization errors are raised to the caller"""
    if isinstance(source, bytes):
        source = source.decode("utf8")

    parsed = parser(source)
    if normalizer_class.magic_comment_class.requests_skip(parsed.comments):
        logger.debug("%s: skipped on request of a magic comment", path)
        return FileScan(path, None, skipped=True)

    normalizer = normalizer_class(comments=parsed.comments, parser=parser)
    tree = normalizer.normalize(parsed.tree)
    return FileScan(path, tree, list(translation_calls(tree)))


def scan_paths(
    paths: Iterable[Union[str, Path]],
    normalizer_class: Type[Normalizer] = Normalizer,
    parser: SnippetParser = ruby.parse,
) -> ScanReport:
    """Scan each file. Any file which fails is reported in `ScanReport.failures` and does not stop the scan"""
    report = ScanReport()
    for path in paths:
        path = Path(path)
        try:
            scan = scan_source(path.read_text(encoding="utf8"), str(path), normalizer_class, parser)
        except (OSError, UnicodeDecodeError, SourceParseError, NormalizationError) as e:
            logger.warning("%s: could not be scanned: %s", path, e)
            report.failures.append(ScanFailure(str(path), e))
            continue
        except Exception as e:
            # Anything else is still a failure of this file only
            logger.exception("%s: could not be scanned: unexpected error", path)
            report.failures.append(ScanFailure(str(path), e))
            continue

        report.scans.append(scan)

    return report
