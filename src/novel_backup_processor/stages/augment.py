"""Augment Engine: 기존 백업 문서에 아카이브 챕터 추가

아카이브로 임시 문서를 만든 뒤 기존 문서를 base로 하여 병합한다.
충돌 처리 규칙은 Merge Engine과 동일하다.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
from novel_backup_processor.stages.archive_reader import (
    DEFAULT_EXTENSIONS, ChapterSource, open_archive, read_archive
)
from novel_backup_processor.stages.builder import build_from_raw
from novel_backup_processor.stages.chapter import BackupDocument
from novel_backup_processor.stages.merge_engine import (
    DEFAULT_SUFFIX_FORMAT, MergeReport, check_format_version, check_suffix_format, merge
)
from novel_backup_processor.stages.notifier import ReportSink, notify
from novel_backup_processor.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AugmentReport:
    """보강 리포트 (병합 리포트 + 읽은 아카이브 엔트리)"""
    merge: MergeReport
    archive_entries: List[str] = field(default_factory=list)

    @property
    def skipped_duplicate(self) -> int:
        return self.merge.skipped_duplicate

    @property
    def conflict_resolved(self) -> int:
        return self.merge.conflict_resolved

    @property
    def newly_appended(self) -> int:
        return self.merge.newly_appended

    def to_dict(self) -> Dict[str, Any]:
        payload = self.merge.to_dict()
        payload["archive_entries"] = list(self.archive_entries)
        return payload


def augment(
    document: BackupDocument,
    sources: Iterable[ChapterSource],
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    suffix_format: str = DEFAULT_SUFFIX_FORMAT,
    sink: Optional[ReportSink] = None
) -> Tuple[BackupDocument, AugmentReport]:
    """아카이브 챕터로 문서 보강

    Args:
        document: 기존 백업 문서 (base)
        sources: 새 챕터가 담긴 아카이브 엔트리
        extensions: 챕터 확장자
        suffix_format: 충돌 제목 접미사 형식
        sink: 완료 리포트 싱크

    Returns:
        (보강된 새 문서, AugmentReport)

    Raises:
        EmptyArchiveError: 아카이브에 챕터가 없을 때
        IncompatibleFormatError: 기존 문서 버전을 지원하지 않을 때
    """
    # 아카이브를 읽기 전에 버전부터 확인
    check_format_version(document, "document")
    check_suffix_format(suffix_format)

    raw_chapters = read_archive(sources, extensions)
    entry_names = [raw.name for raw in raw_chapters]

    # 임시 문서 (메타데이터는 기존 문서에서 상속)
    ephemeral = build_from_raw(
        raw_chapters, title=document.title, author=document.author, extensions=extensions
    )
    logger.info(f"Augmenting with {len(ephemeral.chapters)} archive chapters")

    merged, merge_report = merge(document, ephemeral, suffix_format=suffix_format)
    report = AugmentReport(merge=merge_report, archive_entries=entry_names)

    logger.info(
        f"✅ Augment complete: {report.newly_appended} appended, "
        f"{report.conflict_resolved} conflicts, {report.skipped_duplicate} duplicates"
    )
    notify(sink, "augment", report.to_dict())
    return merged, report


def augment_from_path(
    document: BackupDocument,
    path: Union[str, Path],
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    default_encoding: str = "utf-8",
    auto_detect: bool = True,
    suffix_format: str = DEFAULT_SUFFIX_FORMAT,
    sink: Optional[ReportSink] = None
) -> Tuple[BackupDocument, AugmentReport]:
    """ZIP 파일 또는 폴더 경로로 문서 보강"""
    sources = open_archive(path, default_encoding, auto_detect)
    return augment(document, sources, extensions=extensions, suffix_format=suffix_format, sink=sink)
