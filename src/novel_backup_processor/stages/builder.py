"""Builder: 챕터 아카이브 → 새 백업 문서

Archive Reader + Normalizer를 거쳐 id/order를 부여한 문서를 만든다.
"""

from pathlib import Path
from typing import Iterable, Optional, Sequence, Union
from novel_backup_processor.stages.archive_reader import (
    DEFAULT_EXTENSIONS, ChapterSource, RawChapter, open_archive, read_archive
)
from novel_backup_processor.stages.chapter import (
    CURRENT_FORMAT_VERSION, BackupDocument, Chapter, validate_document
)
from novel_backup_processor.stages.normalizer import normalize_all
from novel_backup_processor.stages.notifier import ReportSink, notify
from novel_backup_processor.utils.logger import get_logger

logger = get_logger(__name__)


def build(
    sources: Iterable[ChapterSource],
    title: Optional[str] = None,
    author: Optional[str] = None,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    sink: Optional[ReportSink] = None
) -> BackupDocument:
    """아카이브 엔트리로 백업 문서 생성

    Args:
        sources: 아카이브 엔트리
        title: 소설 제목
        author: 작가
        extensions: 챕터 확장자
        sink: 완료 리포트 싱크

    Returns:
        새 BackupDocument (order = 자연 정렬 순서, id 0..n-1)

    Raises:
        EmptyArchiveError: 챕터 엔트리가 없을 때
    """
    raw_chapters = read_archive(sources, extensions)
    document = build_from_raw(raw_chapters, title=title, author=author, extensions=extensions)

    notify(sink, "build", {
        "title": title or "",
        "chapters": len(document.chapters),
        "entries": [raw.name for raw in raw_chapters],
    })
    return document


def build_from_raw(
    raw_chapters: Sequence[RawChapter],
    title: Optional[str] = None,
    author: Optional[str] = None,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS
) -> BackupDocument:
    """이미 읽고 정렬한 챕터 후보로 백업 문서 생성

    Args:
        raw_chapters: read_archive() 결과
        title: 소설 제목
        author: 작가
        extensions: 제목에서 제거할 확장자

    Returns:
        새 BackupDocument
    """
    drafts = normalize_all(raw_chapters, extensions)

    chapters = tuple(
        Chapter.from_draft(draft, chapter_id)
        for chapter_id, draft in enumerate(drafts)
    )
    document = validate_document(BackupDocument(
        format_version=CURRENT_FORMAT_VERSION,
        title=title,
        author=author,
        chapters=chapters,
        next_chapter_id=len(chapters),
    ))

    logger.info(f"✅ Backup built: {len(chapters)} chapters (title={title!r})")
    return document


def build_from_path(
    path: Union[str, Path],
    title: Optional[str] = None,
    author: Optional[str] = None,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    default_encoding: str = "utf-8",
    auto_detect: bool = True,
    sink: Optional[ReportSink] = None
) -> BackupDocument:
    """ZIP 파일 또는 폴더 경로로 백업 문서 생성"""
    sources = open_archive(path, default_encoding, auto_detect)
    return build(sources, title=title, author=author, extensions=extensions, sink=sink)
