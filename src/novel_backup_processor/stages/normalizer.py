"""Chapter Normalizer

원문 텍스트를 정규화된 챕터(제목, 문단, 지문)로 변환
"""

import re
import xxhash
from posixpath import basename
from typing import Iterable, List, Sequence, Tuple
from novel_backup_processor.stages.archive_reader import DEFAULT_EXTENSIONS, RawChapter
from novel_backup_processor.stages.chapter import ORDER_BASE, ChapterDraft
from novel_backup_processor.utils.logger import get_logger
from novel_backup_processor.utils.text_cleaner import strip_extension

logger = get_logger(__name__)

_LINE_BREAK_RE = re.compile(r'\r\n|\r|\n')


def split_paragraphs(text: str) -> Tuple[str, ...]:
    """줄 단위 문단 분리

    줄바꿈으로 나누고 각 줄의 앞뒤 공백을 제거한 뒤 빈 줄은 버린다.
    빈 줄 묶음이 아니라 비어있지 않은 줄 하나가 문단 하나다.

    Args:
        text: 원문

    Returns:
        문단 튜플
    """
    lines = (line.strip() for line in _LINE_BREAK_RE.split(text))
    return tuple(line for line in lines if line)


def compute_fingerprint(paragraphs: Iterable[str]) -> str:
    """문단 내용 지문 (XXHash64)

    공백 제거된 문단을 줄바꿈으로 이어 해시한다.
    보이는 텍스트가 같으면 지문도 같다.

    Args:
        paragraphs: 문단 목록

    Returns:
        16진수 해시 문자열
    """
    hasher = xxhash.xxh64()
    hasher.update("\n".join(p.strip() for p in paragraphs).encode("utf-8"))
    return hasher.hexdigest()


def chapter_title_from_name(name: str, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> str:
    """엔트리 이름에서 챕터 제목 추출 (폴더 경로와 확장자 제거)"""
    return strip_extension(basename(name.replace("\\", "/")), extensions)


def normalize_chapter(
    name: str,
    text: str,
    order: int,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS
) -> ChapterDraft:
    """챕터 하나 정규화

    Args:
        name: 엔트리 이름
        text: 원문
        order: 입력 순서
        extensions: 제거할 확장자

    Returns:
        ChapterDraft
    """
    paragraphs = split_paragraphs(text)
    title = chapter_title_from_name(name, extensions)
    if not paragraphs:
        logger.warning(f"⚠️ Chapter '{title}' has no text")
    return ChapterDraft(
        title=title,
        paragraphs=paragraphs,
        fingerprint=compute_fingerprint(paragraphs),
        order=order,
    )


def normalize_all(
    raw_chapters: Iterable[RawChapter],
    extensions: Sequence[str] = DEFAULT_EXTENSIONS
) -> List[ChapterDraft]:
    """챕터 후보 전체 정규화 (입력 위치로 order 부여)"""
    drafts = [
        normalize_chapter(raw.name, raw.text, ORDER_BASE + position, extensions)
        for position, raw in enumerate(raw_chapters)
    ]
    logger.debug(f"Normalized {len(drafts)} chapters")
    return drafts
