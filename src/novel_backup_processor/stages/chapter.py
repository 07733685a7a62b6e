"""백업 문서 데이터 구조

소설 백업 문서(BackupDocument)와 챕터(Chapter)를 나타내는 불변 데이터 클래스
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Set, Tuple
from novel_backup_processor.stages.errors import DuplicateIdError, OrderSequenceError

# 현재 리더가 쓰는 포맷 버전
CURRENT_FORMAT_VERSION = 1

# 읽을 수 있는 포맷 버전
SUPPORTED_FORMAT_VERSIONS: Tuple[int, ...] = (1,)

# order 시작값 (0-based)
ORDER_BASE = 0


@dataclass(frozen=True)
class ChapterDraft:
    """id가 아직 없는 챕터 (Normalizer 출력)

    Attributes:
        title: 챕터 제목 (확장자 제거된 파일명)
        paragraphs: 공백 제거된 비어있지 않은 줄 목록
        fingerprint: 문단 내용 해시
        order: 입력 순서
    """
    title: str
    paragraphs: Tuple[str, ...]
    fingerprint: str
    order: int


@dataclass(frozen=True)
class Chapter:
    """백업 문서의 한 챕터

    Attributes:
        id: 문서 내 고유 id (재사용되지 않음)
        title: 챕터 제목 (중복 허용)
        paragraphs: 순서 있는 문단 목록
        fingerprint: 내용 기반 해시 (중복 판정 기준)
        order: 읽기 순서 (ORDER_BASE부터 연속)
    """
    id: int
    title: str
    paragraphs: Tuple[str, ...]
    fingerprint: str
    order: int

    @classmethod
    def from_draft(cls, draft: ChapterDraft, chapter_id: int) -> "Chapter":
        return cls(
            id=chapter_id,
            title=draft.title,
            paragraphs=draft.paragraphs,
            fingerprint=draft.fingerprint,
            order=draft.order,
        )

    @property
    def char_count(self) -> int:
        return sum(len(p) for p in self.paragraphs)

    def __repr__(self):
        return f"<Chapter {self.id}@{self.order}: {self.title} ({len(self.paragraphs)} paragraphs)>"


@dataclass(frozen=True)
class BackupDocument:
    """소설 백업 문서

    Attributes:
        format_version: 포맷 버전 (호환성 판정)
        title: 소설 제목
        author: 작가
        chapters: 읽기 순서대로 정렬된 챕터
        next_chapter_id: 다음에 발급할 챕터 id (증가만 함)
    """
    format_version: int = CURRENT_FORMAT_VERSION
    title: Optional[str] = None
    author: Optional[str] = None
    chapters: Tuple[Chapter, ...] = field(default_factory=tuple)
    next_chapter_id: int = 0

    @property
    def chapter_ids(self) -> List[int]:
        return [ch.id for ch in self.chapters]

    def get_chapter(self, chapter_id: int) -> Optional[Chapter]:
        for chapter in self.chapters:
            if chapter.id == chapter_id:
                return chapter
        return None

    def __len__(self) -> int:
        return len(self.chapters)


def renumber(chapters: Iterable[Chapter]) -> Tuple[Chapter, ...]:
    """order를 ORDER_BASE부터 연속으로 다시 부여

    Args:
        chapters: 최종 순서대로 나열된 챕터

    Returns:
        order가 재부여된 챕터 튜플 (order가 같으면 원본 객체 그대로)
    """
    result = []
    for position, chapter in enumerate(chapters):
        order = ORDER_BASE + position
        if chapter.order != order:
            chapter = replace(chapter, order=order)
        result.append(chapter)
    return tuple(result)


def validate_document(document: BackupDocument) -> BackupDocument:
    """문서 불변식 검사

    - order는 ORDER_BASE부터 빈틈/중복 없이 증가
    - id는 서로 다르고 next_chapter_id보다 작음

    Args:
        document: 검사할 문서

    Returns:
        검사를 통과한 같은 문서

    Raises:
        OrderSequenceError: order 불연속
        DuplicateIdError: id 중복 또는 재사용 가능 id
    """
    seen: Set[int] = set()
    for position, chapter in enumerate(document.chapters):
        expected = ORDER_BASE + position
        if chapter.order != expected:
            raise OrderSequenceError(position, expected, chapter.order)
        if chapter.id in seen:
            raise DuplicateIdError(chapter.id)
        if chapter.id >= document.next_chapter_id or chapter.id < 0:
            raise DuplicateIdError(
                chapter.id,
                f"chapter id outside issued range [0, {document.next_chapter_id})",
            )
        seen.add(chapter.id)
    return document
