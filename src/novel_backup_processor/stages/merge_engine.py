"""Merge Engine: 백업 문서 두 개를 하나로 병합

지문(fingerprint)으로 동일 내용을 판정하고, 제목이 같지만 내용이 다른 챕터는
접미사를 붙여 양쪽 모두 보존한다.

병합 규칙:
1. incoming 챕터의 지문이 base에 있으면 → 중복, 추가하지 않음
2. 지문은 새롭지만 제목이 base 챕터와 같으면 → 충돌, "제목 (2)"로 바꿔
   같은 제목 챕터 바로 뒤에 삽입
3. 나머지 → base 챕터 뒤에 incoming 순서대로 추가
4. order는 최종 순서로 다시 부여, base 챕터는 id 유지, 새 챕터는 새 id
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple
from novel_backup_processor.stages.chapter import (
    CURRENT_FORMAT_VERSION, SUPPORTED_FORMAT_VERSIONS,
    BackupDocument, Chapter, renumber, validate_document
)
from novel_backup_processor.stages.errors import IncompatibleFormatError, InvalidSuffixFormatError
from novel_backup_processor.stages.notifier import ReportSink, notify
from novel_backup_processor.utils.logger import get_logger

logger = get_logger(__name__)

# 충돌 챕터 제목 접미사 ({n}은 2부터)
DEFAULT_SUFFIX_FORMAT = " ({n})"


class MergeAction(str, Enum):
    """incoming 챕터 처리 결과"""
    SKIPPED_DUPLICATE = "skipped_duplicate"
    CONFLICT_RESOLVED = "conflict_resolved"
    APPENDED = "appended"


@dataclass
class MergeEntry:
    """incoming 챕터 하나에 대한 병합 기록

    Attributes:
        incoming_id: incoming 문서에서의 id
        incoming_title: incoming 문서에서의 제목
        action: 처리 결과
        reason: 사람이 읽을 수 있는 사유
        result_id: 결과 문서에서의 id (중복이면 None)
        result_title: 결과 문서에서의 제목 (중복이면 None)
        matched_id: 중복/충돌 상대 챕터 id (결과 문서 기준)
    """
    incoming_id: int
    incoming_title: str
    action: MergeAction
    reason: str
    result_id: Optional[int] = None
    result_title: Optional[str] = None
    matched_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incoming_id": self.incoming_id,
            "incoming_title": self.incoming_title,
            "action": self.action.value,
            "reason": self.reason,
            "result_id": self.result_id,
            "result_title": self.result_title,
            "matched_id": self.matched_id,
        }


@dataclass
class MergeReport:
    """병합 리포트"""
    kept_from_base: int = 0
    entries: List[MergeEntry] = field(default_factory=list)

    def _count(self, action: MergeAction) -> int:
        return sum(1 for entry in self.entries if entry.action is action)

    @property
    def skipped_duplicate(self) -> int:
        return self._count(MergeAction.SKIPPED_DUPLICATE)

    @property
    def conflict_resolved(self) -> int:
        return self._count(MergeAction.CONFLICT_RESOLVED)

    @property
    def newly_appended(self) -> int:
        return self._count(MergeAction.APPENDED)

    @property
    def incoming_total(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kept_from_base": self.kept_from_base,
            "skipped_duplicate": self.skipped_duplicate,
            "conflict_resolved": self.conflict_resolved,
            "newly_appended": self.newly_appended,
            "incoming_total": self.incoming_total,
            "entries": [entry.to_dict() for entry in self.entries],
        }


def check_format_version(document: BackupDocument, source: str = "document") -> None:
    """formatVersion 지원 여부 확인

    Raises:
        IncompatibleFormatError: 지원하지 않는 버전
    """
    if document.format_version not in SUPPORTED_FORMAT_VERSIONS:
        logger.error(f"Unsupported formatVersion {document.format_version} in {source}")
        raise IncompatibleFormatError(document.format_version, SUPPORTED_FORMAT_VERSIONS, source)


def check_suffix_format(suffix_format: str) -> None:
    """접미사 형식 검사 ({n} 외의 필드 없이 번호마다 다른 결과)

    Raises:
        InvalidSuffixFormatError: 형식 오류
    """
    try:
        second = suffix_format.format(n=2)
        third = suffix_format.format(n=3)
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        raise InvalidSuffixFormatError(suffix_format, f"{type(e).__name__}: {e}") from e
    if second == third:
        raise InvalidSuffixFormatError(suffix_format, "must contain '{n}'")


class _TitleDisambiguator:
    """충돌 제목에 접미사 부여 (같은 제목끼리 2, 3, ... 순서)"""

    def __init__(self, taken: Set[str], suffix_format: str):
        self.taken = taken
        self.suffix_format = suffix_format
        self.last_number: Dict[str, int] = {}

    def relabel(self, title: str) -> str:
        n = self.last_number.get(title, 1)
        while True:
            n += 1
            candidate = f"{title}{self.suffix_format.format(n=n)}"
            if candidate not in self.taken:
                break
        self.last_number[title] = n
        self.taken.add(candidate)
        return candidate


def merge(
    base: BackupDocument,
    incoming: BackupDocument,
    suffix_format: str = DEFAULT_SUFFIX_FORMAT,
    sink: Optional[ReportSink] = None
) -> Tuple[BackupDocument, MergeReport]:
    """두 백업 문서 병합

    Args:
        base: 기준 문서 (챕터 id/순서 유지)
        incoming: 추가로 들어오는 문서
        suffix_format: 충돌 제목 접미사 형식
        sink: 완료 리포트 싱크

    Returns:
        (병합된 새 문서, MergeReport)

    Raises:
        IncompatibleFormatError: 어느 한쪽 formatVersion을 지원하지 않을 때
        InvalidSuffixFormatError: 접미사 형식 오류
    """
    check_format_version(base, "base")
    check_format_version(incoming, "incoming")
    check_suffix_format(suffix_format)

    logger.info(
        f"Merging: base={len(base.chapters)} chapters, incoming={len(incoming.chapters)} chapters"
    )

    # 1. base 인덱스 (지문, 제목 → 첫 챕터 id)
    base_by_fingerprint: Dict[str, int] = {}
    base_by_title: Dict[str, int] = {}
    for chapter in base.chapters:
        base_by_fingerprint.setdefault(chapter.fingerprint, chapter.id)
        base_by_title.setdefault(chapter.title, chapter.id)

    disambiguator = _TitleDisambiguator({ch.title for ch in base.chapters}, suffix_format)
    accepted_fingerprints: Dict[str, int] = {}
    insertions: Dict[int, List[Chapter]] = {}
    appended: List[Chapter] = []
    report = MergeReport(kept_from_base=len(base.chapters))
    next_id = base.next_chapter_id

    # 2~4. incoming 순서대로 판정
    for chapter in incoming.chapters:
        if chapter.fingerprint in base_by_fingerprint:
            matched = base_by_fingerprint[chapter.fingerprint]
            logger.debug(f"  Skip (identical content): {chapter.title} == base #{matched}")
            report.entries.append(MergeEntry(
                incoming_id=chapter.id,
                incoming_title=chapter.title,
                action=MergeAction.SKIPPED_DUPLICATE,
                reason="skipped (identical content)",
                matched_id=matched,
            ))
            continue

        if chapter.fingerprint in accepted_fingerprints:
            matched = accepted_fingerprints[chapter.fingerprint]
            logger.debug(f"  Skip (repeated in incoming): {chapter.title} == #{matched}")
            report.entries.append(MergeEntry(
                incoming_id=chapter.id,
                incoming_title=chapter.title,
                action=MergeAction.SKIPPED_DUPLICATE,
                reason="skipped (identical content within incoming)",
                matched_id=matched,
            ))
            continue

        if chapter.title in base_by_title:
            counterpart = base_by_title[chapter.title]
            new_title = disambiguator.relabel(chapter.title)
            new_chapter = Chapter(
                id=next_id,
                title=new_title,
                paragraphs=chapter.paragraphs,
                fingerprint=chapter.fingerprint,
                order=chapter.order,
            )
            insertions.setdefault(counterpart, []).append(new_chapter)
            logger.debug(f"  Conflict: '{chapter.title}' → '{new_title}' after base #{counterpart}")
            report.entries.append(MergeEntry(
                incoming_id=chapter.id,
                incoming_title=chapter.title,
                action=MergeAction.CONFLICT_RESOLVED,
                reason="conflict: title collision, content differs",
                result_id=next_id,
                result_title=new_title,
                matched_id=counterpart,
            ))
        else:
            new_chapter = Chapter(
                id=next_id,
                title=chapter.title,
                paragraphs=chapter.paragraphs,
                fingerprint=chapter.fingerprint,
                order=chapter.order,
            )
            appended.append(new_chapter)
            disambiguator.taken.add(chapter.title)
            logger.debug(f"  Append: '{chapter.title}' as #{next_id}")
            report.entries.append(MergeEntry(
                incoming_id=chapter.id,
                incoming_title=chapter.title,
                action=MergeAction.APPENDED,
                reason="new content",
                result_id=next_id,
                result_title=chapter.title,
            ))

        accepted_fingerprints[chapter.fingerprint] = next_id
        next_id += 1

    # 5. 최종 순서: base (+충돌 삽입) → 추가분
    sequence: List[Chapter] = []
    for chapter in base.chapters:
        sequence.append(chapter)
        sequence.extend(insertions.get(chapter.id, ()))
    sequence.extend(appended)

    merged = validate_document(BackupDocument(
        format_version=CURRENT_FORMAT_VERSION,
        title=base.title if base.title else incoming.title,
        author=base.author if base.author else incoming.author,
        chapters=renumber(sequence),
        next_chapter_id=next_id,
    ))

    logger.info(
        f"✅ Merge complete: {report.kept_from_base} kept, {report.skipped_duplicate} duplicates, "
        f"{report.conflict_resolved} conflicts, {report.newly_appended} appended"
    )
    notify(sink, "merge", report.to_dict())
    return merged, report
