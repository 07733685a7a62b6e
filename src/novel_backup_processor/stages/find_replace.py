"""Find/Replace Engine: 챕터 본문 일괄 찾기/바꾸기

범위 안의 챕터마다 문단을 하나씩 독립적으로 검사하여 겹치지 않는 모든
일치 항목을 바꾼다. 챕터 수, id, order, 제목은 절대 바뀌지 않는다.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union
from novel_backup_processor.stages.chapter import BackupDocument, Chapter, validate_document
from novel_backup_processor.stages.errors import ChapterNotFoundError, InvalidPatternError
from novel_backup_processor.stages.merge_engine import check_format_version
from novel_backup_processor.stages.normalizer import compute_fingerprint, split_paragraphs
from novel_backup_processor.stages.notifier import ReportSink, notify
from novel_backup_processor.utils.logger import get_logger

logger = get_logger(__name__)

# 전체 챕터 범위
ALL_CHAPTERS = "all"

Scope = Union[str, Iterable[int], None]


@dataclass(frozen=True)
class FindReplaceOptions:
    """찾기/바꾸기 옵션

    Attributes:
        case_sensitive: 대소문자 구분
        use_regex: pattern을 정규식으로 해석 (False면 문자 그대로)
        whole_word: 단어 경계에서만 일치
    """
    case_sensitive: bool = True
    use_regex: bool = False
    whole_word: bool = False


@dataclass
class ChapterChange:
    """챕터별 변경 기록"""
    chapter_id: int
    title: str
    match_count: int
    changed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chapter_id": self.chapter_id,
            "title": self.title,
            "match_count": self.match_count,
            "changed": self.changed,
        }


@dataclass
class ChangeReport:
    """찾기/바꾸기 리포트"""
    pattern: str
    replacement: str
    chapters: List[ChapterChange] = field(default_factory=list)

    @property
    def total_matches(self) -> int:
        return sum(change.match_count for change in self.chapters)

    @property
    def chapters_affected(self) -> int:
        return sum(1 for change in self.chapters if change.changed)

    @property
    def chapters_matched(self) -> int:
        return sum(1 for change in self.chapters if change.match_count)

    def for_chapter(self, chapter_id: int) -> Optional[ChapterChange]:
        for change in self.chapters:
            if change.chapter_id == chapter_id:
                return change
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "replacement": self.replacement,
            "total_matches": self.total_matches,
            "chapters_affected": self.chapters_affected,
            "chapters_matched": self.chapters_matched,
            "chapters": [change.to_dict() for change in self.chapters],
        }


def compile_pattern(pattern: str, options: FindReplaceOptions) -> "re.Pattern[str]":
    """옵션에 맞게 패턴 컴파일

    Raises:
        InvalidPatternError: 빈 패턴 또는 컴파일 실패
    """
    if not pattern:
        raise InvalidPatternError(pattern, "pattern is empty")

    source = pattern if options.use_regex else re.escape(pattern)
    if options.whole_word:
        source = rf"\b(?:{source})\b"
    flags = 0 if options.case_sensitive else re.IGNORECASE

    try:
        return re.compile(source, flags)
    except re.error as e:
        logger.error(f"Invalid regex pattern {pattern!r}: {e}")
        raise InvalidPatternError(pattern, str(e)) from e


def _make_replacer(pattern: str, replacement: str, options: FindReplaceOptions) -> Callable[["re.Match[str]"], str]:
    """치환 함수 (정규식 모드는 \\1, \\g<name> 템플릿 지원)"""
    if not options.use_regex:
        return lambda match: replacement

    def expand(match: "re.Match[str]") -> str:
        try:
            return match.expand(replacement)
        except (re.error, IndexError) as e:
            raise InvalidPatternError(pattern, f"bad replacement template {replacement!r}: {e}") from e

    return expand


def _resolve_scope(document: BackupDocument, scope: Scope) -> Optional[Set[int]]:
    """범위를 챕터 id 집합으로 변환 (None = 전체)

    Raises:
        ChapterNotFoundError: 문서에 없는 id
    """
    if scope is None or (isinstance(scope, str) and scope == ALL_CHAPTERS):
        return None
    if isinstance(scope, str):
        raise ValueError(f"Unknown scope: {scope!r}")

    wanted = set(scope)
    missing = wanted - set(document.chapter_ids)
    if missing:
        logger.error(f"Scope references unknown chapters: {sorted(missing)}")
        raise ChapterNotFoundError(missing)
    return wanted


def _replace_in_chapter(
    chapter: Chapter,
    compiled: "re.Pattern[str]",
    replacer: Callable[["re.Match[str]"], str]
) -> Tuple[Chapter, int]:
    """챕터 하나의 문단별 치환

    치환 결과는 다시 줄 단위로 정규화한다 (공백 제거, 빈 줄 제거).

    Returns:
        (결과 챕터, 일치 수) - 내용이 같으면 원본 챕터 그대로
    """
    match_count = 0
    paragraphs: List[str] = []
    for paragraph in chapter.paragraphs:
        new_text, count = compiled.subn(replacer, paragraph)
        match_count += count
        if count:
            paragraphs.extend(split_paragraphs(new_text))
        else:
            paragraphs.append(paragraph)

    new_paragraphs = tuple(paragraphs)
    if new_paragraphs == chapter.paragraphs:
        return chapter, match_count

    return replace(
        chapter,
        paragraphs=new_paragraphs,
        fingerprint=compute_fingerprint(new_paragraphs),
    ), match_count


def find_replace(
    document: BackupDocument,
    pattern: str,
    replacement: str,
    options: Optional[FindReplaceOptions] = None,
    scope: Scope = ALL_CHAPTERS,
    sink: Optional[ReportSink] = None
) -> Tuple[BackupDocument, ChangeReport]:
    """백업 문서 찾기/바꾸기

    Args:
        document: 대상 문서
        pattern: 찾을 문자열 또는 정규식
        replacement: 바꿀 문자열
        options: FindReplaceOptions (None이면 기본값)
        scope: ALL_CHAPTERS 또는 챕터 id 목록
        sink: 완료 리포트 싱크

    Returns:
        (새 문서, ChangeReport)

    Raises:
        InvalidPatternError: 패턴/치환 템플릿 오류
        ChapterNotFoundError: 범위에 없는 챕터 id
        IncompatibleFormatError: 지원하지 않는 문서 버전
    """
    options = options or FindReplaceOptions()
    check_format_version(document, "document")

    compiled = compile_pattern(pattern, options)
    replacer = _make_replacer(pattern, replacement, options)
    in_scope = _resolve_scope(document, scope)

    logger.info(
        f"Find/replace {pattern!r} → {replacement!r} "
        f"(regex={options.use_regex}, case_sensitive={options.case_sensitive}, "
        f"scope={'all' if in_scope is None else len(in_scope)})"
    )

    report = ChangeReport(pattern=pattern, replacement=replacement)
    chapters: List[Chapter] = []
    for chapter in document.chapters:
        if in_scope is not None and chapter.id not in in_scope:
            chapters.append(chapter)
            continue

        new_chapter, match_count = _replace_in_chapter(chapter, compiled, replacer)
        changed = new_chapter is not chapter
        if match_count:
            logger.debug(f"  #{chapter.id} '{chapter.title}': {match_count} matches, changed={changed}")
        report.chapters.append(ChapterChange(
            chapter_id=chapter.id,
            title=chapter.title,
            match_count=match_count,
            changed=changed,
        ))
        chapters.append(new_chapter)

    result = validate_document(replace(document, chapters=tuple(chapters)))

    logger.info(
        f"✅ Find/replace complete: {report.total_matches} matches, "
        f"{report.chapters_affected} chapters affected"
    )
    notify(sink, "find_replace", report.to_dict())
    return result, report
