"""백업 엔진 예외 정의

모든 예외는 BackupError를 상속하며, 호출자가 사용자 메시지를 만들 수 있도록
관련 컨텍스트(챕터, 엔트리, 버전 등)를 속성으로 보관한다.
"""

from typing import Iterable, Optional, Sequence


class BackupError(Exception):
    """백업 엔진 최상위 예외"""


class EmptyArchiveError(BackupError):
    """아카이브에 챕터 파일이 하나도 없음"""

    def __init__(self, entries_inspected: int, extensions: Sequence[str] = ()):
        self.entries_inspected = entries_inspected
        self.extensions = tuple(extensions)
        exts = ", ".join(self.extensions) or "any"
        super().__init__(
            f"No chapter entries ({exts}) found among {entries_inspected} archive entries"
        )


class IncompatibleFormatError(BackupError):
    """지원하지 않는 formatVersion"""

    def __init__(self, version: object, supported: Sequence[int], source: str = "document"):
        self.version = version
        self.supported = tuple(supported)
        self.source = source
        super().__init__(
            f"Unsupported formatVersion {version!r} in {source} "
            f"(supported: {', '.join(str(v) for v in self.supported)})"
        )


class InvalidPatternError(BackupError):
    """찾기/바꾸기 패턴 오류"""

    def __init__(self, pattern: str, detail: str):
        self.pattern = pattern
        self.detail = detail
        super().__init__(f"Invalid pattern {pattern!r}: {detail}")


class InvalidSuffixFormatError(BackupError):
    """충돌 제목 접미사 형식 오류"""

    def __init__(self, suffix_format: str, detail: str):
        self.suffix_format = suffix_format
        self.detail = detail
        super().__init__(f"Invalid conflict suffix format {suffix_format!r}: {detail}")


class ChapterNotFoundError(BackupError):
    """범위에 지정된 챕터 id가 문서에 없음"""

    def __init__(self, chapter_ids: Iterable[int]):
        self.chapter_ids = tuple(sorted(chapter_ids))
        super().__init__(
            f"Chapter id(s) not in document: {', '.join(str(i) for i in self.chapter_ids)}"
        )


class MalformedBackupError(BackupError):
    """백업 JSON 구조 오류"""

    def __init__(self, detail: str, source: Optional[str] = None):
        self.detail = detail
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Malformed backup{where}: {detail}")


class InvariantError(BackupError):
    """문서 불변식 위반 (내부 버그)"""


class DuplicateIdError(InvariantError):
    """챕터 id 중복 또는 재사용 가능 상태"""

    def __init__(self, chapter_id: int, detail: str = "duplicate chapter id"):
        self.chapter_id = chapter_id
        super().__init__(f"{detail}: {chapter_id}")


class OrderSequenceError(InvariantError):
    """order 값이 연속된 오름차순이 아님"""

    def __init__(self, position: int, expected: int, actual: int):
        self.position = position
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Chapter at position {position} has order {actual}, expected {expected}"
        )
