"""Archive Reader: 챕터 아카이브 디코딩

ZIP(또는 폴더)에 담긴 이름 있는 텍스트 엔트리 중 챕터 파일만 골라
자연 정렬 순서의 (name, text) 목록으로 반환
"""

import os
import zipfile
import chardet
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Protocol, Sequence, Union
from novel_backup_processor.stages.errors import EmptyArchiveError
from novel_backup_processor.utils.logger import get_logger
from novel_backup_processor.utils.text_cleaner import has_extension, natural_sort_key

logger = get_logger(__name__)

# 기본 챕터 확장자
DEFAULT_EXTENSIONS = (".txt",)

# chardet 신뢰도 기준
MIN_ENCODING_CONFIDENCE = 0.7

# 인코딩 감지 샘플 크기 (바이트)
ENCODING_SAMPLE_SIZE = 10000

# ZIP 일반 목적 플래그: 파일명이 UTF-8
_ZIP_UTF8_FLAG = 0x800

# macOS가 만드는 리소스 포크 폴더
_IGNORED_DIRS = {"__MACOSX"}


class RawChapter(NamedTuple):
    """정렬된 챕터 후보 (엔트리 이름, 원문)"""
    name: str
    text: str


class ChapterSource(Protocol):
    """이름 있는 읽기 가능한 텍스트 소스"""

    @property
    def name(self) -> str:
        ...

    def read_text(self) -> str:
        ...


def detect_encoding(raw: bytes, sample_size: int = ENCODING_SAMPLE_SIZE) -> Optional[str]:
    """인코딩 감지

    Args:
        raw: 원본 바이트
        sample_size: 샘플 크기 (바이트)

    Returns:
        인코딩 이름 (예: 'utf-8', 'cp949'), 신뢰도가 낮으면 None
    """
    result = chardet.detect(raw[:sample_size])
    encoding = result.get("encoding")
    confidence = result.get("confidence") or 0

    if encoding and confidence > MIN_ENCODING_CONFIDENCE:
        logger.debug(f"Encoding detected: {encoding} ({confidence:.2f})")
        return encoding

    logger.debug(f"Low confidence encoding: {encoding} ({confidence:.2f})")
    return None


def decode_text(
    raw: bytes,
    default_encoding: str = "utf-8",
    auto_detect: bool = True,
    name: str = ""
) -> str:
    """바이트를 텍스트로 디코딩

    UTF-8(BOM 허용)을 먼저 시도하고, 실패하면 chardet 감지 결과,
    마지막으로 default_encoding(errors="replace")을 사용한다.

    Args:
        raw: 원본 바이트
        default_encoding: 최종 대체 인코딩
        auto_detect: chardet 사용 여부
        name: 로그용 엔트리 이름

    Returns:
        디코딩된 문자열
    """
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    if auto_detect:
        encoding = detect_encoding(raw)
        if encoding:
            try:
                return raw.decode(encoding)
            except (UnicodeDecodeError, LookupError):
                logger.debug(f"Detected encoding {encoding} failed for {name}")

    logger.warning(f"⚠️ Falling back to {default_encoding} (errors=replace): {name}")
    return raw.decode(default_encoding, errors="replace")


class MemorySource:
    """메모리에 있는 엔트리 (테스트, 이미 데이터를 가진 호출자용)"""

    def __init__(
        self,
        name: str,
        data: Union[str, bytes],
        default_encoding: str = "utf-8",
        auto_detect: bool = True
    ):
        self._name = name
        self._data = data
        self._default_encoding = default_encoding
        self._auto_detect = auto_detect

    @property
    def name(self) -> str:
        return self._name

    def read_text(self) -> str:
        if isinstance(self._data, str):
            return self._data
        return decode_text(self._data, self._default_encoding, self._auto_detect, self._name)

    def __repr__(self):
        return f"<MemorySource {self._name}>"


class ZipEntrySource(MemorySource):
    """ZIP 멤버 하나 (바이트는 열 때 미리 읽어 둠)"""

    def __repr__(self):
        return f"<ZipEntrySource {self.name}>"


class FileSource:
    """폴더 아카이브 안의 파일 하나"""

    def __init__(
        self,
        path: Path,
        name: str,
        default_encoding: str = "utf-8",
        auto_detect: bool = True
    ):
        self.path = Path(path)
        self._name = name
        self._default_encoding = default_encoding
        self._auto_detect = auto_detect

    @property
    def name(self) -> str:
        return self._name

    def read_text(self) -> str:
        return decode_text(self.path.read_bytes(), self._default_encoding, self._auto_detect, self._name)

    def __repr__(self):
        return f"<FileSource {self._name}>"


def _zip_member_name(info: zipfile.ZipInfo, auto_detect: bool) -> str:
    """UTF-8 플래그 없는 ZIP 파일명(cp949 등) 복원"""
    if info.flag_bits & _ZIP_UTF8_FLAG:
        return info.filename
    try:
        raw = info.filename.encode("cp437")
    except UnicodeEncodeError:
        return info.filename
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass
    if auto_detect:
        encoding = detect_encoding(raw)
        if encoding:
            try:
                return raw.decode(encoding)
            except (UnicodeDecodeError, LookupError):
                pass
    return info.filename


def open_zip(
    path: Union[str, Path],
    default_encoding: str = "utf-8",
    auto_detect: bool = True
) -> List[ChapterSource]:
    """ZIP 파일의 모든 파일 엔트리를 소스로 반환

    Args:
        path: ZIP 파일 경로
        default_encoding: 텍스트 대체 인코딩
        auto_detect: chardet 사용 여부

    Returns:
        ZipEntrySource 리스트 (ZIP 핸들은 반환 전에 닫힘)
    """
    sources: List[ChapterSource] = []
    with zipfile.ZipFile(path, "r") as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            name = _zip_member_name(info, auto_detect)
            sources.append(ZipEntrySource(name, zf.read(info), default_encoding, auto_detect))
    logger.debug(f"Opened ZIP {path}: {len(sources)} entries")
    return sources


def open_directory(
    path: Union[str, Path],
    default_encoding: str = "utf-8",
    auto_detect: bool = True
) -> List[ChapterSource]:
    """폴더를 재귀 스캔하여 파일을 소스로 반환 (이름은 폴더 기준 상대 경로)"""
    root = Path(path)
    sources: List[ChapterSource] = []
    for dirpath, _, filenames in os.walk(root):
        for filename in filenames:
            file_path = Path(dirpath) / filename
            name = file_path.relative_to(root).as_posix()
            sources.append(FileSource(file_path, name, default_encoding, auto_detect))
    logger.debug(f"Opened directory {path}: {len(sources)} entries")
    return sources


def open_archive(
    path: Union[str, Path],
    default_encoding: str = "utf-8",
    auto_detect: bool = True
) -> List[ChapterSource]:
    """ZIP 파일 또는 폴더를 소스 목록으로 열기

    Raises:
        FileNotFoundError: 경로가 없을 때
        ValueError: ZIP도 폴더도 아닐 때
    """
    archive_path = Path(path)
    if not archive_path.exists():
        raise FileNotFoundError(f"Archive not found: {archive_path}")
    if archive_path.is_dir():
        return open_directory(archive_path, default_encoding, auto_detect)
    if zipfile.is_zipfile(archive_path):
        return open_zip(archive_path, default_encoding, auto_detect)
    raise ValueError(f"Not a ZIP archive or directory: {archive_path}")


def _is_ignored(name: str) -> bool:
    """숨김 파일, 폴더 엔트리, macOS 메타데이터 제외"""
    if not name or name.endswith("/"):
        return True
    segments = [s for s in name.replace("\\", "/").split("/") if s and s not in (".", "..")]
    if not segments:
        return True
    return any(s in _IGNORED_DIRS or s.startswith(".") for s in segments)


def read_archive(
    sources: Iterable[ChapterSource],
    extensions: Sequence[str] = DEFAULT_EXTENSIONS
) -> List[RawChapter]:
    """챕터 파일만 골라 자연 정렬 순서로 읽기

    Args:
        sources: 아카이브 엔트리
        extensions: 챕터로 인정할 확장자 (대소문자 무시)

    Returns:
        RawChapter 리스트 (chapter2 < chapter10)

    Raises:
        EmptyArchiveError: 해당하는 엔트리가 없을 때
    """
    inspected = 0
    selected: List[ChapterSource] = []
    for source in sources:
        inspected += 1
        name = source.name
        if _is_ignored(name) or not has_extension(name, extensions):
            logger.debug(f"Skipped entry: {name}")
            continue
        selected.append(source)

    if not selected:
        logger.error(f"No chapter entries found ({inspected} entries inspected)")
        raise EmptyArchiveError(inspected, extensions)

    selected.sort(key=lambda s: (natural_sort_key(s.name), s.name))

    chapters = [RawChapter(source.name, source.read_text()) for source in selected]
    logger.info(f"✅ Archive read: {len(chapters)}/{inspected} chapter entries")
    return chapters
