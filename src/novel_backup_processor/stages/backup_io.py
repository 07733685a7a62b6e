"""백업 문서 JSON 저장/로드

{
  "formatVersion": 1,
  "title": "...", "author": "...",
  "nextChapterId": 3,
  "chapters": [{"id", "order", "title", "paragraphs", "fingerprint"}, ...]
}
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union
from novel_backup_processor.stages.chapter import (
    SUPPORTED_FORMAT_VERSIONS, BackupDocument, Chapter, validate_document
)
from novel_backup_processor.stages.errors import IncompatibleFormatError, MalformedBackupError
from novel_backup_processor.stages.normalizer import compute_fingerprint, split_paragraphs
from novel_backup_processor.utils.logger import get_logger

logger = get_logger(__name__)

BACKUP_SUFFIX = ".json"


def chapter_to_dict(chapter: Chapter) -> Dict[str, Any]:
    return {
        "id": chapter.id,
        "order": chapter.order,
        "title": chapter.title,
        "paragraphs": list(chapter.paragraphs),
        "fingerprint": chapter.fingerprint,
    }


def document_to_dict(document: BackupDocument) -> Dict[str, Any]:
    """BackupDocument → JSON 호환 dict"""
    return {
        "formatVersion": document.format_version,
        "title": document.title,
        "author": document.author,
        "nextChapterId": document.next_chapter_id,
        "chapters": [chapter_to_dict(ch) for ch in document.chapters],
    }


def _require(data: Dict[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in data:
        raise MalformedBackupError(f"{where}: missing '{key}'")
    value = data[key]
    # bool은 int의 하위 타입이므로 별도 배제
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise MalformedBackupError(f"{where}: '{key}' must be {kind.__name__}")
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Union[str, None]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedBackupError(f"'{key}' must be a string or null")
    return value


def chapter_from_dict(data: Any, position: int) -> Chapter:
    where = f"chapters[{position}]"
    if not isinstance(data, dict):
        raise MalformedBackupError(f"{where}: must be an object")

    chapter_id = _require(data, "id", int, where)
    order = _require(data, "order", int, where)
    title = _require(data, "title", str, where)
    raw_paragraphs = _require(data, "paragraphs", list, where)
    if not all(isinstance(p, str) for p in raw_paragraphs):
        raise MalformedBackupError(f"{where}: paragraphs must be strings")

    # 빌더와 같은 규칙으로 정규화 (공백 제거, 빈 문단 제거, 줄바꿈 분리)
    paragraphs = tuple(line for p in raw_paragraphs for line in split_paragraphs(p))
    if paragraphs != tuple(raw_paragraphs):
        logger.warning(f"⚠️ Paragraphs normalized for chapter #{chapter_id} '{title}'")

    # 지문은 항상 내용에서 다시 계산
    stored = data.get("fingerprint")
    if stored is not None and not isinstance(stored, str):
        raise MalformedBackupError(f"{where}: 'fingerprint' must be a string")
    fingerprint = compute_fingerprint(paragraphs)
    if stored is not None and stored != fingerprint:
        logger.warning(f"⚠️ Stale fingerprint replaced for chapter #{chapter_id} '{title}'")

    return Chapter(
        id=chapter_id,
        title=title,
        paragraphs=paragraphs,
        fingerprint=fingerprint,
        order=order,
    )


def document_from_dict(data: Any) -> BackupDocument:
    """JSON dict → BackupDocument

    Raises:
        IncompatibleFormatError: formatVersion 누락 또는 미지원
        MalformedBackupError: 구조 오류
        InvariantError: order/id 불변식 위반
    """
    if not isinstance(data, dict):
        raise MalformedBackupError("top level must be an object")

    version = data.get("formatVersion")
    if not isinstance(version, int) or isinstance(version, bool) or version not in SUPPORTED_FORMAT_VERSIONS:
        raise IncompatibleFormatError(version, SUPPORTED_FORMAT_VERSIONS, "backup file")

    raw_chapters = _require(data, "chapters", list, "backup")
    chapters: List[Chapter] = [chapter_from_dict(item, i) for i, item in enumerate(raw_chapters)]
    chapters.sort(key=lambda ch: ch.order)

    next_chapter_id = data.get("nextChapterId")
    if next_chapter_id is None:
        next_chapter_id = max((ch.id for ch in chapters), default=-1) + 1
    elif not isinstance(next_chapter_id, int) or isinstance(next_chapter_id, bool):
        raise MalformedBackupError("'nextChapterId' must be an integer")

    return validate_document(BackupDocument(
        format_version=version,
        title=_optional_str(data, "title"),
        author=_optional_str(data, "author"),
        chapters=tuple(chapters),
        next_chapter_id=next_chapter_id,
    ))


def dumps(document: BackupDocument, indent: int = 2) -> str:
    return json.dumps(document_to_dict(document), ensure_ascii=False, indent=indent) + "\n"


def loads(text: str) -> BackupDocument:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedBackupError(f"invalid JSON: {e}") from e
    return document_from_dict(data)


def save_backup(document: BackupDocument, path: Union[str, Path], indent: int = 2) -> Path:
    """백업 문서 저장

    Args:
        document: 저장할 문서
        path: 출력 경로
        indent: JSON 들여쓰기

    Returns:
        저장된 파일 경로
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(dumps(document, indent=indent))

    logger.info(f"✅ Backup saved: {output_path} ({len(document.chapters)} chapters)")
    return output_path


def load_backup(path: Union[str, Path]) -> BackupDocument:
    """백업 문서 로드

    Raises:
        FileNotFoundError: 파일이 없을 때
        IncompatibleFormatError: 지원하지 않는 버전
        MalformedBackupError: 구조 오류
    """
    input_path = Path(path)
    if not input_path.exists():
        logger.error(f"Backup file not found: {input_path}")
        raise FileNotFoundError(f"Backup file not found: {input_path}")

    logger.debug(f"Loading backup from: {input_path}")
    with open(input_path, "r", encoding="utf-8-sig") as f:
        text = f.read()

    try:
        document = loads(text)
    except MalformedBackupError as e:
        raise MalformedBackupError(e.detail, source=str(input_path)) from e
    except IncompatibleFormatError as e:
        raise IncompatibleFormatError(e.version, e.supported, source=str(input_path)) from e

    logger.info(f"✅ Backup loaded: {input_path.name} ({len(document.chapters)} chapters)")
    return document
