"""설정 파일 로더 (YAML)

config.yml을 읽어서 Python 객체로 변환
"""

import yaml
from copy import deepcopy
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict
from novel_backup_processor.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yml"

# 설정 파일이 없을 때 사용하는 기본값
DEFAULT_CONFIG: Dict[str, Any] = {
    "paths": {
        "output_folder": "data/output",
        "logs": "data/logs",
    },
    "archive": {
        "chapter_extensions": [".txt"],
        "default_encoding": "utf-8",
        "auto_detect_encoding": True,
    },
    "backup": {
        "conflict_suffix_format": " ({n})",
        "indent": 2,
    },
    "find_replace": {
        "case_sensitive": True,
        "use_regex": False,
        "whole_word": False,
    },
    "logging": {
        "file_level": "DEBUG",
        "console_level": "INFO",
    },
}


@dataclass
class PathsConfig:
    """경로 설정"""
    output_folder: str
    logs: str


@dataclass
class ArchiveConfig:
    """아카이브 읽기 옵션"""
    chapter_extensions: List[str]
    default_encoding: str
    auto_detect_encoding: bool


@dataclass
class BackupConfig:
    """백업 문서 옵션"""
    conflict_suffix_format: str
    indent: int


@dataclass
class FindReplaceConfig:
    """찾기/바꾸기 기본 옵션"""
    case_sensitive: bool
    use_regex: bool
    whole_word: bool


@dataclass
class LoggingConfig:
    """로깅 설정"""
    file_level: str
    console_level: str


@dataclass
class Config:
    """전체 설정"""
    paths: PathsConfig
    archive: ArchiveConfig
    backup: BackupConfig
    find_replace: FindReplaceConfig
    logging: LoggingConfig


def _merge_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    """기본값 위에 파일 내용을 섹션 단위로 덮어쓰기"""
    merged = deepcopy(DEFAULT_CONFIG)
    for section, values in (data or {}).items():
        if section not in merged:
            logger.warning(f"Unknown config section ignored: {section}")
            continue
        if not isinstance(values, dict):
            raise ValueError(f"Config section '{section}' must be a mapping")
        merged[section].update(values)
    return merged


def config_from_dict(data: Dict[str, Any]) -> Config:
    """dict → Config (누락된 키는 기본값)"""
    data = _merge_defaults(data)
    return Config(
        paths=PathsConfig(**data["paths"]),
        archive=ArchiveConfig(**data["archive"]),
        backup=BackupConfig(**data["backup"]),
        find_replace=FindReplaceConfig(**data["find_replace"]),
        logging=LoggingConfig(**data["logging"])
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """config.yml 로드

    Args:
        config_path: 설정 파일 경로

    Returns:
        Config 객체 (파일이 없으면 기본값)

    Raises:
        yaml.YAMLError: YAML 파싱 에러
    """
    path = Path(config_path)
    if not path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return config_from_dict({})

    logger.debug(f"Loading config from: {config_path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    config = config_from_dict(data)
    logger.info(f"✅ Config loaded: {config_path}")
    return config


# 전역 설정 인스턴스 (싱글톤)
_config: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """전역 설정 인스턴스 반환 (싱글톤)

    Args:
        config_path: 지정하면 해당 파일로 다시 로드

    Returns:
        Config 객체

    Example:
        >>> from novel_backup_processor.config.loader import get_config
        >>> config = get_config()
        >>> print(config.archive.chapter_extensions)
    """
    global _config
    if _config is None or config_path is not None:
        _config = load_config(config_path or DEFAULT_CONFIG_PATH)
    return _config


def save_config(config: Config, config_path: str = DEFAULT_CONFIG_PATH) -> None:
    """config.yml 저장

    Args:
        config: Config 객체
        config_path: 설정 파일 경로
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(asdict(config), f, allow_unicode=True, default_flow_style=False, sort_keys=False)

    logger.info(f"✅ Config saved: {config_path}")
