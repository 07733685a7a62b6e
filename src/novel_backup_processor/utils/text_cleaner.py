"""텍스트 정리 유틸리티

아카이브 파일명에서 제목 추출, 자연 정렬 키 생성 등 문자열 처리 함수
"""

import re
from typing import Iterable, List, Tuple, Union
from novel_backup_processor.utils.logger import get_logger

logger = get_logger(__name__)

# 파일명에서 제거할 확장자
TITLE_EXTENSIONS = ['.zip', '.json', '.txt', '.epub']

_NUMBER_RE = re.compile(r'(\d+)')


def strip_extension(name: str, extensions: Iterable[str]) -> str:
    """인식된 확장자 제거 (대소문자 무시)

    Args:
        name: 파일명
        extensions: 확장자 목록 (예: [".txt"])

    Returns:
        확장자가 제거된 이름 (일치하는 확장자가 없으면 원본)
    """
    lowered = name.lower()
    for ext in extensions:
        if ext and lowered.endswith(ext.lower()):
            return name[:-len(ext)]
    return name


def has_extension(name: str, extensions: Iterable[str]) -> bool:
    """인식된 확장자로 끝나는지 확인"""
    lowered = name.lower()
    return any(ext and lowered.endswith(ext.lower()) for ext in extensions)


def natural_sort_key(name: str) -> Tuple[Tuple[int, Union[int, str]], ...]:
    """숫자 인식 자연 정렬 키

    숫자 구간은 정수로 비교하고 나머지는 대소문자를 무시하여 비교한다.
    "chapter2"가 "chapter10"보다 앞에 온다.

    Args:
        name: 정렬할 이름

    Returns:
        sorted()의 key로 사용할 튜플

    Examples:
        >>> sorted(["chapter10.txt", "chapter2.txt"], key=natural_sort_key)
        ['chapter2.txt', 'chapter10.txt']
    """
    parts: List[Tuple[int, Union[int, str]]] = []
    for chunk in _NUMBER_RE.split(name):
        if not chunk:
            continue
        if chunk.isdecimal():
            # 숫자는 문자열보다 앞
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk.casefold()))
    return tuple(parts)


def clean_search_title(filename: str) -> str:
    """아카이브 파일명에서 백업 제목 추출

    파일명에서 불필요한 요소를 제거하고 제목으로 쓸 부분만 남긴다.

    Args:
        filename: 원본 파일명

    Returns:
        정리된 제목

    Examples:
        >>> clean_search_title("#마왕의 딸로 태어났습니다(1~370.연재).zip")
        "마왕의 딸로 태어났습니다"

        >>> clean_search_title("회귀했더니_최강검사.zip")
        "회귀했더니 최강검사"
    """
    # 1. 파일 확장자 제거
    title = strip_extension(filename, TITLE_EXTENSIONS)

    # 2. 선행 해시 마커 제거 (예: #마왕의 딸...)
    title = re.sub(r'^#+\s*', '', title)

    # 3. 괄호로 감싼 에피소드/상태 힌트 제거
    # 예: (1~370.연재), (완결), (321화), (1-50)
    title = re.sub(r'\([^)]*(?:\d+[~\-]\d+|\d+화|완결|연재|휴재)[^)]*\)', '', title)

    # 4. 빈 괄호 제거
    title = re.sub(r'\(\s*\)', '', title)

    # 5. 언더스코어를 공백으로 변환
    title = title.replace('_', ' ')

    # 6. 다중 공백을 단일 공백으로
    title = re.sub(r'\s+', ' ', title)

    # 7. 앞뒤 공백 제거
    title = title.strip()

    logger.debug(f"Title cleaned: '{filename}' → '{title}'")

    return title
