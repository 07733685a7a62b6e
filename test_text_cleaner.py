"""텍스트 정리 유틸리티 테스트

clean_search_title, natural_sort_key, strip_extension 함수 검증
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from novel_backup_processor.utils.text_cleaner import (
    clean_search_title, has_extension, natural_sort_key, strip_extension
)


def test_clean_search_title():
    """아카이브 파일명 → 제목 테스트"""

    # 1. 파일 확장자 제거
    assert clean_search_title("마왕의 딸로 태어났습니다.zip") == "마왕의 딸로 태어났습니다"
    assert clean_search_title("회귀했더니_최강검사.json") == "회귀했더니 최강검사"

    # 2. 해시 마커 제거
    assert clean_search_title("#마왕의 딸로 태어났습니다.zip") == "마왕의 딸로 태어났습니다"
    assert clean_search_title("##소설제목.zip") == "소설제목"

    # 3. 에피소드 힌트 제거
    assert clean_search_title("마왕의 딸로 태어났습니다(1~370.연재).zip") == "마왕의 딸로 태어났습니다"
    assert clean_search_title("소설제목(완결).zip") == "소설제목"
    assert clean_search_title("소설제목(1-50).zip") == "소설제목"

    # 4. 언더스코어, 다중 공백
    assert clean_search_title("소설_제목_테스트.zip") == "소설 제목 테스트"
    assert clean_search_title("소설   제목.zip") == "소설 제목"

    # 5. 영문
    assert clean_search_title("My_Novel.ZIP") == "My Novel"

    print("✅ All clean_search_title tests passed!")


def test_natural_sort_key():
    """숫자 인식 정렬 테스트"""
    names = ["chapter10.txt", "chapter2.txt", "chapter1.txt"]
    assert sorted(names, key=natural_sort_key) == ["chapter1.txt", "chapter2.txt", "chapter10.txt"]

    # 대소문자 무시
    names = ["b.txt", "A.txt", "c.txt"]
    assert sorted(names, key=natural_sort_key) == ["A.txt", "b.txt", "c.txt"]

    # 숫자로 시작하는 이름이 먼저
    names = ["prologue.txt", "001.txt", "010.txt", "002.txt"]
    assert sorted(names, key=natural_sort_key) == ["001.txt", "002.txt", "010.txt", "prologue.txt"]

    # 폴더 경로 포함
    names = ["vol2/ch1.txt", "vol10/ch1.txt", "vol2/ch11.txt", "vol2/ch3.txt"]
    assert sorted(names, key=natural_sort_key) == [
        "vol2/ch1.txt", "vol2/ch3.txt", "vol2/ch11.txt", "vol10/ch1.txt"
    ]

    # 위첨자 같은 비십진 숫자는 문자로 비교
    assert natural_sort_key("1²2.txt") == ((0, 1), (1, "²"), (0, 2), (1, ".txt"))
    assert sorted(["ch²", "ch2", "ch1"], key=natural_sort_key) == ["ch1", "ch2", "ch²"]

    print("✅ All natural_sort_key tests passed!")


def test_strip_extension():
    """확장자 제거 테스트"""
    assert strip_extension("chapter1.txt", [".txt"]) == "chapter1"
    assert strip_extension("chapter1.TXT", [".txt"]) == "chapter1"
    assert strip_extension("chapter1.md", [".txt"]) == "chapter1.md"
    assert strip_extension("notes.txt.bak", [".txt"]) == "notes.txt.bak"

    assert has_extension("a.Txt", [".txt"])
    assert not has_extension("a.txt/", [".txt"])
    assert not has_extension("a.json", [".txt"])

    print("✅ All strip_extension tests passed!")


def main():
    """테스트 실행"""
    print("=" * 50)
    print("Text Cleaner Utility Tests")
    print("=" * 50)

    test_clean_search_title()
    test_natural_sort_key()
    test_strip_extension()

    print("=" * 50)
    print("✅ All tests passed!")
    print("=" * 50)


if __name__ == "__main__":
    main()
