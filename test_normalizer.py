"""Chapter Normalizer 테스트

문단 분리, 지문, 제목 추출 검증
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from novel_backup_processor.stages.archive_reader import RawChapter
from novel_backup_processor.stages.normalizer import (
    chapter_title_from_name, compute_fingerprint, normalize_all, normalize_chapter, split_paragraphs
)


def test_split_paragraphs():
    """줄 단위 분리 + 공백 제거 + 빈 줄 제거"""
    assert split_paragraphs("Hello\nWorld") == ("Hello", "World")
    assert split_paragraphs("  a  \r\n\r\n\tb\r c\n\n") == ("a", "b", "c")
    assert split_paragraphs("") == ()
    assert split_paragraphs("\n \n\t\n") == ()
    print("✅ split_paragraphs test passed!")


def test_fingerprint_ignores_layout():
    """보이는 텍스트가 같으면 지문도 같음"""
    a = split_paragraphs("Hello\nWorld")
    b = split_paragraphs("\r\n  Hello  \r\n\r\nWorld\r\n")
    assert compute_fingerprint(a) == compute_fingerprint(b)

    assert compute_fingerprint(("Hello", "World")) != compute_fingerprint(("Hello", "World!"))
    # 문단 경계도 내용의 일부
    assert compute_fingerprint(("ab",)) != compute_fingerprint(("a", "b"))

    fingerprint = compute_fingerprint(a)
    assert isinstance(fingerprint, str)
    assert len(fingerprint) == 16
    print("✅ Fingerprint test passed!")


def test_chapter_title_from_name():
    """폴더 경로와 확장자 제거"""
    assert chapter_title_from_name("chapter2.txt") == "chapter2"
    assert chapter_title_from_name("novel/vol1/001 프롤로그.TXT") == "001 프롤로그"
    assert chapter_title_from_name("novel\\ch3.txt") == "ch3"
    assert chapter_title_from_name("ch3.text", [".text"]) == "ch3"


def test_normalize_chapter():
    draft = normalize_chapter("chapter2.txt", "Hello\n\n  World  ", order=5)
    assert draft.title == "chapter2"
    assert draft.paragraphs == ("Hello", "World")
    assert draft.fingerprint == compute_fingerprint(("Hello", "World"))
    assert draft.order == 5

    # 빈 챕터도 유지 (문단 없음)
    empty = normalize_chapter("blank.txt", "\n\n", order=0)
    assert empty.paragraphs == ()
    assert empty.fingerprint == compute_fingerprint(())


def test_normalize_all_orders_by_position():
    drafts = normalize_all([
        RawChapter("chapter2.txt", "Hello\nWorld"),
        RawChapter("chapter10.txt", "Foo"),
    ])
    assert [(d.title, d.order) for d in drafts] == [("chapter2", 0), ("chapter10", 1)]
    assert normalize_all([]) == []


def main():
    """테스트 실행"""
    print("=" * 50)
    print("Chapter Normalizer Tests")
    print("=" * 50)

    test_split_paragraphs()
    test_fingerprint_ignores_layout()
    test_chapter_title_from_name()
    test_normalize_chapter()
    test_normalize_all_orders_by_position()

    print("=" * 50)
    print("✅ All tests passed!")
    print("=" * 50)


if __name__ == "__main__":
    main()
