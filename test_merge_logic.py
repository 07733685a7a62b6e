"""병합 로직 테스트

지문 기반 중복 판정, 제목 충돌 해결, id/order 규칙 검증
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from novel_backup_processor.stages.chapter import BackupDocument, Chapter, validate_document
from novel_backup_processor.stages.errors import IncompatibleFormatError, InvalidSuffixFormatError
from novel_backup_processor.stages.merge_engine import MergeAction, merge
from novel_backup_processor.stages.normalizer import compute_fingerprint, split_paragraphs


def make_document(chapters, title="Novel", author="Writer", ids=None, next_chapter_id=None, format_version=1):
    """(제목, 본문) 목록으로 테스트 문서 생성"""
    ids = list(ids) if ids is not None else list(range(len(chapters)))
    built = []
    for order, ((chapter_title, text), chapter_id) in enumerate(zip(chapters, ids)):
        paragraphs = split_paragraphs(text)
        built.append(Chapter(
            id=chapter_id,
            title=chapter_title,
            paragraphs=paragraphs,
            fingerprint=compute_fingerprint(paragraphs),
            order=order,
        ))
    if next_chapter_id is None:
        next_chapter_id = max(ids, default=-1) + 1
    return BackupDocument(
        format_version=format_version,
        title=title,
        author=author,
        chapters=tuple(built),
        next_chapter_id=next_chapter_id,
    )


def titles(document):
    return [ch.title for ch in document.chapters]


def test_merge_conflict_duplicate_and_append():
    """Intro 충돌 → Intro (2), 같은 Ch1 건너뜀, Ch2 추가"""
    base = make_document([("Intro", "Hello"), ("Ch1", "A")])
    incoming = make_document([("Intro", "Different"), ("Ch1", "A"), ("Ch2", "B")])

    merged, report = merge(base, incoming)

    assert titles(merged) == ["Intro", "Intro (2)", "Ch1", "Ch2"]
    assert [ch.order for ch in merged.chapters] == [0, 1, 2, 3]
    assert merged.chapters[1].paragraphs == ("Different",)

    assert report.kept_from_base == 2
    assert report.skipped_duplicate == 1
    assert report.conflict_resolved == 1
    assert report.newly_appended == 1
    assert report.incoming_total == 3

    actions = [(e.incoming_title, e.action) for e in report.entries]
    assert actions == [
        ("Intro", MergeAction.CONFLICT_RESOLVED),
        ("Ch1", MergeAction.SKIPPED_DUPLICATE),
        ("Ch2", MergeAction.APPENDED),
    ]
    assert report.entries[1].reason == "skipped (identical content)"
    assert report.entries[0].result_title == "Intro (2)"
    print("✅ Conflict/duplicate/append test passed!")


def test_merge_keeps_base_ids_and_issues_new_ids():
    """base 챕터는 id 유지, 새 챕터는 next_chapter_id부터"""
    base = make_document([("A", "a"), ("B", "b")], ids=[3, 7], next_chapter_id=10)
    incoming = make_document([("C", "c"), ("A", "other a")])

    merged, report = merge(base, incoming)

    by_title = {ch.title: ch.id for ch in merged.chapters}
    assert by_title["A"] == 3
    assert by_title["B"] == 7
    assert by_title["C"] == 10
    assert by_title["A (2)"] == 11
    assert merged.next_chapter_id == 12
    assert titles(merged) == ["A", "A (2)", "B", "C"]
    validate_document(merged)

    # 입력 문서는 그대로
    assert titles(base) == ["A", "B"]
    assert base.next_chapter_id == 10


def test_merge_with_itself_is_identity():
    """자기 자신과 병합하면 결과가 같음"""
    document = make_document([("Intro", "Hello"), ("Ch1", "A\nB"), ("Intro", "Second intro")])

    merged, report = merge(document, document)

    assert merged == document
    assert report.skipped_duplicate == 3
    assert report.newly_appended == 0
    assert report.conflict_resolved == 0


def test_merge_preserves_all_content():
    """모든 지문이 결과에 남음"""
    base = make_document([("1", "one"), ("2", "two"), ("x", "shared")])
    incoming = make_document([("x", "shared"), ("2", "TWO"), ("3", "three"), ("1", "one")])

    merged, _ = merge(base, incoming)

    expected = {ch.fingerprint for ch in base.chapters} | {ch.fingerprint for ch in incoming.chapters}
    assert {ch.fingerprint for ch in merged.chapters} == expected
    assert len(merged) == len(expected)


def test_multiple_conflicts_numbered_in_order():
    """같은 제목 충돌이 여러 개면 (2), (3) 순서로 base 챕터 바로 뒤에"""
    base = make_document([("Intro", "base"), ("End", "fin")])
    incoming = make_document([("Intro", "second"), ("Intro", "third")])

    merged, report = merge(base, incoming)

    assert titles(merged) == ["Intro", "Intro (2)", "Intro (3)", "End"]
    assert report.conflict_resolved == 2


def test_conflict_suffix_skips_taken_titles():
    """이미 있는 제목은 건너뛰고 다음 번호"""
    base = make_document([("Intro", "base"), ("Intro (2)", "already there")])
    incoming = make_document([("Intro", "new one")])

    merged, _ = merge(base, incoming)

    assert titles(merged) == ["Intro", "Intro (3)", "Intro (2)"]


def test_custom_suffix_format():
    base = make_document([("Intro", "base")])
    incoming = make_document([("Intro", "new")])

    merged, _ = merge(base, incoming, suffix_format=" [{n}]")
    assert titles(merged) == ["Intro", "Intro [2]"]

    for bad_format in (" (copy)", " ({x}{n})", " ({0})", " ({n"):
        with pytest.raises(InvalidSuffixFormatError):
            merge(base, incoming, suffix_format=bad_format)

    # 충돌이 없어도 병합 전에 검사
    with pytest.raises(InvalidSuffixFormatError):
        merge(base, make_document([]), suffix_format=" ({x}{n})")


def test_duplicates_within_incoming_are_skipped():
    """incoming 안에서 반복된 내용은 한 번만 추가"""
    base = make_document([("Ch1", "A")])
    incoming = make_document([("Ch2", "B"), ("Ch2 copy", "B")])

    merged, report = merge(base, incoming)

    assert titles(merged) == ["Ch1", "Ch2"]
    assert report.newly_appended == 1
    assert report.skipped_duplicate == 1
    assert report.entries[1].reason == "skipped (identical content within incoming)"
    assert report.entries[1].matched_id == merged.chapters[1].id


def test_appended_title_collisions_between_incoming_chapters():
    """incoming끼리 제목이 같아도 base에 없으면 둘 다 추가 (제목 그대로)"""
    base = make_document([("Ch1", "A")])
    incoming = make_document([("Side", "x"), ("Side", "y")])

    merged, report = merge(base, incoming)

    assert titles(merged) == ["Ch1", "Side", "Side"]
    assert report.newly_appended == 2


def test_merge_into_empty_base_and_metadata_fallback():
    """빈 base면 전부 추가, 제목/작가는 base 우선 없으면 incoming"""
    base = make_document([], title=None, author="Base author")
    incoming = make_document([("Ch1", "A"), ("Ch2", "B")], title="Incoming", author="Other")

    merged, report = merge(base, incoming)

    assert titles(merged) == ["Ch1", "Ch2"]
    assert merged.title == "Incoming"
    assert merged.author == "Base author"
    assert report.kept_from_base == 0
    assert report.newly_appended == 2


def test_incompatible_format_version():
    base = make_document([("Ch1", "A")])
    future = make_document([("Ch2", "B")], format_version=2)

    with pytest.raises(IncompatibleFormatError) as excinfo:
        merge(base, future)
    assert excinfo.value.version == 2
    assert excinfo.value.source == "incoming"

    with pytest.raises(IncompatibleFormatError):
        merge(future, base)


def test_merge_reports_once():
    calls = []
    base = make_document([("Ch1", "A")])
    incoming = make_document([("Ch2", "B")])

    merge(base, incoming, sink=lambda operation, report: calls.append((operation, report)))

    assert len(calls) == 1
    operation, report = calls[0]
    assert operation == "merge"
    assert report["newly_appended"] == 1
    assert report["entries"][0]["action"] == "appended"


def main():
    """테스트 실행"""
    print("=" * 50)
    print("Merge Logic Tests")
    print("=" * 50)

    test_merge_conflict_duplicate_and_append()
    test_merge_keeps_base_ids_and_issues_new_ids()
    test_merge_with_itself_is_identity()
    test_merge_preserves_all_content()
    test_multiple_conflicts_numbered_in_order()
    test_conflict_suffix_skips_taken_titles()
    test_custom_suffix_format()
    test_duplicates_within_incoming_are_skipped()
    test_appended_title_collisions_between_incoming_chapters()
    test_merge_into_empty_base_and_metadata_fallback()
    test_incompatible_format_version()
    test_merge_reports_once()

    print("=" * 50)
    print("✅ All tests passed!")
    print("=" * 50)


if __name__ == "__main__":
    main()
