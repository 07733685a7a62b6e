"""CLI 인터페이스

Typer 기반 명령줄 인터페이스, Rich 기반 결과 출력
"""

import re
import zipfile
import typer
from pathlib import Path
from typing import Any, Dict, List, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from novel_backup_processor.utils.logger import get_logger, setup_logging
from novel_backup_processor.utils.text_cleaner import clean_search_title
from novel_backup_processor.config.loader import Config, get_config
from novel_backup_processor.stages.augment import augment_from_path
from novel_backup_processor.stages.backup_io import BACKUP_SUFFIX, load_backup, save_backup
from novel_backup_processor.stages.builder import build_from_path
from novel_backup_processor.stages.chapter import BackupDocument
from novel_backup_processor.stages.errors import BackupError
from novel_backup_processor.stages.find_replace import ALL_CHAPTERS, FindReplaceOptions, find_replace
from novel_backup_processor.stages.merge_engine import merge as merge_documents

logger = get_logger(__name__)
console = Console()
app = typer.Typer(help="Novel Backup Processor - 소설 백업 파일 생성/병합/보강/일괄 수정 도구")

# 사용자 입력 문제로 간주하는 예외
USER_ERRORS = (BackupError, FileNotFoundError, ValueError, zipfile.BadZipFile)


def _config() -> Config:
    return get_config()


def _fail(exc: Exception) -> None:
    """오류 출력 후 종료 코드 2"""
    logger.error(f"{type(exc).__name__}: {exc}")
    console.print(f"[bold red]❌ {type(exc).__name__}:[/bold red] {exc}")
    raise typer.Exit(code=2)


def _default_output(document: BackupDocument, fallback: str) -> Path:
    """-o 미지정 시 출력 경로 (output_folder/<제목>.json)"""
    name = document.title or fallback
    name = re.sub(r'[\\/:*?"<>|]+', "_", name).strip() or "backup"
    return Path(_config().paths.output_folder) / f"{name}{BACKUP_SUFFIX}"


def _summary_table(title: str, rows: List[tuple]) -> Table:
    table = Table(title=title)
    table.add_column("항목", style="cyan")
    table.add_column("값", style="green")
    for label, value in rows:
        table.add_row(label, str(value))
    return table


def rich_sink(operation: str, report: Dict[str, Any]) -> None:
    """Rich 테이블로 리포트 출력하는 싱크"""
    if operation == "build":
        console.print(_summary_table("백업 생성 결과", [
            ("제목", report["title"] or "-"),
            ("챕터 수", report["chapters"]),
        ]))
        return

    if operation in ("merge", "augment"):
        rows = [
            ("기존 챕터 유지", report["kept_from_base"]),
            ("중복 건너뜀", report["skipped_duplicate"]),
            ("제목 충돌 해결", report["conflict_resolved"]),
            ("새로 추가", report["newly_appended"]),
        ]
        if operation == "augment":
            rows.insert(0, ("아카이브 챕터", len(report["archive_entries"])))
        console.print(_summary_table("병합 결과" if operation == "merge" else "보강 결과", rows))

        detail = Table(title="챕터별 처리")
        detail.add_column("제목", style="cyan")
        detail.add_column("처리", style="yellow")
        detail.add_column("결과 제목", style="green")
        for entry in report["entries"]:
            detail.add_row(entry["incoming_title"], entry["reason"], entry["result_title"] or "-")
        console.print(detail)
        return

    if operation == "find_replace":
        console.print(_summary_table("찾기/바꾸기 결과", [
            ("총 일치", report["total_matches"]),
            ("변경된 챕터", report["chapters_affected"]),
        ]))
        detail = Table(title="챕터별 일치")
        detail.add_column("id", justify="right", style="cyan")
        detail.add_column("제목", style="cyan")
        detail.add_column("일치", justify="right", style="yellow")
        detail.add_column("변경", style="green")
        for change in report["chapters"]:
            if change["match_count"]:
                detail.add_row(
                    str(change["chapter_id"]), change["title"],
                    str(change["match_count"]), "✅" if change["changed"] else "-"
                )
        console.print(detail)


@app.callback()
def main(
    config: Optional[str] = typer.Option(None, "--config", help="설정 파일 경로 (기본: config/config.yml)")
):
    """설정 로드 (--config 지정 시 로깅도 재설정)"""
    cfg = get_config(config)
    if config is not None:
        setup_logging(cfg.logging.file_level, cfg.logging.console_level, log_dir=Path(cfg.paths.logs))


@app.command()
def build(
    archive: Path = typer.Argument(..., help="챕터 .txt 파일이 담긴 ZIP 파일 또는 폴더"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="출력 백업 파일 (.json)"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="소설 제목 (기본: 아카이브 파일명)"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="작가")
):
    """ZIP 아카이브로 새 백업 파일 생성"""
    console.print(Panel.fit("📦 Create Backup from ZIP", style="bold blue"))
    cfg = _config()

    try:
        document = build_from_path(
            archive,
            title=title or clean_search_title(archive.name) or None,
            author=author,
            extensions=cfg.archive.chapter_extensions,
            default_encoding=cfg.archive.default_encoding,
            auto_detect=cfg.archive.auto_detect_encoding,
            sink=rich_sink
        )
        output_path = save_backup(document, output or _default_output(document, archive.stem), cfg.backup.indent)
    except USER_ERRORS as e:
        _fail(e)
        return

    console.print(f"\n✅ 백업 파일이 생성되었습니다: [green]{output_path}[/green]")


@app.command()
def merge(
    base: Path = typer.Argument(..., help="기준 백업 파일"),
    incoming: Path = typer.Argument(..., help="병합할 백업 파일"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="출력 백업 파일 (.json)")
):
    """백업 파일 두 개 병합"""
    console.print(Panel.fit("🔀 Merge Backup Files", style="bold blue"))
    cfg = _config()

    try:
        base_doc = load_backup(base)
        incoming_doc = load_backup(incoming)
        merged, _ = merge_documents(
            base_doc, incoming_doc,
            suffix_format=cfg.backup.conflict_suffix_format,
            sink=rich_sink
        )
        output_path = save_backup(merged, output or _default_output(merged, base.stem), cfg.backup.indent)
    except USER_ERRORS as e:
        _fail(e)
        return

    console.print(f"\n✅ 병합된 백업 파일: [green]{output_path}[/green] ({len(merged.chapters)} chapters)")


@app.command()
def augment(
    backup: Path = typer.Argument(..., help="기존 백업 파일"),
    archive: Path = typer.Argument(..., help="새 챕터 .txt 파일이 담긴 ZIP 파일 또는 폴더"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="출력 백업 파일 (.json)")
):
    """ZIP 아카이브 챕터로 백업 파일 보강"""
    console.print(Panel.fit("➕ Augment Backup with ZIP", style="bold blue"))
    cfg = _config()

    try:
        document = load_backup(backup)
        augmented, _ = augment_from_path(
            document, archive,
            extensions=cfg.archive.chapter_extensions,
            default_encoding=cfg.archive.default_encoding,
            auto_detect=cfg.archive.auto_detect_encoding,
            suffix_format=cfg.backup.conflict_suffix_format,
            sink=rich_sink
        )
        output_path = save_backup(augmented, output or _default_output(augmented, backup.stem), cfg.backup.indent)
    except USER_ERRORS as e:
        _fail(e)
        return

    console.print(f"\n✅ 보강된 백업 파일: [green]{output_path}[/green] ({len(augmented.chapters)} chapters)")


@app.command()
def replace(
    backup: Path = typer.Argument(..., help="대상 백업 파일"),
    pattern: str = typer.Argument(..., help="찾을 문자열 또는 정규식"),
    replacement: str = typer.Argument(..., help="바꿀 문자열"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="출력 백업 파일 (.json)"),
    regex: Optional[bool] = typer.Option(None, "--regex/--literal", help="정규식 모드"),
    case_sensitive: Optional[bool] = typer.Option(None, "--case-sensitive/--ignore-case", help="대소문자 구분"),
    whole_word: Optional[bool] = typer.Option(None, "--whole-word/--any-position", help="단어 단위 일치"),
    chapter: Optional[List[int]] = typer.Option(None, "--chapter", "-c", help="대상 챕터 id (여러 번 지정 가능)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="결과만 보고 저장하지 않음")
):
    """백업 파일 본문 찾기/바꾸기"""
    console.print(Panel.fit("🔎 Find & Replace in Backup File", style="bold blue"))
    cfg = _config()
    defaults = cfg.find_replace
    options = FindReplaceOptions(
        case_sensitive=defaults.case_sensitive if case_sensitive is None else case_sensitive,
        use_regex=defaults.use_regex if regex is None else regex,
        whole_word=defaults.whole_word if whole_word is None else whole_word,
    )

    try:
        document = load_backup(backup)
        result, report = find_replace(
            document, pattern, replacement,
            options=options,
            scope=chapter if chapter else ALL_CHAPTERS,
            sink=rich_sink
        )
        if dry_run:
            console.print("\n[yellow]Dry run: 저장하지 않았습니다.[/yellow]")
            return
        output_path = save_backup(result, output or _default_output(result, backup.stem), cfg.backup.indent)
    except USER_ERRORS as e:
        _fail(e)
        return

    console.print(
        f"\n✅ {report.total_matches}개 일치, {report.chapters_affected}개 챕터 변경: [green]{output_path}[/green]"
    )


@app.command()
def info(
    backup: Path = typer.Argument(..., help="백업 파일")
):
    """백업 파일 정보 확인"""
    console.print(Panel.fit("📊 Backup Info", style="bold blue"))

    try:
        document = load_backup(backup)
    except USER_ERRORS as e:
        _fail(e)
        return

    console.print(_summary_table("메타데이터", [
        ("제목", document.title or "-"),
        ("작가", document.author or "-"),
        ("포맷 버전", document.format_version),
        ("챕터 수", len(document.chapters)),
    ]))

    table = Table(title="챕터 목록")
    table.add_column("order", justify="right", style="cyan")
    table.add_column("id", justify="right", style="cyan")
    table.add_column("제목", style="green")
    table.add_column("문단", justify="right", style="yellow")
    table.add_column("글자 수", justify="right", style="yellow")
    for chapter in document.chapters:
        table.add_row(
            str(chapter.order), str(chapter.id), chapter.title,
            str(len(chapter.paragraphs)), str(chapter.char_count)
        )
    console.print(table)


if __name__ == "__main__":
    app()
