"""결과 알림 싱크

엔진은 UI를 직접 그리지 않는다. 작업이 끝나면 호출자가 넘긴 싱크에
작업 이름과 리포트(dict)를 한 번 전달한다.
"""

from typing import Any, Callable, Dict, Optional
from novel_backup_processor.utils.logger import get_logger

logger = get_logger(__name__)

# (operation, report) -> None
ReportSink = Callable[[str, Dict[str, Any]], None]


def logging_sink(operation: str, report: Dict[str, Any]) -> None:
    """리포트를 로그로 남기는 기본 싱크"""
    summary = ", ".join(
        f"{key}={value}" for key, value in report.items()
        if isinstance(value, (int, str)) and not isinstance(value, bool)
    )
    logger.info(f"[{operation}] {summary}")


def notify(sink: Optional[ReportSink], operation: str, report: Dict[str, Any]) -> None:
    """싱크가 있으면 리포트 전달"""
    if sink is None:
        return
    sink(operation, report)
