import logging
import sys


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class RunLoggerAdapter(logging.LoggerAdapter):
    """
    동시에 여러 배포가 돌아도 로그를 구분할 수 있도록
    메시지 앞에 실행 ID 를 붙인다.
    """

    def process(self, msg, kwargs):  # noqa: ANN001
        return f"[{self.extra['run_id']}] {msg}", kwargs


def get_run_logger(name: str, run_id: str) -> RunLoggerAdapter:
    return RunLoggerAdapter(logging.getLogger(name), {"run_id": run_id})
