"""애플리케이션 진입점

Tiingo 실시간 피드 스트림 하나를 열고 수신한 틱을 출력한다.
- 설정: 환경변수(TIINGO_*, WS_*, LOG_*) + 명령행 오버라이드
- SIGINT/SIGTERM 수신 시 정상 종료
- 복구 불가 오류(Error 프레임, 재연결 예산 소진) 또는 최초 연결 실패 시 종료 코드 1

Usage:
    TIINGO_TOKEN=xxxx python main.py
    TIINGO_TOKEN=xxxx python main.py --endpoint wss://api.tiingo.com/crypto --tickers btcusd
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import sys

from tiingo_stream.common.exceptions import StreamError
from tiingo_stream.common.logger import PipelineLogger
from tiingo_stream.config.settings import stream_settings
from tiingo_stream.core.connection import StreamClient
from tiingo_stream.core.types import TickPayload

logger = PipelineLogger.get_logger("main", "app")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tiingo realtime feed stream")
    parser.add_argument("--tickers", help="콤마 구분 심볼 목록 (기본: TIINGO_TICKERS)")
    parser.add_argument("--endpoint", help="피드 엔드포인트 (기본: TIINGO_ENDPOINT)")
    parser.add_argument("--csv", action="store_true", help="csv 데이터 포맷으로 구독")
    parser.add_argument("--verbose", action="store_true", help="상세 추적 로그")
    return parser.parse_args(argv)


class Application:
    """애플리케이션 메인 클래스

    책임:
    - 설정 로드 및 StreamClient 생성
    - 틱 출력 컨슈머 등록
    - 시그널 기반 Graceful Shutdown
    """

    def __init__(self, args: argparse.Namespace) -> None:
        self.args = args
        self.client: StreamClient | None = None
        self.stop_event = asyncio.Event()

    def _print_tick(self, tick: TickPayload) -> None:
        print(tick, flush=True)

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Windows 등 add_signal_handler 미지원 환경은 KeyboardInterrupt 로 처리
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, self.stop_event.set)

    async def initialize(self) -> None:
        """설정 검증 → 클라이언트 생성 → 최초 연결"""
        tickers = self.args.tickers.split(",") if self.args.tickers else None
        config = stream_settings.to_config(
            endpoint=self.args.endpoint,
            tickers=tickers,
            data_format="csv" if self.args.csv else None,
            verbose=True if self.args.verbose else None,
        )
        logger.info(f"스트림 시작: {config.endpoint} ({','.join(config.tickers)})")

        self.client = StreamClient(config)
        outcome = await self.client.connect()
        outcome.raise_for_error()
        self.client.get_ticks(self._print_tick, json=not self.args.csv)
        logger.info(f"✅ 연결 완료 (stream_id={outcome.stream_id})")

    async def run(self) -> None:
        """종료 시그널 또는 스트림 종료까지 대기"""
        assert self.client is not None
        self._install_signal_handlers()

        stop_task = asyncio.create_task(self.stop_event.wait(), name="stop-signal")
        closed_task = asyncio.create_task(self.client.wait_closed(), name="stream-closed")
        done, pending = await asyncio.wait(
            {stop_task, closed_task}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if closed_task in done:
            # 복구 불가 오류면 여기서 예외 발생
            closed_task.result()
            logger.warning("스트림이 종료되었습니다 (재연결 비활성화)")
        else:
            logger.info("종료 시그널 수신")

    async def shutdown(self) -> None:
        logger.info("정리 작업 시작...")
        if self.client is not None:
            await self.client.close()
        logger.info("✅ 프로그램 종료 완료")


async def main(argv: list[str] | None = None) -> int:
    """메인 실행 함수. 프로세스 종료 코드 반환"""
    app = Application(parse_args(argv))

    try:
        await app.initialize()
        await app.run()
    except StreamError as e:
        logger.error(f"스트림 오류로 종료: {e}", error_type=type(e).__name__)
        return 1
    finally:
        await app.shutdown()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n프로그램이 종료되었습니다.")
