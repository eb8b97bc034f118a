"""
CLI 진입점

사용법:
    analysis-engine health            # Provider 헬스체크 (캐시 사용)
    analysis-engine health --no-cache
    analysis-engine providers         # 등록된 Provider 목록
    analysis-engine tools             # 사용 가능한 도구 목록
    analysis-engine analyze example.com --tools http-check --wait 60
"""
import argparse
import json
import sys

from analysis_engine.core.config import get_config
from analysis_engine.core.exceptions import BaseError, ExecutionTimeoutError
from analysis_engine.core.interfaces import OverallHealth, RequestStatus
from analysis_engine.core.logger import setup_logger_from_config
from analysis_engine.health import HealthValidator
from analysis_engine.orchestrator import AnalysisOrchestrator
from analysis_engine.tools import builtin_tools


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="analysis-engine",
        description="다중 도구 분석 오케스트레이터",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    health = sub.add_parser("health", help="Provider 헬스체크")
    health.add_argument("--no-cache", action="store_true", help="캐시 무시하고 전체 프로브")
    health.add_argument("--json", action="store_true", help="JSON 출력")

    sub.add_parser("providers", help="등록된 Provider 목록")
    sub.add_parser("tools", help="사용 가능한 도구 목록")

    analyze = sub.add_parser("analyze", help="대상 분석 실행")
    analyze.add_argument("target", help="분석 대상 (URL, 주소 등)")
    analyze.add_argument("--tools", nargs="+", default=None, help="실행할 도구 ID (기본: 전체)")
    analyze.add_argument("--timeout", type=float, default=None, help="도구별 제한 시간 (초)")
    analyze.add_argument("--wait", type=float, default=120.0, help="최대 대기 시간 (초, 기본: 120)")

    return parser


def _cmd_health(validator: HealthValidator, args: argparse.Namespace) -> int:
    summary = validator.validate_all() if args.no_cache else validator.validate_with_cache()

    if args.json:
        print(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(summary.summary())

    return 2 if summary.overall_status is OverallHealth.CRITICAL else 0


def _cmd_providers(validator: HealthValidator) -> int:
    descriptors = validator.registry.list()
    if not descriptors:
        print("등록된 Provider 없음")
        return 0

    for d in descriptors:
        flag = "필수" if d.required else "선택"
        print(f"  {d.name:<20} [{flag}] {d.auth_mode.value:<6} {d.base_url}")
    return 0


def _cmd_analyze(orchestrator: AnalysisOrchestrator, args: argparse.Namespace) -> int:
    tool_ids = args.tools or list(orchestrator.list_tools())
    options = {"timeout": args.timeout} if args.timeout else {}

    request_id = orchestrator.start_analysis(args.target, tool_ids, options)
    print(f"요청 ID: {request_id}")

    try:
        snapshot = orchestrator.wait_for_completion(request_id, timeout=args.wait, poll_interval=0.5)
    except ExecutionTimeoutError:
        cancelled = orchestrator.cancel_analysis(request_id)
        snapshot = orchestrator.get_status(request_id)
        print(f"✗ {args.wait:g}초 내에 완료되지 않아 취소함: {', '.join(cancelled)}")
        # 취소 신호를 무시하는 도구를 기다리지 않음
        orchestrator.shutdown(wait=False)

    print(json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2, default=str))
    return 0 if snapshot.status is RequestStatus.COMPLETED else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = get_config()
        setup_logger_from_config()

        validator = HealthValidator.from_config(config)

        if args.command == "health":
            return _cmd_health(validator, args)
        if args.command == "providers":
            return _cmd_providers(validator)

        with AnalysisOrchestrator.from_config(builtin_tools(), config, health=validator) as orchestrator:
            if args.command == "tools":
                for tool_id, name in orchestrator.list_tools().items():
                    print(f"  {tool_id:<20} {name}")
                return 0
            return _cmd_analyze(orchestrator, args)

    except BaseError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
