"""
analysis_engine: 다중 도구 분석 오케스트레이션 엔진

- core: 설정, 로깅, 캐시, 예외, 인터페이스
- health: 외부 Provider 헬스체크
- orchestrator: 도구 동시 실행 및 상태 추적
- tools: 도구 어댑터
"""
__version__ = "0.1.0"
