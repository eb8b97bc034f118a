"""
Orchestrator: 다중 도구 분석 조율

도구들을 동시에 실행하고 도구별 상태를 Run Store에 기록
"""
from analysis_engine.orchestrator.models import AnalysisRequest, ToolRun, aggregate_status
from analysis_engine.orchestrator.run_store import RunStore, MemoryRunStore
from analysis_engine.orchestrator.orchestrator import AnalysisOrchestrator, generate_request_id

__all__ = [
    "AnalysisRequest",
    "ToolRun",
    "aggregate_status",
    "RunStore",
    "MemoryRunStore",
    "AnalysisOrchestrator",
    "generate_request_id",
]
