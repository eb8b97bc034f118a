"""
기초 테스트 - 프로젝트 초기화 검증
"""
import pytest


class TestProjectSetup:
    """프로젝트 초기 설정 검증 테스트"""

    def test_python_version(self):
        """Python 버전이 3.10 이상인지 확인"""
        import sys
        assert sys.version_info >= (3, 10), "Python 3.10 이상 필요"

    def test_requests_import(self):
        """requests 라이브러리 임포트 확인"""
        import requests
        assert requests is not None

    def test_loguru_import(self):
        """loguru 라이브러리 임포트 확인"""
        from loguru import logger
        assert logger is not None

    def test_yaml_import(self):
        """PyYAML 라이브러리 임포트 확인"""
        import yaml
        assert yaml.safe_load("a: 1") == {"a": 1}

    def test_package_import(self):
        """analysis_engine 패키지 구조 확인"""
        import analysis_engine
        import analysis_engine.core
        import analysis_engine.health
        import analysis_engine.orchestrator
        import analysis_engine.tools
        import analysis_engine.cli
        assert analysis_engine.__version__ == "0.1.0"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
