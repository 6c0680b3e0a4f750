"""
Graph Executor - 추상 인터페이스
커넥터가 의존하는 최소 기능: 쿼리 실행, 연결 확인, 종료.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from dsgraph.storage.query_builder import GraphQuery


class GraphExecutor(ABC):
    """Graph execution service interface"""

    @abstractmethod
    async def verify_connectivity(self) -> None:
        """준비 확인 (실패 시 예외)"""
        ...

    @abstractmethod
    async def run(self, query: GraphQuery) -> List[Dict[str, Any]]:
        """쿼리 실행, 결과 row 목록 반환"""
        ...

    @abstractmethod
    async def close(self) -> None:
        """리소스 해제"""
        ...
